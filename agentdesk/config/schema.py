"""
配置数据模型定义 (config/schema.py)
=================================
本模块使用 Pydantic 定义 agentdesk 的完整配置结构。
所有配置项都有默认值，用户只需在 config.json 中覆盖需要修改的部分。

整体配置结构（树形）：
Config (根配置)
├── agent       - 会话默认值（Provider、模型、系统提示词、采样参数）
├── providers   - LLM 提供商配置（API Key、API Base URL 等）
└── storage     - 数据目录与临时存储策略

注意区分"配置"与"偏好"：
- 配置（本文件）：由用户手工编辑 config.json，决定默认值与凭据
- 偏好（PreferenceStore）：由 UI 操作写入，记住用户最后一次选择的 Provider / 模型
  偏好不存在时才回退到这里的默认值
"""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from agentdesk.providers.registry import default_model_for, find_by_name


class AgentDefaults(BaseModel):
    """会话默认配置。"""
    provider: str = "claude"  # 默认 Provider（对应 providers/registry.py 中的 name）
    model: str = ""  # 默认模型，留空表示使用该 Provider 模型列表中的第一个
    system_prompt: str | None = None  # 创建会话时附带的系统提示词
    max_tokens: int = 4096  # 单次回复的最大输出 token 数
    temperature: float = 0.7  # 生成温度
    memory_window: int = 50  # 本地后端每次请求携带的历史消息条数


class ProviderConfig(BaseModel):
    """单个 LLM 提供商的配置。"""
    api_key: str = ""  # API 密钥（留空表示未配置该提供商）
    api_base: str | None = None  # 自定义 API 基础 URL（用于私有部署或代理）
    extra_headers: dict[str, str] | None = None  # 额外请求头


class ProvidersConfig(BaseModel):
    """所有 LLM 提供商的聚合配置。字段名与 Provider 目录中的 name 一一对应。"""
    claude: ProviderConfig = Field(default_factory=ProviderConfig)
    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    gemini: ProviderConfig = Field(default_factory=ProviderConfig)
    deepseek: ProviderConfig = Field(default_factory=ProviderConfig)
    qwen: ProviderConfig = Field(default_factory=ProviderConfig)  # 阿里云通义千问
    openrouter: ProviderConfig = Field(default_factory=ProviderConfig)


class StorageConfig(BaseModel):
    """
    存储配置。

    persist_transient:
    - False（默认）：临时会话状态只保存在内存中，进程退出即丢失（与浏览器 sessionStorage 一致）
    - True：临时会话状态也写入数据目录下的 session.json，CLI 下次启动可以接着上次的话题聊
    """
    data_dir: str = "~/.agentdesk"  # 数据目录（偏好文件、临时状态文件、CLI 历史记录）
    persist_transient: bool = False  # 是否把临时会话状态也落盘


class Config(BaseSettings):
    """
    agentdesk 根配置类。

    继承自 Pydantic 的 BaseSettings，除了支持从 JSON 文件加载外，
    还支持从环境变量读取配置：
    - 环境变量前缀: AGENTDESK_
    - 嵌套分隔符: __ (双下划线)
    - 示例: AGENTDESK_AGENT__PROVIDER=openai 可覆盖 agent.provider
    """
    agent: AgentDefaults = Field(default_factory=AgentDefaults)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    model_config = SettingsConfigDict(
        env_prefix="AGENTDESK_",
        env_nested_delimiter="__",
    )

    @property
    def data_path(self) -> Path:
        """获取展开后的数据目录绝对路径（将 ~ 展开为用户主目录）。"""
        return Path(self.storage.data_dir).expanduser()

    @property
    def default_model(self) -> str:
        """默认模型：显式配置优先，否则取默认 Provider 的第一个模型。"""
        return self.agent.model or default_model_for(self.agent.provider)

    def get_provider(self, provider_type: str | None = None) -> ProviderConfig | None:
        """获取指定 Provider（默认为 agent.provider）的配置，未知 Provider 返回 None。"""
        name = provider_type or self.agent.provider
        if not find_by_name(name):
            return None
        return getattr(self.providers, name, None)

    def get_api_key(self, provider_type: str | None = None) -> str | None:
        """获取指定 Provider 的 API Key，未配置时返回 None。"""
        p = self.get_provider(provider_type)
        return p.api_key if p and p.api_key else None
