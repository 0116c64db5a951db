"""
Provider 目录 - UI 可选 Provider 及其模型列表的唯一真相来源。

偏好设置中保存的 provider_type（如 "claude"）就是这里的 name。
每条 ProviderSpec 同时描述了两件事：
  1. UI 侧：显示名称、可选模型列表（第一个即默认模型）
  2. 本地后端侧：LiteLLM 路由前缀、API Key 环境变量名、网关信息

添加新的 Provider 只需两步：
  1. 在下方 PROVIDERS 元组中新增一条 ProviderSpec
  2. 在 config/schema.py 的 ProvidersConfig 中新增一个同名字段

PROVIDERS 中的顺序决定了 `agentdesk providers` 的展示顺序。
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderSpec:
    """
    单个 Provider 的元数据规格定义（不可变）。

    属性：
        name: 配置字段名 / 偏好值（如 "claude"）
        display_name: 显示名称
        models: 可选模型列表，第一个为默认模型
        keywords: 模型名关键词（小写），用于根据模型名反查 Provider
        env_key: LiteLLM 需要的环境变量名（如 "ANTHROPIC_API_KEY"）
        litellm_prefix: LiteLLM 路由前缀（如 "dashscope" → "dashscope/{model}"）
        is_gateway: 是否是 API 网关（可路由任意模型）
        default_api_base: 默认的 API 基础 URL
    """

    name: str
    display_name: str
    models: tuple[str, ...]
    keywords: tuple[str, ...]
    env_key: str
    litellm_prefix: str = ""
    is_gateway: bool = False
    default_api_base: str = ""

    @property
    def label(self) -> str:
        return self.display_name or self.name.title()

    @property
    def default_model(self) -> str:
        return self.models[0] if self.models else ""


PROVIDERS: tuple[ProviderSpec, ...] = (
    ProviderSpec(
        name="claude",
        display_name="Claude",
        models=("claude-sonnet-4-20250514", "claude-opus-4-20250514", "claude-3-5-haiku-20241022"),
        keywords=("claude", "anthropic"),
        env_key="ANTHROPIC_API_KEY",
        litellm_prefix="anthropic",
    ),
    ProviderSpec(
        name="openai",
        display_name="OpenAI",
        models=("gpt-4o", "gpt-4o-mini", "o3-mini"),
        keywords=("gpt", "o1", "o3"),
        env_key="OPENAI_API_KEY",
    ),
    ProviderSpec(
        name="gemini",
        display_name="Gemini",
        models=("gemini-2.5-pro", "gemini-2.5-flash"),
        keywords=("gemini",),
        env_key="GEMINI_API_KEY",
        litellm_prefix="gemini",
    ),
    ProviderSpec(
        name="deepseek",
        display_name="DeepSeek",
        models=("deepseek-chat", "deepseek-reasoner"),
        keywords=("deepseek",),
        env_key="DEEPSEEK_API_KEY",
        litellm_prefix="deepseek",
    ),
    ProviderSpec(
        name="qwen",
        display_name="通义千问",
        models=("qwen-max", "qwen-plus", "qwen-turbo"),
        keywords=("qwen", "dashscope"),
        env_key="DASHSCOPE_API_KEY",
        litellm_prefix="dashscope",
    ),
    ProviderSpec(
        name="openrouter",
        display_name="OpenRouter",
        models=("anthropic/claude-sonnet-4", "openai/gpt-4o"),
        keywords=("openrouter",),
        env_key="OPENROUTER_API_KEY",
        litellm_prefix="openrouter",
        is_gateway=True,
        default_api_base="https://openrouter.ai/api/v1",
    ),
)


def find_by_name(name: str) -> ProviderSpec | None:
    """根据 Provider 名称（偏好值）查找 ProviderSpec，未找到返回 None。"""
    for spec in PROVIDERS:
        if spec.name == name:
            return spec
    return None


def find_by_model(model: str) -> ProviderSpec | None:
    """根据模型名关键词匹配标准 Provider（跳过网关），未匹配返回 None。"""
    model_lower = model.lower()
    for spec in PROVIDERS:
        if spec.is_gateway:
            continue
        if any(kw in model_lower for kw in spec.keywords):
            return spec
    return None


def default_model_for(provider_type: str) -> str:
    """获取 Provider 的默认模型（模型列表的第一个），未知 Provider 返回空字符串。"""
    spec = find_by_name(provider_type)
    return spec.default_model if spec else ""
