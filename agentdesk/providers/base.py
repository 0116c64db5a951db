"""
LLM 提供者基类定义模块。

本模块定义了本地 Agent 后端与大语言模型交互的抽象接口：
- LLMResponse     : LLM 的统一响应格式（文本内容、结束原因、token 用量等）
- LLMProvider     : 抽象基类，定义了所有 LLM 提供者必须实现的接口

架构角色：
  SessionOrchestrator → LocalAgentBackend.send_message() → LLMProvider.chat() → LLM API

类比 Java：
  - LLMProvider 相当于一个 interface，定义了 chat() 和 getDefaultModel() 方法
  - LLMResponse 相当于一个不可变的 DTO（Data Transfer Object）
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class LLMResponse:
    """
    LLM 的统一响应数据结构。

    属性：
        content: LLM 返回的文本内容
        finish_reason: 结束原因（"stop"=正常结束, "length"=截断, "error"=出错）
        usage: token 用量统计（prompt_tokens, completion_tokens, total_tokens）
        reasoning_content: 推理内容（开启深度思考时部分模型会返回思考过程）
    """
    content: str | None
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)
    reasoning_content: str | None = None

    @property
    def is_error(self) -> bool:
        """检查响应是否表示一次失败的调用。"""
        return self.finish_reason == "error"


class LLMProvider(ABC):
    """
    LLM 提供者抽象基类（类似 Java 的 interface）。

    当前项目中唯一的实现类是 LiteLLMProvider（在 litellm_provider.py 中）；
    测试中使用脚本化的假实现。

    属性：
        api_key: API 密钥
        api_base: API 基础 URL（用于自定义端点或代理）
    """

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        web_search: bool = False,
        thinking: bool = False,
    ) -> LLMResponse:
        """
        发送对话补全请求（核心方法）。

        参数：
            messages: OpenAI 格式的消息列表，content 可以是文本或多部分（文本 + 图片）
            model: 模型标识符，为空则使用默认模型
            max_tokens: 响应的最大 token 数
            temperature: 采样温度
            web_search: 是否请求联网搜索（服务商不支持时由实现自行忽略）
            thinking: 是否请求深度思考（服务商不支持时由实现自行忽略）

        返回：
            LLMResponse；调用失败时返回 finish_reason="error" 的响应而非抛出异常
        """
        pass

    @abstractmethod
    def get_default_model(self) -> str:
        """获取该提供者的默认模型名称。"""
        pass
