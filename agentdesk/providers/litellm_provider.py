"""
LiteLLM 提供者实现模块 - 本地 Agent 后端的模型调用层。

本模块是 LLMProvider 抽象基类的唯一实现，通过 LiteLLM 开源库对接
Claude、OpenAI、Gemini、DeepSeek、通义千问以及 OpenRouter 网关。

核心设计：
  1. 模型名称解析：根据 registry.py 中的元数据，自动为模型名添加正确的前缀
     例如 "qwen-max" → "dashscope/qwen-max"
  2. 网关检测：Provider 为 OpenRouter 时，所有模型统一加上网关前缀
  3. 环境变量配置：根据检测到的 Provider，自动设置 LiteLLM 所需的环境变量
  4. 凭据路由：模型属于另一个标准 Provider 时（如切换到 /provider openai），
     改用 credentials 中该 Provider 的 key 与 api_base，绝不把本 Provider 的 key 发给别家
  5. 错误容错：调用失败时返回 finish_reason="error" 的响应而非抛出异常，
     由上层（LocalAgentBackend）决定如何向编排器报告

数据流：
  LocalAgentBackend → LiteLLMProvider.chat() → _resolve_model() → litellm.acompletion() → LLM API
"""

import os
from dataclasses import dataclass
from typing import Any

import litellm
from litellm import acompletion

from agentdesk.providers.base import LLMProvider, LLMResponse
from agentdesk.providers.registry import ProviderSpec, find_by_model, find_by_name


@dataclass
class ProviderCredentials:
    """某个 Provider 的连接信息（来自 config.providers.<name>）。"""
    api_key: str | None = None
    api_base: str | None = None
    extra_headers: dict[str, str] | None = None


class LiteLLMProvider(LLMProvider):
    """
    基于 LiteLLM 的 LLM 提供者实现类。

    构造参数：
        api_key: API 密钥
        api_base: 自定义 API 基础 URL（用于代理/网关）
        default_model: 默认模型名称
        extra_headers: 额外的 HTTP 请求头
        provider_name: 偏好中的 Provider 名称（如 "openrouter"），用于网关检测
        credentials: 其他 Provider 的凭据，按 Provider 名称索引；
                     请求的模型属于其他 Provider 时使用
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "claude-sonnet-4-20250514",
        extra_headers: dict[str, str] | None = None,
        provider_name: str | None = None,
        credentials: dict[str, ProviderCredentials] | None = None,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.extra_headers = extra_headers or {}
        self.credentials = credentials or {}

        spec = find_by_name(provider_name) if provider_name else None
        self._gateway: ProviderSpec | None = spec if spec and spec.is_gateway else None
        if self._gateway and not api_base:
            self.api_base = self._gateway.default_api_base or None

        # 本 Provider 的名称：显式给出的优先，否则由默认模型推断
        own = spec or find_by_model(default_model)
        self.provider_name: str | None = own.name if own else None

        if api_key:
            self._setup_env(api_key, default_model)

        # 禁用 LiteLLM 的调试日志输出（默认很啰嗦）
        litellm.suppress_debug_info = True
        # 自动丢弃服务商不支持的参数（联网搜索、深度思考并非所有模型都支持）
        litellm.drop_params = True

    def _setup_env(self, api_key: str, model: str) -> None:
        """
        根据检测到的 Provider 设置 LiteLLM 需要的环境变量。

        网关：强制覆盖（网关的 key 不同于原始服务商的 key）；
        标准 Provider：使用 setdefault，不覆盖用户已有的环境变量。
        """
        spec = self._gateway or find_by_model(model)
        if not spec:
            return
        if self._gateway:
            os.environ[spec.env_key] = api_key
        else:
            os.environ.setdefault(spec.env_key, api_key)

    def _foreign_spec(self, model: str) -> ProviderSpec | None:
        """
        模型属于另一个标准 Provider 时返回它的 spec，否则返回 None（走本 Provider）。

        网关下带 "/" 的模型名（如 "anthropic/claude-sonnet-4"）是网关目录里的名字，
        仍归网关处理。
        """
        if self._gateway and "/" in model:
            return None
        spec = find_by_model(model)
        if spec is None or spec.is_gateway or spec.name == self.provider_name:
            return None
        return spec

    def _resolve_model(self, model: str, use_gateway: bool = True) -> str:
        """
        解析模型名称，添加 LiteLLM 所需的 Provider 前缀。

        参数：
            model: 原始模型名称（可能带或不带前缀）
            use_gateway: 为 False 时忽略网关，按模型自身的 Provider 加前缀

        返回：
            处理后的模型名称
        """
        if self._gateway and use_gateway:
            prefix = self._gateway.litellm_prefix
            if prefix and not model.startswith(f"{prefix}/"):
                model = f"{prefix}/{model}"
            return model

        spec = find_by_model(model)
        if spec and spec.litellm_prefix and not model.startswith(f"{spec.litellm_prefix}/"):
            model = f"{spec.litellm_prefix}/{model}"
        return model

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
        发送对话补全请求。

        参数：
            messages: OpenAI 格式的消息列表
            model: 模型标识符，为空则使用默认模型
            max_tokens: 响应的最大 token 数
            temperature: 采样温度
            web_search: 是否请求联网搜索（映射为 web_search_options）
            thinking: 是否请求深度思考（映射为 reasoning_effort）

        返回：
            LLMResponse：统一的响应格式
        """
        model = model or self.default_model
        api_key, api_base, extra_headers = self.api_key, self.api_base, self.extra_headers

        foreign = self._foreign_spec(model)
        creds = self.credentials.get(foreign.name) if foreign else None
        if foreign and (creds or not self._gateway):
            # 另一个 Provider 的模型：只用它自己的凭据，没有配置时交给 LiteLLM 读环境变量
            creds = creds or ProviderCredentials()
            api_key, api_base, extra_headers = creds.api_key, creds.api_base, creds.extra_headers
            model = self._resolve_model(model, use_gateway=False)
        else:
            model = self._resolve_model(model)

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        if thinking:
            kwargs["reasoning_effort"] = "medium"
        if web_search:
            kwargs["web_search_options"] = {"search_context_size": "medium"}

        if api_key:
            kwargs["api_key"] = api_key
        if api_base:
            kwargs["api_base"] = api_base
        if extra_headers:
            kwargs["extra_headers"] = extra_headers

        try:
            response = await acompletion(**kwargs)
            return self._parse_response(response)
        except Exception as e:
            return LLMResponse(
                content=f"Error calling LLM: {str(e)}",
                finish_reason="error",
            )

    def _parse_response(self, response: Any) -> LLMResponse:
        """将 LiteLLM 的原始响应（OpenAI 格式）解析为统一的 LLMResponse。"""
        choice = response.choices[0]
        message = choice.message

        usage = {}
        if hasattr(response, "usage") and response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
            reasoning_content=getattr(message, "reasoning_content", None),
        )

    def get_default_model(self) -> str:
        """获取默认模型名称。"""
        return self.default_model
