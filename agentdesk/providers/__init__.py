"""
LLM 提供者抽象层模块（providers 包）。

本地 Agent 后端通过本模块调用大语言模型，UI 侧通过 registry 获取可选的
Provider 与模型列表。

模块组成：
- base.py             : LLMProvider 抽象基类和 LLMResponse 数据结构
- litellm_provider.py : 基于 LiteLLM 的唯一实现
- registry.py         : Provider 目录（显示名称、模型列表、LiteLLM 前缀等）
"""

from agentdesk.providers.base import LLMProvider, LLMResponse
from agentdesk.providers.litellm_provider import LiteLLMProvider, ProviderCredentials

__all__ = ["LLMProvider", "LLMResponse", "LiteLLMProvider", "ProviderCredentials"]
