"""
Agent 后端模块 - 编排器所消费的"请求-响应"接口及其本地实现。

- base.py：AgentBackend 抽象接口、数据结构与异常层级
- local.py：LocalAgentBackend，进程内会话化后端（基于 LLMProvider）
"""

from agentdesk.backend.base import (
    AgentBackend,
    BackendError,
    BackendNotRunningError,
    CreateSessionResponse,
    ImageInput,
    ProcessStatus,
    SessionInfo,
    SessionNotFoundError,
    SkillInfo,
)
from agentdesk.backend.local import LocalAgentBackend

__all__ = [
    "AgentBackend",
    "BackendError",
    "BackendNotRunningError",
    "CreateSessionResponse",
    "ImageInput",
    "LocalAgentBackend",
    "ProcessStatus",
    "SessionInfo",
    "SessionNotFoundError",
    "SkillInfo",
]
