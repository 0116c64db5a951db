"""
本地 Agent 后端实现模块 - 进程内的会话化对话后端。

LocalAgentBackend 实现了 AgentBackend 接口，不依赖任何外部进程：
- 会话记录（含完整的对话历史）保存在内存字典中
- 每次发送消息时，把"系统提示词 + 会话历史 + 当前消息"交给 LLMProvider
- "启动"即初始化，"停止"即重置（丢弃全部会话）

这也是 CLI 默认使用的后端。对编排器而言它和任何远端后端没有区别，
编排器依旧不会向它查询历史消息（切换话题时本地显示是有损的）。

【Java 开发者类比】
- _sessions 类似于一个 ConcurrentHashMap<String, AgentSession>
- AgentSession 类似于服务端的 HttpSession，持有多轮对话上下文
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loguru import logger

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
from agentdesk.providers.base import LLMProvider
from agentdesk.utils.helpers import new_id, now


@dataclass
class AgentSession:
    """
    后端会话 - 保存一段对话的完整上下文。

    属性:
        id: 会话 ID
        provider_type: 创建会话时的 Provider 类型
        model: 会话默认模型（None 表示使用后端默认模型）
        system_prompt: 会话级系统提示词
        messages: OpenAI 格式的历史消息（只含 user / assistant）
        created_at: 创建时间
        updated_at: 最后活动时间
    """

    id: str
    provider_type: str
    model: str | None = None
    system_prompt: str | None = None
    messages: list[dict[str, Any]] = field(default_factory=list)
    created_at: datetime = field(default_factory=now)
    updated_at: datetime = field(default_factory=now)

    def add_message(self, role: str, content: Any) -> None:
        """追加一条历史消息并刷新最后活动时间。"""
        self.messages.append({"role": role, "content": content})
        self.updated_at = now()

    def get_history(self, max_messages: int = 50) -> list[dict[str, Any]]:
        """获取最近 max_messages 条历史消息（滑动窗口）。"""
        if len(self.messages) > max_messages:
            return self.messages[-max_messages:]
        return list(self.messages)

    def to_info(self) -> SessionInfo:
        return SessionInfo(
            session_id=self.id,
            provider_type=self.provider_type,
            model=self.model,
            created_at=self.created_at.isoformat(),
            last_activity=self.updated_at.isoformat(),
            messages_count=len(self.messages),
        )


def build_user_content(message: str, images: list[ImageInput] | None) -> Any:
    """
    构建用户消息的 content 字段。

    无图片时为纯文本；有图片时为多部分内容，图片以 data URL 形式内联：
    [{"type": "text", ...}, {"type": "image_url", "image_url": {"url": "data:..."}}]
    """
    if not images:
        return message
    parts: list[dict[str, Any]] = [{"type": "text", "text": message}]
    for img in images:
        parts.append({
            "type": "image_url",
            "image_url": {"url": f"data:{img.media_type};base64,{img.data}"},
        })
    return parts


def build_system_prompt(system_prompt: str | None, skills: list[SkillInfo] | None) -> str | None:
    """把技能列表追加到系统提示词末尾。两者都为空时返回 None。"""
    if not skills:
        return system_prompt
    lines = ["## Available Skills", ""]
    for skill in skills:
        line = f"- {skill.name}"
        if skill.description:
            line += f": {skill.description}"
        if skill.path:
            line += f" ({skill.path})"
        lines.append(line)
    skills_block = "\n".join(lines)
    return f"{system_prompt}\n\n{skills_block}" if system_prompt else skills_block


class LocalAgentBackend(AgentBackend):
    """
    进程内 Agent 后端。

    参数:
        provider: LLM 提供者
        default_model: 会话未指定模型、请求也未覆盖时使用的模型
        system_prompt: 所有会话共享的默认系统提示词
        memory_window: 每次请求携带的历史消息条数上限
        max_tokens: 单次回复的最大 token 数
        temperature: 采样温度
        base_url / port: 仅用于状态展示（如果后端挂在某个本地网关之后）
    """

    def __init__(
        self,
        provider: LLMProvider,
        default_model: str | None = None,
        system_prompt: str | None = None,
        memory_window: int = 50,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        base_url: str | None = None,
        port: int | None = None,
    ):
        self.provider = provider
        self.default_model = default_model or provider.get_default_model()
        self.system_prompt = system_prompt
        self.memory_window = memory_window
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.base_url = base_url
        self.port = port
        self._running = False
        self._sessions: dict[str, AgentSession] = {}

    def _status(self) -> ProcessStatus:
        if not self._running:
            return ProcessStatus(running=False)
        return ProcessStatus(running=True, base_url=self.base_url, port=self.port)

    def _require_running(self) -> None:
        if not self._running:
            raise BackendNotRunningError("Agent backend is not running")

    def _get(self, session_id: str) -> AgentSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    # ========== 进程生命周期 ==========

    async def start_process(self) -> ProcessStatus:
        self._running = True
        logger.info(f"Local agent backend started (model={self.default_model})")
        return self._status()

    async def stop_process(self) -> None:
        # 停止即重置：所有会话随之丢弃
        dropped = len(self._sessions)
        self._running = False
        self._sessions.clear()
        logger.info(f"Local agent backend stopped, dropped {dropped} sessions")

    async def get_process_status(self) -> ProcessStatus:
        return self._status()

    # ========== 会话管理 ==========

    async def create_session(
        self,
        provider_type: str,
        model: str | None = None,
        system_prompt: str | None = None,
        skills: list[SkillInfo] | None = None,
    ) -> CreateSessionResponse:
        self._require_running()
        session = AgentSession(
            id=new_id(),
            provider_type=provider_type,
            model=model,
            system_prompt=build_system_prompt(system_prompt or self.system_prompt, skills),
        )
        self._sessions[session.id] = session
        logger.info(f"Created session {session.id} (provider={provider_type}, model={model})")
        return CreateSessionResponse(
            session_id=session.id,
            credential_name="local",
            credential_uuid=new_id(),
            provider_type=provider_type,
            model=model,
        )

    async def send_message(
        self,
        message: str,
        session_id: str | None = None,
        model: str | None = None,
        images: list[ImageInput] | None = None,
        web_search: bool | None = None,
        thinking: bool | None = None,
    ) -> str:
        """
        发送消息并返回最终回复。

        流程：
        1. 定位会话（session_id 为 None 时按单轮对话处理，不记录历史）
        2. 构建消息列表：系统提示词 → 历史消息 → 当前用户消息
        3. 调用 LLMProvider；错误响应转换为 BackendError 抛出
        4. 成功后把本轮问答追加到会话历史
        """
        self._require_running()
        session = self._get(session_id) if session_id else None

        messages: list[dict[str, Any]] = []
        system_prompt = session.system_prompt if session else self.system_prompt
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        if session:
            messages.extend(session.get_history(self.memory_window))
        user_content = build_user_content(message, images)
        messages.append({"role": "user", "content": user_content})

        effective_model = model or (session.model if session else None) or self.default_model
        logger.debug(
            f"Sending message: session={session_id}, model={effective_model}, "
            f"images={len(images or [])}, history={len(messages) - 1}"
        )

        response = await self.provider.chat(
            messages=messages,
            model=effective_model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            web_search=bool(web_search),
            thinking=bool(thinking),
        )
        if response.is_error:
            raise BackendError(response.content or "LLM call failed")

        content = response.content or ""
        if session:
            session.add_message("user", user_content)
            session.add_message("assistant", content)
        return content

    async def list_sessions(self) -> list[SessionInfo]:
        """列出所有会话，按最后活动时间倒序（最近活跃的排在前面）。未启动时返回空列表。"""
        if not self._running:
            return []
        sessions = sorted(self._sessions.values(), key=lambda s: s.updated_at, reverse=True)
        return [s.to_info() for s in sessions]

    async def get_session(self, session_id: str) -> SessionInfo:
        self._require_running()
        return self._get(session_id).to_info()

    async def delete_session(self, session_id: str) -> None:
        self._require_running()
        self._get(session_id)
        del self._sessions[session_id]
        logger.info(f"Deleted session {session_id}")
