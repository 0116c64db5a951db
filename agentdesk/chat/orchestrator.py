"""
会话编排器模块 - agentdesk 的核心状态机。

SessionOrchestrator 负责协调三种生命周期互不相同的状态：
- 持久偏好（provider、model）：PreferenceStore，进程重启后依然存在
- 临时会话状态（当前会话 ID、消息时间线）：TransientStore，随 UI 生命周期存在
- 后端会话记录：AgentBackend 持有，通过 TopicRegistry 投影为话题列表

对 UI 层只暴露一组简单的操作：发送消息、新话题、切换话题、删除话题、
编辑/删除单条消息、修改偏好、启动/停止后端。

【状态机】
  IDLE     没有绑定会话 ID
  ACTIVE   已绑定会话 ID（信任本地缓存的 ID，不向后端复核）
  SENDING  至少有一次发送正在进行（可能是从 IDLE 懒创建会话的过程中）

【乐观更新（两阶段发送）】
  阶段 1 begin_send()：同步地向时间线追加"用户消息 + 助手占位符"，立即返回
  阶段 2 complete_send()：确保会话存在 → 调用后端 → 按占位符 id 原地替换内容；
         失败时只移除占位符，用户消息保留，错误通过通知通道告知用户

【写穿（write-through）】
  每次时间线或会话 ID 变化，都会立即同步写入临时存储，并向事件总线发布事件。

【并发】
  同一会话上的多次发送通过按会话 ID 的 asyncio.Lock 串行化（single-flight），
  乐观插入不受影响，只有后端调用排队；从 IDLE 并发触发的懒创建共享同一次创建请求。
  新话题、切换、删除当前话题或停止后端都会让进行中的创建作废，它的结果不会覆盖用户的新选择。

【Java 开发者类比】
- SessionOrchestrator 类似于一个持有多个 Repository 的 Service
- begin_send / complete_send 类似于 CompletableFuture 的 "先返回、后回调" 两段式
"""

import asyncio
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from agentdesk.backend.base import AgentBackend, BackendError, ImageInput, ProcessStatus, SkillInfo
from agentdesk.bus.events import ChatEvent, EventKind
from agentdesk.bus.queue import EventBus
from agentdesk.chat.notify import LogNotifier, Notifier
from agentdesk.chat.timeline import MessageTimeline
from agentdesk.chat.topics import TopicRegistry
from agentdesk.chat.types import Message, MessageImage, Topic
from agentdesk.storage.adapters import PreferenceStore, TransientStore

NO_RESPONSE_TEXT = "(No response)"


class OrchestratorState(str, Enum):
    """编排器状态。"""

    IDLE = "idle"
    ACTIVE = "active"
    SENDING = "sending"


def thinking_label_for(thinking: bool, web_search: bool) -> str:
    """根据请求的能力组合生成占位符的等待提示语。"""
    if thinking and web_search:
        return "深度思考 + 联网搜索中..."
    if thinking:
        return "深度思考中..."
    if web_search:
        return "正在搜索网络..."
    return "思考中..."


@dataclass
class PendingSend:
    """
    一次已完成乐观插入、尚未与后端对账的发送。

    属性:
        user_message: 已追加到时间线的用户消息
        placeholder: 已追加到时间线的助手占位符（后续按其 id 替换或移除）
        web_search: 是否请求联网搜索
        thinking: 是否请求深度思考
    """

    user_message: Message
    placeholder: Message
    web_search: bool = False
    thinking: bool = False


class SessionOrchestrator:
    """
    会话编排器。

    参数:
        backend: Agent 后端
        preferences: 持久偏好存储
        transient: 临时会话状态存储（构造时从中恢复会话 ID 与时间线）
        notifier: 用户通知通道，默认写日志
        bus: 事件总线（可选），状态变化时发布 ChatEvent
        system_prompt: 创建会话时附带的系统提示词
        skills: 创建会话时附带的技能列表
    """

    def __init__(
        self,
        backend: AgentBackend,
        preferences: PreferenceStore,
        transient: TransientStore,
        notifier: Notifier | None = None,
        bus: EventBus | None = None,
        system_prompt: str | None = None,
        skills: list[SkillInfo] | None = None,
    ):
        self.backend = backend
        self.preferences = preferences
        self.transient = transient
        self.notifier = notifier or LogNotifier()
        self.bus = bus
        self.system_prompt = system_prompt
        self.skills = skills

        self.topics = TopicRegistry(backend)
        self.process_status = ProcessStatus()

        self._provider_type = preferences.provider_type
        self._model = preferences.model
        self._session_id: str | None = transient.session_id
        self.timeline = MessageTimeline(transient.messages, on_change=self._on_timeline_change)

        self._send_locks: dict[str, asyncio.Lock] = {}     # 按会话 ID 的发送串行锁
        self._creating: asyncio.Future | None = None       # 正在进行的会话创建（single-flight）
        self._generation = 0                               # 每次离开当前话题加一，过期的创建结果据此丢弃
        self._in_flight = 0                                # 正在进行的发送数量

    # ========== 只读状态 ==========

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def messages(self) -> list[Message]:
        return self.timeline.snapshot()

    @property
    def is_sending(self) -> bool:
        return self._in_flight > 0

    @property
    def state(self) -> OrchestratorState:
        if self._in_flight > 0:
            return OrchestratorState.SENDING
        if self._session_id:
            return OrchestratorState.ACTIVE
        return OrchestratorState.IDLE

    @property
    def provider_type(self) -> str:
        return self._provider_type

    @property
    def model(self) -> str:
        return self._model

    # ========== 内部：写穿与事件 ==========

    def _publish(self, kind: EventKind, payload) -> None:
        if self.bus:
            self.bus.publish(ChatEvent(kind=kind, payload=payload))

    def _on_timeline_change(self, messages: list[Message]) -> None:
        self.transient.messages = messages
        self._publish("timeline", messages)

    def _bind_session(self, session_id: str | None) -> None:
        """绑定（或解绑）当前会话 ID，并立即写入临时存储。"""
        self._session_id = session_id
        self.transient.session_id = session_id
        self._publish("session", session_id)

    def _leave_session(self) -> None:
        """
        离开当前话题（新话题 / 切换 / 删除当前话题 / 停止后端之前调用）。

        仍在进行中的会话创建从此作废：它完成后不会绑定会话，
        之后的 ensure_session() 也不会再加入它，而是发起新的创建。
        当前会话的发送锁空闲时一并释放。
        """
        self._generation += 1
        self._creating = None
        if self._session_id:
            self._drop_lock(self._session_id)

    def _drop_lock(self, session_id: str) -> None:
        lock = self._send_locks.get(session_id)
        if lock is not None and not lock.locked():
            del self._send_locks[session_id]

    def _set_in_flight(self, delta: int) -> None:
        was_sending = self.is_sending
        self._in_flight += delta
        if was_sending != self.is_sending:
            self._publish("sending", self.is_sending)

    def _set_status(self, status: ProcessStatus) -> None:
        self.process_status = status
        self._publish("status", status)

    # ========== 偏好 ==========

    def set_provider_type(self, provider_type: str) -> None:
        """修改 Provider 偏好。不影响当前会话。"""
        self._provider_type = provider_type
        self.preferences.provider_type = provider_type

    def set_model(self, model: str) -> None:
        """修改模型偏好。不影响当前会话，后续发送会以此覆盖会话默认模型。"""
        self._model = model
        self.preferences.model = model

    # ========== 会话 ==========

    async def ensure_session(self) -> str | None:
        """
        确保存在一个可用的会话 ID。

        - 已绑定：原样返回（不向后端复核）
        - 未绑定：以当前偏好（provider、model）为基线创建会话，成功后绑定并刷新话题列表；
          失败时通知用户并返回 None，状态保持 IDLE

        并发调用共享同一次创建请求，后端只会收到一次 create_session。
        """
        if self._session_id:
            return self._session_id

        if self._creating is None:
            self._creating = asyncio.ensure_future(self._create_session(self._generation))
        creating = self._creating
        try:
            return await creating
        finally:
            if self._creating is creating:
                self._creating = None

    async def _create_session(self, generation: int) -> str | None:
        try:
            response = await self.backend.create_session(
                self._provider_type,
                self._model or None,
                self.system_prompt,
                self.skills,
            )
        except Exception as e:
            logger.error(f"Auto-creation of session failed: {e}")
            self.notifier.error("Failed to initialize session")
            return None

        if generation != self._generation:
            # 创建期间用户已离开该话题：不绑定，等待中的调用方得到 None
            logger.info(f"Discarding session {response.session_id} created for an abandoned topic")
            return None

        logger.info(f"Session {response.session_id} created ({response.provider_type})")
        self._bind_session(response.session_id)
        await self.refresh_topics()
        return response.session_id

    # ========== 消息发送（两阶段） ==========

    def begin_send(
        self,
        content: str,
        images: list[MessageImage] | None = None,
        web_search: bool = False,
        thinking: bool = False,
    ) -> PendingSend:
        """
        阶段 1：乐观插入。

        同步地向时间线追加用户消息和助手占位符，不做任何后端调用。
        """
        user_message = Message(role="user", content=content, images=list(images) if images else None)
        placeholder = Message(
            role="assistant",
            content="",
            is_thinking=True,
            thinking_label=thinking_label_for(thinking, web_search),
        )
        self.timeline.append(user_message, placeholder)
        self._set_in_flight(+1)
        return PendingSend(
            user_message=user_message,
            placeholder=placeholder,
            web_search=web_search,
            thinking=thinking,
        )

    async def complete_send(self, pending: PendingSend) -> bool:
        """
        阶段 2：与后端对账。

        成功：按占位符 id 原地替换为最终内容（id 不变，UI 不会重建该条消息）
        失败：只移除占位符，保留用户消息，并通过通知通道报告错误

        返回:
            是否发送成功
        """
        message = pending.user_message
        try:
            session_id = await self.ensure_session()
            if not session_id:
                raise BackendError("Could not establish session")

            images = (
                [ImageInput(data=img.data, media_type=img.media_type) for img in message.images]
                if message.images else None
            )
            lock = self._send_locks.setdefault(session_id, asyncio.Lock())
            async with lock:
                response = await self.backend.send_message(
                    message=message.content,
                    session_id=session_id,
                    model=self._model or None,
                    images=images,
                    web_search=pending.web_search,
                    thinking=pending.thinking,
                )
        except Exception as e:
            logger.error(f"Send failed: {e}")
            self.timeline.remove(pending.placeholder.id)
            self.notifier.error(f"发送失败: {e}")
            return False
        finally:
            self._set_in_flight(-1)

        self.timeline.update(
            pending.placeholder.id,
            content=response or NO_RESPONSE_TEXT,
            is_thinking=False,
            thinking_label=None,
        )
        return True

    async def send_message(
        self,
        content: str,
        images: list[MessageImage] | None = None,
        web_search: bool = False,
        thinking: bool = False,
    ) -> bool:
        """发送一条消息：乐观插入后等待与后端对账完成。"""
        pending = self.begin_send(content, images, web_search=web_search, thinking=thinking)
        return await self.complete_send(pending)

    # ========== 时间线本地操作 ==========

    def edit_message(self, message_id: str, new_content: str) -> bool:
        """编辑一条消息的内容（仅本地，不调用后端）。"""
        return self.timeline.update(message_id, content=new_content) is not None

    def delete_message(self, message_id: str) -> bool:
        """删除一条消息（仅本地，不调用后端）。"""
        return self.timeline.remove(message_id)

    def clear_messages(self) -> None:
        """开始新话题：清空时间线并解绑会话，旧的后端会话记录保留。"""
        self._leave_session()
        self.timeline.clear()
        self._bind_session(None)
        self.notifier.success("新话题已创建")

    # ========== 话题 ==========

    async def refresh_topics(self) -> list[Topic]:
        """从后端重建话题列表。"""
        topics = await self.topics.refresh()
        self._publish("topics", topics)
        return topics

    async def switch_topic(self, topic_id: str) -> bool:
        """
        切换到指定话题。

        与当前会话相同时什么也不做。否则清空时间线并重新绑定会话 ID。
        后端不提供按 ID 查询历史消息，所以切换后本地时间线从空白开始。

        返回:
            是否发生了切换
        """
        if topic_id == self._session_id:
            return False

        self._leave_session()
        self.timeline.clear()
        self._bind_session(topic_id)
        self.notifier.info("已切换话题")
        await self.refresh_topics()
        return True

    async def delete_topic(self, topic_id: str) -> bool:
        """
        删除话题（后端会话）。

        成功：从话题列表移除；若是当前会话则回到 IDLE 并清空时间线
        失败：话题列表与会话状态保持不变，通知用户

        返回:
            是否删除成功
        """
        try:
            await self.backend.delete_session(topic_id)
        except Exception as e:
            logger.error(f"Failed to delete topic {topic_id}: {e}")
            self.notifier.error("删除话题失败")
            return False

        self.topics.remove(topic_id)
        self._publish("topics", self.topics.topics)
        if topic_id == self._session_id:
            self._leave_session()
            self._bind_session(None)
            self.timeline.clear()
        else:
            self._drop_lock(topic_id)
        self.notifier.success("话题已删除")
        return True

    # ========== 后端进程 ==========

    async def initialize(self) -> None:
        """首次挂载：查询后端状态并加载话题列表。"""
        await self.refresh_process_status()
        await self.refresh_topics()

    async def refresh_process_status(self) -> ProcessStatus:
        """查询后端状态。失败只记录日志，状态保持不变。"""
        try:
            self._set_status(await self.backend.get_process_status())
        except Exception as e:
            logger.error(f"Failed to get process status: {e}")
        return self.process_status

    async def start_process(self) -> bool:
        """启动后端。失败时状态不变并通知用户。"""
        try:
            status = await self.backend.start_process()
        except Exception as e:
            logger.error(f"Failed to start agent process: {e}")
            self.notifier.error("Start failed")
            return False
        self._set_status(status)
        return True

    async def stop_process(self) -> bool:
        """停止后端并解绑当前会话（时间线保留）。失败时状态不变并通知用户。"""
        try:
            await self.backend.stop_process()
        except Exception as e:
            logger.error(f"Failed to stop agent process: {e}")
            self.notifier.error("Stop failed")
            return False
        self._set_status(ProcessStatus(running=False))
        self._leave_session()
        self._bind_session(None)
        return True
