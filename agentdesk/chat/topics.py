"""
话题注册表模块 - 后端会话记录在 UI 侧的派生视图。

话题列表是只读投影：每次 refresh() 都从后端拉取完整会话列表并整体重建，
从不做增量修补（唯一的例外是删除成功后的本地移除，避免再请求一次）。
顺序完全沿用后端返回的顺序，客户端不再排序。

标题规则：
- 消息数为 0 → "新话题"
- 否则 → "话题 {日期} {时:分}"，取会话创建时间的本地时间（zh-CN 格式，如 "话题 2025/3/7 09:05"）
"""

from datetime import datetime

from loguru import logger

from agentdesk.backend.base import AgentBackend, SessionInfo
from agentdesk.chat.types import Topic
from agentdesk.utils.helpers import parse_timestamp

UNTITLED_TOPIC = "新话题"


def format_topic_time(dt: datetime) -> str:
    """按 zh-CN 习惯渲染日期时间：年/月/日 不补零，时:分 补零。"""
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return f"{dt.year}/{dt.month}/{dt.day} {dt:%H:%M}"


def topic_from_session(session: SessionInfo) -> Topic:
    """把后端会话摘要转换为话题。created_at 无法解析时保留原始文本作为标题的一部分。"""
    try:
        created_at: datetime | None = parse_timestamp(session.created_at)
    except (AttributeError, TypeError, ValueError):
        # None 或其他非文本值没有 endswith，会抛 AttributeError
        created_at = None

    if session.messages_count == 0:
        title = UNTITLED_TOPIC
    elif created_at is not None:
        title = f"话题 {format_topic_time(created_at)}"
    else:
        title = f"话题 {session.created_at or ''}".strip()

    return Topic(
        id=session.session_id,
        title=title,
        created_at=created_at,
        message_count=session.messages_count,
    )


class TopicRegistry:
    """
    话题注册表。

    参数:
        backend: Agent 后端，refresh() 通过它拉取会话列表
    """

    def __init__(self, backend: AgentBackend):
        self.backend = backend
        self._topics: list[Topic] = []

    @property
    def topics(self) -> list[Topic]:
        """当前话题列表的拷贝。"""
        return list(self._topics)

    async def refresh(self) -> list[Topic]:
        """
        从后端拉取会话列表并整体重建话题列表。

        拉取失败只记录日志，保留上一次的列表（不打扰用户）。

        返回:
            刷新后的话题列表
        """
        try:
            sessions = await self.backend.list_sessions()
        except Exception as e:
            logger.error(f"Failed to load topics: {e}")
            return self.topics

        self._topics = [topic_from_session(s) for s in sessions]
        logger.debug(f"Topic registry refreshed: {len(self._topics)} topics")
        return self.topics

    def remove(self, topic_id: str) -> bool:
        """从本地列表中移除话题，返回是否存在。"""
        before = len(self._topics)
        self._topics = [t for t in self._topics if t.id != topic_id]
        return len(self._topics) < before

    def get(self, topic_id: str) -> Topic | None:
        for topic in self._topics:
            if topic.id == topic_id:
                return topic
        return None

    def __len__(self) -> int:
        return len(self._topics)

    def __contains__(self, topic_id: object) -> bool:
        return any(t.id == topic_id for t in self._topics)
