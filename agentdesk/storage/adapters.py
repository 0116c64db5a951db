"""
存储适配器模块 - 在键值存储之上提供带类型的读写接口。

- PreferenceStore：持久偏好（provider、model），跨进程重启保留
- TransientStore：临时会话状态（当前会话 ID、消息时间线），随 UI 生命周期存在

键名沿用前端版本的 localStorage / sessionStorage 布局，
方便从旧数据迁移：

    agent_pref_provider    偏好：Provider 类型
    agent_pref_model       偏好：模型名称
    agent_curr_sessionId   临时：当前会话 ID
    agent_messages         临时：消息列表（JSON 数组，时间戳为 ISO 文本）
"""

from loguru import logger

from agentdesk.chat.types import Message
from agentdesk.storage.base import KeyValueStore

PREF_PROVIDER_KEY = "agent_pref_provider"
PREF_MODEL_KEY = "agent_pref_model"
CURRENT_SESSION_KEY = "agent_curr_sessionId"
MESSAGES_KEY = "agent_messages"


class PreferenceStore:
    """
    持久偏好适配器。

    参数:
        store: 底层键值存储（通常是 JsonFileStore）
        default_provider: 无存储值时使用的 Provider 类型
        default_model: 无存储值时使用的模型名称
    """

    def __init__(self, store: KeyValueStore, default_provider: str, default_model: str = ""):
        self.store = store
        self.default_provider = default_provider
        self.default_model = default_model

    @property
    def provider_type(self) -> str:
        value = self.store.read(PREF_PROVIDER_KEY, self.default_provider)
        if not isinstance(value, str) or not value:
            return self.default_provider
        return value

    @provider_type.setter
    def provider_type(self, value: str) -> None:
        self.store.write(PREF_PROVIDER_KEY, value)

    @property
    def model(self) -> str:
        value = self.store.read(PREF_MODEL_KEY, self.default_model)
        return value if isinstance(value, str) else self.default_model

    @model.setter
    def model(self, value: str) -> None:
        self.store.write(PREF_MODEL_KEY, value)


class TransientStore:
    """
    临时会话状态适配器。

    messages 读取时会把每条消息的 timestamp 从 ISO 文本还原为 datetime；
    只要有一条消息结构不合法，就视为整份数据损坏，回退为空列表。
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    @property
    def session_id(self) -> str | None:
        value = self.store.read(CURRENT_SESSION_KEY, None)
        return value if isinstance(value, str) and value else None

    @session_id.setter
    def session_id(self, value: str | None) -> None:
        self.store.write(CURRENT_SESSION_KEY, value)

    @property
    def messages(self) -> list[Message]:
        raw = self.store.read(MESSAGES_KEY, [])
        if not isinstance(raw, list):
            logger.warning(f"Ignoring stored messages: expected a list, got {type(raw).__name__}")
            return []
        try:
            return [Message.from_dict(item) for item in raw]
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring malformed stored messages: {e}")
            return []

    @messages.setter
    def messages(self, value: list[Message]) -> None:
        self.store.write(MESSAGES_KEY, [msg.to_dict() for msg in value])
