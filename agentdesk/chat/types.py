"""
对话数据类型定义模块 - 定义编排器内部流转的数据结构。

本模块定义了以下核心数据类：
- MessageImage：消息附带的图片（base64 数据 + MIME 类型）
- Message：时间线中的一条消息（用户消息或助手消息）
- Topic：话题，即后端会话记录在 UI 侧的投影

【序列化约定】
Message 写入临时存储时使用 camelCase 键名（isThinking、thinkingContent、
mediaType），与前端 sessionStorage 中的历史数据格式保持一致；
时间戳序列化为 ISO 8601 文本，读回时必须还原为 datetime。

【Java 开发者类比】
- @dataclass 等价于 Java 的 record 或 Lombok 的 @Data
- to_dict / from_dict 类似于 Jackson 的序列化/反序列化
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from agentdesk.utils.helpers import new_id, now, parse_timestamp

Role = Literal["user", "assistant"]


@dataclass
class MessageImage:
    """消息附带的图片。data 为 base64 编码内容，media_type 如 "image/png"。"""

    data: str
    media_type: str

    def to_dict(self) -> dict[str, str]:
        return {"data": self.data, "mediaType": self.media_type}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MessageImage":
        return cls(data=data["data"], media_type=data["mediaType"])


@dataclass
class Message:
    """
    时间线中的一条消息。

    生命周期：
    - 用户消息：提交时创建，之后只会被显式编辑或删除
    - 助手消息：先以占位符形式创建（is_thinking=True，content 为空），
      后端返回后原地替换为最终内容（is_thinking=False），或在失败时被整体移除

    属性:
        role: 消息角色（"user" 或 "assistant"）
        content: 消息文本内容
        id: 不透明的唯一标识，替换占位符时按 id 定位，绝不按位置
        images: 附带的图片列表（仅用户消息可能有）
        timestamp: 创建时间
        is_thinking: 是否为"等待中"的占位符
        thinking_label: 占位符显示的等待提示语
    """

    role: Role                                                  # 消息角色
    content: str                                                # 文本内容
    id: str = field(default_factory=new_id)                     # 唯一标识
    images: list[MessageImage] | None = None                    # 附带图片
    timestamp: datetime = field(default_factory=now)            # 创建时间
    is_thinking: bool = False                                   # 是否为占位符
    thinking_label: str | None = None                           # 等待提示语

    def to_dict(self) -> dict[str, Any]:
        """序列化为可写入临时存储的字典（camelCase 键名，时间戳为 ISO 文本）。"""
        data: dict[str, Any] = {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.images:
            data["images"] = [img.to_dict() for img in self.images]
        if self.is_thinking:
            data["isThinking"] = True
        if self.thinking_label is not None:
            data["thinkingContent"] = self.thinking_label
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        """
        从存储字典还原消息。

        timestamp 字段从 ISO 文本还原为 datetime 对象。

        异常:
            KeyError / ValueError / TypeError: 数据结构不合法
        """
        role = data["role"]
        if role not in ("user", "assistant"):
            raise ValueError(f"Unknown message role: {role!r}")
        images = data.get("images")
        return cls(
            id=str(data["id"]),
            role=role,
            content=str(data.get("content", "")),
            images=[MessageImage.from_dict(img) for img in images] if images else None,
            timestamp=parse_timestamp(data["timestamp"]),
            is_thinking=bool(data.get("isThinking", False)),
            thinking_label=data.get("thinkingContent"),
        )


@dataclass
class Topic:
    """
    话题 - 后端会话记录在 UI 侧的只读投影。

    属性:
        id: 话题 ID（等于后端会话 ID）
        title: 显示标题
        created_at: 会话创建时间（无法解析时为 None）
        message_count: 会话中的消息数量
    """

    id: str
    title: str
    created_at: datetime | None
    message_count: int

