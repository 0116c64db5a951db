"""
事件类型定义模块 - 定义事件总线中传输的数据结构。

事件种类（kind）：
- timeline：消息时间线发生变化，payload 为消息列表快照
- session：当前会话 ID 变化，payload 为新的会话 ID（可能为 None）
- topics：话题列表重建，payload 为话题列表快照
- status：后端进程状态变化，payload 为 ProcessStatus
- sending：发送中标志变化，payload 为 bool
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

EventKind = Literal["timeline", "session", "topics", "status", "sending"]


@dataclass
class ChatEvent:
    """
    编排器状态变化事件。

    属性:
        kind: 事件种类
        payload: 变化后的状态快照（订阅方只读，不应修改）
        timestamp: 事件产生时间
    """

    kind: EventKind                                             # 事件种类
    payload: Any = None                                         # 状态快照
    timestamp: datetime = field(default_factory=datetime.now)   # 产生时间
