"""
消息时间线模块 - 当前对话的有序、可变消息记录。

时间线只关心三件事：
1. 顺序：按插入顺序排列，绝不重新排序
2. 定位：所有修改都按消息 id 定位，绝不按下标（并发完成的回复不会互相覆盖）
3. 通知：每次修改完成后调用 on_change 回调，编排器借此把快照写穿到临时存储

【Java 开发者类比】
- MessageTimeline 类似于一个带变更监听器的 ArrayList（ObservableList）
"""

from dataclasses import replace
from typing import Callable

from agentdesk.chat.types import Message


class MessageTimeline:
    """
    有序消息时间线。

    属性:
        on_change: 每次修改完成后调用的回调，参数为当前消息列表快照
    """

    def __init__(
        self,
        messages: list[Message] | None = None,
        on_change: Callable[[list[Message]], None] | None = None,
    ):
        self._messages: list[Message] = list(messages or [])
        self.on_change = on_change

    def _changed(self) -> None:
        if self.on_change:
            self.on_change(self.snapshot())

    def _index_of(self, message_id: str) -> int | None:
        for i, msg in enumerate(self._messages):
            if msg.id == message_id:
                return i
        return None

    def snapshot(self) -> list[Message]:
        """返回消息列表的浅拷贝（调用方修改列表不会影响时间线）。"""
        return list(self._messages)

    def get(self, message_id: str) -> Message | None:
        index = self._index_of(message_id)
        return self._messages[index] if index is not None else None

    def append(self, *messages: Message) -> None:
        """在末尾追加一条或多条消息（一次变更通知）。"""
        self._messages.extend(messages)
        self._changed()

    def update(self, message_id: str, **changes) -> Message | None:
        """
        按 id 原地替换一条消息的部分字段，保留 id 不变。

        参数:
            message_id: 目标消息 id
            **changes: 要修改的字段（如 content、is_thinking）

        返回:
            更新后的消息；id 不存在时返回 None（不触发变更通知）
        """
        index = self._index_of(message_id)
        if index is None:
            return None
        updated = replace(self._messages[index], **changes)
        self._messages[index] = updated
        self._changed()
        return updated

    def remove(self, message_id: str) -> bool:
        """按 id 删除一条消息，返回是否删除成功。"""
        index = self._index_of(message_id)
        if index is None:
            return False
        del self._messages[index]
        self._changed()
        return True

    def clear(self) -> None:
        """清空时间线。"""
        self._messages = []
        self._changed()

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(self.snapshot())

    def __contains__(self, message_id: object) -> bool:
        return isinstance(message_id, str) and self._index_of(message_id) is not None
