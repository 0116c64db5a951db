"""
异步事件队列模块 - 事件总线的核心实现。

本模块实现了 EventBus 类，基于 asyncio.Queue 的发布-订阅模型：

  编排器 → publish() → events 队列 → dispatch() → 订阅者回调

与"请求-响应"调用不同，publish() 是同步、非阻塞的（put_nowait），
编排器在任何状态变更之后都可以直接调用，不会因为 UI 回调慢而被拖住。

【核心设计】
订阅者按事件种类注册回调；种类 "*" 表示订阅全部事件。
dispatch() 后台任务持续消费队列并调用对应回调，单个回调异常只记录日志，
不会中断分发循环。
"""

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from agentdesk.bus.events import ChatEvent

EventCallback = Callable[[ChatEvent], Awaitable[None]]


class EventBus:
    """
    异步事件总线 - 编排器与 UI 层之间的推送通道。

    属性:
        events: 待分发的事件队列
        _subscribers: 订阅者字典 {事件种类: [回调函数列表]}
        _running: 分发器运行状态标志
    """

    def __init__(self):
        self.events: asyncio.Queue[ChatEvent] = asyncio.Queue()
        self._subscribers: dict[str, list[EventCallback]] = {}
        self._running = False

    def publish(self, event: ChatEvent) -> None:
        """
        发布事件（非阻塞）。

        参数:
            event: 状态变化事件
        """
        self.events.put_nowait(event)

    async def consume(self) -> ChatEvent:
        """消费下一条事件（阻塞等待）。用于需要手动处理事件的场景。"""
        return await self.events.get()

    def subscribe(self, kind: str, callback: EventCallback) -> None:
        """
        订阅指定种类的事件。

        参数:
            kind: 事件种类（如 "timeline"），"*" 表示全部
            callback: 异步回调函数，接收 ChatEvent 参数
        """
        self._subscribers.setdefault(kind, []).append(callback)

    async def dispatch(self) -> None:
        """
        事件分发器（后台常驻任务）。

        使用 wait_for 超时机制（1 秒）定期检查 _running 标志，
        确保 stop() 之后能及时退出。
        """
        self._running = True
        while self._running:
            try:
                event = await asyncio.wait_for(self.events.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            callbacks = self._subscribers.get(event.kind, []) + self._subscribers.get("*", [])
            for callback in callbacks:
                try:
                    await callback(event)
                except Exception as e:
                    logger.error(f"Error dispatching {event.kind} event: {e}")

    def stop(self) -> None:
        """停止事件分发器。dispatch 循环会在下次超时检查时退出。"""
        self._running = False

    @property
    def pending(self) -> int:
        """待分发的事件数量。"""
        return self.events.qsize()
