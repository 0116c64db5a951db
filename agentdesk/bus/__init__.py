"""
事件总线模块 - 编排器向 UI 层推送状态变化的通道。

编排器每完成一次状态变更（时间线、当前会话、话题列表、进程状态、发送中标志），
就向总线发布一个 ChatEvent；UI 层按事件类型订阅回调即可刷新界面，
无需轮询编排器。

事件流向：
  UI 操作 → SessionOrchestrator → publish() → 事件队列 → dispatch() → UI 回调

【Java 开发者类比】
- EventBus 类似于 Spring 的 ApplicationEventPublisher + @EventListener
- ChatEvent 类似于一个 ApplicationEvent 子类
"""

from agentdesk.bus.events import ChatEvent, EventKind
from agentdesk.bus.queue import EventBus

__all__ = ["EventBus", "ChatEvent", "EventKind"]
