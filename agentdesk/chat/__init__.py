"""
对话模块 - 会话编排器及其依赖的时间线、话题注册表与通知通道。

【架构定位】
  UI 层 → SessionOrchestrator → MessageTimeline（乐观更新）
                              → AgentBackend（请求-响应）
                              → TopicRegistry（后端会话的派生视图）
                              → PreferenceStore / TransientStore（写穿）

编排器本身位于 agentdesk.chat.orchestrator，需要时直接从该模块导入。
"""

from agentdesk.chat.types import Message, MessageImage, Topic
from agentdesk.chat.timeline import MessageTimeline
from agentdesk.chat.topics import TopicRegistry
from agentdesk.chat.notify import Notifier, LogNotifier

__all__ = ["Message", "MessageImage", "Topic", "MessageTimeline", "TopicRegistry", "Notifier", "LogNotifier"]
