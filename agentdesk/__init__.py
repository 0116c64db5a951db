"""
agentdesk - 对话式 Agent 的客户端会话编排器

模块概述：
    本文件是 agentdesk 包的入口文件（__init__.py），定义了包的元信息。
    agentdesk 负责在 UI 层与远端 Agent 后端之间管理"会话"这件事，
    让上层只需调用几个简单的操作（发送、清空、切换话题、删除话题）。

    整个包的核心功能包括：
    - 会话生命周期管理（懒创建、切换、删除）
    - 乐观更新的消息时间线（先显示，再与后端对账）
    - 话题（Topic）列表与后端会话记录的同步
    - 偏好设置（持久）与会话状态（临时）的双存储
"""

# 版本号，遵循语义化版本规范（主版本.次版本.修订号）
__version__ = "0.1.0"

# 项目 logo 表情符号，用于 CLI 输出等场景的品牌标识
__logo__ = "💬"
