"""
工具函数模块 - 提供 agentdesk 项目全局通用的辅助函数。

本模块包含：
- ensure_dir：确保目录存在
- new_id：生成不透明的唯一标识
- now / parse_timestamp：带时区的当前时间与 ISO 8601 解析
"""

from agentdesk.utils.helpers import ensure_dir, new_id, now, parse_timestamp

__all__ = ["ensure_dir", "new_id", "now", "parse_timestamp"]
