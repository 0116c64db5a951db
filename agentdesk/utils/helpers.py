"""
工具函数集合 - agentdesk 项目全局通用的辅助函数。

函数分类：
- 路径管理：ensure_dir
- 标识生成：new_id
- 时间工具：now, parse_timestamp
- 字符串工具：truncate_string
"""

import re
import uuid
from datetime import datetime
from pathlib import Path

_FRACTION = re.compile(r"\.(\d+)")


def ensure_dir(path: Path) -> Path:
    """
    确保目录存在，不存在则递归创建。

    参数:
        path: 目标目录路径

    返回:
        创建后的目录路径（原样返回）
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def new_id() -> str:
    """生成一个不透明的唯一标识（uuid4 文本）。"""
    return str(uuid.uuid4())


def now() -> datetime:
    """获取当前本地时间（带时区信息）。"""
    return datetime.now().astimezone()


def parse_timestamp(value: str) -> datetime:
    """
    将 ISO 8601 文本解析为 datetime。

    兼容以 "Z" 结尾的 UTC 写法（JavaScript 的 toISOString 产物），
    Python 3.11 之前的 fromisoformat 不认识这个后缀。
    小数秒统一成 6 位：纳秒精度截断到微秒，不足 6 位补零，旧版 fromisoformat 只认 3 或 6 位。

    异常:
        ValueError: 文本不是合法的 ISO 8601 时间
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    value = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value)
    return datetime.fromisoformat(value)


def truncate_string(s: str, max_len: int = 100, suffix: str = "...") -> str:
    """
    截断字符串到指定最大长度，超出时添加后缀。

    参数:
        s: 原始字符串
        max_len: 最大长度（包含后缀），默认 100
        suffix: 截断后缀，默认 "..."

    返回:
        截断后的字符串
    """
    if len(s) <= max_len:
        return s
    return s[: max_len - len(suffix)] + suffix
