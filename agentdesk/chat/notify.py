"""
用户通知通道 - 成功 / 错误 / 提示三种 toast 消息。

通知是"发出即忘"的：编排器调用后不等待任何确认，实现也不应抛出异常。
默认实现 LogNotifier 只把通知写进 loguru 日志；CLI 使用 rich 渲染的 RichNotifier
（见 cli/commands.py）。
"""

from abc import ABC, abstractmethod

from loguru import logger


class Notifier(ABC):
    """用户可见通知通道的抽象接口。"""

    @abstractmethod
    def success(self, message: str) -> None:
        pass

    @abstractmethod
    def error(self, message: str) -> None:
        pass

    @abstractmethod
    def info(self, message: str) -> None:
        pass


class LogNotifier(Notifier):
    """把通知写入日志的默认实现（无 UI 时使用）。"""

    def success(self, message: str) -> None:
        logger.info(f"[success] {message}")

    def error(self, message: str) -> None:
        logger.warning(f"[error] {message}")

    def info(self, message: str) -> None:
        logger.info(f"[info] {message}")
