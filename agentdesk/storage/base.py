"""
键值存储实现模块 - 偏好设置与临时会话状态的底层持久化。

本模块定义了一个极简的键值存储契约 KeyValueStore，以及两个实现：
- MemoryStore：进程内的文本键值表，生命周期与当前 UI 会话相同（临时存储）
- JsonFileStore：单个 JSON 文件，进程重启后依然存在（持久存储）

【容错约定】
两个实现都必须对底层数据损坏/缺失"完全宽容"：
- read()：数据不存在或无法解析时返回调用方给的默认值，并记录警告日志
- write()：写入失败只记录错误日志，绝不向调用方抛出异常

值在存储中一律保存为 JSON 文本（与浏览器 localStorage / sessionStorage
的行为一致），因此两种实现对"损坏数据"的处理路径完全相同。

【Java 开发者类比】
- KeyValueStore 类似于一个只有 get/put 的 Map 接口
- JsonFileStore 类似于 java.util.prefs.Preferences 的文件后端
"""

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from loguru import logger


class KeyValueStore(ABC):
    """
    键值存储抽象基类。

    子类只需实现原始文本的读写（_get_raw / _set_raw），
    JSON 编解码与异常兜底由基类统一完成。
    """

    name: str = "store"  # 用于日志输出的存储名称

    @abstractmethod
    def _get_raw(self, key: str) -> str | None:
        """读取原始文本，不存在时返回 None。允许抛出异常。"""
        pass

    @abstractmethod
    def _set_raw(self, key: str, raw: str) -> None:
        """写入原始文本。允许抛出异常。"""
        pass

    def read(self, key: str, default: Any = None) -> Any:
        """
        读取并反序列化一个值。

        参数:
            key: 存储键
            default: 键不存在或数据损坏时返回的默认值

        返回:
            反序列化后的值，或 default
        """
        try:
            raw = self._get_raw(key)
            if raw is None:
                return default
            return json.loads(raw)
        except Exception as e:
            # 数据损坏时优雅降级，记录警告但不中断调用方
            logger.warning(f"Failed to read '{key}' from {self.name}: {e}")
            return default

    def write(self, key: str, value: Any) -> None:
        """
        序列化并写入一个值。失败只记录日志，不会抛出异常。

        参数:
            key: 存储键
            value: 任意可 JSON 序列化的值
        """
        try:
            self._set_raw(key, json.dumps(value, ensure_ascii=False))
        except Exception as e:
            logger.error(f"Failed to write '{key}' to {self.name}: {e}")


class MemoryStore(KeyValueStore):
    """进程内键值存储（临时存储）。进程退出即丢失。"""

    name = "memory store"

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def _get_raw(self, key: str) -> str | None:
        return self._data.get(key)

    def _set_raw(self, key: str, raw: str) -> None:
        self._data[key] = raw


class JsonFileStore(KeyValueStore):
    """
    基于单个 JSON 文件的键值存储（持久存储）。

    文件内容是一个 {key: json_text} 对象。每次写入都会重新读取整个文件、
    更新对应键后整体覆盖写回（先写临时文件再 os.replace，避免写到一半的文件）。

    属性:
        path: 存储文件路径（如 ~/.agentdesk/preferences.json）
    """

    def __init__(self, path: Path):
        self.path = path
        self.name = f"file store {path}"

    def _load_all(self) -> dict[str, str]:
        """读取整个文件。文件不存在时返回空字典；内容不是对象时抛出 ValueError。"""
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("store file does not contain a JSON object")
        return data

    def _get_raw(self, key: str) -> str | None:
        raw = self._load_all().get(key)
        if raw is not None and not isinstance(raw, str):
            raise ValueError(f"stored value for '{key}' is not text")
        return raw

    def _set_raw(self, key: str, raw: str) -> None:
        try:
            data = self._load_all()
        except (json.JSONDecodeError, ValueError) as e:
            # 旧文件已损坏：丢弃旧内容，以当前写入为准
            logger.warning(f"Discarding corrupt {self.name}: {e}")
            data = {}
        data[key] = raw

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)
