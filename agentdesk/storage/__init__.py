"""
存储模块 - 偏好设置（持久）与会话状态（临时）的双存储。

本模块提供两层抽象：
- base.py：KeyValueStore 键值存储契约，及 MemoryStore / JsonFileStore 两个实现
- adapters.py：PreferenceStore / TransientStore 带类型的适配器

两层存储相互独立：修改偏好不会影响当前会话，清空会话也不会触碰偏好。
所有读写对底层数据损坏完全宽容，失败只记录日志。
"""

from agentdesk.storage.base import KeyValueStore, MemoryStore, JsonFileStore
from agentdesk.storage.adapters import PreferenceStore, TransientStore

__all__ = ["KeyValueStore", "MemoryStore", "JsonFileStore", "PreferenceStore", "TransientStore"]
