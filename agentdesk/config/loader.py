"""
配置读写模块 (config/loader.py)
=============================
config.json 面向用户手工编辑，键名沿用前端习惯的 camelCase（maxTokens、persistTransient），
Config 模型内部使用 snake_case。本模块负责两者之间的往返：

  config.json ──json.load──→ camelCase dict ──convert_keys──→ Config.model_validate
  Config ──model_dump──→ snake_case dict ──convert_to_camel──→ config.json

默认路径: ~/.agentdesk/config.json
"""

import json
import re
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from agentdesk.config.schema import Config

_UPPER = re.compile(r"(?<!^)([A-Z])")


def get_config_path() -> Path:
    """默认配置文件路径: ~/.agentdesk/config.json"""
    return Path.home() / ".agentdesk" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    读取配置文件并校验为 Config。

    文件不存在时返回默认配置；文件不是合法 JSON 或字段校验失败时，
    记录警告后同样返回默认配置，CLI 仍可启动。

    参数:
        config_path: 配置文件路径，为 None 时使用 get_config_path()
    """
    path = config_path or get_config_path()
    if not path.exists():
        return Config()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return Config.model_validate(convert_keys(raw))
    except ValueError as e:
        # JSONDecodeError 与 pydantic 的 ValidationError 都是 ValueError 的子类
        logger.warning(f"Ignoring invalid config {path}: {e}")
        return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """把配置写回 JSON 文件（camelCase 键名，缩进 2 格，保留中文原文）。"""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(convert_to_camel(config.model_dump()), indent=2, ensure_ascii=False)
    path.write_text(text, encoding="utf-8")


def _rename_keys(data: Any, rename: Callable[[str], str]) -> Any:
    """递归重命名嵌套 dict / list 中的所有键。"""
    if isinstance(data, dict):
        return {rename(k): _rename_keys(v, rename) for k, v in data.items()}
    if isinstance(data, list):
        return [_rename_keys(item, rename) for item in data]
    return data


def convert_keys(data: Any) -> Any:
    """camelCase 键 → snake_case 键。例: {"maxTokens": 1} → {"max_tokens": 1}"""
    return _rename_keys(data, camel_to_snake)


def convert_to_camel(data: Any) -> Any:
    """snake_case 键 → camelCase 键。例: {"max_tokens": 1} → {"maxTokens": 1}"""
    return _rename_keys(data, snake_to_camel)


def camel_to_snake(name: str) -> str:
    """"apiBase" → "api_base" """
    return _UPPER.sub(r"_\1", name).lower()


def snake_to_camel(name: str) -> str:
    """"api_base" → "apiBase" """
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)
