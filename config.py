from __future__ import annotations

import os
import yaml
from pathlib import Path
from typing import Dict, Any

USER_CONFIG_PATH = Path.home() / ".preview_gate_config.yaml"
DEFAULT_TTL_SECONDS = 3600


def _load_config() -> Dict[str, Any]:
    if not USER_CONFIG_PATH.exists():
        return {}
    try:
        data = yaml.safe_load(USER_CONFIG_PATH.read_text()) or {}
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def _save_config(data: Dict[str, Any]) -> None:
    if not data:
        if USER_CONFIG_PATH.exists():
            USER_CONFIG_PATH.unlink()
        return
    USER_CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    USER_CONFIG_PATH.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")


def get_user_token() -> str:
    return str(_load_config().get("token", "") or "")


def set_user_token(value: str) -> None:
    data = _load_config()
    value = value.strip()
    if value:
        data["token"] = value
    else:
        data.pop("token", None)
    _save_config(data)


def get_ttl_seconds() -> int:
    """Process-wide pending operation TTL (env > config file > default)."""
    raw = os.getenv("PREVIEW_GATE_TTL_SECONDS")
    if raw is None:
        raw = _load_config().get("ttl_seconds")
    if raw is None:
        return DEFAULT_TTL_SECONDS
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_TTL_SECONDS
    return value if value > 0 else DEFAULT_TTL_SECONDS


def set_ttl_seconds(value: int) -> None:
    data = _load_config()
    if value and int(value) > 0:
        data["ttl_seconds"] = int(value)
    else:
        data.pop("ttl_seconds", None)
    _save_config(data)


def get_default_repository() -> str:
    return str(_load_config().get("default_repository", "") or "").strip()


def set_default_repository(value: str) -> None:
    data = _load_config()
    value = (value or "").strip()
    if value:
        data["default_repository"] = value
    else:
        data.pop("default_repository", None)
    _save_config(data)
