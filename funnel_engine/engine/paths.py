"""Dotted-path access into the session context."""
from __future__ import annotations

from typing import Any


class _Unset:
    """Marker for a path that does not resolve to a value."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


def _split(path: str) -> list[str]:
    return path.split(".") if path else []


def get(root: Any, path: str | None) -> Any:
    """Walk ``root`` key by key; UNSET if any segment is missing."""
    if not path:
        return UNSET
    current = root
    for part in _split(path):
        if isinstance(current, dict):
            if part not in current:
                return UNSET
            current = current[part]
        elif isinstance(current, list) and part.isdigit():
            idx = int(part)
            if idx >= len(current):
                return UNSET
            current = current[idx]
        else:
            return UNSET
    return current


def set(root: dict[str, Any], path: str, value: Any) -> None:  # noqa: A001
    """Assign ``value`` at ``path``, creating mappings for missing or non-mapping nodes."""
    parts = _split(path)
    if not parts:
        raise ValueError("Cannot bind to an empty path")
    current = root
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value


def is_set(value: Any) -> bool:
    if value is None or value is UNSET:
        return False
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    if isinstance(value, str):
        return value.strip() != ""
    return True
