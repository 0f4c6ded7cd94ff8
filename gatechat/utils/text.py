"""
Small text helpers for user-supplied values.
"""
from typing import Any, Optional


def clamp(value: Any, max_len: int, default: str = "") -> str:
    """Stringify, trim and cut a value to at most max_len characters."""
    if value is None:
        return default
    s = str(value).strip()
    if not s:
        return default
    return s[:max_len]


def as_str(value: Any) -> Optional[str]:
    """Frame fields may arrive as any JSON type; keep strings and numbers only."""
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    return str(value)
