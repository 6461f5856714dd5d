"""Typed access to untyped mappings (parsed TOML, JSON, CLI overrides).

Use these at the boundary where configuration and manifest data enter
firefly; everything past the boundary works with dataclasses.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]

__all__ = [
    "StrDict",
    "is_str_dict",
    "as_str_dict",
    "get_str",
    "get_bool",
    "get_table",
    "merge_tables",
]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    """Return True if obj is a dict keyed by strings."""
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    if is_str_dict(obj):
        return obj
    return None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a stripped, non-empty string; None if missing or wrong type."""
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_bool(table: Mapping[str, object], key: str) -> bool | None:
    """Get a bool; None if missing or not a bool."""
    value = table.get(key)
    if isinstance(value, bool):
        return value
    return None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    return as_str_dict(table.get(key))


def merge_tables(base: Mapping[str, object], override: Mapping[str, object]) -> StrDict:
    """Shallow-merge two tables; ``None`` values in ``override`` are ignored."""
    merged: StrDict = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        merged[key] = value
    return merged
