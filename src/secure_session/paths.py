"""Dotted-path access to nested session data.

Keys such as ``"user.profile.name"`` address nested mappings, so
``data_set(data, "cart.laptop", 1)`` produces ``{"cart": {"laptop": 1}}``.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any

_MISSING = object()


def _split(key: str) -> list[str]:
    if not key:
        raise KeyError("Session key cannot be empty")
    return key.split(".")


def _walk(data: MutableMapping[str, Any], parts: list[str]) -> Any:
    node: Any = data
    for part in parts:
        if not isinstance(node, MutableMapping) or part not in node:
            return _MISSING
        node = node[part]
    return node


def data_get(data: MutableMapping[str, Any], key: str, default: Any = None) -> Any:
    """Return the value at ``key`` or ``default`` when any segment is missing."""
    value = _walk(data, _split(key))
    return default if value is _MISSING else value


def data_has(data: MutableMapping[str, Any], key: str) -> bool:
    return _walk(data, _split(key)) is not _MISSING


def data_set(data: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Set ``key`` to ``value``, creating intermediate mappings.

    A non-mapping value sitting on an intermediate segment is replaced
    by a new mapping.
    """
    parts = _split(key)
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, MutableMapping):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def data_forget(data: MutableMapping[str, Any], key: str) -> bool:
    """Remove ``key``. Returns False if nothing was stored there."""
    parts = _split(key)
    parent = _walk(data, parts[:-1]) if len(parts) > 1 else data
    if not isinstance(parent, MutableMapping) or parts[-1] not in parent:
        return False
    del parent[parts[-1]]
    return True
