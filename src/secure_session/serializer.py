"""Record (de)serialization in PHP's serialize() format.

Payloads written here can be read by ``unserialize()`` in PHP and
vice versa, which keeps file and database sessions shareable with
PHP applications.

PHP has a single array type, so Python lists are written as objects of
class ``SessionList`` whose properties are the items in order. Plain
arrays always decode to dicts, which keeps ``[]`` and ``{0: "x"}``
distinct across a round trip.
"""

from __future__ import annotations

from typing import Any

import phpserialize

from .record import SessionRecord

LIST_CLASS = "SessionList"


def _tag_lists(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _tag_lists(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return phpserialize.phpobject(
            LIST_CLASS, {index: _tag_lists(item) for index, item in enumerate(value)}
        )
    return value


def _object_hook(name: str, properties: dict[Any, Any]) -> Any:
    if name == LIST_CLASS:
        return [properties[key] for key in sorted(properties)]
    return dict(properties)


def encode_record(record: SessionRecord) -> bytes:
    """Serialize a record to PHP serialize() bytes."""
    return phpserialize.dumps(_tag_lists(record.to_dict()))


def decode_record(raw: bytes) -> SessionRecord:
    """Deserialize PHP serialize() bytes into a record.

    Raises:
        ValueError: If the payload is not a serialized record.
    """
    decoded = phpserialize.loads(raw, decode_strings=True, object_hook=_object_hook)
    if not isinstance(decoded, dict):
        raise ValueError("Session payload is not a serialized array")
    return SessionRecord.from_dict(decoded)
