"""Value encoding for the textual ``ItemTable.value`` column.

Structured values are stored as JSON text and binary payloads as a tagged
``{"kind": "bytes", "data": [...]}`` object. Reads parse JSON when they can
and fall back to the raw text otherwise. Mappings that would be mistaken for
a bytes tag on read are rejected.
"""

from __future__ import annotations

import json
from typing import Any

from account_switch.errors import SerializationError

BYTES_KIND = "bytes"

StoredValue = str | bytes | int | float | bool | dict | list


def encode_value(value: Any) -> str:
    """Encode ``value`` for storage. ``None`` must be rejected by the caller."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return json.dumps({"kind": BYTES_KIND, "data": list(bytes(value))})
    if isinstance(value, str):
        if _parses_as_json(value):
            # Quote text that would otherwise read back as a number, object, etc.
            return json.dumps(value)
        return value
    try:
        text = json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Value of type {type(value).__name__} is not storable") from exc
    if isinstance(value, dict) and isinstance(_unwrap_bytes(json.loads(text)), bytes):
        # Would read back as bytes instead of the mapping that was written.
        raise SerializationError("Mapping has the shape of a bytes tag and is not storable")
    return text


def decode_value(raw: Any) -> StoredValue | None:
    """Decode a stored column value, returning raw text when it is not JSON."""
    if raw is None:
        return None
    if isinstance(raw, (bytes, bytearray, memoryview)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError:
            return bytes(raw)
    if not isinstance(raw, str):
        return raw
    try:
        parsed = parse_json(raw)
    except SerializationError:
        return raw
    return _unwrap_bytes(parsed)


def parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, RecursionError) as exc:
        raise SerializationError(str(exc)) from exc


def _parses_as_json(text: str) -> bool:
    try:
        json.loads(text)
    except (ValueError, RecursionError):
        return False
    return True


def _unwrap_bytes(parsed: Any) -> Any:
    if not isinstance(parsed, dict) or set(parsed) != {_tag_key(parsed), "data"}:
        return parsed
    data = parsed["data"]
    if not isinstance(data, list) or not all(
        isinstance(item, int) and not isinstance(item, bool) and 0 <= item <= 255
        for item in data
    ):
        return parsed
    return bytes(data)


def _tag_key(parsed: dict) -> str | None:
    # The host writes Node buffers as {"type": "Buffer", "data": [...]}.
    if parsed.get("kind") == BYTES_KIND:
        return "kind"
    if parsed.get("type") == "Buffer":
        return "type"
    return None
