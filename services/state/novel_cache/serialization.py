"""JSON text encoding for cached values."""

from __future__ import annotations

import json
from typing import Any


def encode_json(value: Any) -> str:
    """Encode ``value`` as compact JSON text, strings included."""
    return json.dumps(value, separators=(",", ":"))


def serialize_value(value: Any) -> str:
    """Encode ``value`` for the blob store; strings are stored verbatim."""
    if isinstance(value, str):
        return value
    return encode_json(value)


def decode_value(raw: str) -> Any:
    """Decode JSON text, falling back to the raw string for non-JSON values."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def byte_size(text: str) -> int:
    """Return the UTF-8 encoded size of ``text``."""
    return len(text.encode("utf-8"))
