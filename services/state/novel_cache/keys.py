"""Physical key layout for cached artifacts."""

from __future__ import annotations

INFO_SUFFIX = "info"


def info_key(prefix: str) -> str:
    """Return the metadata key for one logical prefix."""
    return f"{prefix}:{INFO_SUFFIX}"


def chunk_key(prefix: str, index: int) -> str:
    """Return the key of chunk or batch ``index`` for one logical prefix."""
    return f"{prefix}:chunk:{index}"


def category_key(prefix: str, category: str) -> str:
    """Return the key of one named category under ``prefix``."""
    return f"{prefix}:{category}"
