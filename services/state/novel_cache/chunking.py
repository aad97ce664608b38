"""Payload splitting and batching helpers.

Chunk boundaries carry no meaning: ``join_chunks(split_payload(p, n)) == p``
for every payload and every ``n >= 1``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import AnyStr, TypeVar

T = TypeVar("T")


def split_payload(payload: AnyStr, max_chunk_size: int) -> list[AnyStr]:
    """Split ``payload`` into ordered non-empty slices of at most ``max_chunk_size``.

    An empty payload yields no chunks.
    """
    if max_chunk_size < 1:
        raise ValueError("max_chunk_size must be >= 1")
    return [
        payload[index : index + max_chunk_size]
        for index in range(0, len(payload), max_chunk_size)
    ]


def split_text_by_bytes(text: str, max_chunk_bytes: int) -> list[str]:
    """Split ``text`` so every piece encodes to at most ``max_chunk_bytes`` of UTF-8.

    Boundaries never fall inside a character. Raises ``ValueError`` when one
    character alone is wider than ``max_chunk_bytes``.
    """
    if max_chunk_bytes < 1:
        raise ValueError("max_chunk_bytes must be >= 1")
    data = text.encode("utf-8")
    pieces: list[str] = []
    start = 0
    while start < len(data):
        end = min(start + max_chunk_bytes, len(data))
        # back off continuation bytes (0b10xxxxxx) to land on a character start
        while end < len(data) and end > start and data[end] & 0xC0 == 0x80:
            end -= 1
        if end == start:
            raise ValueError(
                f"a character at byte {start} is wider than {max_chunk_bytes} bytes"
            )
        pieces.append(data[start:end].decode("utf-8"))
        start = end
    return pieces


def join_chunks(chunks: Iterable[AnyStr], *, empty: AnyStr = "") -> AnyStr:
    """Concatenate chunks in order; pass ``empty=b""`` for bytes."""
    return empty.join(chunks)


def batch_items(items: Sequence[T], batch_size: int) -> list[list[T]]:
    """Split ``items`` into ordered batches of at most ``batch_size`` items."""
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [
        list(items[index : index + batch_size])
        for index in range(0, len(items), batch_size)
    ]
