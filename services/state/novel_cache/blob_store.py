"""Chunked storage for one logical value under one key.

Values at or under ``max_value_bytes`` are stored directly at ``key``. Larger
values are split into ``key:chunk:0..n-1`` plus a ``key:info`` layout record.
A read returns the whole value or nothing.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from packages.shelf_shared.errors import dependency_error, validation_error
from packages.shelf_shared.logging import fields, get_logger, log_context
from resources.substrates.kv import KvSubstrate
from services.state.novel_cache.chunking import join_chunks, split_text_by_bytes
from services.state.novel_cache.codes import CACHE_OVERSIZE
from services.state.novel_cache.config import NovelCacheSettings
from services.state.novel_cache.domain import ChunkInfo, WriteResult, WriteStatus
from services.state.novel_cache.fanout import (
    fan_out_reads,
    fan_out_writes,
    transport_error_detail,
)
from services.state.novel_cache.keys import chunk_key, info_key
from services.state.novel_cache.serialization import (
    byte_size,
    decode_value,
    serialize_value,
)

_LOGGER = get_logger(__name__)


class ChunkedBlobStore:
    """Store and load single values that may exceed the per-value limit."""

    def __init__(self, *, backend: KvSubstrate, settings: NovelCacheSettings) -> None:
        self._backend = backend
        self._settings = settings

    async def set_blob(self, key: str, value: Any, ttl_seconds: int) -> WriteResult:
        """Replace whatever is stored at ``key`` with ``value``."""
        with log_context({fields.CACHE_KEY: key}):
            serialized = serialize_value(value)
            cleared = await self.delete_blob(key)
            if cleared.status is WriteStatus.FAILED:
                return WriteResult.failed(*cleared.errors)

            limit = self._settings.max_value_bytes
            if len(serialized) <= limit and byte_size(serialized) <= limit:
                return await self._set_direct(key, serialized, ttl_seconds)
            return await self._set_chunked(key, serialized, ttl_seconds)

    async def get_blob(self, key: str) -> Any | None:
        """Return the stored value, or ``None`` when absent or incomplete."""
        with log_context({fields.CACHE_KEY: key}):
            try:
                raw_info = await self._backend.get_value(key=info_key(key))
            except Exception as exc:  # noqa: BLE001
                _LOGGER.warning(
                    "blob info read failed: exception_type=%s", type(exc).__name__
                )
                return None

            if raw_info is None:
                return await self._get_direct(key)

            info = _parse_info(raw_info)
            if info is None or info.chunks == 0:
                return None

            pieces = await fan_out_reads(
                [chunk_key(key, index) for index in range(info.chunks)],
                self._read,
            )
            missing = [index for index, piece in enumerate(pieces) if piece is None]
            if missing:
                _LOGGER.warning(
                    "blob chunks missing: missing=%s chunks=%s", missing, info.chunks
                )
                return None

            joined = join_chunks(piece for piece in pieces if piece is not None)
            if len(joined) != info.total_length:
                _LOGGER.warning(
                    "blob length mismatch: expected=%s actual=%s",
                    info.total_length,
                    len(joined),
                )
                return None
            return decode_value(joined)

    async def delete_blob(self, key: str) -> WriteResult:
        """Remove the direct value, the info record, and every listed chunk."""
        try:
            raw_info = await self._backend.get_value(key=info_key(key))
        except Exception as exc:  # noqa: BLE001
            return WriteResult.failed(transport_error_detail("get", info_key(key), exc))

        targets = [key]
        if raw_info is not None:
            info = _parse_info(raw_info)
            if info is not None:
                targets.extend(chunk_key(key, index) for index in range(info.chunks))
            targets.append(info_key(key))

        outcome = await fan_out_writes(
            "delete",
            {target: self._backend.delete_value(key=target) for target in targets},
            require_true=False,
        )
        return WriteResult.from_counts(
            written=len(outcome.succeeded),
            failed=len(outcome.failed),
            errors=list(outcome.errors),
        )

    async def _set_direct(self, key: str, serialized: str, ttl_seconds: int) -> WriteResult:
        outcome = await fan_out_writes(
            "set",
            {key: self._backend.set_value(key=key, value=serialized, ttl_seconds=ttl_seconds)},
        )
        return WriteResult.from_counts(
            written=len(outcome.succeeded),
            failed=len(outcome.failed),
            errors=list(outcome.errors),
        )

    async def _set_chunked(self, key: str, serialized: str, ttl_seconds: int) -> WriteResult:
        try:
            pieces = split_text_by_bytes(serialized, self._settings.chunk_size)
        except ValueError as exc:
            _LOGGER.warning("blob cannot be chunked: %s", exc)
            return WriteResult.failed(
                validation_error(
                    str(exc), code=CACHE_OVERSIZE, metadata={"key": key}
                )
            )

        info = ChunkInfo(chunks=len(pieces), total_length=len(serialized))
        try:
            acknowledged = await self._backend.set_value(
                key=info_key(key), value=info.to_json(), ttl_seconds=ttl_seconds
            )
        except Exception as exc:  # noqa: BLE001
            return WriteResult.failed(
                transport_error_detail("set", info_key(key), exc), chunks=len(pieces)
            )
        if not acknowledged:
            return WriteResult.failed(
                dependency_error(
                    "kv set was not acknowledged",
                    metadata={"key": info_key(key), "operation": "set"},
                ),
                chunks=len(pieces),
            )

        outcome = await fan_out_writes(
            "set",
            {
                chunk_key(key, index): self._backend.set_value(
                    key=chunk_key(key, index), value=piece, ttl_seconds=ttl_seconds
                )
                for index, piece in enumerate(pieces)
            },
        )
        _LOGGER.debug(
            "blob stored in chunks: chunks=%s total_length=%s",
            len(pieces),
            len(serialized),
        )
        return WriteResult.from_counts(
            written=len(outcome.succeeded) + 1,
            failed=len(outcome.failed),
            chunks=len(pieces),
            errors=list(outcome.errors),
        )

    async def _get_direct(self, key: str) -> Any | None:
        raw = await self._read_quietly(key)
        if raw is None:
            return None
        return decode_value(raw)

    async def _read(self, key: str) -> str | None:
        return await self._backend.get_value(key=key)

    async def _read_quietly(self, key: str) -> str | None:
        try:
            return await self._backend.get_value(key=key)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("kv get failed: exception_type=%s", type(exc).__name__)
            return None


def _parse_info(raw: str) -> ChunkInfo | None:
    """Parse a stored layout record; an unreadable record is treated as absent."""
    try:
        return ChunkInfo.model_validate_json(raw)
    except ValidationError:
        _LOGGER.warning("blob info record is unreadable")
        return None
