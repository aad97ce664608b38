"""Batched storage for large item lists.

Items are stored in fixed-size batches at ``prefix:chunk:i`` with a
``prefix:info`` record. Reads tolerate missing or corrupt batches and return
whatever can be recovered, in order.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from packages.shelf_shared.errors import codes, dependency_error, validation_error
from packages.shelf_shared.logging import fields, get_logger, log_context
from resources.substrates.kv import KvSubstrate
from services.state.novel_cache.chunking import batch_items
from services.state.novel_cache.codes import CACHE_OVERSIZE
from services.state.novel_cache.config import NovelCacheSettings
from services.state.novel_cache.domain import CollectionInfo, WriteResult, WriteStatus
from services.state.novel_cache.fanout import (
    fan_out_reads,
    fan_out_writes,
    transport_error_detail,
)
from services.state.novel_cache.keys import chunk_key, info_key
from services.state.novel_cache.serialization import byte_size, encode_json

_LOGGER = get_logger(__name__)


class ShardedCollectionCache:
    """Store ordered item lists across batch keys under one prefix."""

    def __init__(self, *, backend: KvSubstrate, settings: NovelCacheSettings) -> None:
        self._backend = backend
        self._settings = settings

    async def set_collection(
        self, prefix: str, items: Sequence[Any], ttl_seconds: int
    ) -> WriteResult:
        """Replace the collection at ``prefix`` with ``items``.

        The previous layout is cleared first so a shorter collection never
        exposes trailing batches from a longer one.
        """
        if len(items) == 0:
            return WriteResult.failed(
                validation_error(
                "collection must contain at least one item",
                code=codes.INVALID_ARGUMENT,
            )
            )

        with log_context({fields.CACHE_PREFIX: prefix}):
            cleared = await self.clear_collection(prefix)
            if cleared.status is WriteStatus.FAILED:
                return WriteResult.failed(*cleared.errors)

            batches = batch_items(items, self._settings.batch_size)
            payloads = {
                chunk_key(prefix, index): encode_json(batch)
                for index, batch in enumerate(batches)
            }
            limit = self._settings.max_value_bytes
            oversize = [key for key, payload in payloads.items() if byte_size(payload) > limit]
            errors = []
            if oversize:
                _LOGGER.warning(
                    "collection batches exceed value limit: keys=%s limit=%s",
                    oversize,
                    limit,
                )
                errors.append(
                    validation_error(
                        f"{len(oversize)} batch(es) exceed {limit} bytes",
                        code=CACHE_OVERSIZE,
                        metadata={"prefix": prefix},
                    )
                )
            writable = {key: payload for key, payload in payloads.items() if key not in oversize}
            if not writable:
                return WriteResult(
                    status=WriteStatus.FAILED,
                    skipped=len(oversize),
                    chunks=len(batches),
                    errors=errors,
                )

            info = CollectionInfo(total_items=len(items), chunks=len(batches))
            try:
                acknowledged = await self._backend.set_value(
                    key=info_key(prefix), value=info.to_json(), ttl_seconds=ttl_seconds
                )
            except Exception as exc:  # noqa: BLE001
                return WriteResult.failed(
                    transport_error_detail("set", info_key(prefix), exc),
                    chunks=len(batches),
                )
            if not acknowledged:
                return WriteResult.failed(
                    dependency_error(
                        "kv set was not acknowledged",
                        metadata={"key": info_key(prefix), "operation": "set"},
                    ),
                    chunks=len(batches),
                )

            outcome = await fan_out_writes(
                "set",
                {
                    key: self._backend.set_value(
                        key=key, value=payload, ttl_seconds=ttl_seconds
                    )
                    for key, payload in writable.items()
                },
            )
            _LOGGER.info(
                "collection stored: items=%s batches=%s written=%s",
                len(items),
                len(batches),
                len(outcome.succeeded),
            )
            return WriteResult.from_counts(
                written=len(outcome.succeeded),
                skipped=len(oversize),
                failed=len(outcome.failed),
                chunks=len(batches),
                errors=[*errors, *outcome.errors],
            )

    async def get_collection(self, prefix: str) -> list[Any] | None:
        """Return recovered items in order, or ``None`` when nothing is readable."""
        with log_context({fields.CACHE_PREFIX: prefix}):
            try:
                raw_info = await self._backend.get_value(key=info_key(prefix))
            except Exception as exc:  # noqa: BLE001
                _LOGGER.warning(
                    "collection info read failed: exception_type=%s",
                    type(exc).__name__,
                )
                return None
            if raw_info is None:
                return None

            info = _parse_info(raw_info)
            if info is None or info.chunks == 0:
                return None

            pieces = await fan_out_reads(
                [chunk_key(prefix, index) for index in range(info.chunks)],
                self._read,
            )
            items: list[Any] = []
            for index, raw in enumerate(pieces):
                batch = _parse_batch(index, raw)
                if batch is not None:
                    items.extend(batch)

            if not items:
                return None
            if len(items) != info.total_items:
                _LOGGER.warning(
                    "collection recovered partially: expected=%s recovered=%s",
                    info.total_items,
                    len(items),
                )
            return items

    async def clear_collection(self, prefix: str) -> WriteResult:
        """Delete every batch listed by the info record, then the record itself.

        An unreadable info record is removed on its own; batches it described
        can no longer be reached by readers and expire with their TTL.
        """
        try:
            raw_info = await self._backend.get_value(key=info_key(prefix))
        except Exception as exc:  # noqa: BLE001
            return WriteResult.failed(transport_error_detail("get", info_key(prefix), exc))
        if raw_info is None:
            return WriteResult.from_counts(written=0)

        targets: list[str] = []
        info = _parse_info(raw_info)
        if info is not None:
            targets.extend(chunk_key(prefix, index) for index in range(info.chunks))
        targets.append(info_key(prefix))

        outcome = await fan_out_writes(
            "delete",
            {key: self._backend.delete_value(key=key) for key in targets},
            require_true=False,
        )
        return WriteResult.from_counts(
            written=len(outcome.succeeded),
            failed=len(outcome.failed),
            errors=list(outcome.errors),
        )

    async def _read(self, key: str) -> str | None:
        return await self._backend.get_value(key=key)


def _parse_info(raw: str) -> CollectionInfo | None:
    try:
        return CollectionInfo.model_validate_json(raw)
    except ValidationError:
        _LOGGER.warning("collection info record is unreadable")
        return None


def _parse_batch(index: int, raw: str | None) -> list[Any] | None:
    """Decode one stored batch; missing or malformed batches are skipped."""
    if raw is None:
        _LOGGER.warning("collection batch missing: %s=%s", fields.CHUNK_INDEX, index)
        return None
    try:
        batch = json.loads(raw)
    except json.JSONDecodeError:
        _LOGGER.warning("collection batch is not valid JSON: %s=%s", fields.CHUNK_INDEX, index)
        return None
    if not isinstance(batch, list):
        _LOGGER.warning("collection batch is not a list: %s=%s", fields.CHUNK_INDEX, index)
        return None
    return batch
