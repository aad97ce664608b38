"""Named-category storage with an index record.

Each category value lives at ``prefix:{category}``; ``prefix:info`` lists the
categories written so far. Writing one category merges its name into the
existing index rather than replacing it, so siblings written earlier remain
discoverable.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from packages.shelf_shared.errors import (
    ErrorDetail,
    codes,
    dependency_error,
    validation_error,
)
from packages.shelf_shared.logging import fields, get_logger, log_context
from resources.substrates.kv import KvSubstrate
from services.state.novel_cache.codes import CACHE_CORRUPT, CACHE_OVERSIZE
from services.state.novel_cache.config import NovelCacheSettings
from services.state.novel_cache.domain import CategoryInfo, WriteResult, WriteStatus
from services.state.novel_cache.fanout import (
    fan_out_reads,
    fan_out_writes,
    transport_error_detail,
)
from services.state.novel_cache.keys import INFO_SUFFIX, category_key, info_key
from services.state.novel_cache.serialization import byte_size, encode_json

_LOGGER = get_logger(__name__)


class _CorruptInfo(Exception):
    """Raised internally when the index record cannot be parsed."""


def validate_category(category: str) -> ErrorDetail | None:
    """Return a validation error for blank or reserved category names."""
    if not isinstance(category, str) or category.strip() == "":
        return validation_error(
            "category name must be non-empty", code=codes.INVALID_ARGUMENT
        )
    if category == INFO_SUFFIX:
        return validation_error(
            f"category name '{INFO_SUFFIX}' is reserved",
            code=codes.INVALID_ARGUMENT,
            metadata={"category": category},
        )
    return None


class KeyedCategoryCache:
    """Store independently addressable categories under one prefix."""

    def __init__(self, *, backend: KvSubstrate, settings: NovelCacheSettings) -> None:
        self._backend = backend
        self._settings = settings

    async def set_category(
        self, prefix: str, category: str, value: Any, ttl_seconds: int
    ) -> WriteResult:
        """Write one category and merge its name into the index."""
        return await self.set_categories(prefix, {category: value}, ttl_seconds)

    async def set_categories(
        self, prefix: str, values: Mapping[str, Any], ttl_seconds: int
    ) -> WriteResult:
        """Write several categories concurrently, then merge the index once."""
        if not values:
            return WriteResult.failed(
                validation_error(
                    "at least one category is required", code=codes.INVALID_ARGUMENT
                )
            )
        for category in values:
            invalid = validate_category(category)
            if invalid is not None:
                return WriteResult.failed(invalid)

        with log_context({fields.CACHE_PREFIX: prefix}):
            limit = self._settings.max_value_bytes
            payloads = {category: encode_json(value) for category, value in values.items()}
            oversize = [
                category
                for category, payload in payloads.items()
                if byte_size(payload) > limit
            ]
            errors: list[ErrorDetail] = []
            if oversize:
                _LOGGER.warning(
                    "category values exceed value limit: categories=%s limit=%s",
                    oversize,
                    limit,
                )
                errors.append(
                    validation_error(
                        f"{len(oversize)} categor(ies) exceed {limit} bytes",
                        code=CACHE_OVERSIZE,
                        metadata={"prefix": prefix},
                    )
                )

            writable = {
                category: payload
                for category, payload in payloads.items()
                if category not in oversize
            }
            outcome = await fan_out_writes(
                "set",
                {
                    category_key(prefix, category): self._backend.set_value(
                        key=category_key(prefix, category),
                        value=payload,
                        ttl_seconds=ttl_seconds,
                    )
                    for category, payload in writable.items()
                },
            )
            errors.extend(outcome.errors)
            written = [
                category
                for category in writable
                if category_key(prefix, category) in outcome.succeeded
            ]
            if not written:
                return WriteResult(
                    status=WriteStatus.FAILED,
                    skipped=len(oversize),
                    errors=errors,
                )

            index_error = await self._merge_index(prefix, written, ttl_seconds)
            if index_error is not None:
                return WriteResult(
                    status=WriteStatus.FAILED,
                    written=len(written),
                    skipped=len(oversize),
                    errors=[*errors, index_error],
                )

            return WriteResult.from_counts(
                written=len(written) + 1,
                skipped=len(oversize),
                failed=len(outcome.failed),
                errors=errors,
            )

    async def get_category(self, prefix: str, category: str) -> Any | None:
        """Return one category value, or ``None`` when absent or unreadable."""
        if validate_category(category) is not None:
            return None
        key = category_key(prefix, category)
        with log_context({fields.CACHE_PREFIX: prefix, fields.CATEGORY: category}):
            values = await fan_out_reads([key], self._read)
            return _decode(category, values[0])

    async def get_all_categories(self, prefix: str) -> dict[str, Any] | None:
        """Return every indexed category that can still be read.

        Categories listed in the index but missing or corrupt are skipped.
        """
        with log_context({fields.CACHE_PREFIX: prefix}):
            try:
                info = await self._read_index(prefix)
            except _CorruptInfo:
                return None
            except Exception as exc:  # noqa: BLE001
                _LOGGER.warning(
                    "category index read failed: exception_type=%s",
                    type(exc).__name__,
                )
                return None
            if info is None or not info.categories:
                return None

            raw_values = await fan_out_reads(
                [category_key(prefix, category) for category in info.categories],
                self._read,
            )
            result: dict[str, Any] = {}
            for category, raw in zip(info.categories, raw_values):
                value = _decode(category, raw)
                if value is not None:
                    result[category] = value
            return result or None

    async def invalidate_all(self, prefix: str) -> WriteResult:
        """Delete every indexed category and the index record."""
        with log_context({fields.CACHE_PREFIX: prefix}):
            try:
                info = await self._read_index(prefix)
            except _CorruptInfo:
                outcome = await fan_out_writes(
                    "delete",
                    {info_key(prefix): self._backend.delete_value(key=info_key(prefix))},
                    require_true=False,
                )
                return WriteResult(
                    status=WriteStatus.PARTIAL
                    if outcome.succeeded
                    else WriteStatus.FAILED,
                    written=len(outcome.succeeded),
                    errors=[
                        dependency_error(
                            "category index was unreadable; categories left in place",
                            code=CACHE_CORRUPT,
                            retryable=False,
                            metadata={"prefix": prefix},
                        ),
                        *outcome.errors,
                    ],
                )
            except Exception as exc:  # noqa: BLE001
                return WriteResult.failed(
                    transport_error_detail("get", info_key(prefix), exc)
                )
            if info is None:
                return WriteResult.from_counts(written=0)

            targets = [category_key(prefix, category) for category in info.categories]
            targets.append(info_key(prefix))
            outcome = await fan_out_writes(
                "delete",
                {key: self._backend.delete_value(key=key) for key in targets},
                require_true=False,
            )
            _LOGGER.info(
                "categories invalidated: categories=%s", len(info.categories)
            )
            return WriteResult.from_counts(
                written=len(outcome.succeeded),
                failed=len(outcome.failed),
                errors=list(outcome.errors),
            )

    async def _merge_index(
        self, prefix: str, written: list[str], ttl_seconds: int
    ) -> ErrorDetail | None:
        """Read, merge, and rewrite the index; an unreadable index is replaced."""
        try:
            existing = await self._read_index(prefix)
        except _CorruptInfo:
            existing = None
        except Exception as exc:  # noqa: BLE001
            return transport_error_detail("get", info_key(prefix), exc)

        known = set(existing.categories) if existing is not None else set()
        merged = CategoryInfo(categories=sorted(known | set(written)))
        outcome = await fan_out_writes(
            "set",
            {
                info_key(prefix): self._backend.set_value(
                    key=info_key(prefix),
                    value=merged.to_json(),
                    ttl_seconds=ttl_seconds,
                )
            },
        )
        if outcome.errors:
            return outcome.errors[0]
        return None

    async def _read_index(self, prefix: str) -> CategoryInfo | None:
        raw = await self._backend.get_value(key=info_key(prefix))
        if raw is None:
            return None
        try:
            return CategoryInfo.model_validate_json(raw)
        except ValidationError as exc:
            _LOGGER.warning("category index record is unreadable")
            raise _CorruptInfo(info_key(prefix)) from exc

    async def _read(self, key: str) -> str | None:
        return await self._backend.get_value(key=key)


def _decode(category: str, raw: str | None) -> Any | None:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        _LOGGER.warning("category value is not valid JSON: %s=%s", fields.CATEGORY, category)
        return None
