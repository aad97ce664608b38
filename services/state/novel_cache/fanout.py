"""Concurrent per-key reads and writes with per-key failure capture."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field

from packages.shelf_shared.errors import (
    ErrorDetail,
    codes,
    dependency_error,
    exception_to_error,
)
from packages.shelf_shared.logging import get_logger
from resources.substrates.kv import KvTransportError, KvUnavailableError

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class FanOutResult:
    """Per-key outcome of one concurrent write or delete group."""

    succeeded: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()
    errors: tuple[ErrorDetail, ...] = field(default_factory=tuple)


def transport_error_detail(operation: str, key: str, exc: Exception) -> ErrorDetail:
    """Map one backend exception to a shared error detail."""
    if isinstance(exc, KvTransportError):
        code = (
            codes.DEPENDENCY_UNAVAILABLE
            if isinstance(exc, KvUnavailableError)
            else codes.DEPENDENCY_FAILURE
        )
        return dependency_error(
            f"kv {operation} failed: {exc}",
            code=code,
            retryable=exc.retryable,
            metadata={"key": key, "operation": operation},
        )
    return exception_to_error(exc)


async def fan_out_writes(
    operation: str,
    writes: Mapping[str, Awaitable[bool]],
    *,
    require_true: bool = True,
) -> FanOutResult:
    """Await all ``writes`` concurrently, keyed by physical key.

    With ``require_true`` a ``False`` result counts as a failure; deletes pass
    ``False`` since removing an absent key is not an error.
    """
    keys = list(writes)
    results = await asyncio.gather(*writes.values(), return_exceptions=True)
    succeeded: list[str] = []
    failed: list[str] = []
    errors: list[ErrorDetail] = []
    for key, result in zip(keys, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            _LOGGER.warning(
                "kv %s failed: key=%s exception_type=%s",
                operation,
                key,
                type(result).__name__,
            )
            failed.append(key)
            errors.append(transport_error_detail(operation, key, result))
        elif require_true and not result:
            _LOGGER.warning("kv %s rejected: key=%s", operation, key)
            failed.append(key)
            errors.append(
                dependency_error(
                    f"kv {operation} was not acknowledged",
                    metadata={"key": key, "operation": operation},
                )
            )
        else:
            succeeded.append(key)
    return FanOutResult(
        succeeded=tuple(succeeded), failed=tuple(failed), errors=tuple(errors)
    )


async def fan_out_reads(
    keys: Sequence[str],
    reader: Callable[[str], Awaitable[str | None]],
) -> list[str | None]:
    """Read ``keys`` concurrently; a failed read is reported as missing."""
    results = await asyncio.gather(*(reader(key) for key in keys), return_exceptions=True)
    values: list[str | None] = []
    for key, result in zip(keys, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            _LOGGER.warning(
                "kv get failed: key=%s exception_type=%s",
                key,
                type(result).__name__,
            )
            values.append(None)
        else:
            values.append(result)
    return values
