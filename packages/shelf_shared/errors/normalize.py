"""Map stray exceptions onto ``ErrorDetail`` values."""

from __future__ import annotations

from typing import Callable

from . import codes
from .factories import dependency_error, internal_error, validation_error
from .types import ErrorDetail

_Factory = Callable[[str, dict[str, str]], ErrorDetail]

# First match wins, so subclasses must come before their bases.
_MAPPINGS: tuple[tuple[type[BaseException], str, _Factory], ...] = (
    (
        TimeoutError,
        "KV call timed out",
        lambda message, meta: dependency_error(
            message, code=codes.DEPENDENCY_TIMEOUT, metadata=meta
        ),
    ),
    (
        ConnectionError,
        "KV store unreachable",
        lambda message, meta: dependency_error(
            message, code=codes.DEPENDENCY_UNAVAILABLE, metadata=meta
        ),
    ),
    (
        ValueError,
        "invalid value",
        lambda message, meta: validation_error(
            message, code=codes.INVALID_ARGUMENT, metadata=meta
        ),
    ),
)


def exception_to_error(exc: Exception) -> ErrorDetail:
    """Classify ``exc`` by type; unknown exceptions become internal errors.

    Components translate their own exception types first and fall back here.
    """
    metadata = {"exception_type": type(exc).__name__}
    for exc_type, fallback_message, factory in _MAPPINGS:
        if isinstance(exc, exc_type):
            return factory(str(exc) or fallback_message, metadata)
    return internal_error(str(exc) or "unexpected exception", metadata=metadata)
