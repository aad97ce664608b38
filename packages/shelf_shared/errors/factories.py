"""Constructors for ``ErrorDetail`` values, one per category."""

from __future__ import annotations

from typing import Mapping

from . import codes
from .types import ErrorCategory, ErrorDetail


def _detail(
    category: ErrorCategory,
    message: str,
    code: str,
    *,
    retryable: bool,
    metadata: Mapping[str, str] | None,
) -> ErrorDetail:
    return ErrorDetail(
        code=code,
        message=message,
        category=category,
        retryable=retryable,
        metadata=dict(metadata or {}),
    )


def validation_error(
    message: str,
    *,
    code: str = codes.VALIDATION_ERROR,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Bad input; retrying the same call cannot succeed."""
    return _detail(
        ErrorCategory.VALIDATION, message, code, retryable=False, metadata=metadata
    )


def dependency_error(
    message: str,
    *,
    code: str = codes.DEPENDENCY_FAILURE,
    retryable: bool = True,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """The KV store failed or refused; usually worth retrying."""
    return _detail(
        ErrorCategory.DEPENDENCY, message, code, retryable=retryable, metadata=metadata
    )


def internal_error(
    message: str,
    *,
    code: str = codes.UNEXPECTED_EXCEPTION,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    return _detail(
        ErrorCategory.INTERNAL, message, code, retryable=False, metadata=metadata
    )
