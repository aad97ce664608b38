"""Error values carried by cache write results and facade error bodies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class ErrorCategory(str, Enum):
    """Who is expected to act on an error."""

    VALIDATION = "validation"
    DEPENDENCY = "dependency"
    INTERNAL = "internal"


@dataclass(frozen=True)
class ErrorDetail:
    """One structured failure reported inside a result value.

    ``metadata`` holds string-only correlation fields such as the cache key or
    the KV operation that failed.
    """

    code: str
    message: str
    category: ErrorCategory
    retryable: bool = False
    metadata: Mapping[str, str] = field(default_factory=dict)

    def summary(self) -> str:
        """Return the one-line ``CODE: message`` form used in logs and CLI output."""
        return f"{self.code}: {self.message}"

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body fragment exposed over HTTP."""
        return {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
