"""Transport-agnostic substrate contract for key-value store operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from pydantic import BaseModel, ConfigDict


class KvHealthStatus(BaseModel):
    """KV substrate readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    detail: str


@dataclass(frozen=True)
class KvTransportError(Exception):
    """One KV operation failed in transport, auth, or the remote store."""

    message: str
    operation: str
    key: str = ""
    retryable: bool = True

    def __str__(self) -> str:
        """Return the human-readable error message."""
        return self.message


@dataclass(frozen=True)
class KvUnavailableError(KvTransportError):
    """No KV backend is configured for this process."""

    retryable: bool = False


class KvSubstrate(Protocol):
    """Protocol for async get/set/delete against a remote key-value store.

    Implementations raise ``KvTransportError`` for any failure; a missing key
    is not a failure and reads return ``None``.
    """

    @property
    def configured(self) -> bool:
        """Return whether a real backend sits behind this substrate."""

    async def set_value(self, *, key: str, value: str, ttl_seconds: int | None) -> bool:
        """Set one serialized value with optional TTL in seconds."""

    async def get_value(self, *, key: str) -> str | None:
        """Get one serialized value by key or ``None`` when missing."""

    async def delete_value(self, *, key: str) -> bool:
        """Delete one key and return whether a value was removed."""

    async def ping(self) -> bool:
        """Return substrate liveness."""

    async def health(self) -> KvHealthStatus:
        """Probe substrate readiness and detail."""

    async def aclose(self) -> None:
        """Release pooled connections."""
