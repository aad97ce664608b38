"""Explicit stand-in used when no KV backend is configured."""

from __future__ import annotations

from resources.substrates.kv.substrate import KvHealthStatus, KvUnavailableError

_DETAIL = "kv backend is not configured"


class UnconfiguredKvSubstrate:
    """KV substrate variant that reports unavailability on every call.

    Reads never masquerade as cache misses: every data operation raises
    ``KvUnavailableError`` so callers can tell "no data" from "no backend".
    """

    @property
    def configured(self) -> bool:
        """Return ``False``."""
        return False

    async def set_value(self, *, key: str, value: str, ttl_seconds: int | None) -> bool:
        del value, ttl_seconds
        raise KvUnavailableError(message=_DETAIL, operation="set", key=key)

    async def get_value(self, *, key: str) -> str | None:
        raise KvUnavailableError(message=_DETAIL, operation="get", key=key)

    async def delete_value(self, *, key: str) -> bool:
        raise KvUnavailableError(message=_DETAIL, operation="delete", key=key)

    async def ping(self) -> bool:
        return False

    async def health(self) -> KvHealthStatus:
        return KvHealthStatus(ready=False, detail=_DETAIL)

    async def aclose(self) -> None:
        return None
