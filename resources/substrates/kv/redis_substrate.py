"""Native Redis protocol implementation of the KV substrate."""

from __future__ import annotations

from redis.exceptions import RedisError

from resources.substrates.kv.client import create_redis_client
from resources.substrates.kv.config import KvSettings
from resources.substrates.kv.substrate import KvHealthStatus, KvTransportError


class RedisClientSubstrate:
    """KV substrate backed by ``redis.asyncio`` client operations."""

    def __init__(self, *, settings: KvSettings) -> None:
        self._client = create_redis_client(settings)
        self._health_client = create_redis_client(
            settings, timeout_seconds=settings.health_timeout_seconds
        )

    @property
    def configured(self) -> bool:
        """Return ``True``; a Redis URL is always a real backend."""
        return True

    async def set_value(self, *, key: str, value: str, ttl_seconds: int | None) -> bool:
        """Set one value with optional TTL in seconds."""
        try:
            if ttl_seconds is None:
                result = await self._client.set(name=key, value=value)
            else:
                result = await self._client.set(name=key, value=value, ex=ttl_seconds)
        except RedisError as exc:
            raise _transport_error("set", key, exc) from exc
        return bool(result)

    async def get_value(self, *, key: str) -> str | None:
        """Read one value by key."""
        try:
            value = await self._client.get(name=key)
        except RedisError as exc:
            raise _transport_error("get", key, exc) from exc
        if value is None:
            return None
        return str(value)

    async def delete_value(self, *, key: str) -> bool:
        """Delete one key and return whether a value existed."""
        try:
            return bool(await self._client.delete(key))
        except RedisError as exc:
            raise _transport_error("delete", key, exc) from exc

    async def ping(self) -> bool:
        """Return Redis ping status."""
        try:
            return bool(await self._health_client.ping())
        except RedisError as exc:
            raise _transport_error("ping", "", exc) from exc

    async def health(self) -> KvHealthStatus:
        """Return Redis substrate readiness and concise detail."""
        try:
            ready = await self.ping()
        except KvTransportError as exc:
            return KvHealthStatus(
                ready=False,
                detail=f"redis ping failed: {exc}",
            )
        return KvHealthStatus(
            ready=ready,
            detail="ok" if ready else "redis ping returned false",
        )

    async def aclose(self) -> None:
        """Close both connection pools."""
        await self._client.aclose()
        await self._health_client.aclose()


def _transport_error(operation: str, key: str, exc: RedisError) -> KvTransportError:
    """Wrap one redis-py failure in the substrate error type."""
    return KvTransportError(
        message=f"redis {operation} failed: {type(exc).__name__}",
        operation=operation,
        key=key,
    )
