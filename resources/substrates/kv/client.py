"""Client construction helpers for the KV substrate transports."""

from __future__ import annotations

from redis.asyncio import Redis

from packages.shelf_shared.http import AsyncHttpClient
from resources.substrates.kv.config import KvSettings


def create_rest_client(
    settings: KvSettings, *, timeout_seconds: float | None = None
) -> AsyncHttpClient:
    """Construct a bearer-authenticated client for the REST command endpoint."""
    return AsyncHttpClient(
        base_url=settings.rest_url,
        timeout_seconds=timeout_seconds or settings.request_timeout_seconds,
        headers={
            "Authorization": f"Bearer {settings.token}",
            "Content-Type": "application/json",
        },
        max_connections=settings.max_connections,
    )


def create_redis_client(
    settings: KvSettings, *, timeout_seconds: float | None = None
) -> Redis:
    """Construct an asyncio Redis client for the native protocol transport."""
    timeout = timeout_seconds or settings.request_timeout_seconds
    return Redis.from_url(
        settings.redis_url,
        socket_connect_timeout=timeout,
        socket_timeout=timeout,
        max_connections=settings.max_connections,
        decode_responses=True,
        encoding="utf-8",
    )
