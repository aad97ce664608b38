"""REST command-envelope implementation of the KV substrate.

Each operation is one ``POST`` of a JSON command array, for example
``["SET", "k", "v", "EX", "60"]``, answered by ``{"result": ...}`` or
``{"error": "..."}``. Values travel in the JSON body, so no URL encoding
limits apply to chunk payloads.
"""

from __future__ import annotations

import json
from typing import Any

from packages.shelf_shared.http import (
    AsyncHttpClient,
    HttpClientError,
    HttpStatusError,
)
from resources.substrates.kv.client import create_rest_client
from resources.substrates.kv.config import KvSettings
from resources.substrates.kv.substrate import KvHealthStatus, KvTransportError


class RestKvSubstrate:
    """KV substrate speaking the bearer-authenticated REST command envelope."""

    def __init__(
        self,
        *,
        settings: KvSettings,
        client: AsyncHttpClient | None = None,
        health_client: AsyncHttpClient | None = None,
    ) -> None:
        self._client = client or create_rest_client(settings)
        self._health_client = health_client or create_rest_client(
            settings, timeout_seconds=settings.health_timeout_seconds
        )

    @property
    def configured(self) -> bool:
        """Return ``True``; REST settings always name a real endpoint."""
        return True

    async def set_value(self, *, key: str, value: str, ttl_seconds: int | None) -> bool:
        """Set one value with optional TTL in seconds."""
        command = ["SET", key, value]
        if ttl_seconds is not None:
            command.extend(["EX", str(ttl_seconds)])
        result = await self._command(self._client, "set", key, command)
        return result == "OK"

    async def get_value(self, *, key: str) -> str | None:
        """Read one value by key."""
        result = await self._command(self._client, "get", key, ["GET", key])
        if result is None:
            return None
        if isinstance(result, str):
            return result
        return json.dumps(result)

    async def delete_value(self, *, key: str) -> bool:
        """Delete one key and return whether a value existed."""
        result = await self._command(self._client, "delete", key, ["DEL", key])
        try:
            return int(result) > 0
        except (TypeError, ValueError) as exc:
            raise KvTransportError(
                message=f"DEL returned non-integer result: {result!r}",
                operation="delete",
                key=key,
                retryable=False,
            ) from exc

    async def ping(self) -> bool:
        """Return ``True`` when the endpoint answers ``PONG``."""
        result = await self._command(self._health_client, "ping", "", ["PING"])
        return result == "PONG"

    async def health(self) -> KvHealthStatus:
        """Return REST substrate readiness and concise detail."""
        try:
            ready = await self.ping()
        except KvTransportError as exc:
            return KvHealthStatus(ready=False, detail=f"kv ping failed: {exc}")
        return KvHealthStatus(
            ready=ready,
            detail="ok" if ready else "kv ping returned unexpected result",
        )

    async def aclose(self) -> None:
        """Close both HTTP clients."""
        await self._client.aclose()
        await self._health_client.aclose()

    async def _command(
        self,
        client: AsyncHttpClient,
        operation: str,
        key: str,
        command: list[str],
    ) -> Any:
        """Send one command and unwrap its ``result`` from the envelope."""
        try:
            body = await client.post_json("", json=command)
        except HttpStatusError as exc:
            raise KvTransportError(
                message=(
                    f"kv {operation} failed with HTTP {exc.status_code}: "
                    f"{_envelope_error(exc.response_body)}"
                ),
                operation=operation,
                key=key,
                retryable=exc.retryable,
            ) from exc
        except HttpClientError as exc:
            raise KvTransportError(
                message=f"kv {operation} failed: {exc}",
                operation=operation,
                key=key,
                retryable=exc.retryable,
            ) from exc

        if not isinstance(body, dict):
            raise KvTransportError(
                message=f"kv {operation} returned a malformed envelope",
                operation=operation,
                key=key,
                retryable=False,
            )
        if body.get("error") is not None:
            raise KvTransportError(
                message=f"kv {operation} failed: {body['error']}",
                operation=operation,
                key=key,
                retryable=False,
            )
        return body.get("result")


def _envelope_error(response_body: str) -> str:
    """Extract the ``error`` field from an error envelope body when present."""
    try:
        parsed = json.loads(response_body)
    except json.JSONDecodeError:
        return response_body[:200] or "empty response"
    if isinstance(parsed, dict) and parsed.get("error") is not None:
        return str(parsed["error"])
    return response_body[:200]
