"""Async JSON-over-HTTP client used by the REST KV substrate."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from .errors import HttpJsonDecodeError, HttpRequestError, HttpStatusError

# Statuses worth retrying besides the 5xx range.
_RETRYABLE_STATUS_CODES = frozenset({408, 425, 429})
_BODY_PREVIEW_CHARS = 500


def _body_preview(response: httpx.Response) -> str:
    try:
        return response.text[:_BODY_PREVIEW_CHARS]
    except UnicodeDecodeError:
        return ""


def _is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code in _RETRYABLE_STATUS_CODES


class AsyncHttpClient:
    """Wrap ``httpx.AsyncClient`` so failures surface as typed ``HttpClientError``s.

    A client passed in by the caller is borrowed and never closed here.
    """

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout_seconds: float = 10.0,
        headers: Mapping[str, str] | None = None,
        max_connections: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                base_url=base_url,
                timeout=timeout_seconds,
                headers=dict(headers or {}),
                limits=httpx.Limits(max_connections=max_connections),
                transport=transport,
            )
        self._client = client

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncHttpClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        raise_for_status: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request; transport and status failures raise typed errors."""
        try:
            response = await self._client.request(method=method, url=url, **kwargs)
        except httpx.RequestError as exc:
            failed = exc.request
            raise HttpRequestError(
                message=f"{method.upper()} {failed.url} failed: {type(exc).__name__}",
                method=failed.method,
                url=str(failed.url),
                retryable=True,
                cause=exc,
            ) from exc

        if raise_for_status and response.is_error:
            raise HttpStatusError(
                message=f"{response.request.method} {response.request.url} "
                f"returned HTTP {response.status_code}",
                method=response.request.method,
                url=str(response.request.url),
                retryable=_is_retryable_status(response.status_code),
                status_code=response.status_code,
                response_body=_body_preview(response),
            )
        return response

    async def post_json(
        self,
        url: str,
        *,
        json: Any,
        raise_for_status: bool = True,
        **kwargs: Any,
    ) -> Any:
        """POST ``json`` and return the decoded JSON reply."""
        response = await self.request(
            "POST", url, json=json, raise_for_status=raise_for_status, **kwargs
        )
        return decode_json(response)


def decode_json(response: httpx.Response) -> Any:
    """Decode a JSON body, raising ``HttpJsonDecodeError`` when it is not JSON."""
    try:
        return response.json()
    except ValueError as exc:
        raise HttpJsonDecodeError(
            message=f"Invalid JSON response from {response.request.method} "
            f"{response.request.url}",
            method=response.request.method,
            url=str(response.request.url),
            status_code=response.status_code,
            response_body=_body_preview(response),
            cause=exc,
        ) from exc
