"""Unit tests for shared FastAPI/uvicorn HTTP server helpers."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from fastapi import Request

from packages.shelf_shared.http import (
    InvalidBodyError,
    InvalidJsonBodyError,
    create_app,
    read_json_body,
    read_raw_body,
    run_app,
)


def _request(body: bytes = b"") -> Request:
    """Create a minimal Starlette request object for helper tests."""
    sent = False
    scope: dict[str, Any] = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/cache",
        "raw_path": b"/cache",
        "query_string": b"",
        "headers": [(b"host", b"test.local")],
        "client": ("127.0.0.1", 12345),
        "server": ("127.0.0.1", 80),
        "root_path": "",
    }

    async def receive() -> dict[str, Any]:
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive=receive)


def test_create_app_returns_fastapi_app() -> None:
    """create_app should return a FastAPI instance with configured metadata."""
    app = create_app(title="shelf-test", version="1.2.3")
    assert app.title == "shelf-test"
    assert app.version == "1.2.3"


def test_read_raw_body_returns_bytes() -> None:
    """read_raw_body should return the request payload untouched."""

    async def _run() -> bytes:
        return await read_raw_body(_request(body=b"\x00raw"))

    assert asyncio.run(_run()) == b"\x00raw"


def test_read_json_body_decodes_json_and_maps_decode_error() -> None:
    """read_json_body should decode JSON and map invalid bodies."""

    async def _run() -> None:
        assert await read_json_body(_request(body=b'{"key": "k"}')) == {"key": "k"}

        with pytest.raises(InvalidJsonBodyError):
            await read_json_body(_request(body=b"{not-json"))

    asyncio.run(_run())


def test_read_json_body_rejects_empty_body() -> None:
    """An empty or whitespace-only body is an invalid body."""

    async def _run() -> None:
        with pytest.raises(InvalidBodyError) as exc_info:
            await read_json_body(_request(body=b"  "))
        assert str(exc_info.value) == "Body is empty"

    asyncio.run(_run())


def test_run_app_forwards_arguments_to_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    """run_app should delegate execution to uvicorn.run with provided options."""
    app = create_app()
    called: dict[str, Any] = {}

    def _fake_run(target: Any, **kwargs: Any) -> None:
        called["target"] = target
        called["kwargs"] = kwargs

    monkeypatch.setattr("packages.shelf_shared.http.server.uvicorn.run", _fake_run)

    run_app(app, host="0.0.0.0", port=9999, log_level="debug")

    assert called["target"] is app
    assert called["kwargs"] == {
        "host": "0.0.0.0",
        "port": 9999,
        "log_level": "debug",
    }
