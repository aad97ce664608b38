"""FastAPI app construction, uvicorn startup, and request-body parsing."""

from __future__ import annotations

import json
from typing import Any

import uvicorn
from fastapi import FastAPI, Request

from .errors import InvalidJsonBodyError


def create_app(
    *,
    title: str = "shelf",
    version: str = "0.1.0",
    lifespan: Any = None,
) -> FastAPI:
    return FastAPI(title=title, version=version, lifespan=lifespan)


def run_app(
    app: FastAPI,
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
    log_level: str = "info",
) -> None:
    """Serve ``app`` until interrupted."""
    uvicorn.run(app, host=host, port=port, log_level=log_level)


async def read_raw_body(request: Request) -> bytes:
    return await request.body()


async def read_json_body(request: Request) -> Any:
    """Return the decoded JSON body.

    Raises ``InvalidJsonBodyError`` for a blank body or one that does not parse.
    """
    raw = await read_raw_body(request)
    if not raw.strip():
        raise InvalidJsonBodyError(message="Body is empty")
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidJsonBodyError(message="Body is not valid JSON") from exc
