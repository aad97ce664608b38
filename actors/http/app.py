"""FastAPI facade exposing the ad hoc cache and cache health over HTTP."""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from packages.shelf_shared.config import load_settings
from packages.shelf_shared.errors import ErrorCategory, codes, validation_error
from packages.shelf_shared.http import InvalidBodyError, create_app, read_json_body, run_app
from packages.shelf_shared.logging import configure_logging, get_logger
from services.state.novel_cache import (
    NovelCacheService,
    WriteResult,
    WriteStatus,
    build_novel_cache_service,
)
from services.state.novel_cache.codes import CACHE_DISABLED, CACHE_UNAVAILABLE

_LOGGER = get_logger(__name__)
_UNAVAILABLE_CODES = frozenset({CACHE_DISABLED, CACHE_UNAVAILABLE})


def register_routes(*, router: APIRouter, service: NovelCacheService) -> None:
    """Register cache and health routes on one router."""

    @router.get("/cache")
    async def get_cache(key: str | None = None) -> JSONResponse:
        if key is None or key.strip() == "":
            return JSONResponse(status_code=400, content={"error": "Key is required"})
        value = await service.get_value(key=key)
        return JSONResponse(status_code=200, content={"data": value})

    @router.post("/cache")
    async def post_cache(request: Request) -> JSONResponse:
        try:
            body = await read_json_body(request)
        except InvalidBodyError as exc:
            return _error_response(400, exc.message)
        if not isinstance(body, dict):
            return _error_response(400, "Body must be a JSON object")

        key = body.get("key")
        if not isinstance(key, str) or key.strip() == "":
            return _error_response(400, "Key is required")
        if "value" not in body:
            return _error_response(400, "Value is required")
        ttl = body.get("ttl")
        if ttl is not None and (isinstance(ttl, bool) or not isinstance(ttl, int)):
            return _error_response(400, "TTL must be an integer number of seconds")

        result = await service.set_value(key=key, value=body["value"], ttl_seconds=ttl)
        return _write_response(result)

    @router.get("/health")
    async def health() -> JSONResponse:
        status = await service.health()
        return JSONResponse(status_code=200, content=status.model_dump(mode="json"))


def create_cache_app(service: NovelCacheService) -> FastAPI:
    """Build the cache facade around one injected service."""

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await service.aclose()

    app = create_app(title="shelf cache", lifespan=lifespan)
    router = APIRouter()
    register_routes(router=router, service=service)
    app.include_router(router)
    return app


def _write_response(result: WriteResult) -> JSONResponse:
    """Map one write outcome to status code and body."""
    if result.ok:
        return JSONResponse(
            status_code=200,
            content={
                "success": True,
                "chunked": result.chunked,
                "chunks": result.chunks,
                "status": result.status.value,
            },
        )
    status_code = _failure_status_code(result)
    _LOGGER.warning(
        "cache write rejected: status=%s http_status=%s",
        result.status.value,
        status_code,
    )
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "status": result.status.value,
            "errors": [error.to_payload() for error in result.errors],
        },
    )


def _failure_status_code(result: WriteResult) -> int:
    error_codes = {error.code for error in result.errors}
    if error_codes & _UNAVAILABLE_CODES:
        return 503
    if result.status is WriteStatus.FAILED and any(
        error.category is ErrorCategory.VALIDATION for error in result.errors
    ):
        return 400
    return 500


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "status": WriteStatus.FAILED.value,
            "errors": [
                validation_error(message, code=codes.INVALID_ARGUMENT).to_payload()
            ],
        },
    )


def main() -> None:
    """Load settings, build the cache service, and serve the facade."""
    config_path = os.getenv("SHELF_CONFIG_FILE", "").strip()
    settings = load_settings(config_path=Path(config_path) if config_path else None)
    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        service="shelf-cache-api",
        environment=settings.logging.environment,
    )
    service = build_novel_cache_service(settings=settings)
    host = os.getenv("SHELF_HTTP_HOST", "127.0.0.1")
    port = int(os.getenv("SHELF_HTTP_PORT", "8000"))
    _LOGGER.info("cache facade starting: host=%s port=%s", host, port)
    run_app(create_cache_app(service), host=host, port=port)


if __name__ == "__main__":
    main()
