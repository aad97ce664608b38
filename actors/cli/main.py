"""Shelf cache operator CLI implemented with Typer."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable

import typer
from pydantic import TypeAdapter

from packages.shelf_shared.config import load_settings
from packages.shelf_shared.logging import configure_logging
from services.state.novel_cache import (
    HealthStatus,
    NovelCacheService,
    WriteResult,
    build_novel_cache_service,
)
from services.state.novel_cache.codes import CACHE_DISABLED, CACHE_UNAVAILABLE

SUCCESS_EXIT_CODE = 0
FAILED_EXIT_CODE = 3
UNAVAILABLE_EXIT_CODE = 4

_UNAVAILABLE_CODES = frozenset({CACHE_DISABLED, CACHE_UNAVAILABLE})
_JSON: TypeAdapter[Any] = TypeAdapter(Any)


class InvalidateTarget(str, Enum):
    """Cache layouts that can be invalidated as a whole."""

    NOVELS = "novels"
    FEATURED = "featured"
    RANKING = "ranking"


@dataclass(frozen=True)
class CliConfig:
    """Options given before the subcommand."""

    config_path: Path | None
    as_json: bool


def _to_data(result: Any) -> Any:
    """Reduce a service result to plain JSON data."""
    if isinstance(result, WriteResult):
        return {
            "status": result.status.value,
            "written": result.written,
            "skipped": result.skipped,
            "chunks": result.chunks,
            "errors": [error.summary() for error in result.errors],
        }
    return _JSON.dump_python(result, mode="json")


def _emit_output(result: Any, as_json: bool) -> None:
    data = _to_data(result)
    if as_json:
        typer.echo(json.dumps(data, sort_keys=True, separators=(",", ":")))
    else:
        typer.echo(_render_human(result, data))


def _render_human(result: Any, data: Any) -> str:
    if isinstance(result, HealthStatus):
        return "\n".join(
            [
                f"Cache: {_readiness(result.service_ready)}",
                f"Substrate: {_readiness(result.substrate_ready)} ({result.detail})",
            ]
        )
    if isinstance(result, WriteResult):
        lines = [f"{result.status.value} (written: {result.written}, chunks: {result.chunks})"]
        lines.extend(f"  {error}" for error in data["errors"])
        return "\n".join(lines)
    if data is None:
        return "(miss)"
    if isinstance(data, str):
        return data
    return json.dumps(data, indent=2, sort_keys=True)


def _readiness(ready: bool) -> str:
    return "✅ healthy" if ready else "⚠️ degraded"


def _parse_value(raw: str) -> Any:
    """Parse ``raw`` as JSON, keeping it as a plain string when it is not."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _exit_code(result: Any) -> int:
    """Map one service result to process exit semantics."""
    if isinstance(result, HealthStatus):
        return SUCCESS_EXIT_CODE if result.service_ready else UNAVAILABLE_EXIT_CODE
    if isinstance(result, WriteResult) and not result.ok:
        if any(error.code in _UNAVAILABLE_CODES for error in result.errors):
            return UNAVAILABLE_EXIT_CODE
        return FAILED_EXIT_CODE
    return SUCCESS_EXIT_CODE


def _build_service(cfg: CliConfig) -> NovelCacheService:
    """Build the cache service from layered settings."""
    settings = load_settings(config_path=cfg.config_path)
    configure_logging(
        level="WARNING",
        json_output=settings.logging.json_output,
        service="shelf-cli",
        environment=settings.logging.environment,
    )
    return build_novel_cache_service(settings=settings)


def _run_command(
    cfg: CliConfig, invoke: Callable[[NovelCacheService], Awaitable[Any]]
) -> None:
    """Execute one service call and map outputs to process semantics."""

    async def _call() -> Any:
        service = _build_service(cfg)
        try:
            return await invoke(service)
        finally:
            await service.aclose()

    result = asyncio.run(_call())
    _emit_output(result, cfg.as_json)
    raise typer.Exit(code=_exit_code(result))


def _cli_config(ctx: typer.Context) -> CliConfig:
    if isinstance(ctx.obj, CliConfig):
        return ctx.obj
    raise RuntimeError("CLI options were not initialized by the app callback")


app = typer.Typer(no_args_is_help=True, help="Shelf cache command-line interface")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None,
        "--config",
        envvar="SHELF_CONFIG_FILE",
        help="Path to shelf.yaml",
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output"),
) -> None:
    """Store global options for all cache commands."""
    ctx.obj = CliConfig(config_path=config, as_json=as_json)


@app.command("health")
def health_command(ctx: typer.Context) -> None:
    """Probe cache and substrate readiness."""
    cfg = _cli_config(ctx)
    _run_command(cfg, lambda service: service.health())


@app.command("get")
def get_command(
    ctx: typer.Context, key: str = typer.Argument(..., help="Cache key")
) -> None:
    """Read one ad hoc value."""
    cfg = _cli_config(ctx)
    _run_command(cfg, lambda service: service.get_value(key=key))


@app.command("set")
def set_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key"),
    value: str = typer.Argument(..., help="JSON value, or a plain string"),
    ttl: int | None = typer.Option(None, min=1, help="TTL in seconds"),
) -> None:
    """Store one ad hoc value."""
    cfg = _cli_config(ctx)
    parsed = _parse_value(value)
    _run_command(
        cfg,
        lambda service: service.set_value(key=key, value=parsed, ttl_seconds=ttl),
    )


@app.command("delete")
def delete_command(
    ctx: typer.Context, key: str = typer.Argument(..., help="Cache key")
) -> None:
    """Delete one ad hoc value and its chunks."""
    cfg = _cli_config(ctx)
    _run_command(cfg, lambda service: service.delete_value(key=key))


@app.command("invalidate")
def invalidate_command(
    ctx: typer.Context,
    target: InvalidateTarget = typer.Argument(
        ..., case_sensitive=False, help="Cache layout to invalidate"
    ),
) -> None:
    """Invalidate the catalog, featured, or ranking cache."""
    cfg = _cli_config(ctx)

    def invoke(service: NovelCacheService) -> Awaitable[WriteResult]:
        if target is InvalidateTarget.NOVELS:
            return service.clear_novel_cache()
        if target is InvalidateTarget.FEATURED:
            return service.invalidate_featured_novels_cache()
        return service.invalidate_ranking_cache()

    _run_command(cfg, invoke)


@app.command("serve")
def serve_command(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", help="Bind host"),
    port: int = typer.Option(8000, min=1, max=65535, help="Bind port"),
) -> None:
    """Serve the HTTP cache facade."""
    from actors.http.app import create_cache_app
    from packages.shelf_shared.http import run_app

    cfg = _cli_config(ctx)
    run_app(create_cache_app(_build_service(cfg)), host=host, port=port)


if __name__ == "__main__":
    app()
