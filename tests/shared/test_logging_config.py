"""Tests for root logging setup and context propagation."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterator

import pytest

from packages.shelf_shared.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_context,
    get_logger,
    log_context,
)


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    clear_context()


def test_json_output_carries_bound_context(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(level="INFO", json_output=True, service="shelf-test")

    with log_context({"cache_key": "novels_v2"}):
        get_logger("tests.logging").info("cache miss")

    record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert record["message"] == "cache miss"
    assert record["level"] == "INFO"
    assert record["service"] == "shelf-test"
    assert record["cache_key"] == "novels_v2"


def test_plain_output_appends_sorted_context(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(level="DEBUG", json_output=False)

    with log_context({"b": 2, "a": 1}):
        get_logger("tests.logging").debug("probe")

    line = capsys.readouterr().out.strip().splitlines()[-1]
    assert line.endswith("probe a=1 b=2")


def test_configure_logging_replaces_handlers_and_quiets_transport() -> None:
    configure_logging()
    configure_logging()

    assert len(logging.getLogger().handlers) == 1
    assert logging.getLogger("httpx").level == logging.WARNING


def test_context_does_not_leak_between_gathered_tasks() -> None:
    async def _task(key: str) -> dict[str, str]:
        bind_context(cache_key=key)
        await asyncio.sleep(0)
        return get_context()

    async def _run() -> list[dict[str, str]]:
        return list(await asyncio.gather(_task("a"), _task("b")))

    first, second = asyncio.run(_run())

    assert first["cache_key"] == "a"
    assert second["cache_key"] == "b"
    assert "cache_key" not in get_context()
