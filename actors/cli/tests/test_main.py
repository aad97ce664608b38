"""CLI tests for the shelf cache Typer commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from actors.cli import main as cli_main
from services.state.novel_cache import DefaultNovelCacheService
from services.state.novel_cache.config import NovelCacheSettings
from tests.fakes.kv import InMemoryKvBackend

runner = CliRunner()


@pytest.fixture
def backend(monkeypatch: pytest.MonkeyPatch) -> InMemoryKvBackend:
    """Route every CLI command to one shared in-memory cache."""
    fake = InMemoryKvBackend()
    built: list[cli_main.CliConfig] = []

    def _build(cfg: cli_main.CliConfig) -> DefaultNovelCacheService:
        built.append(cfg)
        return DefaultNovelCacheService(settings=NovelCacheSettings(), backend=fake)

    monkeypatch.setattr(cli_main, "_build_service", _build)
    fake.built = built  # type: ignore[attr-defined]
    return fake


def _invoke(*args: str) -> Any:
    return runner.invoke(cli_main.app, list(args))


def _json(result: Any) -> Any:
    """Decode the JSON document printed as the last output line."""
    return json.loads(result.stdout.strip().splitlines()[-1])


def test_set_parses_json_and_get_prints_it(backend: InMemoryKvBackend) -> None:
    stored = _invoke("--json", "set", "novel:1", '{"title": "A"}', "--ttl", "30")
    fetched = _invoke("--json", "get", "novel:1")

    assert stored.exit_code == 0
    assert _json(stored)["status"] == "stored"
    assert backend.ttls["novel:1"] == 30
    assert _json(fetched) == {"title": "A"}


def test_set_keeps_non_json_value_as_string(backend: InMemoryKvBackend) -> None:
    result = _invoke("set", "greeting", "hello world")

    assert result.exit_code == 0
    assert backend.values["greeting"] == "hello world"
    assert "stored (written: 1, chunks: 0)" in result.stdout


def test_get_miss_renders_placeholder(backend: InMemoryKvBackend) -> None:
    result = _invoke("get", "absent")

    assert result.exit_code == 0
    assert result.stdout.strip().splitlines()[-1] == "(miss)"


def test_delete_removes_value(backend: InMemoryKvBackend) -> None:
    _invoke("set", "k", "1")

    result = _invoke("delete", "k")

    assert result.exit_code == 0
    assert "k" not in backend.values


def test_write_failure_exits_with_failed_code(backend: InMemoryKvBackend) -> None:
    backend.fail_set_keys.add("k")

    result = _invoke("--json", "set", "k", "1")

    payload = _json(result)
    assert result.exit_code == cli_main.FAILED_EXIT_CODE
    assert payload["status"] == "failed"
    assert payload["errors"]


def test_unavailable_backend_exits_with_unavailable_code(
    backend: InMemoryKvBackend,
) -> None:
    backend.fail_all = True

    result = _invoke("--json", "set", "k", "1")

    assert result.exit_code == cli_main.UNAVAILABLE_EXIT_CODE
    assert _json(result)["errors"][0].startswith("CACHE_UNAVAILABLE")


def test_health_human_and_json_output(backend: InMemoryKvBackend) -> None:
    human = _invoke("health")
    backend.fail_all = True
    degraded = _invoke("--json", "health")

    assert human.exit_code == 0
    assert "Cache: ✅ healthy" in human.stdout
    assert degraded.exit_code == cli_main.UNAVAILABLE_EXIT_CODE
    assert _json(degraded)["service_ready"] is False


def test_invalidate_featured_clears_category_index(
    backend: InMemoryKvBackend,
) -> None:
    backend.values["featured_v2:info"] = json.dumps(
        {"categories": ["trending"], "updatedAt": "2026-01-01T00:00:00Z"}
    )
    backend.values["featured_v2:trending"] = "[]"

    result = _invoke("invalidate", "FEATURED")

    assert result.exit_code == 0
    assert "featured_v2:info" not in backend.values
    assert "featured_v2:trending" not in backend.values


def test_invalidate_rejects_unknown_target(backend: InMemoryKvBackend) -> None:
    result = _invoke("invalidate", "everything")

    assert result.exit_code != 0
    assert backend.calls == []


def test_config_option_reaches_service_builder(
    backend: InMemoryKvBackend, tmp_path: Path
) -> None:
    config_file = tmp_path / "shelf.yaml"

    _invoke("--config", str(config_file), "get", "k")

    built = backend.built  # type: ignore[attr-defined]
    assert built[0].config_path == config_file
    assert built[0].as_json is False


def test_service_is_closed_after_each_command(backend: InMemoryKvBackend) -> None:
    _invoke("get", "k")

    assert backend.closed is True
