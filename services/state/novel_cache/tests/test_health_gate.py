"""Behavior tests for the cache liveness probe."""

from __future__ import annotations

import asyncio

from resources.substrates.kv import UnconfiguredKvSubstrate
from services.state.novel_cache.config import NovelCacheSettings
from services.state.novel_cache.health import HealthGate
from tests.fakes.kv import InMemoryKvBackend


def test_check_round_trips_probe_key_with_short_ttl() -> None:
    backend = InMemoryKvBackend()
    gate = HealthGate(backend=backend, settings=NovelCacheSettings())

    assert asyncio.run(gate.check()) is True
    assert [(call.operation, call.key) for call in backend.calls] == [
        ("set", "redis_test_connection"),
        ("get", "redis_test_connection"),
    ]
    assert backend.ttls["redis_test_connection"] == 5


def test_check_fails_without_raising_when_transport_fails() -> None:
    backend = InMemoryKvBackend()
    backend.fail_all = True
    gate = HealthGate(backend=backend, settings=NovelCacheSettings())

    assert asyncio.run(gate.check()) is False
    assert gate.blocked_error().code == "CACHE_UNAVAILABLE"


def test_check_fails_when_probe_value_is_not_echoed() -> None:
    backend = InMemoryKvBackend()
    backend.reject_set_keys.add("redis_test_connection")
    gate = HealthGate(backend=backend, settings=NovelCacheSettings())

    assert asyncio.run(gate.check()) is False


def test_disabled_cache_skips_probe() -> None:
    backend = InMemoryKvBackend()
    gate = HealthGate(backend=backend, settings=NovelCacheSettings(enabled=False))

    assert asyncio.run(gate.check()) is False
    assert backend.calls == []
    error = gate.blocked_error()
    assert error.code == "CACHE_DISABLED"
    assert error.retryable is False


def test_unconfigured_backend_is_unavailable() -> None:
    gate = HealthGate(backend=UnconfiguredKvSubstrate(), settings=NovelCacheSettings())

    assert asyncio.run(gate.check()) is False
    status = asyncio.run(gate.status())
    assert status.service_ready is False
    assert status.substrate_ready is False
    assert "not configured" in status.detail


def test_status_reports_ready_backend() -> None:
    gate = HealthGate(backend=InMemoryKvBackend(), settings=NovelCacheSettings())

    status = asyncio.run(gate.status())

    assert status.service_ready is True
    assert status.substrate_ready is True
