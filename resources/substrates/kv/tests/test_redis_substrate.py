"""Unit tests for the native Redis KV substrate."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

import resources.substrates.kv.redis_substrate as redis_substrate_module
from resources.substrates.kv.config import KvSettings
from resources.substrates.kv.redis_substrate import RedisClientSubstrate
from resources.substrates.kv.substrate import KvTransportError


@dataclass
class _FakeRedis:
    """Async stand-in for the ``redis.asyncio.Redis`` calls the substrate makes."""

    values: dict[str, str] = field(default_factory=dict)
    expiries: dict[str, int | None] = field(default_factory=dict)
    down: bool = False
    closed: bool = False

    def _check(self) -> None:
        if self.down:
            raise RedisConnectionError("connection refused")

    async def set(self, name: str, value: str, ex: int | None = None) -> bool:
        self._check()
        self.values[name] = value
        self.expiries[name] = ex
        return True

    async def get(self, name: str) -> str | None:
        self._check()
        return self.values.get(name)

    async def delete(self, name: str) -> int:
        self._check()
        return 1 if self.values.pop(name, None) is not None else 0

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake(monkeypatch: pytest.MonkeyPatch) -> _FakeRedis:
    client = _FakeRedis()
    monkeypatch.setattr(
        redis_substrate_module,
        "create_redis_client",
        lambda settings, timeout_seconds=None: client,
    )
    return client


def _substrate() -> RedisClientSubstrate:
    return RedisClientSubstrate(settings=KvSettings(redis_url="redis://localhost:6379/0"))


def test_set_get_delete_pass_through(fake: _FakeRedis) -> None:
    substrate = _substrate()

    async def _run() -> None:
        assert await substrate.set_value(key="a", value="one", ttl_seconds=30) is True
        assert await substrate.get_value(key="a") == "one"
        assert await substrate.delete_value(key="a") is True
        assert await substrate.delete_value(key="a") is False
        assert await substrate.get_value(key="a") is None

    asyncio.run(_run())
    assert fake.expiries["a"] == 30


def test_set_without_ttl_omits_expiry(fake: _FakeRedis) -> None:
    asyncio.run(_substrate().set_value(key="k", value="v", ttl_seconds=None))

    assert fake.expiries["k"] is None


def test_redis_errors_become_transport_errors(fake: _FakeRedis) -> None:
    fake.down = True
    substrate = _substrate()

    with pytest.raises(KvTransportError) as exc_info:
        asyncio.run(substrate.get_value(key="novels_v2:info"))

    assert exc_info.value.operation == "get"
    assert exc_info.value.key == "novels_v2:info"


def test_health_reports_ping_failure_without_raising(fake: _FakeRedis) -> None:
    substrate = _substrate()

    healthy = asyncio.run(substrate.health())
    fake.down = True
    unhealthy = asyncio.run(substrate.health())

    assert healthy.ready is True
    assert unhealthy.ready is False
    assert unhealthy.detail.startswith("redis ping failed")


def test_aclose_closes_clients(fake: _FakeRedis) -> None:
    asyncio.run(_substrate().aclose())

    assert fake.closed is True
