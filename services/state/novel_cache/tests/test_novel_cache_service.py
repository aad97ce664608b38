"""Behavior tests for the novel cache public API."""

from __future__ import annotations

import asyncio
import json

from packages.shelf_shared.config import load_settings
from resources.substrates.kv import UnconfiguredKvSubstrate
from services.state.novel_cache import (
    DefaultNovelCacheService,
    WriteStatus,
    build_novel_cache_service,
)
from services.state.novel_cache.config import NovelCacheSettings
from tests.fakes.kv import InMemoryKvBackend


def _service(**overrides: object) -> tuple[DefaultNovelCacheService, InMemoryKvBackend]:
    """Build the service over a deterministic in-memory backend."""
    backend = InMemoryKvBackend()
    service = DefaultNovelCacheService(
        settings=NovelCacheSettings(**overrides), backend=backend
    )
    return service, backend


def _novels(count: int, prefix: str = "n") -> list[dict[str, object]]:
    return [{"novelId": f"{prefix}{index}", "title": f"Novel {index}"} for index in range(count)]


def test_catalog_of_45_novels_is_cached_in_three_batches() -> None:
    service, backend = _service()
    novels = _novels(45)

    result = asyncio.run(service.set_novel_cache(novels=novels))

    assert result.ok is True
    info = json.loads(backend.values["novels_v2:info"])
    assert info == {"totalItems": 45, "chunks": 3, "updatedAt": info["updatedAt"]}
    assert backend.ttls["novels_v2:chunk:0"] == 3600
    assert asyncio.run(service.get_novel_cache()) == novels


def test_featured_writes_merge_instead_of_overwrite() -> None:
    service, _ = _service()
    new_releases = _novels(5, "new")
    trending = _novels(5, "hot")

    asyncio.run(service.set_featured_novels_cache(featured={"newReleases": new_releases}))
    asyncio.run(service.set_featured_novels_cache(featured={"trending": trending}))

    assert asyncio.run(service.get_featured_novels_cache()) == {
        "newReleases": new_releases,
        "trending": trending,
    }


def test_featured_text_values_round_trip() -> None:
    service, _ = _service()

    result = asyncio.run(
        service.set_featured_novels_cache(featured={"headline": "Top picks"})
    )

    assert result.ok is True
    assert asyncio.run(service.get_featured_novels_cache()) == {"headline": "Top picks"}


def test_unavailable_backend_reads_miss_and_writes_nothing() -> None:
    """A failing probe short-circuits before any real read or write."""
    service, backend = _service()
    asyncio.run(service.set_novel_cache(novels=_novels(3)))
    backend.calls.clear()
    backend.fail_all = True

    assert asyncio.run(service.get_novel_cache()) is None
    result = asyncio.run(service.set_novel_cache(novels=_novels(3)))

    assert result.status is WriteStatus.FAILED
    assert result.errors[0].code == "CACHE_UNAVAILABLE"
    assert backend.operations() == []


def test_unconfigured_backend_reports_unavailable() -> None:
    service = DefaultNovelCacheService(
        settings=NovelCacheSettings(), backend=UnconfiguredKvSubstrate()
    )

    assert asyncio.run(service.get_value(key="k")) is None
    result = asyncio.run(service.set_value(key="k", value=1))
    assert result.errors[0].code == "CACHE_UNAVAILABLE"
    assert result.errors[0].retryable is False


def test_disabled_cache_touches_no_keys() -> None:
    service, backend = _service(enabled=False)

    result = asyncio.run(service.set_value(key="k", value="v"))

    assert result.errors[0].code == "CACHE_DISABLED"
    assert asyncio.run(service.get_featured_novels_cache()) is None
    assert backend.calls == []


def test_ranking_cache_stores_only_non_empty_known_lists() -> None:
    service, backend = _service()

    result = asyncio.run(
        service.set_ranking_cache(
            rankings={"newReleases": [1], "trending": [], "popular": [3], "other": [4]}
        )
    )

    assert result.ok is True
    assert backend.ttls["rankings_list_v1:newReleases"] == 86400
    assert "rankings_list_v1:trending" not in backend.values
    assert "rankings_list_v1:other" not in backend.values
    assert asyncio.run(service.get_ranking_cache()) == {
        "newReleases": [1],
        "popular": [3],
    }


def test_ranking_cache_without_lists_is_rejected() -> None:
    service, backend = _service()

    result = asyncio.run(service.set_ranking_cache(rankings={"trending": []}))

    assert result.status is WriteStatus.FAILED
    assert result.errors[0].code == "INVALID_ARGUMENT"
    assert backend.calls == []


def test_invalidate_ranking_cache_removes_lists() -> None:
    service, backend = _service()
    asyncio.run(service.set_ranking_cache(rankings={"popular": [1]}))

    result = asyncio.run(service.invalidate_ranking_cache())

    assert result.ok is True
    assert asyncio.run(service.get_ranking_cache()) is None
    assert set(backend.values) == {"redis_test_connection"}


def test_publish_rankings_writes_legacy_before_primary() -> None:
    """Legacy is invalidated and rewritten before the primary ranking cache."""
    service, backend = _service()
    asyncio.run(
        service.set_featured_novels_cache(featured={"editorsPick": [9], "trending": [0]})
    )
    backend.calls.clear()

    result = asyncio.run(
        service.publish_rankings(updates={"trending": [1], "popular": [2]})
    )

    assert result.ok is True
    operations = backend.operations()
    first_legacy_delete = operations.index(("delete", "featured_v2:info"))
    first_legacy_set = operations.index(("set", "featured_v2:trending"))
    first_primary_set = operations.index(("set", "rankings_list_v1:trending"))
    assert first_legacy_delete < first_legacy_set < first_primary_set
    assert asyncio.run(service.get_featured_novels_cache()) == {
        "editorsPick": [9],
        "popular": [2],
        "trending": [1],
    }
    assert asyncio.run(service.get_ranking_cache()) == {"trending": [1], "popular": [2]}


def test_publish_rankings_refused_when_unavailable() -> None:
    service, backend = _service()
    backend.fail_all = True

    result = asyncio.run(service.publish_rankings(updates={"trending": [1]}))

    assert result.ok is False
    assert result.legacy.errors[0].code == "CACHE_UNAVAILABLE"
    assert result.primary.errors[0].code == "CACHE_UNAVAILABLE"


def test_set_value_applies_default_ttl_and_chunks_large_values() -> None:
    service, backend = _service(max_value_bytes=32, chunk_size=32)

    small = asyncio.run(service.set_value(key="small", value={"a": 1}))
    large = asyncio.run(service.set_value(key="large", value={"text": "x" * 100}, ttl_seconds=30))

    assert small.chunked is False
    assert backend.ttls["small"] == 3600
    assert large.chunked is True
    assert backend.ttls["large:info"] == 30
    assert asyncio.run(service.get_value(key="large")) == {"text": "x" * 100}


def test_delete_value_removes_chunks() -> None:
    service, backend = _service(max_value_bytes=8, chunk_size=8)
    asyncio.run(service.set_value(key="k", value="abcdefghijklmnop"))

    result = asyncio.run(service.delete_value(key="k"))

    assert result.ok is True
    assert set(backend.values) == {"redis_test_connection"}


def test_invalid_requests_fail_without_traffic() -> None:
    service, backend = _service()

    blank_key = asyncio.run(service.set_value(key=" ", value=1))
    bad_ttl = asyncio.run(service.set_value(key="k", value=1, ttl_seconds=0))
    empty_catalog = asyncio.run(service.set_novel_cache(novels=[]))
    reserved = asyncio.run(service.set_featured_novels_cache(featured={"info": [1]}))

    for result in (blank_key, bad_ttl, empty_catalog, reserved):
        assert result.status is WriteStatus.FAILED
        assert result.errors[0].code == "INVALID_ARGUMENT"
    assert backend.calls == []


def test_ad_hoc_writes_cannot_touch_managed_cache_keys() -> None:
    """Catalog batches survive a stray delete or set on the catalog prefix."""
    service, backend = _service()
    asyncio.run(service.set_novel_cache(novels=_novels(3)))
    before = dict(backend.values)

    deleted = asyncio.run(service.delete_value(key="novels_v2"))
    overwritten = asyncio.run(service.set_value(key="featured_v2:trending", value=[1]))
    allowed = asyncio.run(service.set_value(key="novels_v2_notes", value="ok"))

    assert deleted.errors[0].code == "INVALID_ARGUMENT"
    assert overwritten.errors[0].code == "INVALID_ARGUMENT"
    assert "reserved" in overwritten.errors[0].message
    assert allowed.ok is True
    assert {key: backend.values[key] for key in before} == before
    assert asyncio.run(service.get_novel_cache()) == _novels(3)


def test_clear_novel_cache_removes_catalog() -> None:
    service, _ = _service()
    asyncio.run(service.set_novel_cache(novels=_novels(3)))

    assert asyncio.run(service.clear_novel_cache()).ok is True
    assert asyncio.run(service.get_novel_cache()) is None


def test_health_reports_readiness() -> None:
    service, _ = _service()

    status = asyncio.run(service.health())

    assert status.service_ready is True
    assert status.substrate_ready is True


def test_build_service_without_backend_settings_is_unconfigured() -> None:
    settings = load_settings(
        cli_params={"components": {"service": {"novel_cache": {"batch_size": 5}}}},
        environ={},
    )

    service = build_novel_cache_service(settings=settings)

    status = asyncio.run(service.health())
    assert status.service_ready is False
    assert "not configured" in status.detail
    asyncio.run(service.aclose())
