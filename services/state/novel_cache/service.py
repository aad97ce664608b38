"""Authoritative in-process Python API for the novel cache."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from packages.shelf_shared.config import ShelfSettings
from resources.substrates.kv import KvSubstrate
from services.state.novel_cache.domain import (
    DualWriteResult,
    HealthStatus,
    JsonValue,
    WriteResult,
)


class NovelCacheService(ABC):
    """Public API for catalog, featured, ranking, and ad hoc cache operations.

    Reads never raise for backend trouble; they return ``None``. Writes report
    their outcome through ``WriteResult``.
    """

    @abstractmethod
    async def set_novel_cache(
        self, *, novels: Sequence[JsonValue], ttl_seconds: int | None = None
    ) -> WriteResult:
        """Replace the cached novel catalog."""

    @abstractmethod
    async def get_novel_cache(self) -> list[JsonValue] | None:
        """Return the cached novel catalog."""

    @abstractmethod
    async def clear_novel_cache(self) -> WriteResult:
        """Remove the cached novel catalog."""

    @abstractmethod
    async def set_featured_novels_cache(
        self, *, featured: Mapping[str, JsonValue], ttl_seconds: int | None = None
    ) -> WriteResult:
        """Write featured categories, merging with categories already cached."""

    @abstractmethod
    async def get_featured_novels_cache(self) -> dict[str, JsonValue] | None:
        """Return every readable featured category."""

    @abstractmethod
    async def invalidate_featured_novels_cache(self) -> WriteResult:
        """Remove every featured category."""

    @abstractmethod
    async def set_ranking_cache(self, *, rankings: Mapping[str, JsonValue]) -> WriteResult:
        """Write the non-empty ranking lists."""

    @abstractmethod
    async def get_ranking_cache(self) -> dict[str, JsonValue] | None:
        """Return the non-empty cached ranking lists."""

    @abstractmethod
    async def invalidate_ranking_cache(self) -> WriteResult:
        """Remove every cached ranking list."""

    @abstractmethod
    async def publish_rankings(
        self, *, updates: Mapping[str, JsonValue]
    ) -> DualWriteResult:
        """Write ranking lists to both the featured and the ranking layouts."""

    @abstractmethod
    async def set_value(
        self, *, key: str, value: JsonValue, ttl_seconds: int | None = None
    ) -> WriteResult:
        """Store one ad hoc value of any size."""

    @abstractmethod
    async def get_value(self, *, key: str) -> JsonValue | None:
        """Return one ad hoc value."""

    @abstractmethod
    async def delete_value(self, *, key: str) -> WriteResult:
        """Remove one ad hoc value and any chunks backing it."""

    @abstractmethod
    async def health(self) -> HealthStatus:
        """Return cache and substrate readiness."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release backend connections."""


def build_novel_cache_service(
    *,
    settings: ShelfSettings,
    backend: KvSubstrate | None = None,
) -> NovelCacheService:
    """Build the default novel cache implementation from typed settings."""
    from resources.substrates.kv import create_kv_substrate, resolve_kv_settings
    from services.state.novel_cache.config import resolve_novel_cache_settings
    from services.state.novel_cache.implementation import DefaultNovelCacheService

    return DefaultNovelCacheService(
        settings=resolve_novel_cache_settings(settings),
        backend=backend or create_kv_substrate(resolve_kv_settings(settings)),
    )
