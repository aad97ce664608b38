"""Concrete novel cache implementation."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ValidationError

from packages.shelf_shared.config import ShelfSettings
from packages.shelf_shared.errors import ErrorDetail, codes, validation_error
from packages.shelf_shared.logging import get_logger, public_api_instrumented
from resources.substrates.kv import KvSubstrate, create_kv_substrate, resolve_kv_settings
from services.state.novel_cache.blob_store import ChunkedBlobStore
from services.state.novel_cache.category_cache import KeyedCategoryCache
from services.state.novel_cache.collection_cache import ShardedCollectionCache
from services.state.novel_cache.component import SERVICE_COMPONENT_ID
from services.state.novel_cache.config import (
    NovelCacheSettings,
    resolve_novel_cache_settings,
)
from services.state.novel_cache.domain import (
    RANKING_LISTS,
    DualWriteResult,
    HealthStatus,
    JsonValue,
    WriteResult,
)
from services.state.novel_cache.health import HealthGate
from services.state.novel_cache.service import NovelCacheService
from services.state.novel_cache.validation import (
    KeyRequest,
    SetCategoriesRequest,
    SetCollectionRequest,
    SetValueRequest,
    WriteKeyRequest,
)

_LOGGER = get_logger(__name__)


class DefaultNovelCacheService(NovelCacheService):
    """Default novel cache backed by one KV substrate.

    Every public call runs the health probe first. When it fails, reads
    return ``None`` and writes fail without touching any cache key.
    """

    def __init__(
        self,
        *,
        settings: NovelCacheSettings,
        backend: KvSubstrate,
    ) -> None:
        self._settings = settings
        self._backend = backend
        self._gate = HealthGate(backend=backend, settings=settings)
        self._blobs = ChunkedBlobStore(backend=backend, settings=settings)
        self._collections = ShardedCollectionCache(backend=backend, settings=settings)
        self._categories = KeyedCategoryCache(backend=backend, settings=settings)

    @classmethod
    def from_settings(cls, settings: ShelfSettings) -> "DefaultNovelCacheService":
        """Build the service and its owned KV substrate from root settings."""
        return cls(
            settings=resolve_novel_cache_settings(settings),
            backend=create_kv_substrate(resolve_kv_settings(settings)),
        )

    @public_api_instrumented(logger=_LOGGER, component_id=SERVICE_COMPONENT_ID)
    async def set_novel_cache(
        self, *, novels: Sequence[JsonValue], ttl_seconds: int | None = None
    ) -> WriteResult:
        """Replace the catalog collection at the novels prefix."""
        request, errors = self._validate_request(
            model=SetCollectionRequest,
            payload={"items": list(novels), "ttl_seconds": ttl_seconds},
        )
        if errors:
            return WriteResult.failed(*errors)
        assert isinstance(request, SetCollectionRequest)

        blocked = await self._blocked()
        if blocked is not None:
            return WriteResult.failed(blocked)
        return await self._collections.set_collection(
            self._settings.novels_prefix,
            request.items,
            self._ttl(request.ttl_seconds),
        )

    @public_api_instrumented(logger=_LOGGER, component_id=SERVICE_COMPONENT_ID)
    async def get_novel_cache(self) -> list[JsonValue] | None:
        """Return the catalog, or ``None`` when absent or unavailable."""
        if await self._blocked() is not None:
            return None
        return await self._collections.get_collection(self._settings.novels_prefix)

    @public_api_instrumented(logger=_LOGGER, component_id=SERVICE_COMPONENT_ID)
    async def clear_novel_cache(self) -> WriteResult:
        blocked = await self._blocked()
        if blocked is not None:
            return WriteResult.failed(blocked)
        return await self._collections.clear_collection(self._settings.novels_prefix)

    @public_api_instrumented(logger=_LOGGER, component_id=SERVICE_COMPONENT_ID)
    async def set_featured_novels_cache(
        self, *, featured: Mapping[str, JsonValue], ttl_seconds: int | None = None
    ) -> WriteResult:
        """Write featured categories; categories not named here are kept."""
        request, errors = self._validate_request(
            model=SetCategoriesRequest,
            payload={"categories": dict(featured), "ttl_seconds": ttl_seconds},
        )
        if errors:
            return WriteResult.failed(*errors)
        assert isinstance(request, SetCategoriesRequest)

        blocked = await self._blocked()
        if blocked is not None:
            return WriteResult.failed(blocked)
        return await self._categories.set_categories(
            self._settings.featured_prefix,
            request.categories,
            self._ttl(request.ttl_seconds),
        )

    @public_api_instrumented(logger=_LOGGER, component_id=SERVICE_COMPONENT_ID)
    async def get_featured_novels_cache(self) -> dict[str, JsonValue] | None:
        if await self._blocked() is not None:
            return None
        return await self._categories.get_all_categories(self._settings.featured_prefix)

    @public_api_instrumented(logger=_LOGGER, component_id=SERVICE_COMPONENT_ID)
    async def invalidate_featured_novels_cache(self) -> WriteResult:
        blocked = await self._blocked()
        if blocked is not None:
            return WriteResult.failed(blocked)
        return await self._categories.invalidate_all(self._settings.featured_prefix)

    @public_api_instrumented(logger=_LOGGER, component_id=SERVICE_COMPONENT_ID)
    async def set_ranking_cache(self, *, rankings: Mapping[str, JsonValue]) -> WriteResult:
        """Write ranking lists with the ranking TTL; empty lists are not stored."""
        lists = _ranking_lists(rankings)
        if not lists:
            return WriteResult.failed(
                validation_error(
                    "rankings must include at least one non-empty list of "
                    + ", ".join(RANKING_LISTS),
                    code=codes.INVALID_ARGUMENT,
                )
            )
        blocked = await self._blocked()
        if blocked is not None:
            return WriteResult.failed(blocked)
        return await self._store_rankings(lists)

    @public_api_instrumented(logger=_LOGGER, component_id=SERVICE_COMPONENT_ID)
    async def get_ranking_cache(self) -> dict[str, JsonValue] | None:
        if await self._blocked() is not None:
            return None
        cached = await self._categories.get_all_categories(self._settings.ranking_prefix)
        if cached is None:
            return None
        return _ranking_lists(cached) or None

    @public_api_instrumented(logger=_LOGGER, component_id=SERVICE_COMPONENT_ID)
    async def invalidate_ranking_cache(self) -> WriteResult:
        blocked = await self._blocked()
        if blocked is not None:
            return WriteResult.failed(blocked)
        return await self._categories.invalidate_all(self._settings.ranking_prefix)

    @public_api_instrumented(logger=_LOGGER, component_id=SERVICE_COMPONENT_ID)
    async def publish_rankings(
        self, *, updates: Mapping[str, JsonValue]
    ) -> DualWriteResult:
        """Write ranking updates to the featured layout, then the ranking layout.

        The featured layout is rebuilt from a snapshot merged with ``updates``
        so categories other than the updated lists survive the rewrite.
        """
        request, errors = self._validate_request(
            model=SetCategoriesRequest,
            payload={"categories": dict(updates)},
        )
        if errors:
            rejected = WriteResult.failed(*errors)
            return DualWriteResult(legacy=rejected, primary=rejected)
        assert isinstance(request, SetCategoriesRequest)

        blocked = await self._blocked()
        if blocked is not None:
            refused = WriteResult.failed(blocked)
            return DualWriteResult(legacy=refused, primary=refused)

        featured_prefix = self._settings.featured_prefix
        snapshot = await self._categories.get_all_categories(featured_prefix) or {}
        invalidated = await self._categories.invalidate_all(featured_prefix)
        if not invalidated.ok:
            _LOGGER.warning(
                "featured invalidation before ranking publish did not complete: status=%s",
                invalidated.status.value,
            )
        legacy = await self._categories.set_categories(
            featured_prefix,
            {**snapshot, **request.categories},
            self._settings.default_ttl_seconds,
        )

        lists = _ranking_lists(request.categories)
        if lists:
            primary = await self._store_rankings(lists)
        else:
            primary = WriteResult.failed(
                validation_error(
                    "updates contain no non-empty ranking lists",
                    code=codes.INVALID_ARGUMENT,
                )
            )
        return DualWriteResult(legacy=legacy, primary=primary)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("key",),
    )
    async def set_value(
        self, *, key: str, value: JsonValue, ttl_seconds: int | None = None
    ) -> WriteResult:
        """Store one value directly or in chunks depending on its size."""
        request, errors = self._validate_request(
            model=SetValueRequest,
            payload={"key": key, "value": value, "ttl_seconds": ttl_seconds},
            context=self._managed_keys(),
        )
        if errors:
            return WriteResult.failed(*errors)
        assert isinstance(request, SetValueRequest)

        blocked = await self._blocked()
        if blocked is not None:
            return WriteResult.failed(blocked)
        return await self._blobs.set_blob(
            request.key, request.value, self._ttl(request.ttl_seconds)
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("key",),
    )
    async def get_value(self, *, key: str) -> JsonValue | None:
        request, errors = self._validate_request(model=KeyRequest, payload={"key": key})
        if errors:
            return None
        assert isinstance(request, KeyRequest)
        if await self._blocked() is not None:
            return None
        return await self._blobs.get_blob(request.key)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("key",),
    )
    async def delete_value(self, *, key: str) -> WriteResult:
        request, errors = self._validate_request(
            model=WriteKeyRequest, payload={"key": key}, context=self._managed_keys()
        )
        if errors:
            return WriteResult.failed(*errors)
        assert isinstance(request, WriteKeyRequest)

        blocked = await self._blocked()
        if blocked is not None:
            return WriteResult.failed(blocked)
        return await self._blobs.delete_blob(request.key)

    @public_api_instrumented(logger=_LOGGER, component_id=SERVICE_COMPONENT_ID)
    async def health(self) -> HealthStatus:
        return await self._gate.status()

    async def aclose(self) -> None:
        await self._backend.aclose()

    async def _blocked(self) -> ErrorDetail | None:
        """Return the refusal error when the health probe fails."""
        if await self._gate.check():
            return None
        _LOGGER.info("cache unavailable; operation skipped")
        return self._gate.blocked_error()

    async def _store_rankings(self, lists: dict[str, JsonValue]) -> WriteResult:
        return await self._categories.set_categories(
            self._settings.ranking_prefix,
            lists,
            self._settings.ranking_ttl_seconds,
        )

    def _managed_keys(self) -> dict[str, Any]:
        settings = self._settings
        return {
            "managed_prefixes": (
                settings.novels_prefix,
                settings.featured_prefix,
                settings.ranking_prefix,
            )
        }

    def _ttl(self, ttl_seconds: int | None) -> int:
        if ttl_seconds is None:
            return self._settings.default_ttl_seconds
        return ttl_seconds

    def _validate_request(
        self,
        *,
        model: type[BaseModel],
        payload: dict[str, Any],
        context: dict[str, Any] | None = None,
    ) -> tuple[BaseModel | None, list[ErrorDetail]]:
        """Validate one request payload with stable error messages."""
        try:
            validated = model.model_validate(payload, context=context)
        except ValidationError as exc:
            issue = exc.errors()[0]
            field = ".".join(str(item) for item in issue.get("loc", ()))
            field_name = field if field else "payload"
            message = f"{field_name}: {issue.get('msg', 'invalid value')}"
            return None, [validation_error(message, code=codes.INVALID_ARGUMENT)]
        return validated, []


def _ranking_lists(rankings: Mapping[str, Any]) -> dict[str, JsonValue]:
    """Keep only the known ranking lists that are non-empty lists."""
    return {
        name: rankings[name]
        for name in RANKING_LISTS
        if isinstance(rankings.get(name), list) and len(rankings[name]) > 0
    }
