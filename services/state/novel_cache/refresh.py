"""Ranking cache refresh job and cache-aside catalog loading.

Novel records come from an external document store reached through
``NovelSource``. Admin-selected ranking lists live in the
``featuredContent/ranking`` document as lists of novel ids.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Protocol

from packages.shelf_shared.logging import get_logger
from services.state.novel_cache.domain import RANKING_LISTS, JsonValue, WriteResult
from services.state.novel_cache.service import NovelCacheService

_LOGGER = get_logger(__name__)

NOVELS_COLLECTION = "novels"
RANKING_DOCUMENT = ("featuredContent", "ranking")
FALLBACK_ORDER_FIELDS: dict[str, str] = {
    "newReleases": "metadata.createdAt",
    "trending": "views",
    "popular": "rating",
}
DOCUMENT_ID_FIELD = "id"


class NovelSource(Protocol):
    """Read access to the backing document store.

    Documents returned by ``query_documents`` carry their id under ``"id"``.
    """

    async def get_document(
        self, collection: str, document_id: str
    ) -> dict[str, Any] | None:
        """Return one document's fields, or ``None`` when it does not exist."""

    async def query_documents(
        self,
        collection: str,
        order_by: str,
        limit: int,
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        """Return up to ``limit`` documents ordered by one field."""


def normalize_novel(document_id: str, data: Mapping[str, Any]) -> dict[str, JsonValue]:
    """Shape one stored novel document into a cached novel record."""
    fields = {key: value for key, value in data.items() if key != DOCUMENT_ID_FIELD}
    publishers = fields.get("publishers")
    author = publishers.get("original") if isinstance(publishers, Mapping) else None
    return {
        "novelId": document_id,
        **fields,
        "author": author or "Unknown",
        "genres": fields.get("genres") or [],
    }


class RankingRefresher:
    """Rebuild the ranking cache from admin selections with query fallbacks."""

    def __init__(
        self,
        *,
        service: NovelCacheService,
        source: NovelSource,
        fallback_limit: int = 5,
    ) -> None:
        if fallback_limit < 1:
            raise ValueError("fallback_limit must be >= 1")
        self._service = service
        self._source = source
        self._fallback_limit = fallback_limit

    async def refresh(self) -> WriteResult:
        """Collect the three ranking lists, invalidate, and rewrite the cache."""
        rankings = await self._selected_rankings()
        for name in RANKING_LISTS:
            if rankings[name]:
                continue
            _LOGGER.info("no admin-selected %s; using ordered query", name)
            rankings[name] = await self._fallback(name)

        _LOGGER.info(
            "ranking lists collected: %s",
            ", ".join(f"{name}={len(rankings[name])}" for name in RANKING_LISTS),
        )
        invalidated = await self._service.invalidate_ranking_cache()
        if not invalidated.ok:
            _LOGGER.warning(
                "ranking invalidation did not complete: status=%s",
                invalidated.status.value,
            )
        result = await self._service.set_ranking_cache(rankings=rankings)
        if result.ok:
            _LOGGER.info("ranking cache refreshed")
        else:
            _LOGGER.warning("ranking cache refresh failed: status=%s", result.status.value)
        return result

    async def _selected_rankings(self) -> dict[str, list[JsonValue]]:
        """Resolve the admin-selected id lists into novel records."""
        rankings: dict[str, list[JsonValue]] = {name: [] for name in RANKING_LISTS}
        collection, document_id = RANKING_DOCUMENT
        try:
            selection = await self._source.get_document(collection, document_id)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning(
                "ranking selection read failed: exception_type=%s",
                type(exc).__name__,
                exc_info=exc,
            )
            return rankings
        if selection is None:
            _LOGGER.info("no ranking selection document found")
            return rankings

        resolved = await asyncio.gather(
            *(self._novels_by_id(_id_list(selection.get(name))) for name in RANKING_LISTS)
        )
        for name, novels in zip(RANKING_LISTS, resolved):
            rankings[name] = novels
        return rankings

    async def _novels_by_id(self, ids: list[str]) -> list[JsonValue]:
        if not ids:
            return []
        documents = await asyncio.gather(
            *(self._source.get_document(NOVELS_COLLECTION, novel_id) for novel_id in ids),
            return_exceptions=True,
        )
        novels: list[JsonValue] = []
        for novel_id, document in zip(ids, documents):
            if isinstance(document, BaseException):
                if not isinstance(document, Exception):
                    raise document
                _LOGGER.warning(
                    "novel fetch failed: novel_id=%s exception_type=%s",
                    novel_id,
                    type(document).__name__,
                )
                continue
            if document is None:
                _LOGGER.warning("selected novel not found: novel_id=%s", novel_id)
                continue
            novels.append(normalize_novel(novel_id, document))
        return novels

    async def _fallback(self, name: str) -> list[JsonValue]:
        try:
            documents = await self._source.query_documents(
                NOVELS_COLLECTION,
                FALLBACK_ORDER_FIELDS[name],
                self._fallback_limit,
                descending=True,
            )
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning(
                "ranking fallback query failed: list=%s exception_type=%s",
                name,
                type(exc).__name__,
                exc_info=exc,
            )
            return []
        return [
            normalize_novel(str(document.get(DOCUMENT_ID_FIELD, "")), document)
            for document in documents
        ]


async def load_novel_catalog(
    service: NovelCacheService,
    source: NovelSource,
    *,
    limit: int = 200,
) -> list[JsonValue]:
    """Return the catalog from cache, filling the cache from ``source`` on a miss."""
    cached = await service.get_novel_cache()
    if cached:
        return cached

    documents = await source.query_documents(
        NOVELS_COLLECTION, FALLBACK_ORDER_FIELDS["newReleases"], limit, descending=True
    )
    novels: list[JsonValue] = [
        normalize_novel(str(document.get(DOCUMENT_ID_FIELD, "")), document)
        for document in documents
    ]
    if novels:
        result = await service.set_novel_cache(novels=novels)
        if not result.ok:
            _LOGGER.warning(
                "catalog cache fill did not complete: status=%s", result.status.value
            )
    return novels


def _id_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if isinstance(item, str) and item]
