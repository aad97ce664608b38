"""Novel cache service native package exports."""

from packages.shelf_shared.errors import ErrorCategory, ErrorDetail
from services.state.novel_cache.component import SERVICE_COMPONENT_ID
from services.state.novel_cache.config import NovelCacheSettings
from services.state.novel_cache.domain import (
    RANKING_LISTS,
    DualWriteResult,
    HealthStatus,
    JsonValue,
    WriteResult,
    WriteStatus,
)
from services.state.novel_cache.implementation import DefaultNovelCacheService
from services.state.novel_cache.refresh import (
    NovelSource,
    RankingRefresher,
    load_novel_catalog,
)
from services.state.novel_cache.service import (
    NovelCacheService,
    build_novel_cache_service,
)

__all__ = [
    "SERVICE_COMPONENT_ID",
    "RANKING_LISTS",
    "DefaultNovelCacheService",
    "DualWriteResult",
    "ErrorCategory",
    "ErrorDetail",
    "HealthStatus",
    "JsonValue",
    "NovelCacheService",
    "NovelCacheSettings",
    "NovelSource",
    "RankingRefresher",
    "WriteResult",
    "WriteStatus",
    "build_novel_cache_service",
    "load_novel_catalog",
]
