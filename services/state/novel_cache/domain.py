"""Domain models for novel cache results and stored metadata records."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, JsonValue

from packages.shelf_shared.errors import ErrorDetail

RANKING_LISTS: tuple[str, ...] = ("newReleases", "trending", "popular")


def utc_now() -> datetime:
    """Return current UTC timestamp."""
    return datetime.now(UTC)


class WriteStatus(str, Enum):
    """Outcome classification for one cache write or invalidation."""

    STORED = "stored"
    PARTIAL = "partial"
    FAILED = "failed"


class WriteResult(BaseModel):
    """Result of one write or invalidation against the cache."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: WriteStatus
    written: int = 0
    skipped: int = 0
    chunks: int = 0
    errors: list[ErrorDetail] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Return whether every physical key landed."""
        return self.status is WriteStatus.STORED

    @property
    def chunked(self) -> bool:
        """Return whether the value was split across chunk keys."""
        return self.chunks > 0

    @classmethod
    def failed(cls, *errors: ErrorDetail, chunks: int = 0) -> "WriteResult":
        """Build a failed result with no writes."""
        return cls(status=WriteStatus.FAILED, chunks=chunks, errors=list(errors))

    @classmethod
    def from_counts(
        cls,
        *,
        written: int,
        skipped: int = 0,
        failed: int = 0,
        chunks: int = 0,
        errors: list[ErrorDetail] | None = None,
    ) -> "WriteResult":
        """Classify a fan-out outcome: all landed, some landed, or none did."""
        if skipped == 0 and failed == 0:
            status = WriteStatus.STORED
        elif written > 0:
            status = WriteStatus.PARTIAL
        else:
            status = WriteStatus.FAILED
        return cls(
            status=status,
            written=written,
            skipped=skipped,
            chunks=chunks,
            errors=list(errors or []),
        )


class DualWriteResult(BaseModel):
    """Per-layout results of one legacy-plus-primary ranking publish."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    legacy: WriteResult
    primary: WriteResult

    @property
    def ok(self) -> bool:
        return self.legacy.ok and self.primary.ok

    @property
    def errors(self) -> list[ErrorDetail]:
        return [*self.legacy.errors, *self.primary.errors]


class _InfoRecord(BaseModel):
    """Base for JSON metadata records stored under ``<prefix>:info``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    def to_json(self) -> str:
        """Serialize with the camelCase field names readers expect."""
        return self.model_dump_json(by_alias=True)


class ChunkInfo(_InfoRecord):
    """Layout record for one chunked blob."""

    chunks: int = Field(ge=0)
    total_length: int = Field(alias="totalLength", ge=0)
    created_at: datetime = Field(alias="createdAt", default_factory=utc_now)


class CollectionInfo(_InfoRecord):
    """Layout record for one batched item collection."""

    total_items: int = Field(
        validation_alias=AliasChoices("totalItems", "total_items", "totalNovels"),
        serialization_alias="totalItems",
        ge=0,
    )
    chunks: int = Field(ge=0)
    updated_at: datetime = Field(alias="updatedAt", default_factory=utc_now)


class CategoryInfo(_InfoRecord):
    """Index record listing categories stored under one prefix."""

    categories: list[str] = Field(default_factory=list)
    updated_at: datetime = Field(alias="updatedAt", default_factory=utc_now)


class HealthStatus(BaseModel):
    """Cache readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    substrate_ready: bool
    detail: str


__all__ = [
    "RANKING_LISTS",
    "CategoryInfo",
    "ChunkInfo",
    "CollectionInfo",
    "DualWriteResult",
    "HealthStatus",
    "JsonValue",
    "WriteResult",
    "WriteStatus",
    "utc_now",
]
