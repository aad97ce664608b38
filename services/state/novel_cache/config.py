"""Pydantic settings for novel cache behavior."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from packages.shelf_shared.config import ShelfSettings, resolve_component_settings
from services.state.novel_cache.component import SERVICE_COMPONENT_ID


class NovelCacheSettings(BaseModel):
    """Novel cache runtime behavior settings.

    ``enabled`` is read once at construction; a disabled cache answers every
    read with a miss and every write with a ``CACHE_DISABLED`` failure.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True
    novels_prefix: str = "novels_v2"
    featured_prefix: str = "featured_v2"
    ranking_prefix: str = "rankings_list_v1"
    default_ttl_seconds: int = Field(default=3600, gt=0)
    ranking_ttl_seconds: int = Field(default=24 * 3600, gt=0)
    max_value_bytes: int = Field(default=400_000, gt=0)
    chunk_size: int = Field(default=400_000, gt=0)
    batch_size: int = Field(default=20, gt=0)
    health_check_key: str = "redis_test_connection"
    health_check_ttl_seconds: int = Field(default=5, gt=0)

    @field_validator(
        "novels_prefix",
        "featured_prefix",
        "ranking_prefix",
        "health_check_key",
        mode="before",
    )
    @classmethod
    def _validate_key_text(cls, value: object) -> object:
        """Reject blank key prefixes."""
        if isinstance(value, str):
            normalized = value.strip()
            if normalized == "":
                raise ValueError("cache key prefixes must be non-empty")
            return normalized
        return value

    @model_validator(mode="after")
    def _validate_sizes(self) -> "NovelCacheSettings":
        """Chunks must fit under the per-value ceiling."""
        if self.chunk_size > self.max_value_bytes:
            raise ValueError("chunk_size must not exceed max_value_bytes")
        prefixes = {self.novels_prefix, self.featured_prefix, self.ranking_prefix}
        if len(prefixes) != 3:
            raise ValueError("cache prefixes must be distinct")
        return self


def resolve_novel_cache_settings(settings: ShelfSettings) -> NovelCacheSettings:
    """Resolve settings from ``components.service.novel_cache``."""
    return resolve_component_settings(
        settings=settings,
        component_id=SERVICE_COMPONENT_ID,
        model=NovelCacheSettings,
    )
