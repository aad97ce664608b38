"""Request validation models for the novel cache public API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from services.state.novel_cache.domain import JsonValue
from services.state.novel_cache.keys import INFO_SUFFIX


def _strip_text(value: object) -> object:
    """Normalize surrounding whitespace for textual request fields."""
    if isinstance(value, str):
        return value.strip()
    return value


class _TtlRequest(BaseModel):
    """Base request carrying an optional positive TTL."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ttl_seconds: int | None = Field(default=None, gt=0)


class KeyRequest(BaseModel):
    """Validate one request addressing a single cache key."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: str = Field(min_length=1)

    @field_validator("key", mode="before")
    @classmethod
    def _strip_key(cls, value: object) -> object:
        return _strip_text(value)


class WriteKeyRequest(KeyRequest):
    """Validate a key that an ad hoc write or delete may touch.

    Keys equal to, or nested under, a prefix passed in the validation context
    as ``managed_prefixes`` are refused, since the prefix caches own them.
    """

    @field_validator("key")
    @classmethod
    def _reject_managed_key(cls, value: str, info: ValidationInfo) -> str:
        for prefix in (info.context or {}).get("managed_prefixes", ()):
            if value == prefix or value.startswith(f"{prefix}:"):
                raise ValueError(f"key is reserved for the '{prefix}' cache")
        return value


class SetValueRequest(WriteKeyRequest, _TtlRequest):
    """Validate one ad hoc set-value request payload."""

    value: JsonValue


class SetCollectionRequest(_TtlRequest):
    """Validate one catalog write."""

    items: list[JsonValue] = Field(min_length=1)


class SetCategoriesRequest(_TtlRequest):
    """Validate one write of named categories."""

    categories: dict[str, JsonValue] = Field(min_length=1)

    @field_validator("categories")
    @classmethod
    def _validate_names(cls, value: dict[str, JsonValue]) -> dict[str, JsonValue]:
        """Reject blank names and the name reserved for the index record."""
        for name in value:
            if name.strip() == "":
                raise ValueError("category names must be non-empty")
            if name == INFO_SUFFIX:
                raise ValueError(f"category name '{INFO_SUFFIX}' is reserved")
        return value
