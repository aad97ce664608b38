"""Pydantic settings for the key-value store substrate component."""

from __future__ import annotations

import os
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from packages.shelf_shared.config import ShelfSettings, resolve_component_settings
from resources.substrates.kv.component import RESOURCE_COMPONENT_ID

KvMode = Literal["rest", "redis", "unconfigured"]


class KvSettings(BaseModel):
    """Connectivity settings for the remote key-value store.

    ``rest_url`` selects the REST command envelope transport and requires a
    bearer token. ``redis_url`` selects the native Redis protocol. With neither
    set the substrate is explicitly unconfigured.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    rest_url: str = ""
    token: str = ""
    token_env: str = ""
    redis_url: str = ""
    request_timeout_seconds: float = Field(default=5.0, gt=0)
    health_timeout_seconds: float = Field(default=1.0, gt=0)
    max_connections: int = Field(default=20, gt=0)

    @model_validator(mode="after")
    def _resolve_fields(self) -> "KvSettings":
        """Normalize URLs and resolve the bearer token."""
        object.__setattr__(self, "rest_url", self.rest_url.strip().rstrip("/"))
        object.__setattr__(self, "redis_url", self.redis_url.strip())

        token = _resolve_token(token=self.token, token_env=self.token_env)
        object.__setattr__(self, "token", token)
        if self.rest_url != "" and token == "":
            raise ValueError("substrate.kv.token is required when rest_url is set")
        return self

    @property
    def mode(self) -> KvMode:
        """Return which transport variant these settings select."""
        if self.rest_url != "":
            return "rest"
        if self.redis_url != "":
            return "redis"
        return "unconfigured"


def _resolve_token(*, token: str, token_env: str) -> str:
    """Resolve token from inline value or environment variable reference."""
    inline = token.strip()
    env_name = token_env.strip()
    if inline != "" and env_name != "":
        raise ValueError("substrate.kv.token and token_env are mutually exclusive")
    if inline != "":
        return inline
    if env_name == "":
        return ""

    resolved = os.environ.get(env_name, "").strip()
    if resolved == "":
        raise ValueError(
            f"substrate.kv.token_env references missing env var '{env_name}'"
        )
    return resolved


def resolve_kv_settings(settings: ShelfSettings) -> KvSettings:
    """Resolve KV substrate settings from ``components.substrate.kv``."""
    return resolve_component_settings(
        settings=settings,
        component_id=RESOURCE_COMPONENT_ID,
        model=KvSettings,
    )
