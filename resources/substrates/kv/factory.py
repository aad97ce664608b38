"""Select the KV substrate variant for resolved settings."""

from __future__ import annotations

from resources.substrates.kv.config import KvSettings
from resources.substrates.kv.substrate import KvSubstrate
from resources.substrates.kv.unconfigured import UnconfiguredKvSubstrate


def create_kv_substrate(settings: KvSettings) -> KvSubstrate:
    """Return the REST, Redis, or Unconfigured substrate for ``settings.mode``."""
    if settings.mode == "rest":
        from resources.substrates.kv.rest_substrate import RestKvSubstrate

        return RestKvSubstrate(settings=settings)
    if settings.mode == "redis":
        from resources.substrates.kv.redis_substrate import RedisClientSubstrate

        return RedisClientSubstrate(settings=settings)
    return UnconfiguredKvSubstrate()
