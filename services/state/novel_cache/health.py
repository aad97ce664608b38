"""Liveness gate run before every cache operation."""

from __future__ import annotations

from packages.shelf_shared.errors import ErrorDetail, dependency_error
from packages.shelf_shared.logging import get_logger
from resources.substrates.kv import KvSubstrate, KvUnavailableError
from services.state.novel_cache.codes import CACHE_DISABLED, CACHE_UNAVAILABLE
from services.state.novel_cache.config import NovelCacheSettings
from services.state.novel_cache.domain import HealthStatus

_LOGGER = get_logger(__name__)
_PROBE_VALUE = "test"


class HealthGate:
    """Round-trip one short-lived probe key to decide whether the cache is usable.

    The probe is repeated on every ``check``; nothing is cached between calls.
    """

    def __init__(self, *, backend: KvSubstrate, settings: NovelCacheSettings) -> None:
        self._backend = backend
        self._settings = settings

    async def check(self) -> bool:
        """Return ``True`` only when the probe value round-trips unchanged."""
        if not self._settings.enabled:
            return False
        key = self._settings.health_check_key
        try:
            await self._backend.set_value(
                key=key,
                value=_PROBE_VALUE,
                ttl_seconds=self._settings.health_check_ttl_seconds,
            )
            echoed = await self._backend.get_value(key=key)
        except KvUnavailableError:
            _LOGGER.debug("kv health probe skipped: backend not configured")
            return False
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning(
                "kv health probe failed: exception_type=%s",
                type(exc).__name__,
                exc_info=exc,
            )
            return False
        if echoed != _PROBE_VALUE:
            _LOGGER.warning("kv health probe returned an unexpected value")
            return False
        return True

    def blocked_error(self) -> ErrorDetail:
        """Return the error reported for operations refused by the gate."""
        if not self._settings.enabled:
            return dependency_error(
                "cache is disabled",
                code=CACHE_DISABLED,
                retryable=False,
            )
        return dependency_error(
            "cache backend is unavailable",
            code=CACHE_UNAVAILABLE,
            retryable=self._backend.configured,
        )

    async def status(self) -> HealthStatus:
        """Return a readiness summary combining the probe and substrate health."""
        substrate = await self._backend.health()
        if not self._settings.enabled:
            return HealthStatus(
                service_ready=False,
                substrate_ready=substrate.ready,
                detail=f"cache disabled; substrate: {substrate.detail}",
            )
        service_ready = await self.check()
        detail = "ok" if service_ready else "health probe failed"
        return HealthStatus(
            service_ready=service_ready,
            substrate_ready=substrate.ready,
            detail=f"{detail}; substrate: {substrate.detail}",
        )
