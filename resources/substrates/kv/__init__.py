"""Key-value store substrate modules for remote cache access."""

from resources.substrates.kv.component import RESOURCE_COMPONENT_ID
from resources.substrates.kv.config import KvSettings, resolve_kv_settings
from resources.substrates.kv.factory import create_kv_substrate
from resources.substrates.kv.substrate import (
    KvHealthStatus,
    KvSubstrate,
    KvTransportError,
    KvUnavailableError,
)
from resources.substrates.kv.unconfigured import UnconfiguredKvSubstrate

__all__ = [
    "RESOURCE_COMPONENT_ID",
    "KvHealthStatus",
    "KvSettings",
    "KvSubstrate",
    "KvTransportError",
    "KvUnavailableError",
    "UnconfiguredKvSubstrate",
    "create_kv_substrate",
    "resolve_kv_settings",
]
