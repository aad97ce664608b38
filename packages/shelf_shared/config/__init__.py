"""Shared configuration: layered loading and per-component settings lookup."""

from .loader import load_config, load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    ComponentsSettings,
    LoggingSettings,
    ShelfSettings,
    resolve_component_settings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ComponentsSettings",
    "LoggingSettings",
    "ShelfSettings",
    "load_config",
    "load_settings",
    "resolve_component_settings",
]
