"""Lowest configuration layer, applied beneath the YAML file."""

from __future__ import annotations

from typing import Any

# Component blocks are empty; each component model supplies its own defaults.
BUILTIN_DEFAULTS: dict[str, Any] = {
    "logging": {
        "level": "INFO",
        "json_output": True,
        "service": "shelf",
        "environment": "dev",
    },
    "components": {"service": {}, "substrate": {}},
}
