"""Layered configuration loading for Shelf processes.

Layers, lowest precedence first:

- built-in defaults (``defaults.BUILTIN_DEFAULTS``)
- ``~/.config/shelf/shelf.yaml`` or an explicit ``config_path``
- ``SHELF_*`` environment variables, ``__`` separating nested keys
  (``SHELF_COMPONENTS__SERVICE__NOVEL_CACHE__BATCH_SIZE=10``)
- parameters passed by the CLI or the caller

Mappings merge key by key; any other value replaces the lower layer's value.
"""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .defaults import BUILTIN_DEFAULTS
from .models import DEFAULT_CONFIG_PATH, ShelfSettings

_ENV_PREFIX = "SHELF_"
_NESTED_DELIMITER = "__"


def load_settings(
    *,
    cli_params: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    config_path: str | Path | None = None,
) -> ShelfSettings:
    """Merge every layer and validate the result as ``ShelfSettings``."""
    return ShelfSettings.model_validate(
        load_config(cli_params=cli_params, environ=environ, config_path=config_path)
    )


def load_config(
    *,
    cli_params: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    config_path: str | Path | None = None,
    defaults: Mapping[str, Any] | None = None,
    env_prefix: str = _ENV_PREFIX,
) -> dict[str, Any]:
    """Return the merged raw mapping without validating it."""
    layers = (
        BUILTIN_DEFAULTS if defaults is None else defaults,
        _read_config_file(Path(config_path) if config_path else DEFAULT_CONFIG_PATH),
        _env_layer(os.environ if environ is None else environ, env_prefix),
        cli_params or {},
    )
    merged: dict[str, Any] = {}
    for layer in layers:
        merged = _overlay(merged, layer)
    return merged


def _read_config_file(path: Path) -> dict[str, Any]:
    """Parse the YAML file at ``path``; a missing or empty file is an empty layer."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        parsed = yaml.safe_load(handle)
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Config file must contain a top-level mapping: {path}")
    return parsed


def _env_layer(environ: Mapping[str, str], prefix: str) -> dict[str, Any]:
    """Turn prefixed variables into a nested mapping with lowercased keys."""
    layer: dict[str, Any] = {}
    for name, raw in environ.items():
        if not name.startswith(prefix):
            continue
        path = [
            part.strip().lower()
            for part in name[len(prefix) :].split(_NESTED_DELIMITER)
            if part.strip()
        ]
        if not path:
            continue
        cursor = layer
        for part in path[:-1]:
            if not isinstance(cursor.get(part), dict):
                cursor[part] = {}
            cursor = cursor[part]
        cursor[path[-1]] = _parse_env_value(raw)
    return layer


def _parse_env_value(raw: str) -> Any:
    """Read booleans, nulls, numbers, and JSON containers; keep anything else as text."""
    text = raw.strip()
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if lowered in ("null", "none"):
        return None
    if text[:1] in ("{", "["):
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return raw
    for number in (int, float):
        try:
            return number(text)
        except ValueError:
            continue
    return raw


def _overlay(base: Mapping[str, Any], top: Mapping[str, Any]) -> dict[str, Any]:
    """Return a deep copy of ``base`` with ``top`` merged over it."""
    result = {str(key): copy.deepcopy(value) for key, value in base.items()}
    for key, value in top.items():
        key = str(key)
        below = result.get(key)
        if isinstance(below, dict) and isinstance(value, Mapping):
            result[key] = _overlay(below, value)
        elif isinstance(value, Mapping):
            result[key] = _overlay({}, value)
        else:
            result[key] = copy.deepcopy(value)
    return result
