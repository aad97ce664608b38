"""Root settings model for Shelf processes.

Component settings live under ``components.<kind>.<name>`` and are validated
lazily by the component that owns them, so this model only checks the
grouping.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "shelf" / "shelf.yaml"

_COMPONENT_KINDS = frozenset({"service", "substrate"})


class LoggingSettings(BaseModel):
    """Options passed to ``configure_logging`` at process start."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True
    service: str = "shelf"
    environment: str = "dev"


class ComponentsSettings(BaseModel):
    """The ``components`` subtree, one ``name -> options`` map per kind.

    Options stay untyped here; ``resolve_component_settings`` validates them
    against the owning component's model.
    """

    model_config = ConfigDict(extra="allow")

    service: dict[str, dict[str, Any]] = Field(default_factory=dict)
    substrate: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _reject_flat_component_keys(cls, value: object) -> object:
        """Refuse ``service_novel_cache``-style keys, which would be silently ignored."""
        if isinstance(value, dict):
            for key in value:
                kind, separator, name = str(key).partition("_")
                if separator and kind in _COMPONENT_KINDS:
                    raise ValueError(
                        f"components.{key} is invalid; use components.{kind}.{name} instead"
                    )
        return value


class ShelfSettings(BaseSettings):
    """Root settings.

    ``load_settings`` builds this from explicit layers. Constructing it directly
    reads init kwargs, then ``SHELF_*`` variables, then the default YAML file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SHELF_",
        env_nested_delimiter="__",
        extra="ignore",
        nested_model_default_partial_update=True,
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    components: ComponentsSettings = Field(default_factory=ComponentsSettings)

    _config_path: ClassVar[Path] = DEFAULT_CONFIG_PATH

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(
                settings_cls,
                yaml_file=cls._config_path,
                yaml_file_encoding="utf-8",
            ),
        )


TComponentSettings = TypeVar("TComponentSettings", bound=BaseModel)


def resolve_component_settings(
    *,
    settings: ShelfSettings,
    component_id: str,
    model: type[TComponentSettings],
) -> TComponentSettings:
    """Validate the ``components.<kind>.<name>`` block for ``component_id``.

    ``component_id`` is ``<kind>_<name>``, for example ``substrate_kv``. A
    missing block validates as ``{}``, so every field falls back to its default.
    """
    kind, separator, name = component_id.partition("_")
    if not separator or kind not in _COMPONENT_KINDS:
        raise ValueError(f"component id must be prefixed by a kind: {component_id}")

    namespace: dict[str, dict[str, Any]] = getattr(settings.components, kind)
    return model.model_validate(namespace.get(name, {}))
