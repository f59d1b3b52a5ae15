"""
Per-entity configuration.

Supplied once at client initialization and read-only afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class I18nConfig:
    """Localization settings for a single field."""

    prompt: str | None = None
    model: str | None = None


@dataclass(frozen=True)
class FieldConfig:
    """Per-field settings."""

    i18n: I18nConfig | bool = False

    @property
    def localized(self) -> bool:
        return bool(self.i18n)

    @property
    def i18n_config(self) -> I18nConfig | None:
        if isinstance(self.i18n, I18nConfig):
            return self.i18n
        return I18nConfig() if self.i18n else None


@dataclass(frozen=True)
class CacheConfig:
    """Advisory cache settings. The core never caches; adapters may."""

    ttl: int | None = None

    def __post_init__(self):
        if self.ttl is not None and self.ttl < 0:
            raise ValueError("cache ttl cannot be negative")


@dataclass(frozen=True)
class EntityConfig:
    """Static settings for one entity."""

    default_source: str | None = None
    cache: CacheConfig | None = None
    fields: Mapping[str, FieldConfig] = field(default_factory=dict)

    def localized_fields(self) -> list[str]:
        return [name for name, cfg in self.fields.items() if cfg.localized]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EntityConfig:
        cache = data.get("cache")
        fields: dict[str, FieldConfig] = {}
        for name, raw in (data.get("fields") or {}).items():
            i18n = raw.get("i18n", False)
            if isinstance(i18n, Mapping):
                i18n = I18nConfig(prompt=i18n.get("prompt"), model=i18n.get("model"))
            fields[name] = FieldConfig(i18n=i18n)
        return cls(
            default_source=data.get("default_source"),
            cache=CacheConfig(ttl=cache.get("ttl")) if cache else None,
            fields=fields,
        )


def coerce_entity_configs(configs: Mapping[str, Any] | None) -> dict[str, EntityConfig]:
    """Accept EntityConfig objects or plain dicts keyed by entity name."""
    result: dict[str, EntityConfig] = {}
    for name, cfg in (configs or {}).items():
        result[name] = cfg if isinstance(cfg, EntityConfig) else EntityConfig.from_dict(cfg)
    return result


__all__ = ["I18nConfig", "FieldConfig", "CacheConfig", "EntityConfig", "coerce_entity_configs"]
