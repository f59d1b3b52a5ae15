"""
Adapter registry.

Maps (entity, source) to exactly one adapter instance. A later registration
for the same pair replaces the earlier one.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from .config.entity import EntityConfig
from .errors import AdapterNotFoundError, NoSourceConfiguredError
from .plugins import Plugin, as_entity_definition
from .types import EntityDefinition

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Registry of adapter instances keyed by (entity, source).

    The registry:
    - Registers adapter instances (classes are instantiated on registration)
    - Resolves an adapter from an explicit or default source
    - Tracks entity definitions and their optional field schemas

    It is initialized once by the client and read-mostly afterwards.
    """

    def __init__(self, entity_configs: Mapping[str, EntityConfig] | None = None):
        self._adapters: dict[tuple[str, str], Any] = {}  # (entity, source) -> adapter
        self._entities: dict[str, EntityDefinition] = {}
        self._entity_configs: dict[str, EntityConfig] = dict(entity_configs or {})

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def define_entity(self, entity: Any) -> EntityDefinition:
        """Record an entity definition. A later definition replaces an earlier one."""
        definition = as_entity_definition(entity)
        self._entities[definition.name] = definition
        return definition

    def entities(self) -> list[str]:
        """Entity names known from definitions, configs and registrations."""
        names = dict.fromkeys(self._entities)
        names.update(dict.fromkeys(self._entity_configs))
        names.update(dict.fromkeys(entity for entity, _ in self._adapters))
        return list(names)

    def schema_for(self, entity: str) -> Mapping[str, Any] | None:
        definition = self._entities.get(entity)
        return definition.schema if definition else None

    def entity_config(self, entity: str) -> EntityConfig | None:
        return self._entity_configs.get(entity)

    def default_source(self, entity: str) -> str | None:
        cfg = self._entity_configs.get(entity)
        return cfg.default_source if cfg else None

    # ------------------------------------------------------------------
    # Adapters
    # ------------------------------------------------------------------

    def register(self, source: str, entity: str, adapter: Any) -> Any:
        """Bind an adapter to (entity, source).

        Args:
            source: Source name, e.g. "memory"
            entity: Entity name
            adapter: Adapter instance, or an adapter class to instantiate

        Returns:
            The registered adapter instance
        """
        if not source or not entity:
            raise ValueError("source and entity are required")
        instance = adapter() if isinstance(adapter, type) else adapter
        key = (entity, source)
        if key in self._adapters:
            logger.debug(f"Replacing adapter for {entity}@{source}")
        self._adapters[key] = instance
        return instance

    def unregister(self, source: str, entity: str) -> bool:
        """Remove an adapter binding. Returns True if one was removed."""
        return self._adapters.pop((entity, source), None) is not None

    def resolve(self, entity: str, source: str | None = None) -> Any:
        """Return the adapter for entity, using `source` or the default source.

        Raises:
            NoSourceConfiguredError: no source given and no default configured
            AdapterNotFoundError: nothing registered for the resolved pair
        """
        resolved = source or self.default_source(entity)
        if not resolved:
            raise NoSourceConfiguredError(entity=entity)
        adapter = self._adapters.get((entity, resolved))
        if adapter is None:
            raise AdapterNotFoundError(entity=entity, source=resolved)
        return adapter

    def list_sources(self, entity: str) -> set[str]:
        return {source for ent, source in self._adapters if ent == entity}

    def has_adapters(self, entity: str) -> bool:
        return any(ent == entity for ent, _ in self._adapters)

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def apply_plugins(
        self,
        plugins: Iterable[Plugin],
        global_adapters: Iterable[type] = (),
    ) -> None:
        """Apply plugin entities, then global adapters, then plugin adapters.

        Global adapters get one instance per entity known at this point.
        Plugin adapter registrations follow in plugin order, so a plugin can
        override a global adapter for a specific pair.
        """
        plugins = list(plugins)
        for plugin in plugins:
            for definition in plugin.get_entities():
                self.define_entity(definition)

        known = self.entities()
        for adapter_cls in global_adapters:
            source = getattr(adapter_cls, "source_name", None)
            if not source:
                raise ValueError(f"Global adapter {adapter_cls!r} must declare a source_name")
            for entity in known:
                self.register(source, entity, adapter_cls)

        for plugin in plugins:
            for registration in plugin.get_adapters():
                self.register(registration.source, registration.entity, registration.adapter)
            logger.info(f"Applied plugin: {plugin.name}")


__all__ = ["AdapterRegistry"]
