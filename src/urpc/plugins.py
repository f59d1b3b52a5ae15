"""
Plugin types.

A plugin bundles entity definitions and adapter registrations. Plugins are
applied in list order when the client starts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable

from .types import AdapterRegistration, EntityDefinition


def as_entity_definition(entity: Any) -> EntityDefinition:
    """Accept a name, an EntityDefinition, or any object with `entity_name`/`name`."""
    if isinstance(entity, EntityDefinition):
        return entity
    if isinstance(entity, str):
        return EntityDefinition(name=entity)
    name = getattr(entity, "entity_name", None) or getattr(entity, "name", None)
    if not isinstance(name, str):
        raise TypeError(f"Cannot derive an entity name from {entity!r}")
    return EntityDefinition(name=name, schema=getattr(entity, "schema", None))


class Plugin(ABC):
    """Base class for plugins."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Plugin name, used in log messages."""
        ...

    def get_entities(self) -> list[EntityDefinition]:
        """Return entity definitions contributed by this plugin."""
        return []

    def get_adapters(self) -> list[AdapterRegistration]:
        """Return adapter registrations contributed by this plugin."""
        return []


class StaticPlugin(Plugin):
    """Convenience plugin built from literal entity and adapter lists."""

    def __init__(
        self,
        name: str,
        entities: Iterable[Any] | None = None,
        adapters: Iterable[AdapterRegistration] | None = None,
    ):
        self._name = name
        self._entities = [as_entity_definition(e) for e in (entities or [])]
        self._adapters = list(adapters or [])

    @property
    def name(self) -> str:
        return self._name

    def add_adapter(self, source: str, entity: str, adapter: Any) -> StaticPlugin:
        """Register an adapter with this plugin. Returns self for chaining."""
        self._adapters.append(AdapterRegistration(source=source, entity=entity, adapter=adapter))
        return self

    def get_entities(self) -> list[EntityDefinition]:
        return list(self._entities)

    def get_adapters(self) -> list[AdapterRegistration]:
        return list(self._adapters)


__all__ = ["Plugin", "StaticPlugin", "as_entity_definition"]
