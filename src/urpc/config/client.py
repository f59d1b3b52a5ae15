"""
Client initialization configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from .entity import EntityConfig, coerce_entity_configs
from .remote import RemoteConfig

if TYPE_CHECKING:
    from ..middleware import Middleware, MiddlewareOptions
    from ..plugins import Plugin

    MiddlewareEntry = Union[Middleware, tuple[Middleware, MiddlewareOptions]]


@dataclass
class ClientConfig:
    """
    Everything the client needs at startup.

    Example:
        ```python
        config = ClientConfig(
            plugins=[StaticPlugin("todos", entities=["todo"])],
            entity_configs={"todo": EntityConfig(default_source="memory")},
            global_adapters=[MemoryAdapter],
            remote=RemoteConfig(base_url="http://localhost:3000/api", timeout=10),
        )
        ```
    """

    plugins: list[Plugin] = field(default_factory=list)
    middlewares: list[MiddlewareEntry] = field(default_factory=list)
    entity_configs: dict[str, EntityConfig] = field(default_factory=dict)
    global_adapters: list[type] = field(default_factory=list)
    remote: RemoteConfig = field(default_factory=RemoteConfig)

    def __post_init__(self):
        self.entity_configs = coerce_entity_configs(self.entity_configs)
        for adapter_cls in self.global_adapters:
            if not getattr(adapter_cls, "source_name", None):
                raise ValueError(
                    f"Global adapter {adapter_cls!r} must declare a source_name"
                )

    @classmethod
    def from_settings(cls, settings: Any, **kwargs) -> ClientConfig:
        """Build a client config whose remote and entity sections come from Settings."""
        kwargs.setdefault("remote", settings.remote)
        kwargs.setdefault("entity_configs", dict(settings.entities))
        return cls(**kwargs)


__all__ = ["ClientConfig"]
