"""
Remote dispatch and database connection configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass
class RemoteConfig:
    """Remote endpoint used when no local adapter handles an entity."""

    base_url: str | None = None
    timeout: float = 10.0
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.base_url:
            if not self.base_url.startswith(("http://", "https://")):
                raise ValueError("base_url must be a valid HTTP(S) URL")
            self.base_url = self.base_url.rstrip("/")

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)


@dataclass
class DatabaseConfig:
    """Connection settings for the schema provisioner."""

    url: str | None = field(
        default_factory=lambda: os.getenv("URPC_DATABASE_URL") or os.getenv("DATABASE_URL")
    )
    connect_timeout: float = 30.0

    def __post_init__(self):
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")


__all__ = ["RemoteConfig", "DatabaseConfig"]
