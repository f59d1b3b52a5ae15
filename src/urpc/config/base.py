"""
Base types for configuration.
"""

from __future__ import annotations

from typing import Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]
MiddlewarePosition = Literal["before", "around", "after"]


__all__ = ["LogLevel", "LogFormat", "MiddlewarePosition"]
