"""
Error taxonomy for urpc.

This module provides a hierarchical exception system with:
- Error codes for programmatic handling
- Retryable vs non-retryable classification
- Structured context (entity, source, operation) for debugging
- Remote HTTP status mapping
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for the data-access client."""

    # Routing errors (1xxx)
    ROUTING_ERROR = "ERR_1000"
    ADAPTER_NOT_FOUND = "ERR_1001"
    NO_SOURCE_CONFIGURED = "ERR_1002"

    # Argument errors (2xxx)
    INVALID_ARGUMENT = "ERR_2000"

    # Remote dispatch errors (3xxx)
    REMOTE_ERROR = "ERR_3000"
    REMOTE_TIMEOUT = "ERR_3001"
    REMOTE_UNAVAILABLE = "ERR_3002"
    REMOTE_BAD_RESPONSE = "ERR_3003"

    # Relation errors (4xxx)
    RELATION_RESOLUTION = "ERR_4000"

    # Provisioning errors (5xxx)
    PROVISIONING_ERROR = "ERR_5000"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"
    MISSING_CONNECTION_STRING = "ERR_6001"
    INVALID_CONFIG = "ERR_6002"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    entity: str | None = None
    source: str | None = None
    operation: str | None = None
    request_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity": self.entity,
            "source": self.source,
            "operation": self.operation,
            "request_id": self.request_id,
            **self.extra,
        }


class URPCError(Exception):
    """
    Base exception for all urpc errors.

    Attributes:
        code: Standardized error code for programmatic handling
        message: Human-readable error message
        retryable: Whether the operation can be retried
        context: Structured debugging context
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.context.request_id:
            parts.append(f"(request_id={self.context.request_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# Routing Errors
# =============================================================================


class RoutingError(URPCError):
    """Base class for adapter resolution failures."""

    code = ErrorCode.ROUTING_ERROR


class AdapterNotFoundError(RoutingError):
    """No adapter is registered for the resolved (entity, source) pair."""

    code = ErrorCode.ADAPTER_NOT_FOUND

    def __init__(
        self,
        message: str | None = None,
        *,
        entity: str | None = None,
        source: str | None = None,
        **kwargs,
    ):
        if message is None:
            message = f"No adapter registered for entity '{entity}' with source '{source}'"
        kwargs.setdefault("context", ErrorContext(entity=entity, source=source))
        super().__init__(message, **kwargs)
        self.entity = entity
        self.source = source


class NoSourceConfiguredError(RoutingError):
    """Neither an explicit source, a default source nor a remote endpoint applies."""

    code = ErrorCode.NO_SOURCE_CONFIGURED

    def __init__(
        self,
        message: str | None = None,
        *,
        entity: str | None = None,
        **kwargs,
    ):
        if message is None:
            message = f"No source configured for entity '{entity}'"
        kwargs.setdefault("context", ErrorContext(entity=entity))
        super().__init__(message, **kwargs)
        self.entity = entity


# =============================================================================
# Argument Errors
# =============================================================================


class InvalidArgumentError(URPCError):
    """Malformed filter, ordering, pagination or include argument."""

    code = ErrorCode.INVALID_ARGUMENT

    def __init__(
        self,
        message: str = "Invalid argument",
        *,
        argument: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.argument = argument


# =============================================================================
# Remote Errors
# =============================================================================


class RemoteError(URPCError):
    """The remote endpoint returned an error payload or failed."""

    code = ErrorCode.REMOTE_ERROR
    http_status: int | None = None

    def __init__(
        self,
        message: str = "Remote call failed",
        *,
        http_status: int | None = None,
        remote_code: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.http_status = http_status
        self.remote_code = remote_code


class RemoteTimeoutError(RemoteError):
    """Remote dispatch exceeded the configured per-call timeout."""

    code = ErrorCode.REMOTE_TIMEOUT
    retryable = True

    def __init__(
        self,
        message: str = "Remote call timed out",
        *,
        timeout: float | None = None,
        **kwargs,
    ):
        if timeout is not None and message == "Remote call timed out":
            message = f"Remote call timed out after {timeout}s"
        super().__init__(message, **kwargs)
        self.timeout = timeout


class RemoteUnavailableError(RemoteError):
    """Remote endpoint is unreachable or temporarily unavailable."""

    code = ErrorCode.REMOTE_UNAVAILABLE
    retryable = True


class RemoteBadResponseError(RemoteError):
    """Remote endpoint answered with something that is not a valid envelope."""

    code = ErrorCode.REMOTE_BAD_RESPONSE


# =============================================================================
# Relation Errors
# =============================================================================


class RelationResolutionError(URPCError):
    """An include callback failed; tagged with the offending include key."""

    code = ErrorCode.RELATION_RESOLUTION

    def __init__(
        self,
        message: str | None = None,
        *,
        include_key: str,
        **kwargs,
    ):
        if message is None:
            cause = kwargs.get("cause")
            message = f"Failed to resolve include '{include_key}'"
            if cause is not None:
                message += f": {cause}"
        super().__init__(message, **kwargs)
        self.include_key = include_key


# =============================================================================
# Provisioning Errors
# =============================================================================


class ProvisioningError(URPCError):
    """Table creation failed for a reason other than a pre-existing object."""

    code = ErrorCode.PROVISIONING_ERROR

    def __init__(
        self,
        message: str | None = None,
        *,
        source_id: str | None = None,
        table: str | None = None,
        **kwargs,
    ):
        if message is None:
            message = f"Failed to provision table {table} for source '{source_id}'"
        super().__init__(message, **kwargs)
        self.source_id = source_id
        self.table = table


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(URPCError):
    """Base class for configuration errors."""

    code = ErrorCode.CONFIG_ERROR


class MissingConnectionStringError(ConfigError):
    """The provisioner was started without a database connection string."""

    code = ErrorCode.MISSING_CONNECTION_STRING

    def __init__(
        self,
        message: str = (
            "DATABASE_URL environment variable is required "
            "or a connection string must be provided"
        ),
        **kwargs,
    ):
        super().__init__(message, **kwargs)


class InvalidConfigError(ConfigError):
    """Configuration is invalid."""

    code = ErrorCode.INVALID_CONFIG


# =============================================================================
# Error Mapping from HTTP Status Codes
# =============================================================================


def error_from_status(
    status: int,
    message: str,
    *,
    remote_code: str | None = None,
    context: ErrorContext | None = None,
) -> URPCError:
    """
    Create an appropriate error from a remote HTTP status code.

    Args:
        status: HTTP status code
        message: Error message from the remote endpoint
        remote_code: Error code carried in the remote error payload
        context: Additional error context

    Returns:
        Appropriate URPCError subclass
    """
    ctx = context or ErrorContext()

    if status == 400:
        return InvalidArgumentError(message, context=ctx)
    if status == 404:
        return AdapterNotFoundError(
            message,
            entity=ctx.entity,
            source=ctx.source,
            context=ctx,
        )
    if status in (502, 503):
        return RemoteUnavailableError(message, http_status=status, remote_code=remote_code, context=ctx)
    if status == 504:
        return RemoteTimeoutError(message, http_status=status, remote_code=remote_code, context=ctx)
    return RemoteError(message, http_status=status, remote_code=remote_code, context=ctx)


__all__ = [
    # Base
    "ErrorCode",
    "ErrorContext",
    "URPCError",
    # Routing
    "RoutingError",
    "AdapterNotFoundError",
    "NoSourceConfiguredError",
    # Arguments
    "InvalidArgumentError",
    # Remote
    "RemoteError",
    "RemoteTimeoutError",
    "RemoteUnavailableError",
    "RemoteBadResponseError",
    # Relations
    "RelationResolutionError",
    # Provisioning
    "ProvisioningError",
    # Config
    "ConfigError",
    "MissingConnectionStringError",
    "InvalidConfigError",
    # Utilities
    "error_from_status",
]
