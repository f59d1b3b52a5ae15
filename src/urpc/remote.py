"""
Remote dispatch transport.

When no local adapter resolves, the client forwards the operation to a
remote endpoint:

    POST {base_url}/{entity}/{operation}?source={source}
    {"args": {...}, "context": {...}}

The endpoint answers with `{"data": <result>}` or
`{"error": {"message": "...", "code": "..."}}`. The source is only a hint;
the remote side applies its own resolution.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from .errors import (
    ErrorContext,
    RemoteBadResponseError,
    RemoteError,
    RemoteUnavailableError,
    error_from_status,
)
from .serialization import dumps, loads
from .types import CallContext, Operation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteRequest:
    """One operation forwarded to the remote endpoint."""

    entity: str
    operation: Operation
    args: Any
    source: str | None = None
    context: CallContext | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "args": self.args.to_dict() if hasattr(self.args, "to_dict") else dict(self.args or {}),
        }
        if self.context is not None:
            payload["context"] = {"stream": self.context.stream, **dict(self.context.extras)}
        return payload

    def error_context(self) -> ErrorContext:
        return ErrorContext(entity=self.entity, source=self.source, operation=self.operation.value)


class RemoteTransport(ABC):
    """Sends a `RemoteRequest` and returns the decoded result."""

    @abstractmethod
    async def send(self, request: RemoteRequest) -> Any:
        ...

    async def close(self) -> None:
        """Release transport resources."""
        return None


@dataclass
class HttpTransport(RemoteTransport):
    """JSON-over-HTTP transport backed by an aiohttp session.

    The session is created lazily and owned by the transport unless one is
    passed in. Per-call deadlines are enforced by the client; `timeout_seconds`
    is an optional socket-level cap.
    """

    base_url: str
    headers: dict[str, str] = field(default_factory=dict)
    timeout_seconds: float | None = None
    session: aiohttp.ClientSession | None = None

    _owns_session: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        return self.session

    def url_for(self, request: RemoteRequest) -> str:
        return f"{self.base_url}/{request.entity}/{request.operation.value}"

    async def send(self, request: RemoteRequest) -> Any:
        session = await self._get_session()

        headers = dict(self.headers)
        headers["Content-Type"] = "application/json"
        params = {"source": request.source} if request.source else None
        kwargs: dict[str, Any] = {}
        if self.timeout_seconds:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout_seconds)

        try:
            async with session.post(
                self.url_for(request),
                data=dumps(request.to_payload()),
                headers=headers,
                params=params,
                **kwargs,
            ) as response:
                status = response.status
                body = await response.read()
        except aiohttp.ClientConnectionError as e:
            raise RemoteUnavailableError(
                f"Remote endpoint unreachable: {e}",
                context=request.error_context(),
                cause=e,
            ) from e

        return self._decode(request, status, body)

    def _decode(self, request: RemoteRequest, status: int, body: bytes) -> Any:
        ctx = request.error_context()
        try:
            payload = loads(body) if body else None
        except ValueError as e:
            if status >= 400:
                raise error_from_status(status, body.decode("utf-8", "replace") or f"HTTP {status}", context=ctx) from e
            raise RemoteBadResponseError(
                "Remote response is not valid JSON",
                http_status=status,
                context=ctx,
                cause=e,
            ) from e

        error = payload.get("error") if isinstance(payload, dict) else None
        if status >= 400:
            message = f"HTTP {status}"
            remote_code = None
            if isinstance(error, dict):
                message = error.get("message") or message
                remote_code = error.get("code")
            raise error_from_status(status, message, remote_code=remote_code, context=ctx)

        if not isinstance(payload, dict):
            raise RemoteBadResponseError("Remote response must be a JSON object", http_status=status, context=ctx)
        if error is not None:
            if isinstance(error, dict):
                raise RemoteError(
                    error.get("message") or "Remote call failed",
                    http_status=status,
                    remote_code=error.get("code"),
                    context=ctx,
                )
            raise RemoteError(str(error), http_status=status, context=ctx)
        if "data" not in payload:
            raise RemoteBadResponseError("Remote response has no 'data' field", http_status=status, context=ctx)

        logger.debug("Remote %s on %s -> HTTP %s", request.operation.value, request.entity, status)
        return payload["data"]

    async def close(self) -> None:
        """Close the session if this transport created it."""
        if self._owns_session and self.session is not None and not self.session.closed:
            await self.session.close()
        self.session = None
        self._owns_session = False


__all__ = ["RemoteRequest", "RemoteTransport", "HttpTransport"]
