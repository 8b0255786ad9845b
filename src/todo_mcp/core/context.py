"""Request correlation context for todo-mcp tool calls.

A tool call runs inside a request context holding its correlation ID, the
calling client and the start time. The values are ``contextvars`` so each
concurrently running tool coroutine sees its own.

Usage:
    from todo_mcp.core.context import sync_request_context, get_correlation_id

    with sync_request_context(correlation_id="tool_a1b2c3d4e5f6"):
        get_correlation_id()  # "tool_a1b2c3d4e5f6"
"""

from __future__ import annotations

import secrets
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Generator, Optional

__all__ = [
    "RequestContext",
    "generate_correlation_id",
    "sync_request_context",
    "get_correlation_id",
    "get_client_id",
    "get_start_time",
]

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
_client_id: ContextVar[str] = ContextVar("client_id", default="anonymous")
_start_time: ContextVar[float] = ContextVar("start_time", default=0.0)


def generate_correlation_id(prefix: str = "req") -> str:
    """Return ``{prefix}_{12 hex chars}``."""
    return f"{prefix}_{secrets.token_hex(6)}"


@dataclass(frozen=True)
class RequestContext:
    """Values active inside a ``sync_request_context`` block."""

    correlation_id: str
    client_id: str
    start_time: float


@contextmanager
def sync_request_context(
    *,
    correlation_id: Optional[str] = None,
    client_id: Optional[str] = None,
) -> Generator[RequestContext, None, None]:
    """Bind the request context variables for the duration of a block.

    Args:
        correlation_id: Request ID (generated when omitted)
        client_id: Client identifier (default: "anonymous")
    """
    ctx = RequestContext(
        correlation_id=correlation_id or generate_correlation_id(),
        client_id=client_id or "anonymous",
        start_time=time.time(),
    )
    tokens = (
        _correlation_id.set(ctx.correlation_id),
        _client_id.set(ctx.client_id),
        _start_time.set(ctx.start_time),
    )
    try:
        yield ctx
    finally:
        _start_time.reset(tokens[2])
        _client_id.reset(tokens[1])
        _correlation_id.reset(tokens[0])


def get_correlation_id() -> str:
    """Current correlation ID, or empty string outside a request."""
    return _correlation_id.get()


def get_client_id() -> str:
    return _client_id.get()


def get_start_time() -> float:
    return _start_time.get()
