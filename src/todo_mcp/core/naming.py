"""Naming helpers for MCP tool registration."""

from __future__ import annotations

import functools
import inspect
import json
import logging
import time
from typing import Any, Callable

from mcp.server.fastmcp import FastMCP
from mcp.types import CallToolResult, TextContent

from todo_mcp.core.observability import mcp_tool

logger = logging.getLogger(__name__)


def _minify_response(result: dict[str, Any]) -> CallToolResult:
    """Wrap an envelope dict as minified JSON text.

    Envelopes with ``success=False`` are flagged with ``isError`` so clients
    see the failure without parsing the payload.
    """
    text = TextContent(
        type="text",
        text=json.dumps(result, separators=(",", ":"), default=str),
    )
    return CallToolResult(content=[text], isError=result.get("success") is False)


def canonical_tool(
    mcp: FastMCP,
    *,
    canonical_name: str,
    audit: bool = True,
    **tool_kwargs: Any,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator that registers a tool under its canonical name.

    The wrapped tool:
    1. Returns dict envelopes as a ``CallToolResult`` holding minified JSON,
       with ``isError`` set for failed envelopes
    2. Is instrumented via ``mcp_tool`` (correlation ID, metrics, audit)
    3. Logs unexpected exceptions before letting FastMCP report them

    Args:
        mcp: FastMCP instance
        canonical_name: The canonical name for the tool
        audit: Whether invocations are written to the audit log
        **tool_kwargs: Additional kwargs passed to mcp.tool()
    """
    # Envelopes are returned as text; skip FastMCP's return-type schema
    tool_kwargs.setdefault("structured_output", False)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                start_time = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _log_tool_error(canonical_name, e, kwargs, start_time)
                    raise
                if isinstance(result, dict):
                    return _minify_response(result)
                return result

            wrapper = async_wrapper
        else:

            @functools.wraps(func)
            def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
                start_time = time.perf_counter()
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _log_tool_error(canonical_name, e, kwargs, start_time)
                    raise
                if isinstance(result, dict):
                    return _minify_response(result)
                return result

            wrapper = sync_wrapper

        instrumented = mcp_tool(tool_name=canonical_name, audit=audit)(wrapper)
        return mcp.tool(name=canonical_name, **tool_kwargs)(instrumented)

    return decorator


def _log_tool_error(
    tool_name: str,
    error: Exception,
    input_params: dict[str, Any],
    start_time: float,
) -> None:
    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.exception(
        "Tool %s failed after %.2fms: %s",
        tool_name,
        duration_ms,
        error,
        extra={"tool": tool_name, "params": sorted(input_params)},
    )
