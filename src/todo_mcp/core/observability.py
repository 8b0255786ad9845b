"""
Observability utilities for todo-mcp.

Provides metrics collection and audit logging for MCP tools. Both write to
dedicated child loggers of ``todo_mcp`` so operators can filter them:

* ``todo_mcp.core.observability.metrics`` - counters and timers
* ``todo_mcp.core.observability.audit`` - one record per tool invocation

FastMCP integration:

    from todo_mcp.core.observability import mcp_tool

    @mcp.tool()
    @mcp_tool(tool_name="list_todos")
    async def list_todos() -> dict:
        ...
"""

import functools
import inspect
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar, Union

from todo_mcp.core.context import (
    generate_correlation_id,
    get_client_id,
    get_correlation_id,
    sync_request_context,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MetricType(Enum):
    """Types of metrics that can be emitted."""

    COUNTER = "counter"
    TIMER = "timer"


class AuditEventType(Enum):
    """Types of audit events."""

    TOOL_INVOCATION = "tool_invocation"
    SERVER_LIFECYCLE = "server_lifecycle"


@dataclass
class Metric:
    """Structured metric data."""

    name: str
    value: Union[int, float]
    metric_type: MetricType
    labels: Dict[str, str] = field(default_factory=dict)
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "type": self.metric_type.value,
            "labels": self.labels,
            "timestamp": self.timestamp,
        }


@dataclass
class AuditEvent:
    """Structured audit event."""

    event_type: AuditEventType
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    correlation_id: Optional[str] = None
    client_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Auto-populate correlation_id and client_id from context if not set."""
        if self.correlation_id is None:
            self.correlation_id = get_correlation_id() or None
        if self.client_id is None:
            ctx_client = get_client_id()
            if ctx_client and ctx_client != "anonymous":
                self.client_id = ctx_client

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "details": self.details,
        }
        if self.correlation_id:
            result["correlation_id"] = self.correlation_id
        if self.client_id:
            result["client_id"] = self.client_id
        return result


def _series_key(name: str, labels: Dict[str, str]) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
    return name, tuple(sorted(labels.items()))


class MetricsCollector:
    """
    Collects metrics in process and emits them to the metrics logger.

    Counter values accumulate per ``(name, labels)`` series so totals can be
    read back with ``get_counter`` without an exporter. Timers are only
    logged.
    """

    def __init__(self, prefix: str = "todo_mcp"):
        self.prefix = prefix
        self._logger = logging.getLogger(f"{__name__}.metrics")
        self._lock = threading.Lock()
        self._counters: Dict[Tuple[str, Tuple[Tuple[str, str], ...]], float] = {}

    def emit(self, metric: Metric) -> None:
        """Record a metric and log it at DEBUG level."""
        if metric.metric_type == MetricType.COUNTER:
            key = _series_key(metric.name, metric.labels)
            with self._lock:
                self._counters[key] = self._counters.get(key, 0) + metric.value

        self._logger.debug(
            f"METRIC: {self.prefix}.{metric.name}", extra={"metric": metric.to_dict()}
        )

    def counter(
        self, name: str, value: int = 1, labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Emit a counter metric."""
        self.emit(
            Metric(name=name, value=value, metric_type=MetricType.COUNTER, labels=labels or {})
        )

    def timer(
        self, name: str, duration_ms: float, labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Emit a timer metric (duration in milliseconds)."""
        self.emit(
            Metric(
                name=name,
                value=duration_ms,
                metric_type=MetricType.TIMER,
                labels=labels or {},
            )
        )

    def get_counter(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Current value of a counter series (0 when never emitted)."""
        with self._lock:
            return self._counters.get(_series_key(name, labels or {}), 0)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()


# Global metrics collector
_metrics = MetricsCollector()


def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return _metrics


class AuditLogger:
    """Structured audit logging written to a separate logger."""

    def __init__(self):
        self._logger = logging.getLogger(f"{__name__}.audit")

    def log(self, event: AuditEvent) -> None:
        self._logger.info(
            f"AUDIT: {event.event_type.value}", extra={"audit": event.to_dict()}
        )

    def tool_invocation(
        self,
        tool_name: str,
        success: bool = True,
        duration_ms: Optional[float] = None,
        correlation_id: Optional[str] = None,
        **details: Any,
    ) -> None:
        """Log tool invocation."""
        self.log(
            AuditEvent(
                event_type=AuditEventType.TOOL_INVOCATION,
                correlation_id=correlation_id,
                details={
                    "tool": tool_name,
                    "success": success,
                    "duration_ms": duration_ms,
                    **details,
                },
            )
        )


# Global audit logger
_audit = AuditLogger()


def audit_log(event_type: str, **details: Any) -> None:
    """
    Convenience function for audit logging.

    Args:
        event_type: "tool_invocation" or "server_lifecycle"; unknown types
            are recorded as tool invocations with the original name attached
        **details: Additional details to include in the audit log
    """
    try:
        event_enum = AuditEventType(event_type)
    except ValueError:
        event_enum = AuditEventType.TOOL_INVOCATION
        details["original_event_type"] = event_type

    _audit.log(AuditEvent(event_type=event_enum, details=details))


def _record_invocation(
    name: str,
    corr_id: str,
    success: bool,
    error_msg: Optional[str],
    duration_ms: float,
    emit_metrics: bool,
    audit: bool,
) -> None:
    if emit_metrics:
        labels = {"tool": name, "status": "success" if success else "error"}
        _metrics.counter("tool.invocations", labels=labels)
        _metrics.timer("tool.latency", duration_ms, labels={"tool": name})

    if audit:
        _audit.tool_invocation(
            tool_name=name,
            success=success,
            duration_ms=round(duration_ms, 2),
            error=error_msg,
            correlation_id=corr_id,
        )


def _is_error_result(result: Any) -> bool:
    """True for ``CallToolResult``-like values flagged with ``isError``."""
    return getattr(result, "isError", False) is True


def mcp_tool(
    tool_name: Optional[str] = None, emit_metrics: bool = True, audit: bool = True
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for MCP tool handlers with observability.

    Automatically:
    - Establishes a ``tool_*`` correlation ID when none is active
    - Emits invocation count and latency metrics
    - Creates audit log entries

    Args:
        tool_name: Override tool name (defaults to function name)
        emit_metrics: Whether to emit metrics
        audit: Whether to create audit log entries
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = tool_name or func.__name__

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            existing_corr_id = get_correlation_id()
            corr_id = existing_corr_id or generate_correlation_id(prefix="tool")

            if not existing_corr_id:
                with sync_request_context(correlation_id=corr_id):
                    return await _async_tool_impl(corr_id, *args, **kwargs)
            return await _async_tool_impl(corr_id, *args, **kwargs)

        async def _async_tool_impl(_corr_id: str, *args: Any, **kwargs: Any) -> T:
            start = time.perf_counter()
            success = True
            error_msg = None
            try:
                result = await func(*args, **kwargs)
                if _is_error_result(result):
                    success = False
                    error_msg = "tool returned an error result"
                return result
            except Exception as e:
                success = False
                error_msg = str(e)
                raise
            finally:
                duration_ms = (time.perf_counter() - start) * 1000
                _record_invocation(
                    name, _corr_id, success, error_msg, duration_ms, emit_metrics, audit
                )

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            existing_corr_id = get_correlation_id()
            corr_id = existing_corr_id or generate_correlation_id(prefix="tool")

            if not existing_corr_id:
                with sync_request_context(correlation_id=corr_id):
                    return _sync_tool_impl(corr_id, args, kwargs)
            return _sync_tool_impl(corr_id, args, kwargs)

        def _sync_tool_impl(_corr_id: str, _args: tuple, _kwargs: dict) -> T:
            """Parameter names are prefixed to avoid clashing with tool arguments."""
            start = time.perf_counter()
            success = True
            error_msg = None
            try:
                result = func(*_args, **_kwargs)
                if _is_error_result(result):
                    success = False
                    error_msg = "tool returned an error result"
                return result
            except Exception as e:
                success = False
                error_msg = str(e)
                raise
            finally:
                duration_ms = (time.perf_counter() - start) * 1000
                _record_invocation(
                    name, _corr_id, success, error_msg, duration_ms, emit_metrics, audit
                )

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
