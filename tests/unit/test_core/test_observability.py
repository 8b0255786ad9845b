"""Tests for tool instrumentation: metrics, audit records and correlation IDs."""

import inspect
import json
import logging

import pytest
from mcp.types import CallToolResult, TextContent

from todo_mcp.core.context import get_correlation_id, sync_request_context
from todo_mcp.core.naming import canonical_tool
from todo_mcp.core.observability import (
    AuditEventType,
    MetricsCollector,
    audit_log,
    get_metrics,
    mcp_tool,
)


class _RecordingMCP:
    """Minimal stand-in for FastMCP that records ``tool()`` registrations."""

    def __init__(self):
        self.registered = {}

    def tool(self, name=None, **kwargs):
        def decorator(fn):
            self.registered[name] = (fn, kwargs)
            return fn

        return decorator


class TestMetricsCollector:
    def test_counter_accumulates_per_label_set(self):
        collector = MetricsCollector()

        collector.counter("calls", labels={"tool": "a"})
        collector.counter("calls", labels={"tool": "a"})
        collector.counter("calls", labels={"tool": "b"})

        assert collector.get_counter("calls", {"tool": "a"}) == 2
        assert collector.get_counter("calls", {"tool": "b"}) == 1
        assert collector.get_counter("calls", {"tool": "c"}) == 0

    def test_timers_are_logged_not_counted(self, caplog):
        collector = MetricsCollector()

        with caplog.at_level(logging.DEBUG, logger="todo_mcp"):
            collector.timer("latency", 12.5, labels={"tool": "a"})

        assert caplog.records[-1].metric["value"] == 12.5
        assert collector.get_counter("latency", {"tool": "a"}) == 0

    def test_reset(self):
        collector = MetricsCollector()
        collector.counter("calls")

        collector.reset()

        assert collector.get_counter("calls") == 0


class TestMcpTool:
    @pytest.mark.asyncio
    async def test_async_success_records_metrics(self):
        @mcp_tool(tool_name="probe")
        async def probe():
            return get_correlation_id()

        corr_id = await probe()

        assert corr_id.startswith("tool_")
        assert get_correlation_id() == ""
        assert get_metrics().get_counter(
            "tool.invocations", {"tool": "probe", "status": "success"}
        ) == 1

    @pytest.mark.asyncio
    async def test_async_failure_records_error_and_reraises(self):
        @mcp_tool(tool_name="broken")
        async def broken():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await broken()

        assert get_metrics().get_counter(
            "tool.invocations", {"tool": "broken", "status": "error"}
        ) == 1

    def test_sync_keeps_existing_correlation_id(self):
        @mcp_tool()
        def probe():
            return get_correlation_id()

        with sync_request_context(correlation_id="req_outer"):
            assert probe() == "req_outer"

        assert get_metrics().get_counter(
            "tool.invocations", {"tool": "probe", "status": "success"}
        ) == 1

    def test_metrics_can_be_disabled(self):
        @mcp_tool(tool_name="quiet", emit_metrics=False)
        def quiet():
            return 1

        quiet()

        assert get_metrics().get_counter(
            "tool.invocations", {"tool": "quiet", "status": "success"}
        ) == 0

    @pytest.mark.asyncio
    async def test_audit_record_written(self, caplog):
        @mcp_tool(tool_name="audited")
        async def audited():
            return None

        with caplog.at_level(logging.INFO, logger="todo_mcp"):
            await audited()

        records = [r for r in caplog.records if r.name.endswith(".audit")]
        assert len(records) == 1
        audit = records[0].audit
        assert audit["event_type"] == AuditEventType.TOOL_INVOCATION.value
        assert audit["details"]["tool"] == "audited"
        assert audit["details"]["success"] is True
        assert audit["correlation_id"].startswith("tool_")

    @pytest.mark.asyncio
    async def test_audit_can_be_disabled(self, caplog):
        @mcp_tool(tool_name="unaudited", audit=False)
        async def unaudited():
            return None

        with caplog.at_level(logging.INFO, logger="todo_mcp"):
            await unaudited()

        assert not [r for r in caplog.records if r.name.endswith(".audit")]


class TestAuditLog:
    def test_server_lifecycle_event(self, caplog):
        with caplog.at_level(logging.INFO, logger="todo_mcp"):
            audit_log("server_lifecycle", event="server_start")

        audit = caplog.records[-1].audit
        assert audit["event_type"] == "server_lifecycle"
        assert audit["details"] == {"event": "server_start"}

    def test_unknown_event_type_is_preserved(self, caplog):
        with caplog.at_level(logging.INFO, logger="todo_mcp"):
            audit_log("something_else", value=1)

        audit = caplog.records[-1].audit
        assert audit["event_type"] == "tool_invocation"
        assert audit["details"]["original_event_type"] == "something_else"


class TestCanonicalTool:
    @pytest.mark.asyncio
    async def test_registers_under_canonical_name(self):
        mcp = _RecordingMCP()

        @canonical_tool(mcp, canonical_name="list_things", description="List things")
        async def list_things() -> dict:
            return {"success": True, "data": {"items": []}}

        fn, kwargs = mcp.registered["list_things"]
        assert kwargs == {"description": "List things", "structured_output": False}

        result = await fn()
        assert isinstance(result, CallToolResult)
        assert result.isError is False
        assert len(result.content) == 1
        assert isinstance(result.content[0], TextContent)
        assert result.content[0].text == '{"success":true,"data":{"items":[]}}'
        assert json.loads(result.content[0].text)["data"] == {"items": []}

    def test_sync_tool_minified(self):
        mcp = _RecordingMCP()

        @canonical_tool(mcp, canonical_name="ping")
        def ping() -> dict:
            return {"ok": True}

        fn, _ = mcp.registered["ping"]
        result = fn()
        assert result.content[0].text == '{"ok":true}'
        assert result.isError is False

    @pytest.mark.asyncio
    async def test_failed_envelope_flagged_as_error(self, caplog):
        mcp = _RecordingMCP()

        @canonical_tool(mcp, canonical_name="lookup")
        async def lookup() -> dict:
            return {"success": False, "data": {"details": {"id": "x"}}, "error": "missing"}

        fn, _ = mcp.registered["lookup"]
        with caplog.at_level(logging.INFO, logger="todo_mcp"):
            result = await fn()

        assert result.isError is True
        assert json.loads(result.content[0].text)["data"]["details"] == {"id": "x"}
        assert get_metrics().get_counter(
            "tool.invocations", {"tool": "lookup", "status": "error"}
        ) == 1
        audit = [r for r in caplog.records if r.name.endswith(".audit")][0].audit
        assert audit["details"]["success"] is False

    @pytest.mark.asyncio
    async def test_non_dict_results_pass_through(self):
        mcp = _RecordingMCP()

        @canonical_tool(mcp, canonical_name="raw")
        async def raw():
            return "plain"

        fn, _ = mcp.registered["raw"]
        assert await fn() == "plain"

    @pytest.mark.asyncio
    async def test_exceptions_logged_and_reraised(self, caplog):
        mcp = _RecordingMCP()

        @canonical_tool(mcp, canonical_name="explode")
        async def explode(value: int):
            raise ValueError("bad value")

        fn, _ = mcp.registered["explode"]
        with caplog.at_level(logging.ERROR, logger="todo_mcp"):
            with pytest.raises(ValueError, match="bad value"):
                await fn(value=3)

        failures = [r for r in caplog.records if r.name == "todo_mcp.core.naming"]
        assert len(failures) == 1
        assert failures[0].tool == "explode"
        assert failures[0].params == ["value"]
        assert failures[0].exc_info is not None

    def test_wrapped_signature_is_preserved(self):
        mcp = _RecordingMCP()

        @canonical_tool(mcp, canonical_name="create")
        async def create(title: str, description: str = None) -> dict:
            return {}

        fn, _ = mcp.registered["create"]
        assert list(inspect.signature(fn).parameters) == ["title", "description"]
