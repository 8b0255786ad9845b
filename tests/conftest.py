"""
Root pytest configuration and shared fixtures.
"""

import json
from typing import Any, Dict, Union

import pytest
from mcp.types import CallToolResult, TextContent

from todo_mcp.config import ServerConfig
from todo_mcp.core.observability import get_metrics
from todo_mcp.core.todo import TodoStore
from todo_mcp.tools.todo import TodoDispatcher

# Response contract version from responses.py
RESPONSE_CONTRACT_VERSION = "response-v2"


def extract_response_dict(
    result: Union[Dict[str, Any], TextContent, CallToolResult],
) -> Dict[str, Any]:
    """Extract dict from tool result, handling dict, TextContent and CallToolResult.

    Tools wrapped with canonical_tool return a CallToolResult holding one
    TextContent with minified JSON.

    Raises:
        TypeError: If result is not one of the supported types
        json.JSONDecodeError: If TextContent.text is not valid JSON
    """
    if isinstance(result, dict):
        return result
    if isinstance(result, CallToolResult):
        assert len(result.content) == 1, f"Expected one content block, got {len(result.content)}"
        result = result.content[0]
    if isinstance(result, TextContent):
        return json.loads(result.text)
    raise TypeError(
        f"Expected dict, TextContent or CallToolResult, got {type(result).__name__}"
    )


def extract_call_tool_result(result: Any) -> Dict[str, Any]:
    """Extract the envelope from ``FastMCP.call_tool`` output.

    Tools built with canonical_tool return a ``CallToolResult``, which
    ``call_tool`` hands back unchanged.
    """
    assert isinstance(result, CallToolResult), f"Expected CallToolResult, got {type(result).__name__}"
    return extract_response_dict(result)


@pytest.fixture
def store() -> TodoStore:
    """Fresh, empty store for each test."""
    return TodoStore()


@pytest.fixture
def dispatcher(store: TodoStore) -> TodoDispatcher:
    return TodoDispatcher(store)


@pytest.fixture
def test_config() -> ServerConfig:
    return ServerConfig(
        server_name="todo-mcp-test",
        server_version="0.1.0",
        log_level="WARNING",
        structured_logging=False,
    )


@pytest.fixture(autouse=True)
def reset_metrics():
    """Keep the global metrics collector isolated between tests."""
    get_metrics().reset()
    yield
    get_metrics().reset()
