"""FastMCP server for todo-mcp.

Exposes the six todo tools (list_todos, create_todo, update_todo,
delete_todo, get_todo, complete_todo) over stdio. All tools share one
in-memory ``TodoStore`` created when the server is built.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from mcp.server.fastmcp import FastMCP

from todo_mcp.config import ServerConfig, get_config
from todo_mcp.core.observability import audit_log
from todo_mcp.core.todo import TodoStore
from todo_mcp.tools.todo import TodoDispatcher, register_todo_tools

logger = logging.getLogger(__name__)


def create_server(
    config: Optional[ServerConfig] = None,
    store: Optional[TodoStore] = None,
) -> FastMCP:
    """Create and configure the FastMCP server instance.

    Args:
        config: Server configuration (defaults to the global config)
        store: Todo store to serve (defaults to a new, empty store)
    """

    if config is None:
        config = get_config()

    config.setup_logging()

    mcp = FastMCP(name=config.server_name, instructions=config.instructions)
    # Report our own version in serverInfo instead of the SDK's
    mcp._mcp_server.version = config.server_version

    dispatcher = TodoDispatcher(store if store is not None else TodoStore())
    register_todo_tools(mcp, config, dispatcher)

    logger.info("Server created: %s v%s", config.server_name, config.server_version)
    return mcp


def main() -> None:
    """Main entry point for the todo-mcp server."""

    try:
        config = get_config()
        server = create_server(config)

        logger.info("Starting MCP Todo Server %s v%s", config.server_name, config.server_version)
        audit_log("server_lifecycle", event="server_start", version=config.server_version)

        server.run(transport="stdio")

        logger.info("Server stopped")
        audit_log("server_lifecycle", event="server_stop")

    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)
    except Exception as exc:
        logger.error("Server error: %s: %s", type(exc).__name__, exc)
        audit_log("server_lifecycle", event="server_error", error=str(exc))
        sys.exit(1)


if __name__ == "__main__":
    main()
