"""todo-mcp - MCP server for managing an in-memory todo list."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("todo-mcp")
except PackageNotFoundError:
    # Package not installed (development mode without editable install)
    __version__ = "0.1.0"

from todo_mcp.server import create_server, main

__all__ = ["__version__", "create_server", "main"]
