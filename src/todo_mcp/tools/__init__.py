"""MCP tool registration surface."""

from todo_mcp.tools.todo import TodoDispatcher, register_todo_tools

__all__ = [
    "TodoDispatcher",
    "register_todo_tools",
]
