"""Core todo store for todo-mcp."""

from todo_mcp.core.todo import (
    TodoErrorCategory,
    TodoItem,
    TodoNotFoundError,
    TodoStore,
    TodoStoreError,
)

__all__ = [
    "TodoErrorCategory",
    "TodoItem",
    "TodoNotFoundError",
    "TodoStore",
    "TodoStoreError",
]
