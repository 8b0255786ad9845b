"""Todo tools: dispatch MCP tool calls onto the shared ``TodoStore``.

``TodoDispatcher`` is a pure translation layer. It routes each operation to
the matching store coroutine and turns the outcome into a response-v2
envelope:

- store success -> ``success_response`` with the serialized record(s), or a
  confirmation message for delete
- ``TodoStoreError`` -> ``invalid_params_error`` with the store's context
  (e.g. ``{"id": "..."}``)
- failure to serialize a record -> ``internal_error`` with
  ``{"error": "<cause>"}``

``register_todo_tools`` exposes the six operations as individual MCP tools.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from todo_mcp.config import ServerConfig
from todo_mcp.core.naming import canonical_tool
from todo_mcp.core.responses import (
    ErrorType,
    internal_error,
    invalid_params_error,
    success_response,
    validation_error,
)
from todo_mcp.core.todo import TodoErrorCategory, TodoItem, TodoStore, TodoStoreError
from todo_mcp.tools.router import ActionDefinition, ActionRouter, ActionRouterError

logger = logging.getLogger(__name__)


_ACTION_SUMMARY = {
    "list": "List all todo items",
    "create": "Create a new todo item",
    "update": "Update a todo item",
    "delete": "Delete a todo item",
    "get": "Get details of a single todo item",
    "complete": "Mark a todo item as completed",
}

_ERROR_TYPES = {
    TodoErrorCategory.NOT_FOUND: ErrorType.NOT_FOUND,
}


class _SerializationError(Exception):
    pass


def _serialize(todo: TodoItem) -> Dict[str, Any]:
    try:
        return todo.to_dict()
    except (AttributeError, TypeError, ValueError) as exc:
        raise _SerializationError(str(exc)) from exc


def _store_error(exc: TodoStoreError) -> dict:
    return asdict(
        invalid_params_error(
            exc.message,
            details=exc.context,
            error_type=_ERROR_TYPES.get(exc.category, ErrorType.VALIDATION),
        )
    )


def _serialization_failed(exc: _SerializationError) -> dict:
    logger.error("Serialization failed: %s", exc)
    return asdict(internal_error("Serialization failed", details={"error": str(exc)}))


class TodoDispatcher:
    """Route todo operations to a ``TodoStore`` and shape the responses.

    Holds no state beyond the store reference.
    """

    def __init__(self, store: TodoStore):
        self._store = store
        self._router = ActionRouter(
            tool_name="todo",
            actions=[
                ActionDefinition(name="list", handler=self._handle_list, summary=_ACTION_SUMMARY["list"]),
                ActionDefinition(name="create", handler=self._handle_create, summary=_ACTION_SUMMARY["create"]),
                ActionDefinition(name="update", handler=self._handle_update, summary=_ACTION_SUMMARY["update"]),
                ActionDefinition(name="delete", handler=self._handle_delete, summary=_ACTION_SUMMARY["delete"]),
                ActionDefinition(name="get", handler=self._handle_get, summary=_ACTION_SUMMARY["get"]),
                ActionDefinition(
                    name="complete",
                    handler=self._handle_complete,
                    summary=_ACTION_SUMMARY["complete"],
                ),
            ],
        )

    @property
    def store(self) -> TodoStore:
        return self._store

    def allowed_operations(self) -> List[str]:
        return self._router.allowed_actions()

    def describe(self) -> Dict[str, Optional[str]]:
        return self._router.describe()

    async def dispatch(self, operation: str, **params: Any) -> dict:
        """Run ``operation`` with ``params`` and return a response envelope dict."""
        try:
            pending = self._router.dispatch(action=operation, **params)
        except ActionRouterError as exc:
            allowed = ", ".join(exc.allowed_actions)
            return asdict(
                validation_error(
                    f"Unsupported todo operation '{operation}'. Allowed operations: {allowed}",
                    details={"operation": operation, "allowed_operations": exc.allowed_actions},
                    remediation=f"Use one of: {allowed}",
                )
            )
        return await pending

    async def _handle_list(self) -> dict:
        todos = await self._store.list_todos()
        try:
            payload = [_serialize(todo) for todo in todos]
        except _SerializationError as exc:
            return _serialization_failed(exc)
        return asdict(success_response(todos=payload, count=len(payload)))

    async def _handle_create(self, *, title: str, description: Optional[str] = None) -> dict:
        todo = await self._store.create_todo(title, description)
        return self._single(todo)

    async def _handle_update(
        self,
        *,
        todo_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> dict:
        try:
            todo = await self._store.update_todo(
                todo_id, title=title, description=description, completed=completed
            )
        except TodoStoreError as exc:
            return _store_error(exc)
        return self._single(todo)

    async def _handle_delete(self, *, todo_id: str) -> dict:
        try:
            deleted_id = await self._store.delete_todo(todo_id)
        except TodoStoreError as exc:
            return _store_error(exc)
        return asdict(
            success_response(
                id=deleted_id,
                message=f"Successfully deleted todo item with ID {deleted_id}",
            )
        )

    async def _handle_get(self, *, todo_id: str) -> dict:
        try:
            todo = await self._store.get_todo(todo_id)
        except TodoStoreError as exc:
            return _store_error(exc)
        return self._single(todo)

    async def _handle_complete(self, *, todo_id: str) -> dict:
        try:
            todo = await self._store.complete_todo(todo_id)
        except TodoStoreError as exc:
            return _store_error(exc)
        return self._single(todo)

    @staticmethod
    def _single(todo: TodoItem) -> dict:
        try:
            payload = _serialize(todo)
        except _SerializationError as exc:
            return _serialization_failed(exc)
        return asdict(success_response(todo=payload))


def register_todo_tools(
    mcp: FastMCP, config: ServerConfig, dispatcher: TodoDispatcher
) -> None:
    """Register the six todo tools against ``dispatcher``."""

    audit = config.audit_enabled
    summaries = dispatcher.describe()

    @canonical_tool(mcp, canonical_name="list_todos", audit=audit, description=summaries["list"])
    async def list_todos() -> dict:
        """List all todo items in creation order."""
        return await dispatcher.dispatch("list")

    @canonical_tool(mcp, canonical_name="create_todo", audit=audit, description=summaries["create"])
    async def create_todo(title: str, description: Optional[str] = None) -> dict:
        """Create a new todo item.

        Args:
            title: Todo item title
            description: Optional todo item description
        """
        return await dispatcher.dispatch("create", title=title, description=description)

    @canonical_tool(mcp, canonical_name="update_todo", audit=audit, description=summaries["update"])
    async def update_todo(
        id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> dict:
        """Update a todo item; omitted fields keep their current value.

        Args:
            id: Todo item ID
            title: New title
            description: New description (replaces the current one)
            completed: New completion flag
        """
        return await dispatcher.dispatch(
            "update",
            todo_id=id,
            title=title,
            description=description,
            completed=completed,
        )

    @canonical_tool(mcp, canonical_name="delete_todo", audit=audit, description=summaries["delete"])
    async def delete_todo(id: str) -> dict:
        """Delete a todo item.

        Args:
            id: Todo item ID
        """
        return await dispatcher.dispatch("delete", todo_id=id)

    @canonical_tool(mcp, canonical_name="get_todo", audit=audit, description=summaries["get"])
    async def get_todo(id: str) -> dict:
        """Get details of a single todo item.

        Args:
            id: Todo item ID
        """
        return await dispatcher.dispatch("get", todo_id=id)

    @canonical_tool(mcp, canonical_name="complete_todo", audit=audit, description=summaries["complete"])
    async def complete_todo(id: str) -> dict:
        """Mark a todo item as completed.

        Args:
            id: Todo item ID
        """
        return await dispatcher.dispatch("complete", todo_id=id)

    logger.debug("Registered todo tools: %s", ", ".join(dispatcher.allowed_operations()))


__all__ = [
    "TodoDispatcher",
    "register_todo_tools",
]
