"""
In-memory todo store shared by all tool handlers.

The store owns a single list of ``TodoItem`` records guarded by one
``asyncio.Lock``. Every operation, reads included, holds the lock for its
whole read-modify-write sequence and hands back copies, so no caller ever
holds a live reference into the collection.

Records are kept in creation order; deleting a record does not reorder the
rest. Nothing is persisted: the collection starts empty and is discarded
with the process.

Example:
    store = TodoStore()
    todo = await store.create_todo("Buy milk")
    done = await store.complete_todo(todo.id)
    assert done.completed
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

__all__ = [
    "TodoItem",
    "TodoErrorCategory",
    "TodoStoreError",
    "TodoNotFoundError",
    "TodoStore",
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TodoItem:
    """A single todo record.

    Attributes:
        id: UUID4 string assigned at creation; never changes
        title: Free text, not validated
        description: Optional free text
        completed: Completion flag, False at creation
        created_at: UTC creation time; never changes
        updated_at: UTC time of the last successful mutation
    """

    id: str
    title: str
    description: Optional[str]
    completed: bool
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class TodoErrorCategory(str, Enum):
    """Failure categories raised by the store."""

    NOT_FOUND = "not_found"


class TodoStoreError(Exception):
    """Base error for store operations.

    Carries a category and a mapping of structured context that the tool
    layer echoes back to the client.
    """

    def __init__(
        self,
        message: str,
        *,
        category: TodoErrorCategory,
        context: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.context: Dict[str, Any] = dict(context or {})


class TodoNotFoundError(TodoStoreError):
    """No live record matches the requested id."""

    def __init__(self, todo_id: str):
        super().__init__(
            "Todo item with specified ID not found",
            category=TodoErrorCategory.NOT_FOUND,
            context={"id": todo_id},
        )
        self.todo_id = todo_id


class TodoStore:
    """Async, lock-serialized todo collection.

    Construct one store per process and share the instance between request
    handlers; tests build their own isolated stores.
    """

    def __init__(self) -> None:
        self._todos: List[TodoItem] = []
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._todos)

    # ---- helpers (call with the lock held) ----

    def _find_index(self, todo_id: str) -> int:
        for index, todo in enumerate(self._todos):
            if todo.id == todo_id:
                return index
        logger.info("Todo not found: %s", todo_id)
        raise TodoNotFoundError(todo_id)

    def _new_id(self) -> str:
        # uuid4 collisions are not expected, but ids must stay unique
        existing = {todo.id for todo in self._todos}
        while True:
            candidate = str(uuid.uuid4())
            if candidate not in existing:
                return candidate

    @staticmethod
    def _touch(todo: TodoItem) -> None:
        """Advance ``updated_at`` strictly past its previous value."""
        now = _utcnow()
        if now <= todo.updated_at:
            now = todo.updated_at + timedelta(microseconds=1)
        todo.updated_at = now

    # ---- operations ----

    async def list_todos(self) -> List[TodoItem]:
        """Return copies of all records in creation order."""
        async with self._lock:
            todos = [replace(todo) for todo in self._todos]
        logger.debug("Listed %d todos", len(todos))
        return todos

    async def create_todo(self, title: str, description: Optional[str] = None) -> TodoItem:
        """Create a record with a fresh id; ``created_at == updated_at``.

        Not idempotent: identical input creates a new record every call.
        """
        now = _utcnow()
        async with self._lock:
            todo = TodoItem(
                id=self._new_id(),
                title=title,
                description=description,
                completed=False,
                created_at=now,
                updated_at=now,
            )
            self._todos.append(todo)
            result = replace(todo)
        logger.debug("Created todo %s", result.id)
        return result

    async def update_todo(
        self,
        todo_id: str,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> TodoItem:
        """Overwrite the fields that are not None and refresh ``updated_at``.

        A field passed as None is left unchanged, so ``description`` can be
        replaced but never cleared.

        Raises:
            TodoNotFoundError: If no record has ``todo_id``.
        """
        async with self._lock:
            todo = self._todos[self._find_index(todo_id)]
            if title is not None:
                todo.title = title
            if description is not None:
                todo.description = description
            if completed is not None:
                todo.completed = completed
            self._touch(todo)
            result = replace(todo)
        logger.debug("Updated todo %s", todo_id)
        return result

    async def delete_todo(self, todo_id: str) -> str:
        """Remove a record permanently and return its id.

        Raises:
            TodoNotFoundError: If no record has ``todo_id``.
        """
        async with self._lock:
            del self._todos[self._find_index(todo_id)]
        logger.debug("Deleted todo %s", todo_id)
        return todo_id

    async def get_todo(self, todo_id: str) -> TodoItem:
        """Return a copy of the record with ``todo_id``.

        Raises:
            TodoNotFoundError: If no record has ``todo_id``.
        """
        async with self._lock:
            return replace(self._todos[self._find_index(todo_id)])

    async def complete_todo(self, todo_id: str) -> TodoItem:
        """Mark a record completed and refresh ``updated_at``.

        Completing an already completed record still refreshes the timestamp.

        Raises:
            TodoNotFoundError: If no record has ``todo_id``.
        """
        async with self._lock:
            todo = self._todos[self._find_index(todo_id)]
            todo.completed = True
            self._touch(todo)
            result = replace(todo)
        logger.debug("Completed todo %s", todo_id)
        return result

    async def clear(self) -> None:
        """Drop every record. Used to reset state between tests."""
        async with self._lock:
            self._todos.clear()
