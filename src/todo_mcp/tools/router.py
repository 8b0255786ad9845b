"""Action routing shared by the todo tool handlers.

An ``ActionRouter`` maps operation names onto handler callables so a single
dispatch point can serve several tools. Handlers may be sync or async; the
router returns whatever the handler returns (a coroutine for async handlers),
leaving the caller to await it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence


@dataclass(frozen=True)
class ActionDefinition:
    """A named action and the handler that serves it."""

    name: str
    handler: Callable[..., Any]
    summary: Optional[str] = None


class ActionRouterError(ValueError):
    """Raised when an action is missing or not registered."""

    def __init__(self, message: str, *, allowed_actions: Sequence[str]):
        super().__init__(message)
        self.allowed_actions = list(allowed_actions)


class ActionRouter:
    """Dispatch table from action names to handlers.

    Names are matched case-insensitively.
    """

    def __init__(self, *, tool_name: str, actions: Sequence[ActionDefinition]):
        if not actions:
            raise ValueError(f"Router '{tool_name}' requires at least one action")

        self.tool_name = tool_name
        self._actions: Dict[str, ActionDefinition] = {}

        for definition in actions:
            key = definition.name.lower()
            if key in self._actions:
                raise ValueError(f"Duplicate action '{definition.name}' for '{tool_name}'")
            self._actions[key] = definition

    def allowed_actions(self) -> List[str]:
        return [definition.name for definition in self._actions.values()]

    def describe(self) -> Dict[str, Optional[str]]:
        """Action name to summary mapping."""
        return {definition.name: definition.summary for definition in self._actions.values()}

    def resolve(self, action: Optional[str]) -> ActionDefinition:
        if not action:
            raise ActionRouterError(
                f"Tool '{self.tool_name}' requires an action",
                allowed_actions=self.allowed_actions(),
            )
        definition = self._actions.get(action.lower())
        if definition is None:
            raise ActionRouterError(
                f"Unsupported action '{action}' for '{self.tool_name}'",
                allowed_actions=self.allowed_actions(),
            )
        return definition

    def dispatch(self, action: Optional[str], **kwargs: Any) -> Any:
        """Invoke the handler registered for ``action`` with ``kwargs``."""
        return self.resolve(action).handler(**kwargs)
