"""
Action registry.

Maps action names to handlers. Lookups of unknown names raise
ActionNotFoundError so a misconfigured decision graph surfaces as an error,
either at startup through validate() or on the turn that hits it.
"""

import logging
from typing import Dict, Iterable, List

from agent.errors import ActionNotFoundError

from .base import ActionHandler

logger = logging.getLogger(__name__)


class ActionRegistry:
    """
    Registry for available actions.

    Manages:
    - Action registration
    - Action discovery
    - Startup validation against the names the decision graph uses
    """

    def __init__(self):
        self._actions: Dict[str, ActionHandler] = {}

    def register(self, handler: ActionHandler) -> None:
        """
        Register an action. A handler registered under an existing name
        replaces the previous one.
        """
        if not isinstance(handler, ActionHandler):
            raise TypeError("Action must implement ActionHandler")
        if not getattr(handler, "name", None):
            raise ValueError(f"{type(handler).__name__} has no name")

        if handler.name in self._actions:
            logger.warning(f"Replacing registered action '{handler.name}'")
        self._actions[handler.name] = handler

    def get(self, name: str) -> ActionHandler:
        """
        Get action by name.

        Raises:
            ActionNotFoundError: name is not registered
        """
        handler = self._actions.get(name)
        if handler is None:
            raise ActionNotFoundError(name)
        return handler

    def has(self, name: str) -> bool:
        return name in self._actions

    def list(self) -> List[str]:
        return list(self._actions.keys())

    def validate(self, required: Iterable[str]) -> None:
        """
        Check that every required action is registered.

        Raises:
            ActionNotFoundError: naming all missing actions at once
        """
        missing = [name for name in required if not self.has(name)]
        if missing:
            raise ActionNotFoundError(missing)

    def __contains__(self, name: str) -> bool:
        return name in self._actions

    def __len__(self) -> int:
        return len(self._actions)
