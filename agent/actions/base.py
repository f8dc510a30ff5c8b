"""
Action Interface

An action is a named, side-effecting operation selected by the decision
engine. It receives the session and the engine's extracted entities and
returns the (possibly) updated context.

Enforces:
- Actions get a private copy of the context
- Returning None means "no context change"
- Raising is allowed; the dispatch loop isolates the failure to this action
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from agent.session import Session

Context = Dict[str, Any]


@dataclass(frozen=True)
class ActionInvocation:
    """Everything an action may read for one execution."""

    action: str
    session: Session
    context: Context
    entities: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    message: Optional[str] = None  # bot reply text, set for "send"
    text: Optional[str] = None     # the user's message of this turn

    @property
    def session_id(self) -> str:
        return self.session.session_id


class ActionHandler(ABC):
    """Abstract base for all actions."""

    name: str
    description: str = ""

    @abstractmethod
    async def run(self, invocation: ActionInvocation) -> Optional[Context]:
        """
        Execute the action.

        Args:
            invocation: Session, context copy, entities and message text

        Returns:
            Updated context, or None to leave the context unchanged
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
