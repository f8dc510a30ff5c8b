from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .types import EngineStep


class DecisionEngine(ABC):
    """
    Abstract decision engine boundary.
    Agent code must depend ONLY on this interface.
    """

    @abstractmethod
    async def converse(
        self,
        session_id: str,
        text: Optional[str],
        context: Dict[str, Any],
    ) -> EngineStep:
        """
        Ask the engine for the next step of a turn.

        text is the user's message on the first call of a turn and None on
        the follow-up calls, which only carry the updated context.
        """
        raise NotImplementedError
