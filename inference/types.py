from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

StepType = Literal["action", "msg", "stop"]

Entities = Dict[str, List[Dict[str, Any]]]


class DecisionEngineError(Exception):
    """The decision engine could not produce a next step."""
    pass


@dataclass
class EngineStep:
    type: StepType              # action | msg | stop
    action: Optional[str] = None       # set for "action"
    message: Optional[str] = None      # bot text for "msg"
    entities: Entities = field(default_factory=dict)
    confidence: Optional[float] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def is_stop(self) -> bool:
        return self.type == "stop"
