"""
Decision engine boundary.

The engine is a black box that, given a message and the session context,
names the next action to run. The agent remains agnostic of the backend.

Supported backends:
- StubDecisionEngine: Deterministic rule-based engine (default for CI/tests)
- WitDecisionEngine: Wit.ai /converse over HTTP

Example usage:
    from inference import StubDecisionEngine

    engine = StubDecisionEngine()
    step = await engine.converse("session-1", "weather in Paris", {})
"""

from .types import DecisionEngineError, EngineStep, Entities, StepType
from .base import DecisionEngine
from .stub import StubDecisionEngine
from .wit import WitDecisionEngine

__all__ = [
    "DecisionEngineError",
    "EngineStep",
    "Entities",
    "StepType",
    "DecisionEngine",
    "StubDecisionEngine",
    "WitDecisionEngine",
]
