import re
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from .base import DecisionEngine
from .types import EngineStep

_WEATHER_RE = re.compile(r"\bweather\s+(?:in|for|at)\s+(?P<place>[^?.!]+)", re.IGNORECASE)
_MOOD_RE = re.compile(r"\b(?:i am|i'm|im|feeling)\s+(?P<mood>[a-z]+)", re.IGNORECASE)
_HOW_ARE_YOU_RE = re.compile(r"\bhow\s+(?:are|r)\s+(?:you|u)\b", re.IGNORECASE)
_READ_RE = re.compile(r"\bread(?:ing)?\b", re.IGNORECASE)


class _Template(dict):
    """format_map helper: unknown placeholders render as 'unknown'."""

    def __missing__(self, key):
        return "unknown"


def _entity(value: str) -> List[Dict[str, Any]]:
    return [{"value": value, "confidence": 1.0}]


class StubDecisionEngine(DecisionEngine):
    """
    Deterministic fake decision engine for local runs and CI.

    A plan of steps is computed from the text on the first call of a turn and
    replayed on the follow-up calls. Reply templates are formatted with the
    context as it stands when the reply step is reached.
    """

    def __init__(self):
        self._plans: Dict[str, Deque[EngineStep]] = {}
        self._texts: Dict[str, str] = {}

    def plan(self, text: str) -> List[EngineStep]:
        """Compute the deterministic plan for a message."""
        weather = _WEATHER_RE.search(text)
        if weather:
            place = weather.group("place").strip()
            return [
                EngineStep(type="action", action="getForecast",
                           entities={"location": _entity(place)}),
                EngineStep(type="msg", message="The weather in {loc} is {forecast}."),
                EngineStep(type="stop"),
            ]

        mood = _MOOD_RE.search(text)
        if mood:
            return [
                EngineStep(type="action", action="howzyou",
                           entities={"howzyou": _entity(mood.group("mood").lower())}),
                EngineStep(type="msg", message="Glad to know you are {howz}."),
                EngineStep(type="stop"),
            ]

        if _HOW_ARE_YOU_RE.search(text):
            return [
                EngineStep(type="msg", message="I'm doing great, thanks for asking!"),
                EngineStep(type="stop"),
            ]

        if _READ_RE.search(text):
            return [
                EngineStep(type="action", action="what-to-read"),
                EngineStep(type="msg", message="You could try 'The Pragmatic Programmer'."),
                EngineStep(type="stop"),
            ]

        return [
            EngineStep(type="msg", message="You said: {text}"),
            EngineStep(type="stop"),
        ]

    async def converse(
        self,
        session_id: str,
        text: Optional[str],
        context: Dict[str, Any],
    ) -> EngineStep:
        if text is not None:
            self._plans[session_id] = deque(self.plan(text))
            self._texts[session_id] = text

        plan = self._plans.get(session_id)
        if not plan:
            return EngineStep(type="stop", metadata={"backend": "stub"})

        step = plan.popleft()
        if step.type == "msg" and step.message:
            values = _Template(context)
            values.setdefault("text", self._texts.get(session_id, ""))
            step = EngineStep(
                type="msg",
                message=step.message.format_map(values),
                entities=step.entities,
            )
        step.metadata = {"backend": "stub"}
        return step
