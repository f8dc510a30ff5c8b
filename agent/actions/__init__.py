"""
Action module exports.

Registers nothing by itself; infra.bootstrap wires the built-in actions.
"""

from agent.actions.base import ActionHandler, ActionInvocation, Context
from agent.actions.builtin import (
    DEFAULT_FORECAST,
    ForecastAction,
    ForecastContext,
    MoodAction,
    MoodContext,
    PassThroughAction,
    SendAction,
)
from agent.actions.entities import first_entity_value
from agent.actions.registry import ActionRegistry

__all__ = [
    "ActionHandler",
    "ActionInvocation",
    "Context",
    "ActionRegistry",
    "first_entity_value",
    "DEFAULT_FORECAST",
    "SendAction",
    "ForecastAction",
    "ForecastContext",
    "MoodAction",
    "MoodContext",
    "PassThroughAction",
]
