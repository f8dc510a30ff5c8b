"""Helpers for reading decision-engine entities."""

from typing import Any, Mapping, Optional


def first_entity_value(entities: Optional[Mapping[str, Any]], name: str) -> Optional[Any]:
    """
    Return the best candidate's value for an entity.

    Entities map a name to an ordered list of candidates, best first:
        {"location": [{"value": "Paris", "confidence": 0.97}, ...]}

    A `{"value": ...}` wrapper around the value itself is unwrapped too.

    Returns:
        The value, or None when the entity is missing, empty or malformed or
        its value is None or "". Other falsy values (0, False) are returned.
        Never raises.
    """
    if not isinstance(entities, Mapping):
        return None

    candidates = entities.get(name)
    if not isinstance(candidates, (list, tuple)) or not candidates:
        return None

    first = candidates[0]
    value = first.get("value") if isinstance(first, Mapping) else first
    if isinstance(value, Mapping):
        value = value.get("value")

    if value is None or value == "":
        return None
    return value
