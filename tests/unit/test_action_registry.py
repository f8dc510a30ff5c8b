"""
Action Registry Tests

Verifies:
✔ Registered actions are discoverable by name
✔ Unknown names raise ActionNotFoundError (not None)
✔ Only ActionHandler instances can be registered
✔ validate() reports every missing action at once
"""

import pytest

from agent.actions import ActionHandler, ActionRegistry, PassThroughAction
from agent.errors import ActionNotFoundError


class EchoAction(ActionHandler):
    name = "echo"

    async def run(self, invocation):
        return invocation.context


class TestRegistration:
    def test_register_and_get(self):
        registry = ActionRegistry()
        action = EchoAction()
        registry.register(action)

        assert registry.get("echo") is action
        assert registry.has("echo")
        assert "echo" in registry
        assert registry.list() == ["echo"]
        assert len(registry) == 1

    def test_get_unknown_raises(self):
        registry = ActionRegistry()
        with pytest.raises(ActionNotFoundError) as exc_info:
            registry.get("nope")
        assert exc_info.value.names == ["nope"]

    def test_register_rejects_non_handler(self):
        registry = ActionRegistry()
        with pytest.raises(TypeError):
            registry.register(lambda invocation: None)  # type: ignore[arg-type]

    def test_register_rejects_nameless_handler(self):
        registry = ActionRegistry()
        with pytest.raises(ValueError):
            registry.register(PassThroughAction(name=""))

    def test_same_name_replaces(self):
        registry = ActionRegistry()
        first, second = EchoAction(), EchoAction()
        registry.register(first)
        registry.register(second)

        assert registry.get("echo") is second
        assert len(registry) == 1


class TestValidate:
    def test_validate_passes_when_all_present(self):
        registry = ActionRegistry()
        registry.register(EchoAction())
        registry.register(PassThroughAction("what-to-read"))

        registry.validate(["echo", "what-to-read"])

    def test_validate_lists_all_missing(self):
        registry = ActionRegistry()
        registry.register(EchoAction())

        with pytest.raises(ActionNotFoundError) as exc_info:
            registry.validate(["echo", "getForecast", "howzyou"])

        assert exc_info.value.names == ["getForecast", "howzyou"]
