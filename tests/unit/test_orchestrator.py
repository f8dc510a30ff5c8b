"""
Conversation Orchestrator Tests

Verifies:
✔ Completed turns persist the context, failed turns do not
✔ Attachments get the fixed reply and never reach the engine
✔ Echoes and empty messages are ignored
✔ Turns of one session are serialized
✔ Nothing escapes handle_message()
"""

import asyncio
from datetime import datetime, timezone

import pytest

from agent.actions import ActionHandler, ActionRegistry, ForecastAction, SendAction
from agent.dispatch import DispatchLoop, DispatchState
from agent.orchestrator import ATTACHMENT_REPLY, ConversationOrchestrator
from agent.session import SessionStore
from inference import EngineStep, StubDecisionEngine
from services.weather import StubWeatherBackend
from transport.messenger.schemas import Attachment, InboundMessage

from conftest import RecordingSender, ScriptedEngine


def _message(text="weather in Paris", sender_id="user-1", mid="mid.1", attachments=None, is_echo=False):
    return InboundMessage(
        sender_id=sender_id,
        recipient_id="page-1",
        message_id=mid,
        text=text,
        attachments=attachments or [],
        timestamp=datetime.now(timezone.utc),
        is_echo=is_echo,
    )


def _orchestrator(engine=None, sender=None, registry=None, serialize_turns=True):
    sender = sender or RecordingSender()
    if registry is None:
        registry = ActionRegistry()
        registry.register(SendAction(sender))
        registry.register(ForecastAction(StubWeatherBackend()))
    sessions = SessionStore()
    loop = DispatchLoop(engine or StubDecisionEngine(), registry)
    return ConversationOrchestrator(sessions, loop, sender, serialize_turns=serialize_turns)


class TestTextMessages:
    @pytest.mark.asyncio
    async def test_completed_turn_persists_context(self):
        sender = RecordingSender()
        orchestrator = _orchestrator(sender=sender)

        result = await orchestrator.handle_message(_message("weather in Paris"))

        assert result.state is DispatchState.COMPLETED
        session = orchestrator.sessions.find_by_user("user-1")
        assert session.context == {"loc": "Paris", "forecast": "cloudy"}
        assert session.turns == 1
        assert sender.sent == [("user-1", "The weather in Paris is cloudy.")]

    @pytest.mark.asyncio
    async def test_failed_turn_keeps_previous_context(self):
        engine = ScriptedEngine([EngineStep(type="action", action="unknownAction")])
        orchestrator = _orchestrator(engine=engine)
        session = await orchestrator.sessions.resolve_or_create("user-1")
        orchestrator.sessions.update(session.session_id, {"loc": "Paris"})

        result = await orchestrator.handle_message(_message("hello"))

        assert result.state is DispatchState.FAILED
        assert session.context == {"loc": "Paris"}
        assert session.turns == 1

    @pytest.mark.asyncio
    async def test_failed_turn_keeps_nested_context(self):
        class CorruptingAction(ActionHandler):
            name = "corrupt"

            async def run(self, invocation):
                invocation.context["prefs"]["units"] = "corrupted"
                raise RuntimeError("boom")

        registry = ActionRegistry()
        registry.register(CorruptingAction())
        engine = ScriptedEngine([EngineStep(type="action", action="corrupt")])
        orchestrator = _orchestrator(engine=engine, registry=registry)
        session = await orchestrator.sessions.resolve_or_create("user-1")
        orchestrator.sessions.update(session.session_id, {"prefs": {"units": "metric"}})

        result = await orchestrator.handle_message(_message("hello"))

        assert result.state is DispatchState.FAILED
        assert session.context == {"prefs": {"units": "metric"}}

    @pytest.mark.asyncio
    async def test_context_carries_into_next_turn(self):
        orchestrator = _orchestrator()

        await orchestrator.handle_message(_message("weather in London", mid="mid.1"))
        await orchestrator.handle_message(_message("I am happy", mid="mid.2"))

        session = orchestrator.sessions.find_by_user("user-1")
        assert session.context["loc"] == "London"

    @pytest.mark.asyncio
    async def test_unknown_mood_action_does_not_persist(self):
        orchestrator = _orchestrator()

        result = await orchestrator.handle_message(_message("I am happy"))

        assert result.state is DispatchState.FAILED
        assert orchestrator.sessions.find_by_user("user-1").context == {}


class TestNonTextMessages:
    @pytest.mark.asyncio
    async def test_attachment_gets_fixed_reply(self):
        engine = ScriptedEngine([])
        sender = RecordingSender()
        orchestrator = _orchestrator(engine=engine, sender=sender)
        attachment = Attachment(type="image", payload={"url": "https://example.com/cat.png"})

        result = await orchestrator.handle_message(_message(text=None, attachments=[attachment]))

        assert result is None
        assert sender.sent == [("user-1", ATTACHMENT_REPLY)]
        assert engine.calls == []
        assert orchestrator.sessions.find_by_user("user-1") is not None

    @pytest.mark.asyncio
    async def test_attachment_reply_failure_is_logged(self, caplog):
        orchestrator = _orchestrator(engine=ScriptedEngine([]), sender=RecordingSender(fail=True))
        attachment = Attachment(type="audio", payload={})

        result = await orchestrator.handle_message(_message(text=None, attachments=[attachment]))

        assert result is None
        assert "Failed to send attachment reply" in caplog.text

    @pytest.mark.asyncio
    async def test_echo_ignored(self):
        engine = ScriptedEngine([])
        orchestrator = _orchestrator(engine=engine)

        result = await orchestrator.handle_message(_message(is_echo=True))

        assert result is None
        assert engine.calls == []
        assert len(orchestrator.sessions) == 0

    @pytest.mark.asyncio
    async def test_empty_message_dropped(self):
        engine = ScriptedEngine([])
        orchestrator = _orchestrator(engine=engine)

        result = await orchestrator.handle_message(_message(text=None))

        assert result is None
        assert len(orchestrator.sessions) == 0


class TestErrorBoundary:
    @pytest.mark.asyncio
    async def test_unexpected_error_does_not_escape(self, caplog):
        orchestrator = _orchestrator()

        async def explode(*args, **kwargs):
            raise RuntimeError("store offline")

        orchestrator.sessions.resolve_or_create = explode

        result = await orchestrator.handle_message(_message())

        assert result is None
        assert "store offline" in caplog.text


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_turns_of_one_session_are_serialized(self):
        active = 0
        peak = 0

        class TrackingAction(ActionHandler):
            name = "track"

            async def run(self, invocation):
                nonlocal active, peak
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1
                context = invocation.context
                context["turns"] = context.get("turns", 0) + 1
                return context

        class TrackingEngine(ScriptedEngine):
            async def converse(self, session_id, text, context):
                if text is not None:
                    return EngineStep(type="action", action="track")
                return EngineStep(type="stop")

        registry = ActionRegistry()
        registry.register(TrackingAction())
        orchestrator = _orchestrator(engine=TrackingEngine([]), registry=registry)

        orchestrator.submit([_message(f"msg {i}", mid=f"mid.{i}") for i in range(5)])
        await orchestrator.drain()

        session = orchestrator.sessions.find_by_user("user-1")
        assert peak == 1
        assert session.context == {"turns": 5}
        assert orchestrator.pending == 0

    @pytest.mark.asyncio
    async def test_distinct_users_run_concurrently(self):
        gate = asyncio.Event()
        entered = []

        class GateAction(ActionHandler):
            name = "gate"

            async def run(self, invocation):
                entered.append(invocation.session.user_id)
                await gate.wait()
                return None

        class GateEngine(ScriptedEngine):
            async def converse(self, session_id, text, context):
                if text is not None:
                    return EngineStep(type="action", action="gate")
                return EngineStep(type="stop")

        registry = ActionRegistry()
        registry.register(GateAction())
        orchestrator = _orchestrator(engine=GateEngine([]), registry=registry)

        orchestrator.submit([
            _message(sender_id="user-a", mid="mid.a"),
            _message(sender_id="user-b", mid="mid.b"),
        ])
        for _ in range(20):
            if len(entered) == 2:
                break
            await asyncio.sleep(0.01)

        assert sorted(entered) == ["user-a", "user-b"]
        gate.set()
        await orchestrator.drain()
        assert orchestrator.pending == 0

    @pytest.mark.asyncio
    async def test_submit_returns_immediately(self):
        gate = asyncio.Event()

        class WaitingEngine(ScriptedEngine):
            async def converse(self, session_id, text, context):
                await gate.wait()
                return EngineStep(type="stop")

        orchestrator = _orchestrator(engine=WaitingEngine([]))

        tasks = orchestrator.submit([_message()])

        assert len(tasks) == 1
        assert orchestrator.pending == 1
        gate.set()
        await orchestrator.drain()
        assert tasks[0].result().completed
