"""
Built-in Action Tests

Verifies:
✔ send delivers to the session's user and never raises
✔ getForecast writes loc/forecast exactly once, whatever the provider does
✔ howzyou stores the mood
✔ what-to-read leaves the context alone
"""

import pytest

from agent.actions import (
    ActionInvocation,
    DEFAULT_FORECAST,
    ForecastAction,
    MoodAction,
    PassThroughAction,
    SendAction,
)
from services.weather import ExternalDataError, StubWeatherBackend, WeatherBackend

from conftest import RecordingSender, make_session


def _invocation(action, session=None, context=None, entities=None, message=None):
    session = session or make_session()
    return ActionInvocation(
        action=action,
        session=session,
        context=dict(context if context is not None else session.context),
        entities=entities or {},
        message=message,
    )


class FailingWeather(WeatherBackend):
    async def get_forecast(self, location):
        raise ExternalDataError("provider down")


class EmptyWeather(WeatherBackend):
    async def get_forecast(self, location):
        return None


class TestSendAction:
    @pytest.mark.asyncio
    async def test_sends_message_to_session_user(self):
        sender = RecordingSender()
        action = SendAction(sender)

        result = await action.run(_invocation("send", message="Hello!"))

        assert result is None
        assert sender.sent == [("user-1", "Hello!")]

    @pytest.mark.asyncio
    async def test_missing_recipient_is_logged_not_raised(self, caplog):
        sender = RecordingSender()
        action = SendAction(sender)

        result = await action.run(_invocation("send", session=make_session(user_id=""), message="Hi"))

        assert result is None
        assert sender.sent == []
        assert "Couldn't find user" in caplog.text

    @pytest.mark.asyncio
    async def test_delivery_failure_is_swallowed(self):
        action = SendAction(RecordingSender(fail=True))

        result = await action.run(_invocation("send", message="Hi"))

        assert result is None

    @pytest.mark.asyncio
    async def test_no_message_sends_nothing(self):
        sender = RecordingSender()
        result = await SendAction(sender).run(_invocation("send"))

        assert result is None
        assert sender.sent == []


class TestForecastAction:
    @pytest.mark.asyncio
    async def test_writes_location_and_forecast(self):
        weather = StubWeatherBackend()
        action = ForecastAction(weather)

        context = await action.run(
            _invocation("getForecast", entities={"location": [{"value": "Paris"}]})
        )

        assert context == {"loc": "Paris", "forecast": "cloudy"}
        assert weather.calls == ["Paris"]

    @pytest.mark.asyncio
    async def test_missing_location_leaves_context_unchanged(self):
        weather = StubWeatherBackend()
        action = ForecastAction(weather)

        context = await action.run(_invocation("getForecast", context={"howz": "fine"}))

        assert context == {"howz": "fine"}
        assert weather.calls == []

    @pytest.mark.asyncio
    async def test_provider_failure_uses_default(self):
        action = ForecastAction(FailingWeather())

        context = await action.run(
            _invocation("getForecast", entities={"location": [{"value": "Oslo"}]})
        )

        assert context == {"loc": "Oslo", "forecast": DEFAULT_FORECAST}

    @pytest.mark.asyncio
    async def test_empty_answer_uses_default(self):
        action = ForecastAction(EmptyWeather(), default="mild")

        context = await action.run(
            _invocation("getForecast", entities={"location": [{"value": "Oslo"}]})
        )

        assert context["forecast"] == "mild"

    @pytest.mark.asyncio
    async def test_previous_forecast_overwritten(self):
        action = ForecastAction(StubWeatherBackend())

        context = await action.run(
            _invocation(
                "getForecast",
                context={"loc": "Paris", "forecast": "cloudy"},
                entities={"location": [{"value": "London"}]},
            )
        )

        assert context == {"loc": "London", "forecast": "rainy"}


class TestMoodAndPassThrough:
    @pytest.mark.asyncio
    async def test_mood_stored(self):
        context = await MoodAction().run(
            _invocation("howzyou", entities={"howzyou": [{"value": "happy"}]})
        )
        assert context == {"howz": "happy"}

    @pytest.mark.asyncio
    async def test_mood_absent(self):
        context = await MoodAction().run(_invocation("howzyou", context={"loc": "Paris"}))
        assert context == {"loc": "Paris"}

    @pytest.mark.asyncio
    async def test_pass_through(self):
        action = PassThroughAction()
        context = await action.run(_invocation("what-to-read", context={"loc": "Paris"}))

        assert action.name == "what-to-read"
        assert context == {"loc": "Paris"}
