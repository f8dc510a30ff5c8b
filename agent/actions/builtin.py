"""
Built-in actions of the Messenger bot.

Each action documents the context keys it reads and writes with a TypedDict.
The context itself stays an open mapping since the decision engine and the
actions are decoupled.
"""

import logging
from typing import Optional, TypedDict

from services.weather import ExternalDataError, WeatherBackend
from transport.messenger.sender import MessengerSender, TransportError

from .base import ActionHandler, ActionInvocation, Context
from .entities import first_entity_value

logger = logging.getLogger(__name__)

DEFAULT_FORECAST = "sunny"


class SendAction(ActionHandler):
    """
    Deliver the engine's reply to the session's user.

    Never raises: a missing recipient or a delivery failure is logged and the
    conversation continues. Context is never changed.
    """

    name = "send"
    description = "Send the bot's reply to the user"

    def __init__(self, sender: MessengerSender):
        self._sender = sender

    async def run(self, invocation: ActionInvocation) -> Optional[Context]:
        recipient_id = invocation.session.user_id
        if not recipient_id:
            logger.error(
                f"Couldn't find user for session {invocation.session_id}",
                extra={"session_id": invocation.session_id},
            )
            return None

        if not invocation.message:
            logger.warning(
                "Send requested without message text",
                extra={"session_id": invocation.session_id},
            )
            return None

        try:
            await self._sender.send_text(recipient_id, invocation.message)
        except TransportError as e:
            logger.error(
                f"Failed to forward response to {recipient_id}: {e}",
                extra={"session_id": invocation.session_id, "recipient_id": recipient_id},
            )
        return None


class ForecastContext(TypedDict, total=False):
    loc: str        # written: the location asked about
    forecast: str   # written: provider answer or DEFAULT_FORECAST


class ForecastAction(ActionHandler):
    """
    Look up the weather for the `location` entity.

    Reads entity `location`; writes ForecastContext keys. Resolves exactly
    once whatever the provider does: success, empty answer or failure all end
    with a forecast in the context.
    """

    name = "getForecast"
    description = "Store the forecast for the extracted location in the context"

    def __init__(self, weather: WeatherBackend, default: str = DEFAULT_FORECAST):
        self._weather = weather
        self.default = default

    async def run(self, invocation: ActionInvocation) -> Optional[Context]:
        context = invocation.context
        location = first_entity_value(invocation.entities, "location")
        if location is None:
            return context

        location = str(location)
        try:
            forecast = await self._weather.get_forecast(location)
        except ExternalDataError as e:
            logger.warning(
                f"Weather lookup failed for {location!r}, using default: {e}",
                extra={"session_id": invocation.session_id},
            )
            forecast = None

        context["loc"] = location
        context["forecast"] = forecast or self.default
        return context


class MoodContext(TypedDict, total=False):
    howz: str  # written: how the user says they are


class MoodAction(ActionHandler):
    """Remember how the user says they are (entity `howzyou`)."""

    name = "howzyou"
    description = "Store the user's mood in the context"

    async def run(self, invocation: ActionInvocation) -> Optional[Context]:
        context = invocation.context
        mood = first_entity_value(invocation.entities, "howzyou")
        if mood is not None:
            context["howz"] = str(mood)
        return context


class PassThroughAction(ActionHandler):
    """No-op branch terminus of the decision graph."""

    description = "Do nothing"

    def __init__(self, name: str = "what-to-read"):
        self.name = name

    async def run(self, invocation: ActionInvocation) -> Optional[Context]:
        return invocation.context
