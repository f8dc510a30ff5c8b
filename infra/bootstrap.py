"""
Infrastructure initialization and bootstrap.

Builds every collaborator of the bot from configuration and wires them
together. One instance is owned by the FastAPI application (app.state);
nothing here is a module global.
"""

import logging
from typing import Optional

from agent.actions import (
    ActionRegistry,
    ForecastAction,
    MoodAction,
    PassThroughAction,
    SendAction,
)
from agent.dispatch import SEND_ACTION, DispatchLoop
from agent.orchestrator import ConversationOrchestrator
from agent.session import SessionStore
from inference import DecisionEngine
from services.weather import WeatherBackend
from transport.messenger.dedupe import MessageDeduplicator
from transport.messenger.sender import MessengerSender

from .config import InfraConfig, get_config

logger = logging.getLogger(__name__)


class InfraBootstrap:
    """
    Bootstrap infrastructure based on configuration.

    Collaborators can be injected (tests, alternative backends); anything not
    injected is created from the configuration.
    """

    def __init__(
        self,
        config: Optional[InfraConfig] = None,
        engine: Optional[DecisionEngine] = None,
        weather: Optional[WeatherBackend] = None,
        sender: Optional[MessengerSender] = None,
        sessions: Optional[SessionStore] = None,
    ):
        """Initialize bootstrap with configuration."""
        self.config = config or get_config()
        self.engine = engine or self.config.create_decision_engine()
        self.weather = weather or self.config.create_weather_backend()
        self.sender = sender or self.config.create_sender()
        self.sessions = sessions or SessionStore()
        self.deduplicator = MessageDeduplicator()

        self.registry = self.build_registry()
        # Unknown action names are a configuration error, not a runtime surprise
        self.registry.validate({SEND_ACTION, *self.config.bot_actions})

        self.dispatcher = DispatchLoop(
            engine=self.engine,
            registry=self.registry,
            max_steps=self.config.dispatch_max_steps,
            action_timeout_s=self.config.action_timeout_s,
        )
        self.orchestrator = ConversationOrchestrator(
            sessions=self.sessions,
            dispatcher=self.dispatcher,
            sender=self.sender,
            serialize_turns=self.config.serialize_turns,
        )

    def build_registry(self) -> ActionRegistry:
        """Register the built-in actions."""
        registry = ActionRegistry()
        registry.register(SendAction(self.sender))
        registry.register(ForecastAction(self.weather))
        registry.register(MoodAction())
        registry.register(PassThroughAction("what-to-read"))
        return registry

    async def shutdown(self, timeout: Optional[float] = 10.0) -> None:
        """Let in-flight turns finish before the process exits."""
        await self.orchestrator.drain(timeout=timeout)

    def __repr__(self) -> str:
        """String representation showing configured backends."""
        return (
            f"InfraBootstrap(engine={type(self.engine).__name__}, "
            f"weather={type(self.weather).__name__}, "
            f"actions={self.registry.list()})"
        )


def bootstrap_infrastructure(config: Optional[InfraConfig] = None) -> InfraBootstrap:
    """
    Bootstrap all infrastructure backends.

    Raises:
        ConfigurationError: Required secrets missing
        ActionNotFoundError: Configured action names not registered
    """
    bootstrap = InfraBootstrap(config)
    logger.info(f"Infrastructure ready: {bootstrap!r}")
    return bootstrap
