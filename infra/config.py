"""
Infrastructure configuration system.

Environment-based secrets and backend selection. Missing secrets are a fatal
startup condition: validate() lists every missing variable at once.
"""

import os
from dataclasses import dataclass, field
from typing import List, Literal, Tuple

from inference import DecisionEngine, StubDecisionEngine, WitDecisionEngine
from services.weather import StubWeatherBackend, WeatherBackend, WttrWeatherBackend
from transport.messenger.sender import DEFAULT_SEND_API_URL, MessengerSender


EngineBackendType = Literal["wit", "stub"]
WeatherBackendType = Literal["wttr", "stub"]

DEFAULT_BOT_ACTIONS = ("send", "getForecast", "howzyou", "what-to-read")


class ConfigurationError(Exception):
    """Required configuration missing or invalid."""
    pass


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _actions(value: str) -> Tuple[str, ...]:
    return tuple(name.strip() for name in value.split(",") if name.strip())


@dataclass
class InfraConfig:
    """Infrastructure configuration from environment."""

    # Messenger
    fb_page_token: str
    fb_app_secret: str
    fb_verify_token: str
    graph_api_url: str = DEFAULT_SEND_API_URL
    require_signature: bool = False

    # Decision engine
    engine_backend: EngineBackendType = "wit"
    wit_token: str = ""
    wit_api_url: str = "https://api.wit.ai"
    wit_api_version: str = "20160526"

    # Weather
    weather_backend: WeatherBackendType = "wttr"
    weather_api_url: str = "https://wttr.in"

    # Dispatch
    dispatch_max_steps: int = 5
    action_timeout_s: float = 15.0
    http_timeout_s: float = 10.0
    serialize_turns: bool = True
    bot_actions: Tuple[str, ...] = field(default=DEFAULT_BOT_ACTIONS)

    @classmethod
    def from_env(cls) -> "InfraConfig":
        """
        Load configuration from environment variables.

        Numeric values that fail to parse raise ConfigurationError.
        """
        try:
            max_steps = int(os.getenv("DISPATCH_MAX_STEPS", "5"))
            action_timeout = float(os.getenv("ACTION_TIMEOUT_S", "15"))
            http_timeout = float(os.getenv("HTTP_TIMEOUT_S", "10"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e

        return cls(
            # Messenger
            fb_page_token=os.getenv("FB_PAGE_TOKEN", ""),
            fb_app_secret=os.getenv("FB_APP_SECRET", ""),
            fb_verify_token=os.getenv("FB_VERIFY_TOKEN", ""),
            graph_api_url=os.getenv("GRAPH_API_URL", DEFAULT_SEND_API_URL),
            require_signature=_flag("REQUIRE_SIGNATURE"),

            # Decision engine
            engine_backend=os.getenv("ENGINE_BACKEND", "wit"),  # type: ignore
            wit_token=os.getenv("WIT_TOKEN", ""),
            wit_api_url=os.getenv("WIT_API_URL", "https://api.wit.ai"),
            wit_api_version=os.getenv("WIT_API_VERSION", "20160526"),

            # Weather
            weather_backend=os.getenv("WEATHER_BACKEND", "wttr"),  # type: ignore
            weather_api_url=os.getenv("WEATHER_API_URL", "https://wttr.in"),

            # Dispatch
            dispatch_max_steps=max_steps,
            action_timeout_s=action_timeout,
            http_timeout_s=http_timeout,
            serialize_turns=_flag("SERIALIZE_TURNS", "true"),
            bot_actions=_actions(os.getenv("BOT_ACTIONS", ",".join(DEFAULT_BOT_ACTIONS))),
        )

    def missing(self) -> List[str]:
        """Names of required environment variables that are not set."""
        required = {
            "FB_PAGE_TOKEN": self.fb_page_token,
            "FB_APP_SECRET": self.fb_app_secret,
            "FB_VERIFY_TOKEN": self.fb_verify_token,
        }
        if self.engine_backend == "wit":
            required["WIT_TOKEN"] = self.wit_token
        return [name for name, value in required.items() if not value]

    def validate(self) -> "InfraConfig":
        """
        Raise ConfigurationError unless the configuration can start the bot.
        """
        missing = self.missing()
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )
        if self.engine_backend not in ("wit", "stub"):
            raise ConfigurationError(f"Unknown ENGINE_BACKEND: {self.engine_backend}")
        if self.weather_backend not in ("wttr", "stub"):
            raise ConfigurationError(f"Unknown WEATHER_BACKEND: {self.weather_backend}")
        if self.dispatch_max_steps < 1:
            raise ConfigurationError("DISPATCH_MAX_STEPS must be at least 1")
        return self

    def create_decision_engine(self) -> DecisionEngine:
        """Create decision engine instance based on configuration."""
        if self.engine_backend == "stub":
            return StubDecisionEngine()
        return WitDecisionEngine(
            access_token=self.wit_token,
            base_url=self.wit_api_url,
            api_version=self.wit_api_version,
            timeout_s=self.http_timeout_s,
        )

    def create_weather_backend(self) -> WeatherBackend:
        """Create weather backend instance based on configuration."""
        if self.weather_backend == "stub":
            return StubWeatherBackend()
        return WttrWeatherBackend(
            base_url=self.weather_api_url,
            timeout_s=min(self.http_timeout_s, self.action_timeout_s),
        )

    def create_sender(self) -> MessengerSender:
        """Create the outbound Send API client."""
        return MessengerSender(
            page_token=self.fb_page_token,
            api_url=self.graph_api_url,
            timeout_s=self.http_timeout_s,
        )


def get_config() -> InfraConfig:
    """Load and validate infrastructure configuration."""
    return InfraConfig.from_env().validate()
