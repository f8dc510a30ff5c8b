"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add project root to sys.path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from agent.session import Session  # noqa: E402
from inference import DecisionEngine, EngineStep  # noqa: E402
from infra.config import InfraConfig  # noqa: E402
from transport.messenger.schemas import SendResult  # noqa: E402
from transport.messenger.sender import TransportError  # noqa: E402

APP_SECRET = "test_app_secret"
VERIFY_TOKEN = "test_verify_token"


class RecordingSender:
    """Stands in for MessengerSender; records deliveries."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[tuple] = []

    async def send_text(self, recipient_id: str, text: str) -> SendResult:
        if self.fail:
            raise TransportError("delivery failed")
        self.sent.append((recipient_id, text))
        return SendResult(recipient_id=recipient_id, message_id=f"mid.{len(self.sent)}")


class ScriptedEngine(DecisionEngine):
    """Replays fixed steps, then stops. With repeat=True it never stops."""

    def __init__(self, steps: List[EngineStep], repeat: bool = False):
        self.steps = list(steps)
        self.repeat = repeat
        self.calls: List[tuple] = []

    async def converse(self, session_id: str, text: Optional[str], context: Dict[str, Any]) -> EngineStep:
        self.calls.append((session_id, text, dict(context)))
        if self.repeat:
            return self.steps[0]
        index = len(self.calls) - 1
        if index < len(self.steps):
            return self.steps[index]
        return EngineStep(type="stop")


def make_config(**overrides) -> InfraConfig:
    values = dict(
        fb_page_token="page-token",
        fb_app_secret=APP_SECRET,
        fb_verify_token=VERIFY_TOKEN,
        engine_backend="stub",
        weather_backend="stub",
    )
    values.update(overrides)
    return InfraConfig(**values)


def make_session(user_id: str = "user-1", context: Optional[Dict[str, Any]] = None) -> Session:
    return Session(session_id="session-1", user_id=user_id, context=dict(context or {}))


@pytest.fixture
def config() -> InfraConfig:
    return make_config()


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()
