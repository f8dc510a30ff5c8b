import logging
from typing import Any, Dict, Optional

import httpx

from .base import DecisionEngine
from .types import DecisionEngineError, EngineStep

logger = logging.getLogger(__name__)

_STEP_TYPES = ("action", "msg", "stop")


class WitDecisionEngine(DecisionEngine):
    """
    Wit.ai converse backend.

    Each call POSTs the current context to /converse. The user text is only
    sent on the first call of a turn, which is how the engine tells a new
    message apart from a follow-up after an action ran.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = "https://api.wit.ai",
        api_version: str = "20160526",
        timeout_s: float = 10.0,
    ):
        """
        Initialize Wit backend.

        Args:
            access_token: Wit server access token
            base_url: Base URL of the Wit API
            api_version: Value of the v= query parameter
            timeout_s: Per-request timeout budget
        """
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.timeout_s = timeout_s

    async def converse(
        self,
        session_id: str,
        text: Optional[str],
        context: Dict[str, Any],
    ) -> EngineStep:
        params = {"v": self.api_version, "session_id": session_id}
        if text is not None:
            params["q"] = text

        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    f"{self.base_url}/converse",
                    params=params,
                    json=context,
                    headers=headers,
                    timeout=self.timeout_s,
                )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise DecisionEngineError(f"Wit request timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise DecisionEngineError(
                f"Wit returned {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise DecisionEngineError(f"Wit request failed: {e}") from e
        except ValueError as e:
            raise DecisionEngineError(f"Wit returned invalid JSON: {e}") from e

        return self.parse_step(data)

    @staticmethod
    def parse_step(data: Any) -> EngineStep:
        """Convert a /converse response body into an EngineStep."""
        if not isinstance(data, dict):
            raise DecisionEngineError("Wit response is not an object")

        step_type = data.get("type")
        if step_type == "error":
            raise DecisionEngineError(f"Wit error: {data.get('error', 'unknown')}")
        if step_type not in _STEP_TYPES:
            raise DecisionEngineError(f"Unknown Wit step type: {step_type!r}")

        entities = data.get("entities") or {}
        if not isinstance(entities, dict):
            entities = {}

        if step_type == "action" and not data.get("action"):
            raise DecisionEngineError("Wit action step without an action name")

        return EngineStep(
            type=step_type,
            action=data.get("action"),
            message=data.get("msg"),
            entities=entities,
            confidence=data.get("confidence"),
            metadata={"backend": "wit"},
        )
