"""
wttr.in weather backend.

Uses the JSON format (?format=j1) and reads the current condition
description. No API key required.
"""

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from .base import ExternalDataError, WeatherBackend

logger = logging.getLogger(__name__)


class WttrWeatherBackend(WeatherBackend):
    """Current-condition lookup against wttr.in."""

    def __init__(self, base_url: str = "https://wttr.in", timeout_s: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    async def get_forecast(self, location: str) -> Optional[str]:
        url = f"{self.base_url}/{quote(location.strip())}"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    url,
                    params={"format": "j1"},
                    timeout=self.timeout_s,
                )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise ExternalDataError(f"Weather lookup timed out for {location!r}") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.info(f"No weather known for {location!r}")
                return None
            raise ExternalDataError(
                f"Weather provider returned {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise ExternalDataError(f"Weather request failed: {e}") from e
        except ValueError as e:
            raise ExternalDataError(f"Weather provider returned invalid JSON: {e}") from e

        try:
            condition = data["current_condition"][0]
            description = condition["weatherDesc"][0]["value"]
        except (KeyError, IndexError, TypeError):
            logger.warning(f"Unexpected weather payload for {location!r}")
            return None

        description = (description or "").strip()
        return description.lower() or None
