"""
Weather lookup abstract interface.

Role: location name -> short forecast text.

Rules:
- No session or context access
- Each backend carries its own timeout budget
- Failures raise ExternalDataError; callers fall back to a default
"""

from abc import ABC, abstractmethod
from typing import Optional


class ExternalDataError(Exception):
    """An external data lookup failed."""
    pass


class WeatherBackend(ABC):
    """
    Abstract weather boundary.
    Actions must depend ONLY on this interface.
    """

    @abstractmethod
    async def get_forecast(self, location: str) -> Optional[str]:
        """
        Look up the current forecast for a location.

        Args:
            location: Free-form place name as extracted from the user's text

        Returns:
            Forecast text, or None when the provider has nothing for the place

        Raises:
            ExternalDataError: provider unreachable or response unusable
        """
        raise NotImplementedError
