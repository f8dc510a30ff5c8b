"""
Stub weather backend for testing and offline development.

Deterministic, fast, and never touches the network.
"""

from typing import Dict, Optional

from .base import WeatherBackend

_DEFAULT_FORECASTS = {
    "paris": "cloudy",
    "london": "rainy",
    "madrid": "sunny",
}


class StubWeatherBackend(WeatherBackend):
    """Deterministic fake weather keyed by lower-cased location."""

    def __init__(self, forecasts: Optional[Dict[str, str]] = None, default: Optional[str] = "sunny"):
        self.forecasts = {k.lower(): v for k, v in (forecasts or _DEFAULT_FORECASTS).items()}
        self.default = default
        self.calls = []

    async def get_forecast(self, location: str) -> Optional[str]:
        self.calls.append(location)
        return self.forecasts.get(location.strip().lower(), self.default)
