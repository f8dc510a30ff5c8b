"""
Weather service exports.

Clean interface for actions to import weather components.
"""

from .base import ExternalDataError, WeatherBackend
from .stub import StubWeatherBackend
from .wttr import WttrWeatherBackend

__all__ = [
    "ExternalDataError",
    "WeatherBackend",
    "StubWeatherBackend",
    "WttrWeatherBackend",
]
