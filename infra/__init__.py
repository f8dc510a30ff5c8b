"""Infrastructure configuration and bootstrap."""

from .config import ConfigurationError, InfraConfig, get_config
from .bootstrap import InfraBootstrap, bootstrap_infrastructure

__all__ = [
    "ConfigurationError",
    "InfraConfig",
    "get_config",
    "InfraBootstrap",
    "bootstrap_infrastructure",
]
