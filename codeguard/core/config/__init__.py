"""
Configuration package - unified access point.

This package provides all configuration classes and the global config instance.
"""

from codeguard.core.config.engine_config import EngineConfig
from codeguard.core.config.logging_config import LoggingConfig
from codeguard.core.config.settings import Config, config

__all__ = [
    "Config",
    "EngineConfig",
    "LoggingConfig",
    "config",
]
