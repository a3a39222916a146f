"""
Main configuration class that composes all configs.
"""

import os

from dotenv import load_dotenv

from codeguard.core.config.engine_config import EngineConfig
from codeguard.core.config.logging_config import LoggingConfig

# Load environment variables from a .env file
load_dotenv()

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
VALID_LOG_FORMATS = {"console", "json"}


def _optional_float(value: str | None) -> float | None:
    if value is None or value.strip() == "":
        return None
    return float(value)


class Config:
    """Main configuration class."""

    def __init__(self) -> None:
        self.engine = EngineConfig(
            rules_dir=os.getenv("CODEGUARD_RULES_DIR") or None,
            max_concurrency=int(os.getenv("CODEGUARD_MAX_CONCURRENCY", "4")),
            evaluation_timeout=_optional_float(os.getenv("CODEGUARD_EVALUATION_TIMEOUT")),
            strict_load=os.getenv("CODEGUARD_STRICT_LOAD", "false").lower() == "true",
        )

        self.logging = LoggingConfig(
            level=os.getenv("LOG_LEVEL", "INFO").upper(),
            format=os.getenv("LOG_FORMAT", "console").lower(),
        )

        # Development settings
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

    def validate(self) -> bool:
        """Validate configuration."""
        errors = []

        if self.engine.max_concurrency < 1:
            errors.append("CODEGUARD_MAX_CONCURRENCY must be at least 1")

        if self.engine.evaluation_timeout is not None and self.engine.evaluation_timeout <= 0:
            errors.append("CODEGUARD_EVALUATION_TIMEOUT must be positive")

        if self.engine.rules_dir and not os.path.isdir(self.engine.rules_dir):
            errors.append(f"CODEGUARD_RULES_DIR does not exist: {self.engine.rules_dir}")

        if self.logging.level not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {sorted(VALID_LOG_LEVELS)}")

        if self.logging.format not in VALID_LOG_FORMATS:
            errors.append(f"LOG_FORMAT must be one of {sorted(VALID_LOG_FORMATS)}")

        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

        return True


# Global config instance
config = Config()
