"""
Engine configuration.
"""

from dataclasses import dataclass


@dataclass
class EngineConfig:
    """Rule engine configuration."""

    rules_dir: str | None = None  # None selects the bundled rule library
    max_concurrency: int = 4
    evaluation_timeout: float | None = None  # Seconds; None waits for every rule
    strict_load: bool = False  # Treat any rule load error as fatal
