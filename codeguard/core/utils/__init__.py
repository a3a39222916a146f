"""
Shared utilities for logging and regex handling.
"""

from codeguard.core.utils.logging import configure_logging, log_function_call, log_operation
from codeguard.core.utils.patterns import check_pattern_safety, compile_pattern, resolve_flags

__all__ = [
    "check_pattern_safety",
    "compile_pattern",
    "configure_logging",
    "log_function_call",
    "log_operation",
    "resolve_flags",
]
