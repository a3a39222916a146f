from enum import StrEnum


class Severity(StrEnum):
    """Enumerates the severity levels of a rule."""

    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RuleCategory(StrEnum):
    """Broad grouping of the anti-pattern a rule targets."""

    ARCHITECTURE = "architecture"
    COMPLEXITY = "complexity"
    SECURITY = "security"
    PERFORMANCE = "performance"
    CONCURRENCY = "concurrency"
    MAINTAINABILITY = "maintainability"
    TESTING = "testing"
    GENERAL = "general"


# States every rule machine must declare
INITIAL_STATE = "idle"
COMPLETE_STATE = "complete"
