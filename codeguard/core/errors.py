"""
Core error classes for the codeguard rule engine.
"""


class RuleEngineError(Exception):
    """Base class for all rule engine errors."""

    pass


class RuleLoadError(RuleEngineError):
    """Raised when a rule source cannot be turned into a rule definition.

    Load errors are local to one source: the registry collects them and keeps
    loading the remaining sources.
    """

    def __init__(self, message: str, source: str = "<unknown>", field: str | None = None) -> None:
        self.message = message
        self.source = source
        self.field = field
        location = f"{source}: {field}" if field else source
        super().__init__(f"{location}: {message}")

    def to_dict(self) -> dict[str, str | None]:
        return {
            "kind": type(self).__name__,
            "source": self.source,
            "field": self.field,
            "message": self.message,
        }


class ParseError(RuleLoadError):
    """Raised when a rule source cannot be decoded into the expected structure."""

    pass


class ValidationError(RuleLoadError):
    """Raised when a structurally valid rule violates a definition invariant."""

    pass


class CycleDetectedError(RuleEngineError):
    """Raised when a rule exceeds its transition step bound during one evaluation."""

    def __init__(self, rule_id: str, state_path: list[str], limit: int) -> None:
        self.rule_id = rule_id
        self.state_path = state_path
        self.limit = limit
        super().__init__(
            f"Rule '{rule_id}' exceeded {limit} transition steps (path: {' -> '.join(state_path)})"
        )


class EvaluationTimeout(RuleEngineError):
    """Raised when evaluation is cancelled before all candidate rules finished."""

    def __init__(self, completed: int, total: int, reason: str = "cancelled") -> None:
        self.completed = completed
        self.total = total
        self.reason = reason
        super().__init__(f"Evaluation {reason}: {completed} of {total} rules finished")
