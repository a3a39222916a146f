"""codeguard: a rule engine that constrains AI code generation."""

from codeguard.engine import EvaluationResult, RuleEngine, RuleOutcome
from codeguard.rules import RuleRegistry

__version__ = "0.1.0"

__all__ = [
    "EvaluationResult",
    "RuleEngine",
    "RuleOutcome",
    "RuleRegistry",
    "__version__",
]
