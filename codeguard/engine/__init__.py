# Engine package

from codeguard.engine.models import EvaluationResult, RuleOutcome
from codeguard.engine.orchestrator import RuleEngine

__all__ = [
    "EvaluationResult",
    "RuleEngine",
    "RuleOutcome",
]
