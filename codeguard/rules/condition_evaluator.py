"""
Condition evaluator for transition predicates with boolean logic (AND/OR/NOT).

Supports nested conditions with AND, OR, and NOT operators.
"""

import structlog

from codeguard.rules.conditions.registry import ConditionRegistry
from codeguard.rules.evidence import MatchEvidence
from codeguard.rules.models import LogicalOperator, RuleCondition

logger = structlog.get_logger(__name__)

# Features the matcher computes for every rule, independent of its patterns
BASE_FEATURES = frozenset(
    {
        "keyword_count",
        "content_keyword_count",
        "anti_pattern_count",
        "match_count",
        "line_count",
        "nesting_depth",
        "has_content",
    }
)


def feature_names_for(pattern_names: tuple[str, ...]) -> frozenset[str]:
    """Every feature name the matcher computes for a rule with these patterns."""
    return BASE_FEATURES | {f"{name}_count" for name in pattern_names}


class ConditionEvaluator:
    """
    Evaluates condition expressions against match evidence.

    Handles:
    - Simple conditions using registered predicates
    - AND/OR/NOT logical operators
    - Nested condition expressions

    Errors raised by a predicate propagate to the caller, which decides how to
    isolate them.
    """

    def evaluate(self, condition: RuleCondition | None, evidence: MatchEvidence) -> bool:
        """
        Evaluate a condition expression.

        Args:
            condition: Condition expression; None always holds.
            evidence: Evidence to evaluate against.

        Returns:
            True if the condition holds.
        """
        if condition is None:
            return True

        if condition.operator is None:
            return self._evaluate_simple_condition(condition, evidence)

        if condition.operator == LogicalOperator.NOT:
            return not self.evaluate(condition.conditions[0], evidence)

        if condition.operator == LogicalOperator.AND:
            # Short-circuit: if any is False, AND is False
            return all(self.evaluate(sub, evidence) for sub in condition.conditions)

        if condition.operator == LogicalOperator.OR:
            # Short-circuit: if any is True, OR is True
            return any(self.evaluate(sub, evidence) for sub in condition.conditions)

        raise ValueError(f"Unknown operator: {condition.operator}")

    def _evaluate_simple_condition(self, condition: RuleCondition, evidence: MatchEvidence) -> bool:
        predicate = ConditionRegistry.get(condition.type or "")
        if predicate is None:
            raise ValueError(f"Unknown condition type: {condition.type}")

        result = predicate.evaluate(evidence, condition.parameters)
        logger.debug("condition_evaluated", condition=condition.type, result=result, parameters=condition.parameters)
        return bool(result)

    def validate(self, condition: RuleCondition | None, pattern_names: tuple[str, ...]) -> list[str]:
        """
        Check that every simple condition names a registered predicate with valid parameters.

        Args:
            condition: Condition expression to check.
            pattern_names: Names of the rule's regex triggers.

        Returns:
            A list of problems, empty when the expression is valid.
        """
        if condition is None:
            return []

        feature_names = feature_names_for(pattern_names)
        problems: list[str] = []
        for simple in condition.iter_simple():
            predicate = ConditionRegistry.get(simple.type or "")
            if predicate is None:
                problems.append(f"unknown condition type '{simple.type}'")
                continue
            for problem in predicate.validate_parameters(simple.parameters, pattern_names, feature_names):
                problems.append(f"{simple.type}: {problem}")
        return problems
