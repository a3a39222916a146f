"""Capture conditions for transition predicates.

This module contains conditions over the groups captured by regex triggers.
"""

import re
from typing import Any

from codeguard.core.utils.patterns import check_pattern_safety, compile_pattern
from codeguard.rules.conditions.base import BaseCondition
from codeguard.rules.evidence import MatchEvidence


class _CaptureCondition(BaseCondition):
    def validate_parameters(
        self,
        parameters: dict[str, Any],
        pattern_names: tuple[str, ...],
        feature_names: frozenset[str],
    ) -> list[str]:
        problems = super().validate_parameters(parameters, pattern_names, feature_names)
        group = parameters.get("group", 1)
        if isinstance(group, bool) or not isinstance(group, int | str):
            problems.append(f"parameter 'group' must be a group number or name, got {group!r}")
        elif isinstance(group, int) and group < 0:
            problems.append("parameter 'group' must not be negative")
        return problems


class CaptureMatchesCondition(_CaptureCondition):
    """Holds when any captured value of a pattern matches a second regex."""

    name = "capture_matches"
    description = "A value captured by a pattern matches a regular expression"
    parameter_patterns = ["pattern", "regex", "group"]
    required_parameters = ["pattern", "regex"]
    examples = [{"pattern": "sql_call", "regex": r"\+|%|\.format|f\"", "group": 1}]

    def validate_parameters(
        self,
        parameters: dict[str, Any],
        pattern_names: tuple[str, ...],
        feature_names: frozenset[str],
    ) -> list[str]:
        problems = super().validate_parameters(parameters, pattern_names, feature_names)
        regex = parameters.get("regex")
        if regex is None:
            return problems
        if not isinstance(regex, str):
            return [*problems, f"parameter 'regex' must be a string, got {regex!r}"]
        try:
            compile_pattern(regex)
        except re.error as e:
            return [*problems, f"invalid regex '{regex}': {e}"]
        problem = check_pattern_safety(regex)
        if problem:
            problems.append(f"regex '{regex}': {problem}")
        return problems

    def evaluate(self, evidence: MatchEvidence, parameters: dict[str, Any]) -> bool:
        compiled = compile_pattern(parameters["regex"])
        values = evidence.captures(parameters["pattern"], parameters.get("group", 1))
        return any(compiled.search(value) for value in values)


class DistinctCapturesAtLeastCondition(_CaptureCondition):
    """Holds when a pattern captured at least N distinct values."""

    name = "distinct_captures_at_least"
    description = "A pattern captured at least a number of distinct values"
    parameter_patterns = ["pattern", "count", "group"]
    required_parameters = ["pattern", "count"]
    numeric_parameters = ["count"]
    examples = [{"pattern": "method_signature", "count": 8}]

    def evaluate(self, evidence: MatchEvidence, parameters: dict[str, Any]) -> bool:
        return len(evidence.captures(parameters["pattern"], parameters.get("group", 1))) >= parameters["count"]
