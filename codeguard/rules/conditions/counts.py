"""Count conditions for transition predicates.

This module contains conditions over how many triggers fired: regex match
counts, keyword counts and anti-pattern presence.
"""

from typing import Any

from codeguard.rules.conditions.base import BaseCondition
from codeguard.rules.evidence import MatchEvidence


class AlwaysCondition(BaseCondition):
    """Holds unconditionally."""

    name = "always"
    description = "Always true; useful as an explicit placeholder"

    def evaluate(self, evidence: MatchEvidence, parameters: dict[str, Any]) -> bool:
        return True


class MatchCountAtLeastCondition(BaseCondition):
    """Holds when a pattern (or all patterns together) matched at least N times."""

    name = "match_count_at_least"
    description = "Regex matches of one pattern, or of all patterns, reach a minimum count"
    parameter_patterns = ["count", "pattern"]
    required_parameters = ["count"]
    numeric_parameters = ["count"]
    examples = [{"pattern": "method_signature", "count": 8}, {"count": 1}]

    def evaluate(self, evidence: MatchEvidence, parameters: dict[str, Any]) -> bool:
        return evidence.match_count(parameters.get("pattern")) >= parameters["count"]


class MatchCountAtMostCondition(BaseCondition):
    """Holds when a pattern (or all patterns together) matched at most N times."""

    name = "match_count_at_most"
    description = "Regex matches of one pattern, or of all patterns, stay under a maximum count"
    parameter_patterns = ["count", "pattern"]
    required_parameters = ["count"]
    numeric_parameters = ["count"]
    examples = [{"pattern": "await_call", "count": 0}]

    def evaluate(self, evidence: MatchEvidence, parameters: dict[str, Any]) -> bool:
        return evidence.match_count(parameters.get("pattern")) <= parameters["count"]


class KeywordCountAtLeastCondition(BaseCondition):
    """Holds when at least N distinct keywords appear in the request text."""

    name = "keyword_count_at_least"
    description = "Distinct keyword hits in the request reach a minimum count"
    parameter_patterns = ["count"]
    required_parameters = ["count"]
    numeric_parameters = ["count"]
    examples = [{"count": 2}]

    def evaluate(self, evidence: MatchEvidence, parameters: dict[str, Any]) -> bool:
        return len(evidence.keyword_hits) >= parameters["count"]


class AntiPatternPresentCondition(BaseCondition):
    """Holds when the input already names the problem the rule targets."""

    name = "anti_pattern_present"
    description = "At least one anti-pattern phrase appears in the request or content"

    def evaluate(self, evidence: MatchEvidence, parameters: dict[str, Any]) -> bool:
        return evidence.has_anti_pattern_hit
