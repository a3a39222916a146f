"""Feature conditions for transition predicates.

This module contains conditions over the numeric features derived by the
pattern matcher, such as nesting depth and line count.
"""

from typing import Any

import structlog

from codeguard.rules.conditions.base import BaseCondition
from codeguard.rules.evidence import MatchEvidence

logger = structlog.get_logger(__name__)


class _FeatureThresholdCondition(BaseCondition):
    """Shared load-time check that the referenced feature will exist."""

    feature_parameter = "feature"

    def validate_parameters(
        self,
        parameters: dict[str, Any],
        pattern_names: tuple[str, ...],
        feature_names: frozenset[str],
    ) -> list[str]:
        problems = super().validate_parameters(parameters, pattern_names, feature_names)
        feature = parameters.get(self.feature_parameter)
        if feature is not None and feature not in feature_names:
            problems.append(f"unknown feature '{feature}'")
        return problems


class FeatureExceedsCondition(_FeatureThresholdCondition):
    """Holds when a derived feature is strictly greater than a threshold."""

    name = "feature_exceeds"
    description = "A derived feature is greater than a threshold"
    parameter_patterns = ["feature", "threshold"]
    required_parameters = ["feature", "threshold"]
    numeric_parameters = ["threshold"]
    examples = [{"feature": "method_signature_count", "threshold": 7}]

    def evaluate(self, evidence: MatchEvidence, parameters: dict[str, Any]) -> bool:
        value = evidence.feature(parameters["feature"])
        logger.debug("feature_checked", feature=parameters["feature"], value=value, threshold=parameters["threshold"])
        return value > parameters["threshold"]


class FeatureAtMostCondition(_FeatureThresholdCondition):
    """Holds when a derived feature is at most a threshold."""

    name = "feature_at_most"
    description = "A derived feature is less than or equal to a threshold"
    parameter_patterns = ["feature", "threshold"]
    required_parameters = ["feature", "threshold"]
    numeric_parameters = ["threshold"]
    examples = [{"feature": "line_count", "threshold": 200}]

    def evaluate(self, evidence: MatchEvidence, parameters: dict[str, Any]) -> bool:
        return evidence.feature(parameters["feature"]) <= parameters["threshold"]


class NestingDepthExceedsCondition(BaseCondition):
    """Holds when the scanned text nests blocks deeper than allowed."""

    name = "nesting_depth_exceeds"
    description = "Block nesting depth of the scanned text is greater than a limit"
    parameter_patterns = ["depth"]
    required_parameters = ["depth"]
    numeric_parameters = ["depth"]
    examples = [{"depth": 2}, {"depth": 3}]

    def evaluate(self, evidence: MatchEvidence, parameters: dict[str, Any]) -> bool:
        return evidence.feature("nesting_depth") > parameters["depth"]


class LineCountExceedsCondition(BaseCondition):
    """Holds when the scanned text is longer than allowed."""

    name = "line_count_exceeds"
    description = "Line count of the scanned text is greater than a limit"
    parameter_patterns = ["lines"]
    required_parameters = ["lines"]
    numeric_parameters = ["lines"]
    examples = [{"lines": 300}]

    def evaluate(self, evidence: MatchEvidence, parameters: dict[str, Any]) -> bool:
        return evidence.feature("line_count") > parameters["lines"]
