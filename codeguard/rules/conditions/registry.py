"""
Registry for condition predicates.

This module maps the condition names used in rule documents to their
condition classes, enabling rule transitions to reference predicates by name.
"""

from typing import Any

from codeguard.rules.conditions.base import BaseCondition
from codeguard.rules.conditions.captures import CaptureMatchesCondition, DistinctCapturesAtLeastCondition
from codeguard.rules.conditions.counts import (
    AlwaysCondition,
    AntiPatternPresentCondition,
    KeywordCountAtLeastCondition,
    MatchCountAtLeastCondition,
    MatchCountAtMostCondition,
)
from codeguard.rules.conditions.features import (
    FeatureAtMostCondition,
    FeatureExceedsCondition,
    LineCountExceedsCondition,
    NestingDepthExceedsCondition,
)

# List of all available condition classes
AVAILABLE_CONDITIONS: list[type[BaseCondition]] = [
    AlwaysCondition,
    MatchCountAtLeastCondition,
    MatchCountAtMostCondition,
    KeywordCountAtLeastCondition,
    AntiPatternPresentCondition,
    FeatureExceedsCondition,
    FeatureAtMostCondition,
    NestingDepthExceedsCondition,
    LineCountExceedsCondition,
    CaptureMatchesCondition,
    DistinctCapturesAtLeastCondition,
]

# Map condition name to a shared instance; conditions hold no state
CONDITION_REGISTRY: dict[str, BaseCondition] = {cls.name: cls() for cls in AVAILABLE_CONDITIONS}


class ConditionRegistry:
    """Registry for looking up condition predicates by name."""

    @staticmethod
    def get(name: str) -> BaseCondition | None:
        """Get a condition by the name used in rule documents."""
        return CONDITION_REGISTRY.get(name)

    @staticmethod
    def names() -> list[str]:
        return sorted(CONDITION_REGISTRY)

    @staticmethod
    def describe_all() -> list[dict[str, Any]]:
        """Descriptions of every registered condition, sorted by name."""
        return [CONDITION_REGISTRY[name].get_description() for name in sorted(CONDITION_REGISTRY)]
