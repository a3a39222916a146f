"""Conditions package for transition predicates.

Each module focuses on one family of predicates over MatchEvidence.
"""

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
from codeguard.rules.conditions.registry import CONDITION_REGISTRY, ConditionRegistry

__all__ = [
    # Base
    "BaseCondition",
    # Registry
    "CONDITION_REGISTRY",
    "ConditionRegistry",
    # Counts
    "AlwaysCondition",
    "AntiPatternPresentCondition",
    "KeywordCountAtLeastCondition",
    "MatchCountAtLeastCondition",
    "MatchCountAtMostCondition",
    # Features
    "FeatureAtMostCondition",
    "FeatureExceedsCondition",
    "LineCountExceedsCondition",
    "NestingDepthExceedsCondition",
    # Captures
    "CaptureMatchesCondition",
    "DistinctCapturesAtLeastCondition",
]
