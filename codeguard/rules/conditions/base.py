"""Base condition interface for transition predicates.

This module defines the abstract base class that all conditions must implement.
"""

from abc import ABC, abstractmethod
from numbers import Real
from typing import Any

from codeguard.rules.evidence import MatchEvidence


class BaseCondition(ABC):
    """Abstract base class for all named condition predicates.

    Conditions are pure: they read MatchEvidence and their parameters and
    return a boolean, never mutating either.

    Attributes:
        name: Unique identifier used by rule documents.
        description: Human-readable description of what the condition checks.
        parameter_patterns: Parameter keys this condition understands.
        required_parameters: Parameter keys that must be present.
        numeric_parameters: Parameter keys whose values must be numbers.
        examples: Example parameter configurations for documentation.
    """

    name: str = ""
    description: str = ""
    parameter_patterns: list[str] = []
    required_parameters: list[str] = []
    numeric_parameters: list[str] = []
    examples: list[dict[str, Any]] = []

    @abstractmethod
    def evaluate(self, evidence: MatchEvidence, parameters: dict[str, Any]) -> bool:
        """Evaluate the condition against match evidence.

        Args:
            evidence: Evidence produced by the pattern matcher.
            parameters: The parameters declared in the rule document.

        Returns:
            True if the condition holds.
        """
        pass

    def validate_parameters(
        self,
        parameters: dict[str, Any],
        pattern_names: tuple[str, ...],
        feature_names: frozenset[str],
    ) -> list[str]:
        """Check parameters at load time.

        Args:
            parameters: The parameters declared in the rule document.
            pattern_names: Names of the rule's regex triggers.
            feature_names: Feature names the matcher will compute for the rule.

        Returns:
            A list of problems, empty when the parameters are valid.
        """
        problems = [f"missing parameter '{key}'" for key in self.required_parameters if key not in parameters]

        for key in self.numeric_parameters:
            value = parameters.get(key)
            if key in parameters and (isinstance(value, bool) or not isinstance(value, Real)):
                problems.append(f"parameter '{key}' must be a number, got {value!r}")

        pattern = parameters.get("pattern")
        if pattern is not None and pattern not in pattern_names:
            problems.append(f"unknown pattern '{pattern}'")

        return problems

    def get_description(self) -> dict[str, Any]:
        """Get condition description for documentation and listings."""
        return {
            "name": self.name,
            "description": self.description,
            "parameter_patterns": self.parameter_patterns,
            "examples": self.examples,
        }
