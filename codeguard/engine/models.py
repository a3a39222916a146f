from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from codeguard.core.models import INITIAL_STATE


class RuleOutcome(BaseModel):
    """The result of evaluating one rule against one request."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    fired: bool = False
    final_state: str = INITIAL_STATE
    state_path: tuple[str, ...] = (INITIAL_STATE,)
    guidance_text: str | None = None
    actions: tuple[str, ...] = ()  # "state:action" in execution order
    severity: str | None = None
    diagnostic: str | None = None  # Internal error absorbed for this rule
    evaluated: bool = True  # False for placeholders of rules never run

    @classmethod
    def not_fired(cls, rule_id: str, diagnostic: str | None = None, evaluated: bool = True) -> "RuleOutcome":
        """An idle, not-fired outcome, used for isolated failures and cancellation placeholders."""
        return cls(rule_id=rule_id, diagnostic=diagnostic, evaluated=evaluated)

    def to_dict(self) -> dict[str, Any]:
        """Serialize in the shape consumed by AI-integration layers."""
        data: dict[str, Any] = {
            "rule_id": self.rule_id,
            "fired": self.fired,
            "final_state": self.final_state,
            "state_path": list(self.state_path),
        }
        if self.guidance_text is not None:
            data["guidance_text"] = self.guidance_text
        if self.diagnostic is not None:
            data["diagnostic"] = self.diagnostic
        return data


class EvaluationResult(BaseModel):
    """Aggregated outcomes of one request, ordered by rule id."""

    model_config = ConfigDict(frozen=True)

    outcomes: tuple[RuleOutcome, ...] = ()
    any_fired: bool = False
    cancelled: bool = False
    diagnostics: tuple[str, ...] = Field(default_factory=tuple)

    @classmethod
    def from_outcomes(
        cls, outcomes: list[RuleOutcome], cancelled: bool = False, diagnostics: list[str] | None = None
    ) -> "EvaluationResult":
        ordered = tuple(sorted(outcomes, key=lambda outcome: outcome.rule_id))
        return cls(
            outcomes=ordered,
            any_fired=any(outcome.fired for outcome in ordered),
            cancelled=cancelled,
            diagnostics=tuple(diagnostics or ()),
        )

    @property
    def fired(self) -> list[RuleOutcome]:
        return [outcome for outcome in self.outcomes if outcome.fired]

    def get(self, rule_id: str) -> RuleOutcome | None:
        return next((outcome for outcome in self.outcomes if outcome.rule_id == rule_id), None)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "any_fired": self.any_fired,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }
        if self.cancelled:
            data["cancelled"] = True
        if self.diagnostics:
            data["diagnostics"] = list(self.diagnostics)
        return data
