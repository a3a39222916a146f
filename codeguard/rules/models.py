from enum import StrEnum
from pathlib import PurePath
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from codeguard.core.models import COMPLETE_STATE, INITIAL_STATE, RuleCategory, Severity


class TransitionEvent(StrEnum):
    """Symbolic events a transition can wait for."""

    KEYWORD_MATCH = "keyword_match"
    PATTERN_FOUND = "pattern_found"
    NO_PATTERN_FOUND = "no_pattern_found"
    ANTI_PATTERN_FOUND = "anti_pattern_found"
    CONTENT_PRESENT = "content_present"
    ALWAYS = "always"


class LogicalOperator(StrEnum):
    AND = "AND"
    OR = "OR"
    NOT = "NOT"


class RuleSource(BaseModel):
    """One rule document as read from disk or memory, before parsing."""

    model_config = ConfigDict(frozen=True)

    identity: str
    content: str
    format: str = "yaml"  # "yaml" or "markdown"

    @property
    def default_id(self) -> str:
        """Rule id used when the document does not declare one (the file stem)."""
        return PurePath(self.identity).stem

    @classmethod
    def from_text(cls, identity: str, content: str) -> "RuleSource":
        suffix = PurePath(identity).suffix.lower()
        fmt = "markdown" if suffix in (".md", ".mdc", ".markdown") else "yaml"
        return cls(identity=identity, content=content, format=fmt)


class PatternTrigger(BaseModel):
    """A named regular expression trigger."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(min_length=1)
    regex: str = Field(min_length=1)
    flags: tuple[str, ...] = ("multiline",)
    description: str = ""


class RuleTriggers(BaseModel):
    """Keyword, regex and anti-pattern triggers of a rule."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    keywords: tuple[str, ...] = ()
    patterns: tuple[PatternTrigger, ...] = ()
    anti_patterns: tuple[str, ...] = ()

    @field_validator("patterns", mode="before")
    @classmethod
    def _name_bare_patterns(cls, value: Any) -> Any:
        # Bare strings are accepted and named by position
        if isinstance(value, list | tuple):
            return [
                {"name": f"pattern_{index + 1}", "regex": item} if isinstance(item, str) else item
                for index, item in enumerate(value)
            ]
        return value

    @property
    def lowered_keywords(self) -> tuple[str, ...]:
        return tuple(keyword.lower() for keyword in self.keywords)

    @property
    def pattern_names(self) -> tuple[str, ...]:
        return tuple(pattern.name for pattern in self.patterns)


class RuleCondition(BaseModel):
    """A named predicate, or a logical combination of nested conditions.

    Supported shapes:
    - Simple: {"type": "nesting_depth_exceeds", "parameters": {"depth": 2}}
    - NOT: {"operator": "NOT", "condition": {...}}
    - AND/OR: {"operator": "AND", "conditions": [...]}
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    operator: LogicalOperator | None = None
    conditions: tuple["RuleCondition", ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"type": data}
        if isinstance(data, dict):
            data = dict(data)
            if isinstance(data.get("operator"), str):
                data["operator"] = data["operator"].upper()
            if "condition" in data and "conditions" not in data:
                data["conditions"] = [data.pop("condition")]
        return data

    @model_validator(mode="after")
    def _check_shape(self) -> "RuleCondition":
        if self.operator is None:
            if not self.type:
                raise ValueError("Simple condition requires a 'type'")
        elif self.operator == LogicalOperator.NOT:
            if len(self.conditions) != 1:
                raise ValueError("NOT operator requires a single condition")
        elif not self.conditions:
            raise ValueError(f"{self.operator} operator requires at least one condition")
        return self

    def iter_simple(self) -> list["RuleCondition"]:
        """Flatten the expression into its simple (typed) conditions."""
        if self.operator is None:
            return [self]
        found: list[RuleCondition] = []
        for condition in self.conditions:
            found.extend(condition.iter_simple())
        return found


RuleCondition.model_rebuild()


class Transition(BaseModel):
    """A single edge of a rule's state machine."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    from_state: str = Field(alias="from")
    to_state: str = Field(alias="to")
    event: TransitionEvent = TransitionEvent.ALWAYS
    condition: RuleCondition | None = None


class RuleAction(BaseModel):
    """Represents an action executed when a state is entered."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str
    parameters: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _from_identifier(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"type": data}
        return data


class RuleExample(BaseModel):
    """A bad/good text pair illustrating the rule."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    bad: str = ""
    good: str = ""
    description: str = ""


class RuleDefinition(BaseModel):
    """Immutable, parsed representation of one rule."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    severity: Severity = Severity.MEDIUM
    category: RuleCategory = RuleCategory.GENERAL
    states: tuple[str, ...] = Field(min_length=1)
    terminal_states: tuple[str, ...] = ()
    triggers: RuleTriggers = Field(default_factory=RuleTriggers)
    transitions: tuple[Transition, ...] = ()
    actions: dict[str, tuple[RuleAction, ...]] = Field(default_factory=dict)
    guidance: str | None = None
    examples: tuple[RuleExample, ...] = ()
    source: str = ""

    @field_validator("severity", "category", mode="before")
    @classmethod
    def _lower_enum_values(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("examples", mode="before")
    @classmethod
    def _listify_examples(cls, value: Any) -> Any:
        return [value] if isinstance(value, dict) else value

    @field_validator("actions", mode="before")
    @classmethod
    def _listify_actions(cls, value: Any) -> Any:
        # A single action per state may be written without a list
        if isinstance(value, dict):
            return {
                state: items if isinstance(items, list | tuple) else ([] if items is None else [items])
                for state, items in value.items()
            }
        return value

    @property
    def terminal_set(self) -> frozenset[str]:
        """``complete`` plus every declared extra terminal state."""
        return frozenset((COMPLETE_STATE, *self.terminal_states))

    @property
    def initial_state(self) -> str:
        return INITIAL_STATE

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_set

    def transitions_from(self, state: str) -> tuple[Transition, ...]:
        """Transitions leaving ``state``, in declaration order."""
        return tuple(transition for transition in self.transitions if transition.from_state == state)

    def actions_for(self, state: str) -> tuple[RuleAction, ...]:
        return self.actions.get(state, ())

    def guidance_template(self) -> str | None:
        """The declared guidance, else the message of the constraint or analysis actions."""
        if self.guidance:
            return self.guidance
        for state in ("constraint", "analysis"):
            messages = [
                str(action.parameters["message"]) for action in self.actions_for(state) if "message" in action.parameters
            ]
            if messages:
                return "\n".join(messages)
        return None
