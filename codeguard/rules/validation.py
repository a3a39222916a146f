"""
Rule definition validation.

Checks the invariants a structurally valid rule must satisfy before it is
accepted into a registry: state references, terminal states, regex safety,
condition names and guidance templates.
"""

import re

from codeguard.core.errors import ValidationError
from codeguard.core.models import COMPLETE_STATE, INITIAL_STATE
from codeguard.core.utils.patterns import check_pattern_safety, compile_pattern, resolve_flags
from codeguard.rules.condition_evaluator import BASE_FEATURES, ConditionEvaluator
from codeguard.rules.guidance import check_template
from codeguard.rules.models import RuleDefinition

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# Placeholder names a pattern must not shadow
RESERVED_NAMES = frozenset({"rule_id", "rule_name", "severity", "category", "keyword", "keywords", "anti_patterns"})

Problem = tuple[str, str]  # (field, message)


def _check_states(rule: RuleDefinition) -> list[Problem]:
    problems: list[Problem] = []
    states = set(rule.states)

    duplicates = sorted({state for state in rule.states if rule.states.count(state) > 1})
    if duplicates:
        problems.append(("states", f"duplicate states: {', '.join(duplicates)}"))
    if INITIAL_STATE not in states:
        problems.append(("states", f"missing initial state '{INITIAL_STATE}'"))
    if COMPLETE_STATE not in states:
        problems.append(("states", f"missing terminal state '{COMPLETE_STATE}'"))
    for state in rule.terminal_states:
        if state not in states:
            problems.append(("terminal_states", f"unknown state '{state}'"))
    if INITIAL_STATE in rule.terminal_states:
        problems.append(("terminal_states", f"initial state '{INITIAL_STATE}' cannot be terminal"))
    return problems


def _check_transitions(rule: RuleDefinition) -> list[Problem]:
    problems: list[Problem] = []
    states = set(rule.states)
    evaluator = ConditionEvaluator()
    pattern_names = rule.triggers.pattern_names

    for index, transition in enumerate(rule.transitions):
        field = f"transitions[{index}]"
        if transition.from_state not in states:
            problems.append((field, f"unknown from state '{transition.from_state}'"))
        if transition.to_state not in states:
            problems.append((field, f"unknown to state '{transition.to_state}'"))
        if transition.from_state in rule.terminal_set:
            problems.append((field, f"transition leaves terminal state '{transition.from_state}'"))
        for problem in evaluator.validate(transition.condition, pattern_names):
            problems.append((f"{field}.condition", problem))
    return problems


def _check_actions(rule: RuleDefinition) -> list[Problem]:
    states = set(rule.states)
    return [("actions", f"actions declared for unknown state '{state}'") for state in rule.actions if state not in states]


def _check_triggers(rule: RuleDefinition) -> list[Problem]:
    problems: list[Problem] = []

    for keyword in (*rule.triggers.keywords, *rule.triggers.anti_patterns):
        if not keyword.strip():
            problems.append(("triggers", "empty keyword or anti-pattern phrase"))

    seen: set[str] = set()
    for index, pattern in enumerate(rule.triggers.patterns):
        field = f"triggers.patterns[{index}]"
        if pattern.name in seen:
            problems.append((field, f"duplicate pattern name '{pattern.name}'"))
        seen.add(pattern.name)

        if not _IDENTIFIER.fullmatch(pattern.name):
            problems.append((field, f"pattern name '{pattern.name}' must be an identifier"))
        elif pattern.name in RESERVED_NAMES or f"{pattern.name}_count" in BASE_FEATURES:
            problems.append((field, f"pattern name '{pattern.name}' is reserved"))

        try:
            flags = resolve_flags(pattern.flags)
        except KeyError as e:
            problems.append((field, f"unknown regex flag {e}"))
            continue
        try:
            compile_pattern(pattern.regex, flags)
        except re.error as e:
            problems.append((field, f"invalid regex '{pattern.regex}': {e}"))
            continue
        problem = check_pattern_safety(pattern.regex)
        if problem:
            problems.append((field, problem))
    return problems


def _check_guidance(rule: RuleDefinition) -> list[Problem]:
    template = rule.guidance_template()
    if template is None:
        return []
    problem = check_template(template)
    return [("guidance", problem)] if problem else []


def collect_problems(rule: RuleDefinition) -> list[Problem]:
    """Every invariant violation of a rule, as (field, message) pairs."""
    return [
        *_check_states(rule),
        *_check_transitions(rule),
        *_check_actions(rule),
        *_check_triggers(rule),
        *_check_guidance(rule),
    ]


def validate_rule(rule: RuleDefinition) -> RuleDefinition:
    """
    Validate a parsed rule.

    Args:
        rule: The parsed rule definition.

    Returns:
        The same rule, when it is valid.

    Raises:
        ValidationError: Listing every problem found.
    """
    problems = collect_problems(rule)
    if len(problems) == 1:
        field, text = problems[0]
        raise ValidationError(text, source=rule.source or rule.id, field=field)
    if problems:
        message = "; ".join(f"{field}: {text}" for field, text in problems)
        raise ValidationError(message, source=rule.source or rule.id)
    return rule
