import json
from typing import Any

from codeguard.core.errors import RuleLoadError
from codeguard.core.models import Severity
from codeguard.engine.models import EvaluationResult, RuleOutcome
from codeguard.rules.models import RuleDefinition

SEVERITY_STR_EMOJI = {
    "critical": "🔴",
    "high": "🟠",
    "medium": "🟡",
    "low": "🟢",
    "info": "⚪",
}

SEVERITY_ORDER = [str(s) for s in (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.INFO)]


def format_result_dict(result: EvaluationResult) -> dict[str, Any]:
    """Format an evaluation result in the structure consumed by AI-integration layers."""
    return result.to_dict()


def format_result_json(result: EvaluationResult, indent: int | None = 2) -> str:
    return json.dumps(format_result_dict(result), indent=indent, ensure_ascii=False)


def _outcome_line(outcome: RuleOutcome) -> str:
    marker = "FIRED" if outcome.fired else "-----"
    path = " -> ".join(outcome.state_path)
    line = f"[{marker}] {outcome.rule_id}: {outcome.final_state} ({path})"
    if not outcome.evaluated:
        line += " [not evaluated]"
    return line


def format_result_text(result: EvaluationResult) -> str:
    """Format an evaluation result as a human-readable report."""
    if not result.outcomes:
        return "No candidate rules matched the request.\nany_fired: false"

    lines = [f"Evaluated {len(result.outcomes)} rules, {len(result.fired)} fired."]
    for outcome in result.outcomes:
        lines.append(_outcome_line(outcome))
        if outcome.guidance_text:
            for guidance_line in outcome.guidance_text.splitlines():
                lines.append(f"    {guidance_line}")
        if outcome.diagnostic:
            lines.append(f"    diagnostic: {outcome.diagnostic}")

    for diagnostic in result.diagnostics:
        lines.append(f"! {diagnostic}")

    lines.append(f"any_fired: {str(result.any_fired).lower()}")
    return "\n".join(lines)


def format_guidance_prompt(result: EvaluationResult, rules: dict[str, RuleDefinition] | None = None) -> str:
    """
    Format fired rules as a constraint block to inject into an AI generation prompt.

    Args:
        result: The evaluation result.
        rules: Optional rule definitions by id, used for display names.

    Returns:
        A Markdown block grouped by severity (most severe first), or an empty
        string when no rule fired.
    """
    fired = result.fired
    if not fired:
        return ""

    rules = rules or {}
    severity_groups: dict[str, list[RuleOutcome]] = {s: [] for s in SEVERITY_ORDER}
    for outcome in fired:
        sev = outcome.severity if outcome.severity in severity_groups else str(Severity.MEDIUM)
        severity_groups[sev].append(outcome)

    text = "## Code generation constraints\n\n"
    text += "Apply the following constraints to the generated code:\n\n"
    for severity in SEVERITY_ORDER:
        if not severity_groups[severity]:
            continue
        emoji = SEVERITY_STR_EMOJI.get(severity, "⚪")
        text += f"### {emoji} {severity.title()} Severity\n\n"
        for outcome in severity_groups[severity]:
            rule = rules.get(outcome.rule_id)
            title = (rule.name if rule and rule.name else None) or outcome.rule_id
            text += f"**{title}**\n"
            if outcome.guidance_text:
                text += f"{outcome.guidance_text}\n"
            text += "\n"

    return text.rstrip() + "\n"


def format_load_errors(errors: list[RuleLoadError]) -> str:
    """Format rule load errors, one per line."""
    if not errors:
        return "All rule sources loaded."
    lines = [f"{len(errors)} rule sources failed to load:"]
    for error in errors:
        location = f"{error.source} ({error.field})" if error.field else error.source
        lines.append(f"• {type(error).__name__} in {location}: {error.message}")
    return "\n".join(lines)


def format_rule_listing(rules: list[RuleDefinition]) -> str:
    """Format loaded rules as a table-like listing."""
    if not rules:
        return "No rules loaded."
    lines = []
    for rule in rules:
        emoji = SEVERITY_STR_EMOJI.get(str(rule.severity), "⚪")
        keywords = ", ".join(rule.triggers.keywords) or "(content patterns only)"
        lines.append(f"{emoji} {rule.id} [{rule.category}] {rule.name or rule.description}".rstrip())
        lines.append(f"    keywords: {keywords}")
    return "\n".join(lines)
