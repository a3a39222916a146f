"""
Guidance rendering: substitutes match evidence into a rule's guidance template.

Placeholders are plain ``{name}`` fields. Available names are ``rule_id``,
``rule_name``, ``severity``, ``category``, ``keyword``, ``keywords``,
``anti_patterns``, every derived feature (``match_count``, ``nesting_depth``,
``<pattern>_count`` ...) and, for each regex trigger, ``<pattern>``: the distinct
values of its first capture group (or the whole match when it has no groups).
Unknown placeholders are left in the text unchanged.
"""

import re
from string import Formatter
from typing import Any

from codeguard.rules.evidence import MatchEvidence
from codeguard.rules.models import RuleDefinition

_FIELD_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class _KeepMissing(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def check_template(template: str) -> str | None:
    """Check a guidance template at load time.

    Returns:
        A problem description, or None if the template is well-formed.
    """
    try:
        fields = list(Formatter().parse(template))
    except ValueError as e:
        return f"malformed template: {e}"

    for _, field, spec, conversion in fields:
        if field is None:
            continue
        if not _FIELD_NAME.fullmatch(field):
            return f"unsupported placeholder '{{{field}}}'"
        if spec or conversion:
            return f"placeholder '{{{field}}}' must not use a format spec or conversion"
    return None


def _join(values: list[str]) -> str:
    return ", ".join(values)


def guidance_values(rule: RuleDefinition, evidence: MatchEvidence) -> dict[str, Any]:
    """Build the substitution mapping for one rule and its evidence."""
    keywords: list[str] = []
    for hit in (*evidence.keyword_hits, *evidence.content_keyword_hits):
        if hit.phrase not in keywords:
            keywords.append(hit.phrase)

    values: dict[str, Any] = {
        "rule_id": rule.id,
        "rule_name": rule.name or rule.id,
        "severity": str(rule.severity),
        "category": rule.category,
        "keyword": keywords[0] if keywords else "",
        "keywords": _join(keywords),
        "anti_patterns": _join([hit.phrase for hit in evidence.anti_pattern_hits]),
    }
    values.update(evidence.features)

    for name, matches in evidence.pattern_matches.items():
        group = 1 if matches and matches[0].groups else 0
        values[name] = _join(evidence.captures(name, group))

    return values


def render_guidance(rule: RuleDefinition, evidence: MatchEvidence) -> str | None:
    """Render the rule's guidance template, or None when the rule declares none."""
    template = rule.guidance_template()
    if template is None:
        return None
    return template.format_map(_KeepMissing(guidance_values(rule, evidence))).strip()
