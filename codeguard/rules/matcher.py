"""
Pattern matcher: evaluates a rule's triggers against one input pair.

Keyword and anti-pattern triggers use case-insensitive substring containment.
Regex triggers run over the content snippet when one is supplied, otherwise over
the request text, and every match is recorded so conditions can count them.
"""

import re

import structlog

from codeguard.core.utils.patterns import compile_pattern, resolve_flags
from codeguard.rules.evidence import FeatureValue, KeywordHit, MatchEvidence, PatternMatch
from codeguard.rules.models import RuleDefinition

logger = structlog.get_logger(__name__)

# Upper bound on recorded matches per pattern and evaluation
MAX_MATCHES_PER_PATTERN = 10_000

_OPENERS = "{(["
_CLOSERS = "})]"
# A brace after one of these starts a dict, object or set literal
_DATA_BRACE_PRECEDERS = frozenset("=:,([{?!&|+-*/%")
_STRING_LITERAL = re.compile(r'"(?:\\.|[^"\\])*"|\'(?:\\.|[^\'\\])*\'|`(?:\\.|[^`\\])*`')


def find_phrases(phrases: tuple[str, ...], text: str) -> tuple[KeywordHit, ...]:
    """Find each phrase (case-insensitive) in ``text``, recording its first position."""
    if not text:
        return ()
    lowered = text.lower()
    hits = []
    for phrase in phrases:
        if not phrase:
            continue
        position = lowered.find(phrase.lower())
        if position != -1:
            hits.append(KeywordHit(phrase=phrase, position=position))
    return tuple(hits)


def measure_nesting_depth(text: str) -> int:
    """Estimate the deepest block nesting in a code fragment.

    Brace-delimited depth and indentation depth are both measured and the larger
    one wins, so the estimate works for both C-like and indentation-based code.
    Only braces that open a block count: string literals are blanked first, and
    a brace following an operator, separator or bracket is a data literal. Lines
    that continue an open data literal or bracket do not count as indentation.
    """
    if not text:
        return 0

    # One entry per open bracket: True for a block brace
    open_brackets: list[bool] = []
    brace_depth = 0
    max_brace_depth = 0
    previous = ""
    indents = []
    for line in text.expandtabs(4).splitlines():
        code = _STRING_LITERAL.sub('""', line)
        stripped = code.lstrip(" ")
        if stripped and stripped[0] not in _CLOSERS and all(open_brackets):
            indents.append(len(code) - len(stripped))

        for char in code:
            if char in _OPENERS:
                is_block = char == "{" and previous != "" and previous not in _DATA_BRACE_PRECEDERS
                open_brackets.append(is_block)
                if is_block:
                    brace_depth += 1
                    max_brace_depth = max(max_brace_depth, brace_depth)
            elif char in _CLOSERS and open_brackets:
                if open_brackets.pop():
                    brace_depth -= 1
            if not char.isspace():
                previous = char

    base = min(indents) if indents else 0
    relative = sorted({indent - base for indent in indents if indent > base})
    indent_depth = 0
    if relative:
        unit = relative[0]
        indent_depth = max(relative) // unit

    return max(max_brace_depth, indent_depth)


class PatternMatcher:
    """Produces MatchEvidence for one rule and one input pair."""

    def evaluate(self, rule: RuleDefinition, request_text: str, content_snippet: str | None = None) -> MatchEvidence:
        """
        Evaluate every trigger of ``rule``.

        Args:
            rule: The rule whose triggers are evaluated.
            request_text: The AI request text.
            content_snippet: Optional code or diff the request refers to.

        Returns:
            The evidence; empty when nothing matched.
        """
        request_text = request_text or ""
        has_content = bool(content_snippet)
        scanned_text = content_snippet if has_content else request_text

        keyword_hits = find_phrases(rule.triggers.keywords, request_text)
        content_keyword_hits = find_phrases(rule.triggers.keywords, content_snippet or "")

        anti_pattern_hits = find_phrases(rule.triggers.anti_patterns, request_text)
        if has_content:
            seen = {hit.phrase for hit in anti_pattern_hits}
            anti_pattern_hits += tuple(
                hit for hit in find_phrases(rule.triggers.anti_patterns, content_snippet) if hit.phrase not in seen
            )

        pattern_matches: dict[str, tuple[PatternMatch, ...]] = {}
        for trigger in rule.triggers.patterns:
            compiled = compile_pattern(trigger.regex, resolve_flags(trigger.flags))
            pattern_matches[trigger.name] = self._find_matches(trigger.name, compiled, scanned_text)

        features: dict[str, FeatureValue] = {
            "keyword_count": len(keyword_hits),
            "content_keyword_count": len(content_keyword_hits),
            "anti_pattern_count": len(anti_pattern_hits),
            "match_count": sum(len(matches) for matches in pattern_matches.values()),
            "line_count": len(scanned_text.splitlines()),
            "nesting_depth": measure_nesting_depth(scanned_text),
            "has_content": has_content,
        }
        for name, matches in pattern_matches.items():
            features[f"{name}_count"] = len(matches)

        evidence = MatchEvidence(
            rule_id=rule.id,
            keyword_hits=keyword_hits,
            content_keyword_hits=content_keyword_hits,
            anti_pattern_hits=anti_pattern_hits,
            pattern_matches=pattern_matches,
            scanned="content" if has_content else "request",
            features=features,
        )
        logger.debug(
            "triggers_evaluated",
            rule_id=rule.id,
            keywords=len(keyword_hits),
            matches=features["match_count"],
            anti_patterns=len(anti_pattern_hits),
        )
        return evidence

    @staticmethod
    def _find_matches(name: str, compiled: re.Pattern[str], text: str) -> tuple[PatternMatch, ...]:
        matches = []
        for match in compiled.finditer(text):
            matches.append(
                PatternMatch(
                    pattern=name,
                    text=match.group(0),
                    start=match.start(),
                    end=match.end(),
                    groups=match.groups(),
                    named_groups=match.groupdict(),
                )
            )
            if len(matches) >= MAX_MATCHES_PER_PATTERN:
                logger.warning("match_limit_reached", pattern=name, limit=MAX_MATCHES_PER_PATTERN)
                break
        return tuple(matches)
