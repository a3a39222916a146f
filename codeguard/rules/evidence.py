"""
Match evidence produced by the pattern matcher for one rule and one input.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

FeatureValue = int | float | bool


class KeywordHit(BaseModel):
    """A keyword or anti-pattern phrase found in the input."""

    model_config = ConfigDict(frozen=True)

    phrase: str
    position: int


class PatternMatch(BaseModel):
    """One match of a regex trigger, with its captured groups."""

    model_config = ConfigDict(frozen=True)

    pattern: str
    text: str
    start: int
    end: int
    groups: tuple[str | None, ...] = ()
    named_groups: dict[str, str | None] = Field(default_factory=dict)


class MatchEvidence(BaseModel):
    """Which triggers fired for a rule, plus derived numeric features."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    keyword_hits: tuple[KeywordHit, ...] = ()
    content_keyword_hits: tuple[KeywordHit, ...] = ()
    anti_pattern_hits: tuple[KeywordHit, ...] = ()
    pattern_matches: dict[str, tuple[PatternMatch, ...]] = Field(default_factory=dict)
    scanned: Literal["content", "request"] = "request"
    features: dict[str, FeatureValue] = Field(default_factory=dict)

    @property
    def has_keyword_hit(self) -> bool:
        """True if any keyword appears in the request text or the content snippet."""
        return bool(self.keyword_hits or self.content_keyword_hits)

    @property
    def has_pattern_match(self) -> bool:
        return any(self.pattern_matches.values())

    @property
    def has_anti_pattern_hit(self) -> bool:
        return bool(self.anti_pattern_hits)

    def matches_for(self, pattern: str | None = None) -> tuple[PatternMatch, ...]:
        """Matches of one named pattern, or of every pattern in declaration order."""
        if pattern is not None:
            return self.pattern_matches.get(pattern, ())
        return tuple(match for matches in self.pattern_matches.values() for match in matches)

    def match_count(self, pattern: str | None = None) -> int:
        return len(self.matches_for(pattern))

    def captures(self, pattern: str, group: int | str = 1) -> list[str]:
        """Captured values of one group across every match, duplicates removed, order kept."""
        values: list[str] = []
        for match in self.matches_for(pattern):
            if isinstance(group, str):
                value = match.named_groups.get(group)
            elif group == 0:
                value = match.text
            else:
                value = match.groups[group - 1] if 0 < group <= len(match.groups) else None
            if value is not None and value not in values:
                values.append(value)
        return values

    def feature(self, name: str) -> FeatureValue:
        """Look up a derived feature.

        Raises:
            KeyError: If the feature was not computed for this evidence.
        """
        return self.features[name]
