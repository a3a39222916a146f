"""Tests for guidance template rendering."""

import pytest

from codeguard.rules.guidance import check_template, guidance_values, render_guidance
from codeguard.rules.matcher import PatternMatcher

RULE = """
id: sleepy
name: Sleep in handler
severity: high
category: concurrency
states: [idle, detection, complete]
triggers:
  keywords: [async, endpoint]
  anti_patterns: [to_thread]
  patterns:
    - name: sleep
      regex: 'time\\.sleep\\((\\d+)\\)'
    - name: bare
      regex: 'requests\\.get'
transitions:
  - {from: idle, to: detection, event: keyword_match}
  - {from: detection, to: complete, event: pattern_found}
guidance: >-
  [{severity}] {rule_name} ({rule_id}): {sleep_count} sleeps of {sleep}s, {bare}.
  Keywords: {keywords}. Unknown: {not_a_value}.
"""


@pytest.fixture
def rule(make_rule):
    return make_rule(RULE)


class TestRenderGuidance:
    def test_substitutes_evidence(self, rule) -> None:
        """Test that placeholders are filled from rule metadata and match evidence."""
        evidence = PatternMatcher().evaluate(
            rule, "async endpoint", "time.sleep(1)\ntime.sleep(3)\ntime.sleep(1)\nrequests.get(url)"
        )
        text = render_guidance(rule, evidence)

        assert text == (
            "[high] Sleep in handler (sleepy): 3 sleeps of 1, 3s, requests.get. "
            "Keywords: async, endpoint. Unknown: {not_a_value}."
        )

    def test_values_cover_features_and_metadata(self, rule) -> None:
        """Test the values available to a guidance template."""
        evidence = PatternMatcher().evaluate(rule, "an endpoint using to_thread")
        values = guidance_values(rule, evidence)

        assert values["keyword"] == "endpoint"
        assert values["anti_patterns"] == "to_thread"
        assert values["category"] == "concurrency"
        assert values["sleep"] == ""
        assert values["match_count"] == 0
        assert values["has_content"] is False

    def test_no_template(self, make_rule) -> None:
        """Test that a rule without guidance or constraint message renders nothing."""
        rule = make_rule(
            """
            id: silent
            states: [idle, complete]
            transitions:
              - {from: idle, to: complete}
            """
        )
        assert render_guidance(rule, PatternMatcher().evaluate(rule, "anything")) is None


class TestCheckTemplate:
    def test_plain_text_and_escapes(self) -> None:
        """Test that plain text and escaped braces are accepted."""
        assert check_template("No placeholders, just {{braces}}.") is None

    def test_identifier_placeholders(self) -> None:
        """Test that named placeholders are accepted."""
        assert check_template("{rule_id} {method_count}") is None

    def test_rejects_positional(self) -> None:
        """Test that positional placeholders are rejected."""
        assert check_template("{}") == "unsupported placeholder '{}'"
