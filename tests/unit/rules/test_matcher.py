"""Tests for the pattern matcher and derived features."""

import pytest

from codeguard.rules.matcher import PatternMatcher, find_phrases, measure_nesting_depth

TRIGGER_RULE = """
id: triggers
states: [idle, detection, complete]
triggers:
  keywords: [API Endpoint, sql]
  anti_patterns: [bound parameters, prepared statement]
  patterns:
    - name: concat
      regex: '(SELECT|UPDATE)\\b[^\\n]*"\\s*\\+'
      flags: [ignorecase]
    - name: sleep
      regex: 'time\\.sleep\\((?P<seconds>\\d+)\\)'
transitions:
  - {from: idle, to: detection, event: keyword_match}
  - {from: detection, to: complete, event: pattern_found}
"""


@pytest.fixture
def trigger_rule(make_rule):
    return make_rule(TRIGGER_RULE)


@pytest.fixture
def matcher():
    return PatternMatcher()


class TestFindPhrases:
    def test_case_insensitive_with_position(self) -> None:
        """Test that phrases match regardless of case and record their position."""
        hits = find_phrases(("API endpoint", "missing"), "Create an api ENDPOINT now")
        assert [(hit.phrase, hit.position) for hit in hits] == [("API endpoint", 10)]

    def test_empty_text(self) -> None:
        """Test that empty text yields no hits."""
        assert find_phrases(("a",), "") == ()


class TestMeasureNestingDepth:
    def test_braces(self) -> None:
        """Test brace nesting on a single line."""
        assert measure_nesting_depth("if (a) { while (b) { for (;;) { x(); } } }") == 3

    def test_indentation(self) -> None:
        """Test indentation depth of Python code."""
        code = "def f():\n    if a:\n        for x in y:\n            while z:\n                pass\n"
        assert measure_nesting_depth(code) == 4

    def test_two_space_indentation(self) -> None:
        """Test that the smallest indent step is the unit."""
        assert measure_nesting_depth("a:\n  b:\n    c\n") == 2

    def test_closing_lines_are_ignored(self) -> None:
        """Test that lines starting with a closer do not affect indentation depth."""
        code = "function f() {\n  if (a) {\n    g();\n  }\n}\n"
        assert measure_nesting_depth(code) == 2

    def test_flat_and_empty_text(self) -> None:
        """Test that flat and empty text have depth zero."""
        assert measure_nesting_depth("") == 0
        assert measure_nesting_depth("a = 1\nb = 2\n") == 0

    def test_data_literal_braces_are_not_blocks(self) -> None:
        """Test that nested dict and JSON literals do not count as block nesting."""
        assert measure_nesting_depth('CONFIG = {"a": {"b": {"c": {"d": 1}}}}\nprint(CONFIG)\n') == 0
        assert measure_nesting_depth('{"a": {"b": [{"c": 1}]}}') == 0

    def test_multiline_data_literal_is_not_indentation(self) -> None:
        """Test that lines continuing an open literal are not treated as nested blocks."""
        code = 'SETTINGS = {\n    "db": {\n        "pool": {\n            "size": 5,\n        },\n    },\n}\n'
        assert measure_nesting_depth(code) == 0

    def test_braces_inside_strings_are_ignored(self) -> None:
        """Test that braces in string literals never open a block."""
        assert measure_nesting_depth('if (a) { log("{{{{"); }') == 1

    def test_blocks_inside_data_literal_callbacks(self) -> None:
        """Test that a function body inside an object literal still counts as a block."""
        code = "const handlers = {\n  onClick() {\n    if (a) {\n      go();\n    }\n  },\n};\n"
        assert measure_nesting_depth(code) == 2


class TestPatternMatcher:
    def test_request_only(self, matcher, trigger_rule) -> None:
        """Test that patterns scan the request when no content is given."""
        request = 'Add an api endpoint running "SELECT * FROM t WHERE id=" + user_id'
        evidence = matcher.evaluate(trigger_rule, request)

        assert [hit.phrase for hit in evidence.keyword_hits] == ["API Endpoint"]
        assert evidence.content_keyword_hits == ()
        assert evidence.scanned == "request"
        assert evidence.match_count("concat") == 1
        assert evidence.features["has_content"] is False
        assert evidence.features["concat_count"] == 1
        assert evidence.features["sleep_count"] == 0

    def test_patterns_scan_content_when_present(self, matcher, trigger_rule) -> None:
        """Test that patterns scan the content snippet when one is given."""
        request = 'api endpoint "SELECT x" + y'
        content = "def handler():\n    time.sleep(2)\n    time.sleep(5)\n"
        evidence = matcher.evaluate(trigger_rule, request, content)

        assert evidence.scanned == "content"
        assert evidence.match_count("concat") == 0
        assert evidence.match_count("sleep") == 2
        assert evidence.match_count() == 2
        assert evidence.captures("sleep", "seconds") == ["2", "5"]
        assert evidence.features["line_count"] == 3
        assert evidence.features["nesting_depth"] == 1
        assert evidence.features["has_content"] is True

    def test_keywords_in_content_are_recorded_separately(self, matcher, trigger_rule) -> None:
        """Test that keyword hits in the content are kept apart from request hits."""
        evidence = matcher.evaluate(trigger_rule, "fix this", "cursor.execute(sql)")

        assert evidence.keyword_hits == ()
        assert [hit.phrase for hit in evidence.content_keyword_hits] == ["sql"]
        assert evidence.has_keyword_hit
        assert evidence.features["keyword_count"] == 0
        assert evidence.features["content_keyword_count"] == 1

    def test_anti_patterns_from_both_texts_without_duplicates(self, matcher, trigger_rule) -> None:
        """Test that anti-patterns are found in both texts and recorded once."""
        evidence = matcher.evaluate(
            trigger_rule,
            "use bound parameters in the api endpoint",
            "# bound parameters via a prepared statement",
        )
        assert [hit.phrase for hit in evidence.anti_pattern_hits] == ["bound parameters", "prepared statement"]
        assert evidence.features["anti_pattern_count"] == 2

    def test_no_match_is_empty_evidence(self, matcher, trigger_rule) -> None:
        """Test that unmatched input produces empty evidence, not an error."""
        evidence = matcher.evaluate(trigger_rule, "write a poem")

        assert not evidence.has_keyword_hit
        assert not evidence.has_pattern_match
        assert not evidence.has_anti_pattern_hit
        assert evidence.features["match_count"] == 0

    def test_empty_content_falls_back_to_request(self, matcher, trigger_rule) -> None:
        """Test that an empty snippet counts as no content."""
        evidence = matcher.evaluate(trigger_rule, "time.sleep(1) in an api endpoint", "")
        assert evidence.scanned == "request"
        assert evidence.match_count("sleep") == 1

    def test_deterministic(self, matcher, trigger_rule) -> None:
        """Test that the same input produces equal evidence."""
        request = 'api endpoint "UPDATE t SET a=" + b'
        assert matcher.evaluate(trigger_rule, request) == matcher.evaluate(trigger_rule, request)
