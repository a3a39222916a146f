"""
Shared fixtures: sample rule documents and factories for sources and rules.
"""

import textwrap

import pytest
import structlog

from codeguard.rules.models import RuleSource
from codeguard.rules.parser import parse_rule_source

LARGE_CLASS_RULE = """
id: large-class
name: Large class
severity: medium
category: architecture
states: [idle, detection, analysis, constraint, complete]
triggers:
  keywords: [class]
  patterns:
    - name: method
      regex: '^\\s*def\\s+(\\w+)\\s*\\('
transitions:
  - from: idle
    to: detection
    event: keyword_match
    condition:
      type: match_count_at_least
      parameters: {pattern: method, count: 8}
  - {from: detection, to: analysis}
  - {from: analysis, to: constraint}
  - {from: constraint, to: complete}
actions:
  detection: log_detection
  constraint:
    - type: constrain
      parameters:
        message: "Split the class: {method_count} methods found ({method})."
"""

CYCLE_RULE = """
id: aaa-cycle
states: [idle, ping, pong, complete]
transitions:
  - {from: idle, to: ping}
  - {from: ping, to: pong}
  - {from: pong, to: ping}
"""

MISSING_STATE_RULE = """
id: broken
states: [idle, detection, complete]
triggers:
  keywords: [class]
transitions:
  - {from: idle, to: detection, event: keyword_match}
  - {from: detection, to: constraint}
"""


def class_snippet(methods: int) -> str:
    """A Python class with the given number of methods."""
    body = "".join(f"    def method_{i}(self):\n        return {i}\n\n" for i in range(methods))
    return f"class UserService:\n{body}"


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo logging configuration made by a test (the CLI configures structlog)."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def make_source():
    """Build a RuleSource from an indented document."""

    def _make(content: str, identity: str = "rule.yaml") -> RuleSource:
        return RuleSource.from_text(identity, textwrap.dedent(content))

    return _make


@pytest.fixture
def make_rule(make_source):
    """Parse and validate a rule document."""

    def _make(content: str, identity: str = "rule.yaml"):
        return parse_rule_source(make_source(content, identity))

    return _make


@pytest.fixture
def large_class_yaml() -> str:
    return LARGE_CLASS_RULE


@pytest.fixture
def cycle_rule_yaml() -> str:
    return CYCLE_RULE


@pytest.fixture
def missing_state_yaml() -> str:
    return MISSING_STATE_RULE


@pytest.fixture
def large_class_rule(make_rule):
    return make_rule(LARGE_CLASS_RULE, "large-class.yaml")


@pytest.fixture
def snippet_factory():
    return class_snippet


@pytest.fixture
def write_rules(tmp_path):
    """Write rule documents into a temporary rules directory and return its path."""

    def _write(files: dict[str, str]):
        rules_dir = tmp_path / "rules"
        for name, content in files.items():
            path = rules_dir / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content), encoding="utf-8")
        rules_dir.mkdir(exist_ok=True)
        return rules_dir

    return _write
