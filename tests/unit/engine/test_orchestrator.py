"""Tests for the engine orchestrator: aggregation, isolation and cancellation."""

import asyncio
import gc
import itertools
import logging
import time

import pytest

from codeguard.engine.models import EvaluationResult
from codeguard.engine.orchestrator import PLACEHOLDER_DIAGNOSTIC, RuleEngine
from codeguard.rules.matcher import PatternMatcher
from codeguard.rules.registry import RuleRegistry

SQL_RULE = """
id: sql-concat
severity: critical
states: [idle, detection, analysis, constraint, complete]
triggers:
  keywords: [api endpoint]
  patterns:
    - name: concatenation
      regex: '\\bconcatenat\\w*'
      flags: [ignorecase]
transitions:
  - {from: idle, to: detection, event: keyword_match}
  - {from: detection, to: analysis, event: pattern_found}
  - {from: analysis, to: constraint}
  - {from: constraint, to: complete}
guidance: Use bound parameters instead of {concatenation}.
"""

ASYNC_RULE = """
id: async-blocking
severity: high
states: [idle, detection, analysis, constraint, complete]
triggers:
  keywords: [api endpoint]
  patterns:
    - name: blocking
      regex: '\\bblocking\\s+calls?\\b'
      flags: [ignorecase]
transitions:
  - {from: idle, to: detection, event: keyword_match}
  - {from: detection, to: analysis, event: pattern_found}
  - {from: analysis, to: constraint}
  - {from: constraint, to: complete}
guidance: Do not make blocking calls inside async endpoints.
"""

SCENARIO_4_REQUEST = "Create an API endpoint that makes blocking calls and builds SQL by string concatenation"


def _instant_rule(rule_id: str) -> str:
    return f"id: {rule_id}\nstates: [idle, complete]\ntransitions:\n  - {{from: idle, to: complete}}\n"


@pytest.fixture
def load(make_source):
    """Load rule documents given as {identity: content} into a registry."""

    def _load(documents: dict[str, str]) -> RuleRegistry:
        registry, errors = RuleRegistry.load([make_source(content, identity) for identity, content in documents.items()])
        assert errors == []
        return registry

    return _load


class SlowMatcher(PatternMatcher):
    def evaluate(self, rule, request_text, content_snippet=None):
        if rule.id == "slow":
            time.sleep(1.0)
        return super().evaluate(rule, request_text, content_snippet)


class ExplodingMatcher(PatternMatcher):
    def evaluate(self, rule, request_text, content_snippet=None):
        if rule.id == "explodes":
            raise RuntimeError("boom")
        return super().evaluate(rule, request_text, content_snippet)


class TestSeedScenarios:
    """End-to-end behaviour of evaluate_request on the reference scenarios."""

    @pytest.mark.asyncio
    async def test_large_class_fires(self, load, large_class_yaml, snippet_factory) -> None:
        """Test that a large class fires with rendered guidance."""
        engine = RuleEngine(load({"large-class.yaml": large_class_yaml}))
        result = await engine.evaluate_request("write a user service class", snippet_factory(12))

        outcome = result.get("large-class")
        assert outcome.fired is True
        assert outcome.final_state == "complete"
        assert "constraint" in outcome.state_path
        assert outcome.guidance_text.startswith("Split the class: 12 methods found (method_0, method_1")
        assert result.any_fired is True

    @pytest.mark.asyncio
    async def test_small_class_stays_idle(self, load, large_class_yaml, snippet_factory) -> None:
        """Test that a small class leaves the rule idle without guidance."""
        engine = RuleEngine(load({"large-class.yaml": large_class_yaml}))
        result = await engine.evaluate_request("write a user service class", snippet_factory(3))

        outcome = result.get("large-class")
        assert outcome.fired is False
        assert outcome.final_state == "idle"
        assert outcome.guidance_text is None
        assert result.any_fired is False

    @pytest.mark.asyncio
    async def test_missing_state_leaves_empty_registry(self, make_source, missing_state_yaml) -> None:
        """Test that a rule naming an undeclared state is rejected and nothing is evaluated."""
        registry, errors = RuleRegistry.load([make_source(missing_state_yaml, "broken.yaml")])
        result = await RuleEngine(registry).evaluate_request("write a class")

        assert [type(e).__name__ for e in errors] == ["ValidationError"]
        assert result == EvaluationResult()

    @pytest.mark.asyncio
    async def test_two_rules_on_shared_keyword(self, load) -> None:
        """Test that two rules sharing a keyword both fire, ordered by id."""
        engine = RuleEngine(load({"sql.yaml": SQL_RULE, "async.yaml": ASYNC_RULE}))
        result = await engine.evaluate_request(SCENARIO_4_REQUEST)

        assert [o.rule_id for o in result.outcomes] == ["async-blocking", "sql-concat"]
        assert all(o.fired for o in result.outcomes)
        assert result.any_fired is True
        assert result.get("sql-concat").guidance_text == "Use bound parameters instead of concatenation."

    @pytest.mark.asyncio
    async def test_cancellation_after_first_rule(self, load) -> None:
        """Test that cancelling after one rule yields placeholders for the rest."""
        engine = RuleEngine(load({f"r{i}.yaml": _instant_rule(f"rule-{i}") for i in range(1, 6)}), max_concurrency=1)
        cancel_event = asyncio.Event()

        result = await engine.evaluate_request(
            "anything", cancel_event=cancel_event, on_outcome=lambda outcome: cancel_event.set()
        )

        assert len(result.outcomes) == 5
        real = [o for o in result.outcomes if o.evaluated]
        placeholders = [o for o in result.outcomes if not o.evaluated]
        assert [o.rule_id for o in real] == ["rule-1"]
        assert real[0].fired is True
        assert len(placeholders) == 4
        assert all(o.final_state == "idle" and o.fired is False for o in placeholders)
        assert all(o.diagnostic == PLACEHOLDER_DIAGNOSTIC for o in placeholders)
        assert result.cancelled is True
        assert result.diagnostics == ("EvaluationTimeout: Evaluation cancelled: 1 of 5 rules finished",)


class TestBundledLibrary:
    """The shipped rules behave like their inline counterparts."""

    @pytest.fixture
    def engine(self) -> RuleEngine:
        registry, errors = RuleRegistry.load_directory(None)
        assert errors == []
        return RuleEngine(registry)

    def test_shared_api_endpoint_keyword(self, engine) -> None:
        """Test the bundled security and concurrency rules on one request."""
        request = (
            "Create an async API endpoint that fetches avatars with requests.get() "
            "and loads users with a SQL query built by string concatenation"
        )
        result = engine.evaluate_request_sync(request)

        assert [o.rule_id for o in result.fired] == ["async-blocking-calls", "sql-injection"]

    def test_god_class(self, engine, snippet_factory) -> None:
        """Test that the bundled god-class rule reports the method count."""
        result = engine.evaluate_request_sync("write a user service class", snippet_factory(12))
        outcome = result.get("god-class")

        assert outcome.fired is True
        assert "12 methods" in outcome.guidance_text

    def test_deep_nesting(self, engine) -> None:
        """Test that the bundled nesting rule separates nested and flat code."""
        nested = (
            "def handle(items):\n"
            "    for item in items:\n"
            "        if item:\n"
            "            for part in item:\n"
            "                if part:\n"
            "                    print(part)\n"
        )
        flat = "def handle(items):\n    return [part for item in items for part in item if part]\n"

        fired = engine.evaluate_request_sync("refactor these nested loops", nested).get("deep-nesting")
        clean = engine.evaluate_request_sync("refactor these nested loops", flat).get("deep-nesting")

        assert fired.fired is True
        assert "5 levels deep" in fired.guidance_text
        assert clean.final_state == "clean"
        assert clean.fired is False

    def test_deep_nesting_ignores_nested_config_literals(self, engine) -> None:
        """Test that a flat module holding a nested dict literal is not reported as deeply nested."""
        config_module = 'CONFIG = {"a": {"b": {"c": {"d": 1}}}}\nprint(CONFIG)\n'
        outcome = engine.evaluate_request_sync("refactor this nested config", config_module).get("deep-nesting")

        assert outcome.final_state == "clean"
        assert outcome.fired is False


class TestIsolation:
    """A failing rule never affects the outcome of the others."""

    @pytest.mark.asyncio
    async def test_cycle_rule_is_isolated(self, load, large_class_yaml, cycle_rule_yaml, snippet_factory) -> None:
        """Test that a cycling rule does not affect the other rules."""
        engine = RuleEngine(load({"cycle.yaml": cycle_rule_yaml, "large-class.yaml": large_class_yaml}))
        result = await engine.evaluate_request("write a user service class", snippet_factory(12))

        cycle = result.get("aaa-cycle")
        assert cycle.fired is False
        assert cycle.final_state == "idle"
        assert cycle.diagnostic.startswith("CycleDetectedError:")
        assert result.get("large-class").fired is True
        assert result.any_fired is True

    @pytest.mark.asyncio
    async def test_internal_error_is_isolated(self, load) -> None:
        """Test that an unexpected error becomes that rule's diagnostic."""
        registry = load({"a.yaml": _instant_rule("explodes"), "b.yaml": _instant_rule("works")})
        result = await RuleEngine(registry, matcher=ExplodingMatcher()).evaluate_request("go")

        assert result.get("explodes").diagnostic == "RuntimeError: boom"
        assert result.get("explodes").fired is False
        assert result.get("works").fired is True


class TestProperties:
    @pytest.mark.asyncio
    async def test_deterministic(self, load, large_class_yaml, cycle_rule_yaml, snippet_factory) -> None:
        """Test that repeated evaluations give equal results."""
        engine = RuleEngine(
            load({"large-class.yaml": large_class_yaml, "sql.yaml": SQL_RULE, "cycle.yaml": cycle_rule_yaml}),
            max_concurrency=3,
        )
        request = "api endpoint for a user service class using concatenation"
        results = [await engine.evaluate_request(request, snippet_factory(9)) for _ in range(5)]

        assert all(result == results[0] for result in results)

    @pytest.mark.asyncio
    async def test_order_invariance(self, make_source, large_class_yaml) -> None:
        """Test that source order never changes the result."""
        documents = [
            ("large-class.yaml", large_class_yaml),
            ("sql.yaml", SQL_RULE),
            ("async.yaml", ASYNC_RULE),
        ]
        results = []
        for permutation in itertools.permutations(documents):
            registry, _ = RuleRegistry.load([make_source(content, identity) for identity, content in permutation])
            results.append(await RuleEngine(registry).evaluate_request(SCENARIO_4_REQUEST + " in a class"))

        assert all(result.to_dict() == results[0].to_dict() for result in results)
        assert [o.rule_id for o in results[0].outcomes] == ["async-blocking", "large-class", "sql-concat"]

    def test_no_false_completion(self, load, large_class_yaml, snippet_factory) -> None:
        """Test that an unrelated request never reaches complete."""
        registry = load({"large-class.yaml": large_class_yaml})
        engine = RuleEngine(registry)
        outcome = engine.evaluate_rule(registry.get("large-class"), "write a poem", "def a(): pass\n" * 12)

        assert outcome.state_path == ("idle",)
        assert outcome.fired is False


class TestCancellation:
    @pytest.mark.asyncio
    async def test_timeout_returns_partial_result(self, load) -> None:
        """Test that a timeout keeps finished outcomes and marks the rest unevaluated."""
        registry = load({"fast.yaml": _instant_rule("fast"), "slow.yaml": _instant_rule("slow")})
        engine = RuleEngine(registry, max_concurrency=2, matcher=SlowMatcher())

        result = await engine.evaluate_request("go", timeout=0.3)

        assert result.cancelled is True
        assert result.get("fast").evaluated is True
        assert result.get("fast").fired is True
        assert result.get("slow").evaluated is False
        assert result.get("slow").final_state == "idle"
        assert "timed out after 0.3s" in result.diagnostics[0]

    def test_sync_timeout_bounds_wall_clock_time(self, load) -> None:
        """Test that the blocking wrapper returns at the timeout, not when the slow rule ends."""
        registry = load({"fast.yaml": _instant_rule("fast"), "slow.yaml": _instant_rule("slow")})
        engine = RuleEngine(registry, max_concurrency=2, matcher=SlowMatcher())

        started = time.monotonic()
        result = engine.evaluate_request_sync("go", timeout=0.2)
        elapsed = time.monotonic() - started

        assert result.cancelled is True
        assert result.get("slow").evaluated is False
        assert elapsed < 0.8

    @pytest.mark.asyncio
    async def test_cancellation_logs_no_asyncio_errors(self, load, caplog) -> None:
        """Test that a timed-out evaluation leaves no unretrieved futures behind."""
        caplog.set_level(logging.ERROR, logger="asyncio")
        registry = load({"fast.yaml": _instant_rule("fast"), "slow.yaml": _instant_rule("slow")})
        engine = RuleEngine(registry, max_concurrency=2, matcher=SlowMatcher())

        result = await engine.evaluate_request("go", timeout=0.2)
        gc.collect()
        await asyncio.sleep(0)

        assert result.cancelled is True
        assert not [record for record in caplog.records if record.name == "asyncio"]

    @pytest.mark.asyncio
    async def test_on_outcome_sees_every_rule(self, load) -> None:
        """Test that the outcome callback runs once per rule."""
        registry = load({f"r{i}.yaml": _instant_rule(f"rule-{i}") for i in range(3)})
        seen: list[str] = []

        result = await RuleEngine(registry).evaluate_request("go", on_outcome=lambda o: seen.append(o.rule_id))

        assert sorted(seen) == ["rule-0", "rule-1", "rule-2"]
        assert result.cancelled is False
        assert result.diagnostics == ()

    @pytest.mark.asyncio
    async def test_no_candidates(self, load, large_class_yaml) -> None:
        """Test that a request matching no rule gives an empty result."""
        result = await RuleEngine(load({"large-class.yaml": large_class_yaml})).evaluate_request("write a poem")
        assert result.outcomes == ()
        assert result.any_fired is False


class TestEvaluateRequestSync:
    def test_matches_async_result(self, load, large_class_yaml, snippet_factory) -> None:
        """Test that the blocking wrapper returns the full result."""
        engine = RuleEngine(load({"large-class.yaml": large_class_yaml}))
        result = engine.evaluate_request_sync("write a user service class", snippet_factory(12))

        assert result.any_fired is True
        assert result.to_dict()["outcomes"][0]["state_path"] == [
            "idle",
            "detection",
            "analysis",
            "constraint",
            "complete",
        ]
