"""
Engine orchestrator: the single public entry point for evaluating a request.

For one request the orchestrator selects candidate rules from the registry,
runs the pattern matcher and state machine executor for each of them in worker
threads, and fans the outcomes back in by rule id. A failure inside one rule is
absorbed into that rule's outcome; cancellation or a timeout returns the
outcomes finished so far plus idle placeholders for the rest.
"""

import asyncio
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from functools import partial

import structlog

from codeguard.core.config import config
from codeguard.core.errors import CycleDetectedError, EvaluationTimeout
from codeguard.core.utils.logging import log_operation
from codeguard.engine.models import EvaluationResult, RuleOutcome
from codeguard.rules.executor import StateMachineExecutor
from codeguard.rules.guidance import render_guidance
from codeguard.rules.matcher import PatternMatcher
from codeguard.rules.models import RuleDefinition
from codeguard.rules.registry import RuleRegistry

logger = structlog.get_logger(__name__)

PLACEHOLDER_DIAGNOSTIC = "not evaluated: evaluation cancelled"


class RuleEngine:
    """Evaluates requests against a shared, read-only rule registry."""

    def __init__(
        self,
        registry: RuleRegistry,
        max_concurrency: int | None = None,
        timeout: float | None = None,
        matcher: PatternMatcher | None = None,
        executor: StateMachineExecutor | None = None,
    ):
        self.registry = registry
        self.max_concurrency = max_concurrency or config.engine.max_concurrency
        self.timeout = timeout if timeout is not None else config.engine.evaluation_timeout
        self.matcher = matcher or PatternMatcher()
        self.executor = executor or StateMachineExecutor()

    def evaluate_rule(self, rule: RuleDefinition, request_text: str, content_snippet: str | None = None) -> RuleOutcome:
        """
        Evaluate one rule in isolation.

        Never raises for rule-level faults: a cycle or any internal error turns
        into an idle, not-fired outcome carrying a diagnostic.
        """
        try:
            evidence = self.matcher.evaluate(rule, request_text, content_snippet)
            trace = self.executor.run(rule, evidence)
            guidance = render_guidance(rule, evidence) if trace.fired else None
        except CycleDetectedError as e:
            logger.warning("rule_cycle_detected", rule_id=rule.id, limit=e.limit, path=e.state_path)
            return RuleOutcome.not_fired(rule.id, diagnostic=f"CycleDetectedError: {e}")
        except Exception as e:
            logger.error("rule_evaluation_failed", rule_id=rule.id, error=str(e), exc_info=True)
            return RuleOutcome.not_fired(rule.id, diagnostic=f"{type(e).__name__}: {e}")

        return RuleOutcome(
            rule_id=rule.id,
            fired=trace.fired,
            final_state=trace.final_state,
            state_path=trace.state_path,
            guidance_text=guidance,
            actions=tuple(f"{action.state}:{action.type}" for action in trace.actions),
            severity=str(rule.severity),
        )

    async def evaluate_request(
        self,
        request_text: str,
        content_snippet: str | None = None,
        *,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
        on_outcome: Callable[[RuleOutcome], None] | None = None,
    ) -> EvaluationResult:
        """
        Evaluate a request against every candidate rule.

        Args:
            request_text: The AI request text.
            content_snippet: Optional code or diff the request refers to.
            timeout: Seconds to wait before returning a partial result; defaults
                to the engine timeout.
            cancel_event: Setting this event cancels the evaluation.
            on_outcome: Called in the event loop as each rule finishes.

        Returns:
            Outcomes for every candidate, sorted by rule id. Rules that had not
            started when cancellation arrived get idle placeholders.
        """
        candidates = self.registry.candidates_for(request_text)
        if not candidates:
            return EvaluationResult()

        cancel_event = cancel_event or asyncio.Event()
        timeout = timeout if timeout is not None else self.timeout
        semaphore = asyncio.Semaphore(self.max_concurrency)
        finished: dict[str, RuleOutcome] = {}
        loop = asyncio.get_running_loop()
        pool = ThreadPoolExecutor(max_workers=self.max_concurrency, thread_name_prefix="codeguard-rule")

        async def run_one(rule: RuleDefinition) -> None:
            async with semaphore:
                if cancel_event.is_set():
                    return
                outcome = await loop.run_in_executor(
                    pool, partial(self.evaluate_rule, rule, request_text, content_snippet)
                )
                finished[rule.id] = outcome
                if on_outcome is not None:
                    on_outcome(outcome)

        async with log_operation("evaluate_request", candidates=len(candidates)):
            try:
                tasks = [asyncio.create_task(run_one(rule)) for rule in candidates]
                all_done = asyncio.gather(*tasks)
                cancelled_waiter = asyncio.create_task(cancel_event.wait())

                done, _ = await asyncio.wait(
                    {all_done, cancelled_waiter}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
                )
                reason = "cancelled" if done else f"timed out after {timeout}s"

                cancelled_waiter.cancel()
                if all_done not in done:
                    cancel_event.set()
                    # A cancelled rule task never stores its outcome
                    all_done.cancel()
                await asyncio.gather(*tasks, all_done, cancelled_waiter, return_exceptions=True)
            finally:
                # A rule still running after a timeout keeps its worker; nothing joins it
                pool.shutdown(wait=False, cancel_futures=True)

        completed = dict(finished)
        cancelled = len(completed) < len(candidates)

        diagnostics: list[str] = []
        if cancelled:
            error = EvaluationTimeout(len(completed), len(candidates), reason)
            logger.warning("evaluation_cancelled", completed=len(completed), total=len(candidates), reason=reason)
            diagnostics.append(f"EvaluationTimeout: {error}")

        outcomes = [
            completed.get(rule.id) or RuleOutcome.not_fired(rule.id, diagnostic=PLACEHOLDER_DIAGNOSTIC, evaluated=False)
            for rule in candidates
        ]
        result = EvaluationResult.from_outcomes(outcomes, cancelled=cancelled, diagnostics=diagnostics)
        logger.info(
            "request_evaluated",
            candidates=len(candidates),
            fired=len(result.fired),
            cancelled=cancelled,
        )
        return result

    def evaluate_request_sync(
        self, request_text: str, content_snippet: str | None = None, *, timeout: float | None = None
    ) -> EvaluationResult:
        """Blocking wrapper around ``evaluate_request`` for callers without an event loop."""
        return asyncio.run(self.evaluate_request(request_text, content_snippet, timeout=timeout))
