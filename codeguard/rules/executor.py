"""
State machine executor.

Drives one rule definition through its declared states given match evidence.
Execution is a pure function of (rule, evidence): the first satisfiable
transition in declaration order wins, actions are recorded but never mutate
anything, and a step bound of ``len(rule.states)`` turns authored cycles into
a CycleDetectedError instead of a hang.
"""

import structlog
from pydantic import BaseModel, ConfigDict

from codeguard.core.errors import CycleDetectedError
from codeguard.core.models import COMPLETE_STATE, INITIAL_STATE
from codeguard.rules.condition_evaluator import ConditionEvaluator
from codeguard.rules.evidence import MatchEvidence
from codeguard.rules.models import RuleDefinition, Transition, TransitionEvent

logger = structlog.get_logger(__name__)


class ExecutedAction(BaseModel):
    """An action identifier executed on entering a state."""

    model_config = ConfigDict(frozen=True)

    state: str
    type: str


class ExecutionTrace(BaseModel):
    """The states one rule visited during one evaluation."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    state_path: tuple[str, ...]
    actions: tuple[ExecutedAction, ...] = ()

    @property
    def final_state(self) -> str:
        return self.state_path[-1]

    @property
    def fired(self) -> bool:
        return self.final_state == COMPLETE_STATE


def event_satisfied(event: TransitionEvent, evidence: MatchEvidence) -> bool:
    """Whether the evidence satisfies a transition's trigger event."""
    if event == TransitionEvent.ALWAYS:
        return True
    if event == TransitionEvent.KEYWORD_MATCH:
        return evidence.has_keyword_hit
    if event == TransitionEvent.PATTERN_FOUND:
        return evidence.has_pattern_match
    if event == TransitionEvent.NO_PATTERN_FOUND:
        return not evidence.has_pattern_match
    if event == TransitionEvent.ANTI_PATTERN_FOUND:
        return evidence.has_anti_pattern_hit
    if event == TransitionEvent.CONTENT_PRESENT:
        return bool(evidence.features.get("has_content"))
    raise ValueError(f"Unknown transition event: {event}")


class StateMachineExecutor:
    """Advances a rule's state machine deterministically."""

    def __init__(self, condition_evaluator: ConditionEvaluator | None = None):
        self.condition_evaluator = condition_evaluator or ConditionEvaluator()

    def select_transition(self, rule: RuleDefinition, state: str, evidence: MatchEvidence) -> Transition | None:
        """The first transition from ``state`` whose event and condition both hold."""
        for transition in rule.transitions_from(state):
            if not event_satisfied(transition.event, evidence):
                continue
            if self.condition_evaluator.evaluate(transition.condition, evidence):
                return transition
        return None

    def run(self, rule: RuleDefinition, evidence: MatchEvidence) -> ExecutionTrace:
        """
        Run the rule's state machine to its final state.

        Args:
            rule: The rule to execute.
            evidence: Evidence produced by the pattern matcher for this rule.

        Returns:
            The trace of visited states and executed actions.

        Raises:
            CycleDetectedError: If more than ``len(rule.states)`` steps are taken.
        """
        state = INITIAL_STATE
        state_path = [state]
        actions: list[ExecutedAction] = []

        # A rule keyed on keywords stays idle unless one of them occurs somewhere in the input
        if rule.triggers.keywords and not evidence.has_keyword_hit:
            logger.debug("rule_not_triggered", rule_id=rule.id)
            return ExecutionTrace(rule_id=rule.id, state_path=tuple(state_path))

        limit = len(rule.states)
        steps = 0
        while not rule.is_terminal(state):
            transition = self.select_transition(rule, state, evidence)
            if transition is None:
                break

            steps += 1
            if steps > limit:
                raise CycleDetectedError(rule.id, state_path, limit)

            state = transition.to_state
            state_path.append(state)
            for action in rule.actions_for(state):
                actions.append(ExecutedAction(state=state, type=action.type))
                logger.debug("action_executed", rule_id=rule.id, state=state, action=action.type)

        trace = ExecutionTrace(rule_id=rule.id, state_path=tuple(state_path), actions=tuple(actions))
        logger.debug("rule_executed", rule_id=rule.id, final_state=trace.final_state, steps=steps)
        return trace
