# Rules package

from codeguard.rules.evidence import MatchEvidence
from codeguard.rules.executor import ExecutionTrace, StateMachineExecutor
from codeguard.rules.matcher import PatternMatcher
from codeguard.rules.models import (
    PatternTrigger,
    RuleAction,
    RuleCondition,
    RuleDefinition,
    RuleSource,
    RuleTriggers,
    Transition,
    TransitionEvent,
)
from codeguard.rules.registry import RuleRegistry

__all__ = [
    "ExecutionTrace",
    "MatchEvidence",
    "PatternMatcher",
    "PatternTrigger",
    "RuleAction",
    "RuleCondition",
    "RuleDefinition",
    "RuleRegistry",
    "RuleSource",
    "RuleTriggers",
    "StateMachineExecutor",
    "Transition",
    "TransitionEvent",
]
