"""
Registry of validated rule definitions.

A registry is built once by ``RuleRegistry.load`` and is read-only afterwards,
so any number of engines and requests can share it without locking. Candidate
lookup goes through a keyword index and always returns rules sorted by id.
"""

from collections.abc import Iterable
from pathlib import Path

import structlog

from codeguard.core.errors import RuleLoadError, ValidationError
from codeguard.core.utils.logging import log_function_call
from codeguard.rules.loaders import loader_for
from codeguard.rules.models import RuleDefinition, RuleSource
from codeguard.rules.parser import parse_rule_source

logger = structlog.get_logger(__name__)


class RuleRegistry:
    """Immutable set of validated rule definitions with keyword lookup."""

    def __init__(self, rules: Iterable[RuleDefinition] = ()):
        ordered = sorted(rules, key=lambda rule: rule.id)
        self._rules: dict[str, RuleDefinition] = {}
        for rule in ordered:
            if rule.id in self._rules:
                raise ValueError(f"Duplicate rule id: {rule.id}")
            self._rules[rule.id] = rule

        # keyword (lowercased) -> ids of rules declaring it
        self._keyword_index: dict[str, set[str]] = {}
        self._keywordless: tuple[str, ...] = tuple(rule.id for rule in ordered if not rule.triggers.keywords)
        for rule in ordered:
            for keyword in rule.triggers.lowered_keywords:
                self._keyword_index.setdefault(keyword, set()).add(rule.id)

    @classmethod
    @log_function_call(operation="load_rules")
    def load(cls, sources: Iterable[RuleSource]) -> tuple["RuleRegistry", list[RuleLoadError]]:
        """
        Parse and validate rule sources into a registry.

        Errors are local to their source: every other source still loads, and an
        input with no valid sources produces an empty registry.

        When several sources declare the same rule id, the one whose identity
        sorts first is kept and the others are reported, so the result never
        depends on the order of ``sources``.

        Args:
            sources: Rule documents to load.

        Returns:
            Tuple of (registry, errors) where errors holds one ParseError or
            ValidationError per rejected source, sorted by source identity.
        """
        errors: list[RuleLoadError] = []
        parsed: list[RuleDefinition] = []

        for source in sorted(sources, key=lambda s: s.identity):
            try:
                parsed.append(parse_rule_source(source))
            except RuleLoadError as e:
                logger.warning("rule_rejected", source=e.source, field=e.field, error=e.message, kind=type(e).__name__)
                errors.append(e)

        rules: dict[str, RuleDefinition] = {}
        for rule in parsed:
            kept = rules.get(rule.id)
            if kept is not None:
                error = ValidationError(
                    f"duplicate rule id '{rule.id}' (already defined in {kept.source})", source=rule.source, field="id"
                )
                logger.warning("rule_rejected", source=rule.source, field="id", error=error.message, kind="ValidationError")
                errors.append(error)
                continue
            rules[rule.id] = rule

        registry = cls(rules.values())
        errors.sort(key=lambda e: e.source)
        logger.info("rules_loaded", loaded=len(registry), rejected=len(errors))
        return registry, errors

    @classmethod
    def load_directory(cls, rules_dir: str | Path | None = None) -> tuple["RuleRegistry", list[RuleLoadError]]:
        """Load every rule document under ``rules_dir`` (the bundled library when None).

        Raises:
            RulesDirectoryNotFoundError: If ``rules_dir`` does not exist.
        """
        return cls.load(loader_for(rules_dir).get_sources())

    def candidates_for(self, request_text: str) -> list[RuleDefinition]:
        """
        Rules whose keywords occur in the request text, plus every rule without keywords.

        Args:
            request_text: The AI request text; matched case-insensitively.

        Returns:
            Candidate rules sorted by id ascending.
        """
        lowered = (request_text or "").lower()
        ids = set(self._keywordless)
        for keyword, rule_ids in self._keyword_index.items():
            if keyword in lowered:
                ids.update(rule_ids)
        return [self._rules[rule_id] for rule_id in sorted(ids)]

    def get(self, rule_id: str) -> RuleDefinition | None:
        return self._rules.get(rule_id)

    def list_rules(self) -> list[RuleDefinition]:
        """Every loaded rule, sorted by id."""
        return list(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __iter__(self):
        return iter(self.list_rules())
