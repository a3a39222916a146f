"""
Rule source parsing.

Decodes a rule document into a RuleDefinition. YAML documents hold the rule
fields at the top level. Markdown/MDC documents may carry them in YAML front
matter and/or in fenced ``yaml`` blocks; surrounding prose is ignored, and so
are fenced blocks that do not look like rule fields.
"""

import re
from typing import Any

import structlog
import yaml  # type: ignore
from pydantic import ValidationError as PydanticValidationError

from codeguard.core.errors import ParseError
from codeguard.rules.models import RuleDefinition, RuleSource
from codeguard.rules.validation import validate_rule

logger = structlog.get_logger(__name__)

# Keys that mark a YAML mapping as rule fields rather than an embedded example
RULE_KEYS = frozenset({"id", "states", "transitions", "triggers", "actions", "guidance", "terminal_states"})

_FRONT_MATTER = re.compile(r"\A\ufeff?\s*---[ \t]*\n(.*?)\n---[ \t]*(?:\n|\Z)", re.DOTALL)
_FENCED_YAML = re.compile(r"^```[ \t]*ya?ml[^\n]*\n(.*?)^```", re.DOTALL | re.MULTILINE | re.IGNORECASE)


def _load_yaml(text: str, source: RuleSource, where: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(f"invalid YAML in {where}: {e}", source=source.identity) from e


def _extract_markdown_fields(source: RuleSource) -> dict[str, Any]:
    data: dict[str, Any] = {}

    front_matter = _FRONT_MATTER.match(source.content)
    if front_matter:
        loaded = _load_yaml(front_matter.group(1), source, "front matter")
        if isinstance(loaded, dict):
            data.update(loaded)

    for block in _FENCED_YAML.finditer(source.content):
        text = block.group(1)
        try:
            loaded = yaml.safe_load(text)
        except yaml.YAMLError as e:
            # Broken blocks only matter when they were meant to hold the rule
            if re.search(r"^\s*states\s*:", text, re.MULTILINE):
                raise ParseError(f"invalid YAML in rule block: {e}", source=source.identity) from e
            logger.debug("yaml_block_skipped", source=source.identity, error=str(e))
            continue
        if isinstance(loaded, dict) and RULE_KEYS & loaded.keys():
            data.update(loaded)

    return data


def decode_source(source: RuleSource) -> dict[str, Any]:
    """
    Decode a rule document into a plain mapping of rule fields.

    Raises:
        ParseError: If the document is not valid YAML or holds no mapping.
    """
    if source.format == "markdown":
        data = _extract_markdown_fields(source)
    else:
        loaded = _load_yaml(source.content, source, "document")
        if not isinstance(loaded, dict):
            raise ParseError("document must be a mapping of rule fields", source=source.identity)
        data = loaded
        if isinstance(data.get("rule"), dict) and "states" not in data:
            data = data["rule"]

    if not data or not RULE_KEYS & data.keys():
        raise ParseError("document contains no rule definition", source=source.identity, field="states")
    return dict(data)


def parse_rule_source(source: RuleSource) -> RuleDefinition:
    """
    Parse and validate one rule source.

    Args:
        source: The rule document.

    Returns:
        The validated, immutable rule definition.

    Raises:
        ParseError: If the document cannot be decoded into the rule structure.
        ValidationError: If the decoded rule violates a definition invariant.
    """
    data = decode_source(source)
    data.setdefault("id", source.default_id)
    data["source"] = source.identity

    try:
        rule = RuleDefinition.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ParseError(first["msg"], source=source.identity, field=field) from e

    return validate_rule(rule)
