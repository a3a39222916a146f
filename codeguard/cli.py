"""Command-line interface for codeguard.

Exit codes of ``evaluate``: 0 when no rule fired, 1 when at least one rule
fired (constraints apply), 2 when rules or input could not be loaded.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from codeguard.core.config import config
from codeguard.core.errors import RuleEngineError
from codeguard.core.utils.logging import configure_logging
from codeguard.engine.orchestrator import RuleEngine
from codeguard.presentation.result_formatter import (
    format_guidance_prompt,
    format_load_errors,
    format_result_json,
    format_result_text,
    format_rule_listing,
)
from codeguard.rules.registry import RuleRegistry

if TYPE_CHECKING:
    from argparse import Namespace

logger = structlog.get_logger(__name__)

EXIT_NO_CONSTRAINTS = 0
EXIT_CONSTRAINTS_APPLY = 1
EXIT_LOAD_FAILURE = 2


def get_version() -> str:
    """Get the codeguard version."""
    from codeguard import __version__

    return __version__


def _positive_int(value: str) -> int:
    """Argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _read_input(text: str | None, path: str | None) -> str | None:
    """Read an input given inline or as a file path ("-" reads stdin)."""
    if text is not None:
        return text
    if path is None:
        return None
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def load_registry(args: Namespace) -> RuleRegistry | None:
    """Load rules for a command, reporting failures on stderr.

    Returns:
        The registry, or None when loading must be treated as failed.
    """
    rules_dir = args.rules or config.engine.rules_dir
    try:
        registry, errors = RuleRegistry.load_directory(rules_dir)
    except RuleEngineError as e:
        print(f"error: {e}", file=sys.stderr)
        return None

    if errors:
        print(format_load_errors(errors), file=sys.stderr)
        strict = args.strict or config.engine.strict_load
        if strict or len(registry) == 0:
            return None
    return registry


def cmd_evaluate(args: Namespace) -> int:
    """Evaluate a request (and optional content) against the rules."""
    registry = load_registry(args)
    if registry is None:
        return EXIT_LOAD_FAILURE

    try:
        request_text = _read_input(args.request, args.request_file)
        content_snippet = _read_input(args.content, args.content_file)
    except (OSError, UnicodeDecodeError) as e:
        print(f"error: cannot read input: {e}", file=sys.stderr)
        return EXIT_LOAD_FAILURE

    engine = RuleEngine(registry, max_concurrency=args.max_concurrency)
    result = engine.evaluate_request_sync(request_text or "", content_snippet, timeout=args.timeout)
    logger.debug("cli_evaluated", any_fired=result.any_fired, outcomes=len(result.outcomes), format=args.format)

    if args.format == "json":
        print(format_result_json(result))
    elif args.format == "prompt":
        rules = {rule.id: rule for rule in registry.list_rules()}
        print(format_guidance_prompt(result, rules), end="")
    else:
        print(format_result_text(result))

    return EXIT_CONSTRAINTS_APPLY if result.any_fired else EXIT_NO_CONSTRAINTS


def cmd_rules(args: Namespace) -> int:
    """List the rules that load successfully."""
    registry = load_registry(args)
    if registry is None:
        return EXIT_LOAD_FAILURE
    print(format_rule_listing(registry.list_rules()))
    return EXIT_NO_CONSTRAINTS


def _add_rule_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--rules",
        "-r",
        metavar="DIR",
        help="Rules directory (default: $CODEGUARD_RULES_DIR or the bundled rule library)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail with exit code 2 if any rule source fails to load",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="codeguard",
        description="Constrain AI code generation with state-machine rules",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging on stderr")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # evaluate command
    evaluate_parser = subparsers.add_parser("evaluate", help="Evaluate a request against the rules")
    _add_rule_options(evaluate_parser)
    request_group = evaluate_parser.add_mutually_exclusive_group(required=True)
    request_group.add_argument("--request", metavar="TEXT", help="Request text")
    request_group.add_argument("--request-file", metavar="PATH", help="File holding the request text ('-' for stdin)")
    content_group = evaluate_parser.add_mutually_exclusive_group()
    content_group.add_argument("--content", metavar="TEXT", help="Code snippet or diff")
    content_group.add_argument("--content-file", metavar="PATH", help="File holding the code snippet or diff")
    evaluate_parser.add_argument(
        "--format",
        "-f",
        choices=["text", "json", "prompt"],
        default="text",
        help="Output format (default: text)",
    )
    evaluate_parser.add_argument("--timeout", type=float, help="Seconds before returning a partial result")
    evaluate_parser.add_argument("--max-concurrency", type=_positive_int, help="Rules evaluated in parallel")
    evaluate_parser.set_defaults(func=cmd_evaluate)

    # rules command
    rules_parser = subparsers.add_parser("rules", help="List loaded rules")
    _add_rule_options(rules_parser)
    rules_parser.set_defaults(func=cmd_rules)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    logging_config = replace(config.logging, level="DEBUG") if args.verbose else config.logging
    configure_logging(logging_config)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
