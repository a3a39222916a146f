"""
Filesystem rule loaders.

Loads rule documents from a directory on disk or from the rule library bundled
with the package, implementing the RuleLoader interface.
"""

from importlib import resources
from pathlib import Path

import structlog

from codeguard.core.errors import RuleEngineError
from codeguard.rules.interface import RuleLoader
from codeguard.rules.models import RuleSource

logger = structlog.get_logger(__name__)

RULE_FILE_SUFFIXES = (".yaml", ".yml", ".md", ".mdc", ".markdown")

LIBRARY_PACKAGE = "codeguard.rules.library"


class RulesDirectoryNotFoundError(RuleEngineError):
    """Raised when the rules directory does not exist."""

    pass


class DirectoryRuleLoader(RuleLoader):
    """
    Loads every rule document found under a directory.
    Files are read in sorted order; unreadable files are skipped with a warning.
    """

    def __init__(self, path: str | Path, recursive: bool = True):
        self.path = Path(path)
        self.recursive = recursive

    def get_sources(self) -> list[RuleSource]:
        if not self.path.is_dir():
            raise RulesDirectoryNotFoundError(f"Rules directory not found: {self.path}")

        candidates = self.path.rglob("*") if self.recursive else self.path.glob("*")
        files = sorted(p for p in candidates if p.is_file() and p.suffix.lower() in RULE_FILE_SUFFIXES)

        sources = []
        for file_path in files:
            identity = file_path.relative_to(self.path).as_posix()
            try:
                content = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("rule_file_unreadable", path=str(file_path), error=str(e))
                continue
            sources.append(RuleSource.from_text(identity, content))

        logger.info("rule_sources_found", path=str(self.path), count=len(sources))
        return sources


class LibraryRuleLoader(RuleLoader):
    """Loads the rule library shipped inside the package."""

    def __init__(self, package: str = LIBRARY_PACKAGE):
        self.package = package

    def get_sources(self) -> list[RuleSource]:
        root = resources.files(self.package)
        entries = sorted(
            (entry for entry in root.iterdir() if entry.is_file() and entry.name.lower().endswith(RULE_FILE_SUFFIXES)),
            key=lambda entry: entry.name,
        )
        sources = [RuleSource.from_text(entry.name, entry.read_text(encoding="utf-8")) for entry in entries]
        logger.info("rule_sources_found", package=self.package, count=len(sources))
        return sources


def loader_for(rules_dir: str | Path | None) -> RuleLoader:
    """The directory loader for ``rules_dir``, or the bundled library when it is None."""
    if rules_dir is None:
        return LibraryRuleLoader()
    return DirectoryRuleLoader(rules_dir)
