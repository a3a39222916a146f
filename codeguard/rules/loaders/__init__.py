"""
Rule loaders package.

This package contains implementations of the RuleLoader interface
for loading rule documents from different sources (directories, package data).
"""

from codeguard.rules.loaders.directory_loader import (
    DirectoryRuleLoader,
    LibraryRuleLoader,
    RulesDirectoryNotFoundError,
    loader_for,
)

__all__ = [
    "DirectoryRuleLoader",
    "LibraryRuleLoader",
    "RulesDirectoryNotFoundError",
    "loader_for",
]
