from abc import ABC, abstractmethod

from codeguard.rules.models import RuleSource


class RuleLoader(ABC):
    """
    Abstract interface for fetching rule sources.

    This interface allows us to swap out different rule sources
    (a directory on disk, bundled package data, etc.) without changing
    how the registry parses and validates them.
    """

    @abstractmethod
    def get_sources(self) -> list[RuleSource]:
        """
        Fetch every rule document this loader knows about.

        Returns:
            list of RuleSource objects, sorted by identity
        """
        pass
