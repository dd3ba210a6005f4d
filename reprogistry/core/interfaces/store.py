"""
Result history store interface.

A history is the ordered list of EnhancedResult for one package version.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..models.result import EnhancedResult


@dataclass(frozen=True)
class HistoryKey:
    """Storage key: package name plus exact version."""

    package: str
    version: str

    def __str__(self) -> str:
        return f"{self.package}@{self.version}"


class IHistoryStore(ABC):
    """Key-value store of result histories."""

    @abstractmethod
    def get(self, key: HistoryKey) -> list[EnhancedResult]:
        """Return the stored history, or an empty list if absent or unreadable."""
        pass

    @abstractmethod
    def put(self, key: HistoryKey, history: list[EnhancedResult]) -> None:
        """Replace the stored history for a key."""
        pass
