"""
Presenter interface for user-facing CLI output.

Keeps what the user reads separate from diagnostic logging.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.comparison import ComparisonResult
    from ...services.orchestrator import RunSummary


class IPresenter(ABC):
    """Renders messages, comparisons and run summaries."""

    @abstractmethod
    def print(self, message: str) -> None:
        """Print a message to output."""

    @abstractmethod
    def print_warning(self, message: str) -> None:
        """Print a warning message."""

    @abstractmethod
    def print_error(self, message: str) -> None:
        """Print an error message."""

    @abstractmethod
    def print_comparison(self, result: ComparisonResult, include_matching: bool = False) -> None:
        """
        Print a comparison summary followed by its per-file table.

        Args:
            result: Comparison to show
            include_matching: Also list files that match
        """

    @abstractmethod
    def print_run(self, summary: RunSummary) -> None:
        """Print the per-version outcome of an orchestrator run."""
