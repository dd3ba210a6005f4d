"""
Console presenter for terminal output.

Results go to stdout; warnings and failed versions go to stderr. ANSI
styling is only used when stdout is a terminal.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, TextIO

from ..core.interfaces.presenter import IPresenter
from .formatting import comparison_rows, run_rows, summary_line

if TYPE_CHECKING:
    from ..core.models.comparison import ComparisonResult
    from ..services.orchestrator import RunSummary

BOLD = "1"
RED = "91"
YELLOW = "93"


class ConsolePresenter(IPresenter):
    """Plain-text presenter for the reprogistry CLI."""

    def __init__(
        self,
        use_color: bool = True,
        file: TextIO | None = None,
        err_file: TextIO | None = None,
    ) -> None:
        self._out = file or sys.stdout
        self._err = err_file or sys.stderr
        self._color = use_color and getattr(self._out, "isatty", lambda: False)()

    def _style(self, text: str, code: str) -> str:
        return f"\033[{code}m{text}\033[0m" if self._color else text

    def print(self, message: str) -> None:
        print(message, file=self._out)

    def print_warning(self, message: str) -> None:
        print(self._style(f"Warning: {message}", YELLOW), file=self._err)

    def print_error(self, message: str) -> None:
        print(self._style(f"Error: {message}", RED), file=self._err)

    def print_comparison(self, result: ComparisonResult, include_matching: bool = False) -> None:
        self.print(summary_line(result))
        rows = comparison_rows(result, include_matching=include_matching)
        if rows:
            self.print("")
            self._table(["File", "Status", "Size"], rows)

    def print_run(self, summary: RunSummary) -> None:
        if summary.not_found:
            self.print_warning(f"{summary.package}: {summary.reason}")
            return
        if not summary.outcomes:
            self.print_warning(f"No versions of {summary.package} satisfy {summary.versions_range}")
            return

        self._table(["Version", "Status", "Detail"], run_rows(summary))
        self.print(
            f"\n{len(summary.succeeded)} succeeded, {len(summary.skipped)} skipped, "
            f"{len(summary.failed)} failed"
        )
        for outcome in summary.failed:
            self.print_error(outcome.message or f"{summary.package}@{outcome.version} failed")

    def _table(self, headers: list[str], rows: list[list[str]]) -> None:
        # Columns are as wide as their widest cell, header included
        widths = [max(len(cell) for cell in column) for column in zip(headers, *rows)]
        header = "  ".join(h.ljust(w) for h, w in zip(headers, widths))
        self.print(self._style(header, BOLD))
        self.print("-" * len(header))
        for row in rows:
            self.print("  ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip())
