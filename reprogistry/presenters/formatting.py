"""
Shared formatting utilities for reprogistry CLI output.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.models.comparison import ComparisonResult
    from ..services.orchestrator import RunSummary

# (minimum score, tier name), checked in order
TIERS: tuple[tuple[float, str], ...] = (
    (1.0, "Perfect"),
    (0.99, "Excellent"),
    (0.9, "Good"),
    (0.0, "High Risk"),
)


def get_tier(score: float | None) -> str:
    """Tier name for a reproducibility score.

    Examples:
        >>> get_tier(1)
        'Perfect'
        >>> get_tier(0.95)
        'Good'
        >>> get_tier(None)
        'Unknown'
    """
    if score is None or isinstance(score, bool) or not isinstance(score, (int, float)):
        return "Unknown"
    for minimum, name in TIERS:
        if score >= minimum:
            return name
    return "High Risk"


def format_score(score: float | None) -> str:
    """Score as a whole percentage (`97%`), or `?`."""
    if score is None or (isinstance(score, float) and math.isnan(score)):
        return "?"
    return f"{round(score * 100)}%"


def format_size(size_bytes: int | None) -> str:
    """Format byte size as human-readable string.

    Examples:
        >>> format_size(500)
        '500B'
        >>> format_size(2048)
        '2.0KB'
    """
    if size_bytes is None:
        return "?"
    if size_bytes < 1024:
        return f"{size_bytes}B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f}KB"
    return f"{size_bytes / 1024 / 1024:.1f}MB"


def comparison_rows(result: ComparisonResult, include_matching: bool = False) -> list[list[str]]:
    """Table rows (path, status, size) for a comparison."""
    return [
        [path, entry.status, format_size(entry.size)]
        for path, entry in result.files.items()
        if include_matching or not entry.match
    ]


def summary_line(result: ComparisonResult) -> str:
    s = result.summary
    if s is None:
        return f"{len(result.files)} files listed, no summary"
    return (
        f"{s.matching_files}/{s.total_files} files match, "
        f"{s.different_files} differ, "
        f"{s.missing_in_source} missing in source, "
        f"{s.missing_in_package} missing in package "
        f"(score {format_score(s.score)}, {get_tier(s.score)})"
    )


def run_rows(summary: RunSummary) -> list[list[str]]:
    """Table rows (version, status, detail) for an orchestrator run."""
    rows: list[list[str]] = []
    for outcome in summary.outcomes:
        if outcome.status == "succeeded":
            detail = (
                f"{'reproduced' if outcome.reproduced else 'not reproduced'}, "
                f"score {format_score(outcome.score)} ({get_tier(outcome.score)})"
            )
        else:
            detail = outcome.message or ""
        rows.append([outcome.version, outcome.status, detail])
    return rows
