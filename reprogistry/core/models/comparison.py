"""
File-level comparison models.

These are persisted inside each history entry, so they serialize with the
camelCase keys of the result files.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from .base import RecordModel

FileStatus = Literal["match", "content-diff", "missing-in-source", "missing-in-package"]

BINARY_DIFF_MARKER = "Binary files differ"


class FileComparison(RecordModel):
    """Comparison outcome for one relative path."""

    match: bool
    status: FileStatus
    package_hash: str | None = None
    source_hash: str | None = None
    size: int | None = None
    binary: bool | None = None
    diff: str | None = None


class ComparisonSummary(RecordModel):
    """Aggregate counts over the union of both trees."""

    total_files: int = 0
    matching_files: int = 0
    different_files: int = 0
    missing_in_source: int = 0
    missing_in_package: int = 0
    score: float = 1.0


class ComparisonResult(RecordModel):
    """Per-file comparisons plus their summary.

    A stored diff without a summary loads with `summary=None` and does not
    count as comparison data.
    """

    files: dict[str, FileComparison] = Field(default_factory=dict)
    summary: ComparisonSummary | None = None
