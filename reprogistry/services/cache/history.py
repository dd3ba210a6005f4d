"""
Result history rules: merge, deduplicate, order, staleness.

A history holds at most one entry per reproducer tool version. Entries are
ordered by timestamp, ties broken by tool version, so the last entry is
always the most recent attempt.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from ...core.interfaces.store import HistoryKey
from ...core.models.result import EnhancedResult
from ...utils import semver

if TYPE_CHECKING:
    from ...core.interfaces.store import IHistoryStore


def _preferred(current: EnhancedResult, candidate: EnhancedResult) -> EnhancedResult:
    """Entry with comparison data wins; otherwise the later timestamp wins."""
    if candidate.has_comparison != current.has_comparison:
        return candidate if candidate.has_comparison else current
    if candidate.timestamp_value > current.timestamp_value:
        return candidate
    return current


def dedupe_history(entries: Iterable[EnhancedResult]) -> list[EnhancedResult]:
    """One entry per reproduce version, in the order of `sort_history`."""
    by_version: dict[str, EnhancedResult] = {}
    for entry in entries:
        existing = by_version.get(entry.reproduce_version)
        by_version[entry.reproduce_version] = (
            entry if existing is None else _preferred(existing, entry)
        )
    return sort_history(by_version.values())


def sort_history(entries: Iterable[EnhancedResult]) -> list[EnhancedResult]:
    return sorted(
        entries,
        key=lambda e: (e.timestamp_value, semver.sort_key(e.reproduce_version)),
    )


def merge_history(
    existing: Iterable[EnhancedResult],
    new: EnhancedResult | Iterable[EnhancedResult],
) -> list[EnhancedResult]:
    """Append new entries to a history and normalize it."""
    additions = [new] if isinstance(new, EnhancedResult) else list(new)
    return dedupe_history([*existing, *additions])


def is_stale(
    history: list[EnhancedResult],
    tool_version: str,
    comparison_hash: str,
) -> bool:
    """
    Whether a version needs another reproduction.

    Stale when the current tool version has no entry, or its latest entry
    lacks comparison data, or was compared by different comparison logic.
    """
    current = [e for e in sort_history(history) if e.reproduce_version == tool_version]
    if not current:
        return True
    latest = current[-1]
    return not latest.has_comparison or latest.comparison_hash != comparison_hash


def find_stale_versions(
    store: IHistoryStore,
    package: str,
    versions: Iterable[str],
    tool_version: str,
    comparison_hash: str,
) -> list[str]:
    """Versions of `package` whose stored results are stale, in input order."""
    return [
        version
        for version in versions
        if is_stale(store.get(HistoryKey(package, version)), tool_version, comparison_hash)
    ]
