"""
Reproduction result cache: per-version histories and the dependency queue.
"""

from .history import dedupe_history, find_stale_versions, is_stale, merge_history, sort_history
from .queue import DependencyQueue
from .store import InMemoryHistoryStore, JsonFileHistoryStore

__all__ = [
    "DependencyQueue",
    "InMemoryHistoryStore",
    "JsonFileHistoryStore",
    "dedupe_history",
    "find_stale_versions",
    "is_stale",
    "merge_history",
    "sort_history",
]
