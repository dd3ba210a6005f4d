"""
Abstract interfaces for reprogistry services.

Services depend on these interfaces rather than concrete implementations so
that pipelines can run against scripted runners and in-memory stores.
"""

from .logger import ILogger
from .presenter import IPresenter
from .registry import IRegistryClient
from .runner import CommandResult, ICommandRunner
from .store import HistoryKey, IHistoryStore

__all__ = [
    "CommandResult",
    "HistoryKey",
    "ICommandRunner",
    "IHistoryStore",
    "ILogger",
    "IPresenter",
    "IRegistryClient",
]
