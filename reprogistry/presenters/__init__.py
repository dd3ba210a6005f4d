"""
Output presenters for reprogistry CLI.
"""

from .console import ConsolePresenter
from .formatting import get_tier

__all__ = ["ConsolePresenter", "get_tier"]
