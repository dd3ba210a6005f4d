"""
Click command implementations for reprogistry CLI.

Each module corresponds to a reprogistry command (e.g., run.py implements
'reprogistry run').
"""

from .compare import compare
from .run import run
from .stale import stale

COMMANDS = [
    compare,
    run,
    stale,
]

__all__ = [
    "COMMANDS",
    "compare",
    "run",
    "stale",
]
