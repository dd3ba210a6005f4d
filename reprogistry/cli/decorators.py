"""
Click decorators for reprogistry CLI commands.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

import click

from ..core.exceptions import ReprogistryException

F = TypeVar("F", bound=Callable[..., Any])


def handle_errors(f: F) -> F:
    """Decorator turning reprogistry exceptions into Click errors.

    The exception's exit_code becomes the process exit code.
    """

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return f(*args, **kwargs)
        except ReprogistryException as e:
            error = click.ClickException(str(e))
            error.exit_code = e.exit_code
            raise error from e

    return wrapper  # type: ignore[return-value]
