"""
Ordered fallback ladders.

Many pipeline steps try a sequence of strategies and keep the first that
works (ref lookup, toolchain provisioning, repository URLs, git fetch and
checkout). `first_success` is the one combinator they share, so every ladder
logs and reports its attempts the same way.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from ..core.interfaces.logger import ILogger

T = TypeVar("T")


@dataclass(frozen=True)
class Attempt(Generic[T]):
    """
    One rung of a ladder.

    `run` returns a value on success. Returning None or raising one of the
    ladder's `tolerate` exception types moves on to the next rung.
    """

    label: str
    run: Callable[[], T | None]


@dataclass
class FallbackResult(Generic[T]):
    """The winning value, which rung produced it, and every rung tried."""

    value: T | None = None
    label: str | None = None
    attempted: list[str] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.label is not None

    @property
    def first_error(self) -> Exception | None:
        return self.errors[0] if self.errors else None


def first_success(
    attempts: Iterable[Attempt[T]],
    *,
    tolerate: tuple[type[Exception], ...] = (),
    logger: ILogger | None = None,
) -> FallbackResult[T]:
    """
    Run attempts in order until one yields a value.

    Attempts are evaluated lazily: later rungs never run once one succeeds.

    Args:
        attempts: Ordered rungs
        tolerate: Exception types treated as "this rung failed"; anything
            else propagates
        logger: Optional logger for per-rung debug output

    Returns:
        FallbackResult; `succeeded` is False when every rung failed
    """
    result: FallbackResult[T] = FallbackResult()
    for attempt in attempts:
        result.attempted.append(attempt.label)
        try:
            value = attempt.run()
        except tolerate as e:
            result.errors.append(e)
            if logger:
                logger.debug("Fallback rung %r failed: %s", attempt.label, e)
            continue
        if value is None:
            if logger:
                logger.debug("Fallback rung %r produced nothing", attempt.label)
            continue
        result.value = value
        result.label = attempt.label
        return result
    return result
