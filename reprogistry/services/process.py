"""
Subprocess-backed command runner.

All git, npm and nvm calls go through here. Non-zero exits and timeouts are
returned as data; callers decide whether a failure ends their ladder.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from ..core.di import resolve_or_default
from ..core.exceptions import CommandError
from ..core.interfaces.logger import ILogger
from ..core.interfaces.runner import CommandResult, ICommandRunner
from .logging import NullLogger


class SubprocessRunner(ICommandRunner):
    """
    Runs commands with subprocess.run, capturing text output.

    Usage:
        runner = SubprocessRunner()
        result = runner.run(["git", "rev-parse", "HEAD"], cwd=repo)
        if result.ok:
            print(result.stdout)
    """

    def __init__(self, logger: ILogger | None = None) -> None:
        self._logger = logger or resolve_or_default(ILogger, NullLogger)

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        argv = tuple(str(a) for a in args)
        merged_env = None
        if env:
            merged_env = {**os.environ, **env}

        self._logger.debug("Running %s (cwd=%s)", " ".join(argv), cwd)
        try:
            completed = subprocess.run(
                argv,
                cwd=str(cwd) if cwd else None,
                env=merged_env,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=timeout,
                stdin=subprocess.DEVNULL,
            )
        except subprocess.TimeoutExpired as e:
            self._logger.debug("Timed out after %ss: %s", timeout, " ".join(argv))
            return CommandResult(
                args=argv,
                exit_code=-1,
                stdout=_as_text(e.stdout),
                stderr=_as_text(e.stderr),
                timed_out=True,
            )
        except FileNotFoundError as e:
            raise CommandError(
                f"Cannot run {argv[0]}: {e}",
                command=" ".join(argv),
                cause=e,
            ) from e

        result = CommandResult(
            args=argv,
            exit_code=completed.returncode,
            stdout=completed.stdout.strip(),
            stderr=completed.stderr.strip(),
        )
        if not result.ok:
            self._logger.debug(
                "Exit %d from %s: %s", result.exit_code, " ".join(argv), result.stderr[-500:]
            )
        return result


def _as_text(value: bytes | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
