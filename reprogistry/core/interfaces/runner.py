"""
Command runner interface.

Every git, npm and nvm invocation goes through ICommandRunner so the pipeline
only ever sees structured results, and tests can script the external world.
"""

from __future__ import annotations

import shlex
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from ..exceptions import CommandError


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external process."""

    args: tuple[str, ...]
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    @property
    def command_line(self) -> str:
        return shlex.join(self.args)

    @property
    def output(self) -> str:
        """stdout and stderr combined, for error scraping."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    def check(self, message: str | None = None) -> CommandResult:
        """Raise CommandError unless the command succeeded."""
        if self.ok:
            return self
        reason = "timed out" if self.timed_out else f"exited with {self.exit_code}"
        raise CommandError(
            message or f"Command {reason}",
            command=self.command_line,
            exit_code=self.exit_code,
            stderr=self.stderr,
        )


class ICommandRunner(ABC):
    """Interface for running external commands."""

    @abstractmethod
    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """
        Run a command and capture its output.

        Args:
            args: Program and arguments (no shell interpretation)
            cwd: Working directory
            env: Variables added on top of the current environment
            timeout: Seconds before the process is killed

        Returns:
            CommandResult; never raises for a non-zero exit
        """
        pass
