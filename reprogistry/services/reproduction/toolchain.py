"""
Node.js toolchain matching through nvm.

Provisions the Node release a version was published with, degrading to
nearby releases and finally to whatever node is already on PATH.
"""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from ...core.di import LazyService
from ...core.exceptions import CommandError
from ...core.interfaces.logger import ILogger
from ...utils import semver
from ...utils.fallback import Attempt, first_success
from ...utils.output_parsing import extract_node_version, parse_tool_version
from ..logging import NullLogger

if TYPE_CHECKING:
    from ...core.interfaces.runner import ICommandRunner


@dataclass(frozen=True)
class Toolchain:
    """
    A node runtime commands can be run under.

    `node_version` is None for the active toolchain (whatever `node` resolves
    to on PATH); otherwise commands are wrapped in `nvm exec`.
    """

    node_version: str | None = None
    requested: str | None = None
    nvm_script: Path | None = None
    active_version: str | None = None

    @property
    def is_active(self) -> bool:
        return self.node_version is None

    @property
    def actual_version(self) -> str | None:
        return self.node_version or self.active_version

    @property
    def mismatched(self) -> bool:
        """True when a specific node was requested and something else is used."""
        if not self.requested:
            return False
        return _strip_v(self.actual_version) != _strip_v(self.requested)

    def command(self, args: Sequence[str]) -> list[str]:
        """Wrap a command so it runs under this toolchain."""
        if self.is_active or self.nvm_script is None:
            return list(args)
        script = (
            f"source {shlex.quote(str(self.nvm_script))} && "
            f"nvm exec {shlex.quote(self.node_version or '')} {shlex.join(args)}"
        )
        return ["bash", "-c", script]

    def strategy(self, npm_version: str | None) -> str:
        """Strategy identifier recorded in results, e.g. `npm:6.14.4 node:14.21.3!=14.0.0`."""
        label = f"npm:{npm_version or 'unknown'}"
        if self.mismatched:
            label += f" node:{_strip_v(self.actual_version) or 'unknown'}!={_strip_v(self.requested)}"
        return label


def _strip_v(version: str | None) -> str | None:
    return version[1:] if version and version.startswith("v") else version


class ToolchainMatcher:
    """
    Selects the node runtime for a build.

    Ladder for a requested version, first success wins:
    1. The exact version
    2. The latest release of the same major line
    3. The latest release of the next major line

    When all rungs fail, nvm is missing, or provisioning is disabled, the
    active toolchain is used and the substitution shows up in the strategy.

    Usage:
        matcher = ToolchainMatcher(runner, nvm_script=Path("~/.nvm/nvm.sh"))
        toolchain = matcher.match(record.published_with.node)
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(
        self,
        runner: ICommandRunner,
        *,
        nvm_script: Path | None = None,
        enabled: bool = True,
        min_node_version: str = "0.8.0",
        install_timeout: float | None = 600.0,
        logger: ILogger | None = None,
    ) -> None:
        self._runner = runner
        self._nvm_script = nvm_script
        self._enabled = enabled
        self._min_node_version = min_node_version
        self._install_timeout = install_timeout
        self._active_version: str | None = None
        if logger is not None:
            self.logger = logger

    @property
    def nvm_available(self) -> bool:
        return self._enabled and self._nvm_script is not None and self._nvm_script.exists()

    def active(self, requested: str | None = None) -> Toolchain:
        """The toolchain already on PATH."""
        if self._active_version is None:
            self._active_version = self._probe(["node", "--version"]) or ""
        return Toolchain(requested=requested, active_version=self._active_version or None)

    def match(self, requested: str | None) -> Toolchain:
        """Provision the toolchain closest to `requested`."""
        if not requested:
            return self.active()

        target = _strip_v(requested) or requested
        coerced = semver.coerce(target)
        if coerced and semver.compare(coerced, self._min_node_version) < 0:
            self.logger.info(
                "Node %s is below the installable minimum, clamping to %s",
                requested,
                self._min_node_version,
            )
            target = self._min_node_version

        if not self.nvm_available:
            self.logger.debug("nvm unavailable, using the active toolchain for node %s", requested)
            return self.active(requested)

        ladder = [Attempt(f"exact {target}", lambda: self._provision(target))]
        major = semver.major(target)
        if major is not None:
            ladder.append(Attempt(f"major {major}", lambda: self._provision(str(major))))
            ladder.append(Attempt(f"major {major + 1}", lambda: self._provision(str(major + 1))))

        found = first_success(ladder, tolerate=(CommandError,), logger=self.logger)
        if not found.succeeded:
            self.logger.warning(
                "Could not install any node compatible with %s, using the active toolchain",
                requested,
            )
            return self.active(requested)

        toolchain = Toolchain(
            node_version=found.value,
            requested=requested,
            nvm_script=self._nvm_script,
        )
        if toolchain.mismatched:
            self.logger.info("Using node %s (requested %s)", found.value, requested)
        return toolchain

    def npm_version(self, toolchain: Toolchain) -> str | None:
        """Version of npm bundled with a toolchain, or None if it cannot run."""
        return self._probe(toolchain.command(["npm", "--version"]), parser=parse_tool_version)

    def _provision(self, version: str) -> str | None:
        """Install a node release and return the version that actually runs."""
        script = shlex.quote(str(self._nvm_script))
        spec = shlex.quote(version)
        self.logger.info("Installing node %s via nvm", version)
        installed = self._runner.run(
            ["bash", "-c", f"source {script} && nvm install {spec}"],
            timeout=self._install_timeout,
        )
        if not installed.ok:
            self.logger.debug("nvm install %s failed: %s", version, installed.stderr)
            return None
        verified = self._runner.run(
            ["bash", "-c", f"source {script} && nvm exec {spec} node --version"],
            timeout=self._install_timeout,
        )
        if not verified.ok:
            return None
        return extract_node_version(verified.stdout)

    def _probe(self, args: Sequence[str], parser=extract_node_version) -> str | None:
        try:
            result = self._runner.run(list(args), timeout=60)
        except CommandError as e:
            self.logger.debug("Probe %s failed: %s", " ".join(args), e)
            return None
        if not result.ok:
            return None
        return parser(result.stdout)
