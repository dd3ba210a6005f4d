"""
Constrained build: time-bounded dependency install plus pack.

Dependencies are resolved as they were at publish time (`npm install
--before`), so a rebuild does not silently pick up releases that did not
exist when the original artifact was made.
"""

from __future__ import annotations

import json
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ...core.di import LazyService
from ...core.exceptions import (
    DependencyInstallError,
    ManifestError,
    MissingPublishTime,
    PackError,
    TimeBoundedInstallUnsupported,
)
from ...core.interfaces.logger import ILogger
from ...utils import semver
from ...utils.fallback import Attempt, first_success
from ...utils.integrity import compute_integrity
from ...utils.output_parsing import parse_missing_dependency, parse_pack_output
from ..logging import NullLogger

if TYPE_CHECKING:
    from ...core.interfaces.runner import CommandResult, ICommandRunner
    from .toolchain import Toolchain, ToolchainMatcher

DEPENDENCY_FIELDS = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)

DEFAULT_INSTALL_FLAGS = (
    "--ignore-scripts",
    "--no-audit",
    "--no-fund",
    "--legacy-peer-deps",
    "--force",
)


@dataclass(frozen=True)
class BuildOutput:
    """The rebuilt artifact and how it was produced."""

    tarball: Path
    integrity: str
    npm_version: str
    toolchain: Toolchain
    removed_dependencies: list[str] = field(default_factory=list)
    transitive_dependencies: list[str] | None = None

    @property
    def strategy(self) -> str:
        return self.toolchain.strategy(self.npm_version)


# package.json handling


def _read_manifest(package_dir: Path) -> dict[str, Any]:
    path = package_dir / "package.json"
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ManifestError(f"No package.json in {package_dir}", cause=e) from e
    except (OSError, ValueError) as e:
        raise ManifestError(f"Unreadable package.json in {package_dir}: {e}", cause=e) from e
    if not isinstance(data, dict):
        raise ManifestError(f"package.json in {package_dir} is not an object")
    return data


def _write_manifest(package_dir: Path, data: dict[str, Any]) -> None:
    with open(package_dir / "package.json", "w", encoding="utf-8") as f:
        f.write(json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def rewrite_workspace_dependencies(package_dir: Path) -> list[str]:
    """
    Replace `workspace:` specifiers with `*` in every dependency map.

    npm cannot resolve yarn/pnpm workspace protocol references; `*` lets it
    take the published release instead. Returns the rewritten names.
    """
    data = _read_manifest(package_dir)
    rewritten: list[str] = []
    for field_name in DEPENDENCY_FIELDS:
        deps = data.get(field_name)
        if not isinstance(deps, dict):
            continue
        for name, spec in deps.items():
            if isinstance(spec, str) and spec.startswith("workspace:"):
                deps[name] = "*"
                rewritten.append(name)
    if rewritten:
        _write_manifest(package_dir, data)
    return rewritten


def remove_dependency(package_dir: Path, name: str) -> bool:
    """Drop a dependency from every dependency map; False if it was not declared."""
    data = _read_manifest(package_dir)
    removed = False
    for field_name in DEPENDENCY_FIELDS:
        deps = data.get(field_name)
        if isinstance(deps, dict) and name in deps:
            del deps[name]
            removed = True
    if removed:
        _write_manifest(package_dir, data)
    return removed


# Lockfile


def transitive_dependencies(lockfile: Path) -> list[str] | None:
    """
    Production dependency closure recorded in a package-lock.json.

    Handles lockfile versions 1 (nested `dependencies`) and 2/3 (flat
    `packages`). Entries flagged dev, devOptional or link are excluded.

    Returns:
        Sorted `name@version` strings, or None without a readable lockfile
    """
    try:
        with open(lockfile, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict):
        return None

    found: set[str] = set()
    packages = data.get("packages")
    if isinstance(packages, dict):
        for key, entry in packages.items():
            if not key or not isinstance(entry, dict) or _excluded(entry):
                continue
            name = entry.get("name") or key.rsplit("node_modules/", 1)[-1]
            version = entry.get("version")
            if name and version:
                found.add(f"{name}@{version}")
    else:
        _walk_v1(data.get("dependencies"), found)
    return sorted(found)


def _excluded(entry: dict[str, Any]) -> bool:
    return bool(entry.get("dev") or entry.get("devOptional") or entry.get("link"))


def _walk_v1(dependencies: Any, found: set[str]) -> None:
    if not isinstance(dependencies, dict):
        return
    for name, entry in dependencies.items():
        if not isinstance(entry, dict) or _excluded(entry):
            continue
        version = entry.get("version")
        if version:
            found.add(f"{name}@{version}")
        _walk_v1(entry.get("dependencies"), found)


class ConstrainedBuilder:
    """
    Installs dependencies bounded by the publish time, then packs.

    Usage:
        builder = ConstrainedBuilder(runner, matcher)
        output = builder.build(package_dir, publish_time=ts, toolchain=tc, dest_dir=tmp)
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(
        self,
        runner: ICommandRunner,
        matcher: ToolchainMatcher,
        *,
        min_before_npm_version: str = "5.0.0",
        max_dependency_retries: int = 3,
        install_flags: list[str] | tuple[str, ...] | None = None,
        install_timeout: float | None = None,
        logger: ILogger | None = None,
    ) -> None:
        self._runner = runner
        self._matcher = matcher
        self._min_before_npm_version = min_before_npm_version
        self._max_dependency_retries = max_dependency_retries
        self._install_flags = list(install_flags if install_flags is not None else DEFAULT_INSTALL_FLAGS)
        self._install_timeout = install_timeout
        if logger is not None:
            self.logger = logger

    def build(
        self,
        package_dir: Path,
        *,
        publish_time: str | None,
        toolchain: Toolchain,
        dest_dir: Path,
    ) -> BuildOutput:
        """
        Run the constrained install and pack in `package_dir`.

        Raises:
            ManifestError: No usable package.json
            MissingPublishTime: No publish timestamp to bound the install
            TimeBoundedInstallUnsupported: No npm >= the `--before` minimum
            DependencyInstallError: Install failed after dependency retries
            PackError: npm pack failed
        """
        rewritten = rewrite_workspace_dependencies(package_dir)
        if rewritten:
            self.logger.debug("Rewrote workspace dependencies: %s", ", ".join(rewritten))

        if not publish_time:
            raise MissingPublishTime(
                "Could not determine publish time, required for --before",
                context={"package_dir": str(package_dir)},
            )

        toolchain, npm_version = self.select_package_manager(toolchain)
        self.logger.info("Using --before=%s with npm %s", publish_time, npm_version)

        removed = self._install(package_dir, toolchain, publish_time)
        tarball, integrity = self._pack(package_dir, toolchain, publish_time, dest_dir)

        return BuildOutput(
            tarball=tarball,
            integrity=integrity,
            npm_version=npm_version,
            toolchain=toolchain,
            removed_dependencies=removed,
            transitive_dependencies=transitive_dependencies(package_dir / "package-lock.json"),
        )

    def select_package_manager(self, toolchain: Toolchain) -> tuple[Toolchain, str]:
        """
        First toolchain whose npm supports `--before`: matched, then active.
        """
        def candidates():
            yield toolchain
            if not toolchain.is_active:
                yield self._matcher.active(toolchain.requested)

        def supported(candidate: Toolchain) -> tuple[Toolchain, str] | None:
            version = self._matcher.npm_version(candidate)
            if version and semver.gte(version, self._min_before_npm_version):
                return candidate, version
            self.logger.debug("npm %s under node %s lacks --before", version, candidate.actual_version)
            return None

        found = first_success(
            (
                Attempt(
                    "matched" if not c.is_active else "active",
                    lambda c=c: supported(c),
                )
                for c in candidates()
            ),
            logger=self.logger,
        )
        if not found.succeeded or found.value is None:
            raise TimeBoundedInstallUnsupported(
                f"No npm >= {self._min_before_npm_version} available to honor --before",
                context={"tried": found.attempted},
            )
        return found.value

    def _install(self, package_dir: Path, toolchain: Toolchain, publish_time: str) -> list[str]:
        """npm install, removing unavailable dependencies between attempts."""
        args = toolchain.command(
            ["npm", "install", *self._install_flags, f"--before={publish_time}"]
        )
        env = {"NPM_CONFIG_BEFORE": publish_time}

        def run_install() -> CommandResult:
            return self._runner.run(args, cwd=package_dir, env=env, timeout=self._install_timeout)

        removed: list[str] = []
        first_result = result = run_install()
        while not result.ok:
            missing = parse_missing_dependency(result.output)
            if (
                len(removed) >= self._max_dependency_retries
                or missing is None
                or not remove_dependency(package_dir, missing.name)
            ):
                raise DependencyInstallError(
                    f"npm install failed: {_last_line(first_result.output)}",
                    output=first_result.output,
                    removed=removed,
                )
            self.logger.warning("Dependency %s is unavailable, retrying without it", missing)
            removed.append(str(missing))
            result = run_install()

        if removed:
            self.logger.info("Install succeeded after removing %s", ", ".join(removed))
        return removed

    def _pack(
        self,
        package_dir: Path,
        toolchain: Toolchain,
        publish_time: str,
        dest_dir: Path,
    ) -> tuple[Path, str]:
        dest_dir.mkdir(parents=True, exist_ok=True)
        bin_dir = package_dir / "node_modules" / ".bin"
        env = {
            "PATH": f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}",
            "NPM_CONFIG_BEFORE": publish_time,
        }
        result = self._runner.run(
            toolchain.command(["npm", "pack", "--json", "--pack-destination", str(dest_dir)]),
            cwd=package_dir,
            env=env,
            timeout=self._install_timeout,
        )
        if not result.ok:
            raise PackError(
                f"npm pack failed: {_last_line(result.output)}",
                context={"package_dir": str(package_dir)},
            )

        packed = parse_pack_output(result.stdout)
        if packed is None:
            raise PackError("npm pack produced no tarball name", context={"stdout": result.stdout[-500:]})

        tarball = dest_dir / packed.filename
        if not tarball.exists():
            # Releases without --pack-destination write into the package directory
            local = package_dir / packed.filename
            if not local.exists():
                raise PackError(f"Packed tarball not found: {packed.filename}")
            shutil.move(str(local), str(tarball))

        integrity = packed.integrity or compute_integrity(tarball)
        return tarball, integrity


def _last_line(output: str) -> str:
    lines = [line for line in output.strip().splitlines() if line.strip()]
    return lines[-1] if lines else "no output"
