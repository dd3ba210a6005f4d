"""
Shared pytest fixtures for reprogistry tests.

This module provides:
- ScriptedRunner: an ICommandRunner that answers git/npm/nvm calls from rules
- Builders for packuments, publish records and stored results
- Automatic reset of the DI container between tests
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from reprogistry.core.bootstrap import reset as reset_bootstrap
from reprogistry.core.interfaces.runner import CommandResult, ICommandRunner
from reprogistry.core.models.package import PublishRecord
from reprogistry.core.models.result import EnhancedResult


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: tests that need git on PATH")


@pytest.fixture(autouse=True)
def clean_container():
    """Every test starts with an empty service container."""
    reset_bootstrap()
    yield
    reset_bootstrap()


# =============================================================================
# Scripted command runner
# =============================================================================


@dataclass
class Call:
    args: tuple[str, ...]
    cwd: Path | None
    env: dict[str, str] | None
    timeout: float | None

    @property
    def line(self) -> str:
        return shlex.join(self.args)

    @property
    def command(self) -> str:
        """The command line with absolute path arguments masked.

        Temporary directories carry the test name, so rules never look at them.
        """
        return shlex.join("<path>" if os.path.isabs(arg) else arg for arg in self.args)


@dataclass
class Rule:
    pattern: str
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    raises: Exception | None = None
    effect: Callable[[Call], None] | None = None
    times: int | None = None


@dataclass
class ScriptedRunner(ICommandRunner):
    """
    Command runner driven by substring rules.

    The first rule whose pattern occurs in the masked command line
    (`Call.command`) answers the call. Rules with `times` expire after that many uses. Unmatched
    commands exit with `default_exit_code`.
    """

    default_exit_code: int = 0
    rules: list[Rule] = field(default_factory=list)
    calls: list[Call] = field(default_factory=list)

    def on(self, pattern: str, **kwargs: Any) -> ScriptedRunner:
        self.rules.append(Rule(pattern, **kwargs))
        return self

    def run(self, args, *, cwd=None, env=None, timeout=None) -> CommandResult:
        call = Call(tuple(args), cwd, dict(env) if env else None, timeout)
        self.calls.append(call)
        for rule in self.rules:
            if rule.pattern not in call.command:
                continue
            if rule.times is not None:
                if rule.times <= 0:
                    continue
                rule.times -= 1
            if rule.raises is not None:
                raise rule.raises
            if rule.effect is not None:
                rule.effect(call)
            return CommandResult(
                args=call.args,
                exit_code=rule.exit_code,
                stdout=rule.stdout,
                stderr=rule.stderr,
                timed_out=rule.timed_out,
            )
        return CommandResult(args=call.args, exit_code=self.default_exit_code)

    def lines(self, containing: str = "") -> list[str]:
        return [c.line for c in self.calls if containing in c.command]


@pytest.fixture
def runner() -> ScriptedRunner:
    return ScriptedRunner()


# =============================================================================
# Registry documents
# =============================================================================


def build_manifest(
    name: str = "demo",
    version: str = "1.0.0",
    *,
    repository: Any = "git+https://github.com/example/demo.git",
    git_head: str | None = "0123456789abcdef0123456789abcdef01234567",
    integrity: str = "sha512-AAAA",
    node: str | None = "14.21.3",
    npm: str | None = "6.14.18",
    dependencies: dict[str, str] | None = None,
) -> dict[str, Any]:
    manifest: dict[str, Any] = {
        "name": name,
        "version": version,
        "dist": {
            "tarball": f"https://registry.npmjs.org/{name}/-/{name.split('/')[-1]}-{version}.tgz",
            "integrity": integrity,
        },
        "dependencies": dependencies or {},
    }
    if repository is not None:
        manifest["repository"] = repository
    if git_head:
        manifest["gitHead"] = git_head
    if node:
        manifest["_nodeVersion"] = node
    if npm:
        manifest["_npmVersion"] = npm
    return manifest


def build_packument(
    name: str = "demo",
    versions: list[str] | None = None,
    *,
    repository: Any = "git+https://github.com/example/demo.git",
    manifests: dict[str, dict[str, Any]] | None = None,
) -> dict[str, Any]:
    versions = versions or ["1.0.0"]
    manifests = manifests or {}
    packument: dict[str, Any] = {
        "name": name,
        "versions": {
            v: manifests.get(v) or build_manifest(name, v, repository=repository) for v in versions
        },
        "time": {v: f"2020-01-{i + 1:02d}T00:00:00.000Z" for i, v in enumerate(versions)},
    }
    if repository is not None:
        packument["repository"] = {"type": "git", "url": repository}
    return packument


def build_record(**kwargs: Any) -> PublishRecord:
    published_at = kwargs.pop("published_at", "2020-01-01T00:00:00.000Z")
    return PublishRecord.from_manifest(build_manifest(**kwargs), published_at=published_at)


def build_result(
    *,
    reproduce_version: str = "0.3.0",
    timestamp: str = "2024-01-01T00:00:00.000Z",
    compared: bool = True,
    comparison_hash: str | None = "hash-1",
    name: str = "demo",
    version: str = "1.0.0",
    reproduced: bool = True,
    **extra: Any,
) -> EnhancedResult:
    data: dict[str, Any] = {
        "reproduceVersion": reproduce_version,
        "timestamp": timestamp,
        "os": "linux",
        "arch": "x64",
        "strategy": "npm:6.14.18",
        "reproduced": reproduced,
        "attested": False,
        "package": {
            "spec": f"{name}@{version}",
            "name": name,
            "version": version,
            "location": f"https://registry.npmjs.org/{name}/-/{name}-{version}.tgz",
            "integrity": "sha512-AAAA",
        },
        "source": {"spec": f"github:example/{name}#v{version}"},
        "comparisonHash": comparison_hash if compared else None,
        "diff": (
            {"files": {}, "summary": {"totalFiles": 1, "matchingFiles": 1, "score": 1.0}}
            if compared
            else None
        ),
    }
    data.update(extra)
    return EnhancedResult.model_validate(data)


@pytest.fixture
def make_manifest():
    return build_manifest


@pytest.fixture
def make_packument():
    return build_packument


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def make_result():
    return build_result
