"""
Reproduction service for rebuilding one published version.

Coordinates ref resolution, toolchain matching, source checkout and the
constrained build, and turns their outputs into a ReproductionResult.
"""

from __future__ import annotations

import platform
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ...core.di import LazyService
from ...core.exceptions import (
    NotApplicableError,
    ReprogistryException,
    StageFailedError,
)
from ...core.interfaces.logger import ILogger
from ...core.models.result import (
    PackageInfo,
    PublishedWithInfo,
    ReproductionResult,
    SourceInfo,
    utc_now_iso,
)
from ...utils.integrity import tarball_matches
from ..logging import NullLogger

if TYPE_CHECKING:
    from ...core.models.package import PublishRecord, SourceDescriptor
    from .builder import BuildOutput, ConstrainedBuilder
    from .ref_resolver import GitRefResolver
    from .source_fetcher import FetchedSource, SourceFetcher
    from .toolchain import ToolchainMatcher

_ARCH_NAMES = {
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "ia32",
    "i686": "ia32",
    "armv7l": "arm",
}


def node_platform() -> str:
    """Host OS in node's naming (`linux`, `darwin`, `win32`)."""
    if sys.platform.startswith("linux"):
        return "linux"
    return sys.platform


def node_arch() -> str:
    """Host architecture in node's naming (`x64`, `arm64`)."""
    machine = platform.machine().lower()
    return _ARCH_NAMES.get(machine, machine)


@contextmanager
def pipeline_stage(stage: str, package: str, version: str) -> Iterator[None]:
    """
    Tag failures inside a block with the stage they happened in.

    Not-applicable conditions and already-tagged failures pass through.
    """
    try:
        yield
    except (NotApplicableError, StageFailedError):
        raise
    except (ReprogistryException, OSError) as e:
        tagged = getattr(e, "stage", None) or stage
        raise StageFailedError(
            tagged, package=package, version=version, cause=e
        ) from e


@dataclass(frozen=True)
class ReproductionAttempt:
    """Everything one rebuild produced."""

    result: ReproductionResult
    descriptor: SourceDescriptor
    source: FetchedSource
    build: BuildOutput


class ReproductionService:
    """
    Service for rebuilding a published version from source.

    Coordinates:
    - Repository and ref resolution (GitRefResolver)
    - Node toolchain selection (ToolchainMatcher)
    - Clone and checkout (SourceFetcher)
    - Time-bounded install and pack (ConstrainedBuilder)

    Usage:
        service = ReproductionService(resolver, matcher, fetcher, builder, tool_version="0.3.0")
        attempt = service.reproduce(record, packument, work_dir)
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(
        self,
        resolver: GitRefResolver,
        matcher: ToolchainMatcher,
        fetcher: SourceFetcher,
        builder: ConstrainedBuilder,
        *,
        tool_version: str,
        logger: ILogger | None = None,
    ) -> None:
        self._resolver = resolver
        self._matcher = matcher
        self._fetcher = fetcher
        self._builder = builder
        self._tool_version = tool_version
        if logger is not None:
            self.logger = logger

    def reproduce(
        self,
        record: PublishRecord,
        packument: dict[str, Any] | None,
        work_dir: Path,
    ) -> ReproductionAttempt:
        """
        Rebuild `record` and describe the outcome.

        Raises:
            NotApplicableError: No usable repository; the version is skipped
            StageFailedError: Any stage failed
        """
        with pipeline_stage("resolve", record.name, record.version):
            descriptor = self._resolver.resolve(record)
        self.logger.info("Resolved %s to %s", record.spec, descriptor.canonical_spec)

        with pipeline_stage("toolchain", record.name, record.version):
            toolchain = self._matcher.match(record.published_with.node)

        with pipeline_stage("fetch", record.name, record.version):
            source = self._fetcher.fetch(descriptor, record.name, packument)
            if source.used_fallback:
                descriptor, source = self._follow_move(record, descriptor, source, packument)

        with pipeline_stage("build", record.name, record.version):
            build = self._builder.build(
                source.package_dir,
                publish_time=record.published_at,
                toolchain=toolchain,
                dest_dir=work_dir / "rebuilt",
            )

        reproduced = tarball_matches(build.tarball, record.integrity, build.integrity)
        self.logger.info(
            "%s %s (strategy %s)",
            record.spec,
            "reproduced" if reproduced else "did not reproduce",
            build.strategy,
        )
        result = ReproductionResult(
            reproduce_version=self._tool_version,
            timestamp=utc_now_iso(),
            os=node_platform(),
            arch=node_arch(),
            strategy=build.strategy,
            reproduced=reproduced,
            attested=record.attested,
            package=PackageInfo(
                spec=record.spec,
                name=record.name,
                version=record.version,
                location=record.tarball,
                integrity=record.integrity,
                published_at=record.published_at,
                published_with=PublishedWithInfo(
                    node=record.published_with.node,
                    npm=record.published_with.npm,
                ),
                dependencies=dict(record.dependencies),
            ),
            source=SourceInfo(
                integrity=build.integrity,
                location=record.repository_url,
                spec=descriptor.canonical_spec,
                clone_url=source.clone_url,
                commit=source.commit,
                pinned=descriptor.pinned,
            ),
        )
        return ReproductionAttempt(
            result=result,
            descriptor=descriptor,
            source=source,
            build=build,
        )

    def _follow_move(
        self,
        record: PublishRecord,
        descriptor: SourceDescriptor,
        source: FetchedSource,
        packument: dict[str, Any] | None,
    ) -> tuple[SourceDescriptor, FetchedSource]:
        """Re-resolve against the repository actually cloned, checking out again if the ref moved."""
        moved = self._resolver.resolve(record, clone_url=source.clone_url)
        self.logger.info("%s moved to %s", descriptor.canonical_spec, moved.canonical_spec)
        if moved.ref != descriptor.ref:
            source = replace(self._fetcher.fetch(moved, record.name, packument), used_fallback=True)
        return moved, source
