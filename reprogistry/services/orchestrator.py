"""
Pipeline orchestration over the versions of a package.

For each version matching a range: resolve, provision, fetch, build,
compare and persist. Versions run one after another; a failure ends only
that version's processing and is reported in the RunSummary.
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from .. import __version__
from ..core.di import LazyService, resolve_or_default
from ..core.exceptions import (
    ComparisonError,
    NotApplicableError,
    PackageNotFoundError,
    StageFailedError,
)
from ..core.interfaces.logger import ILogger
from ..core.interfaces.runner import ICommandRunner
from ..core.interfaces.store import HistoryKey, IHistoryStore
from ..core.models.package import PackageSpec
from ..core.models.result import EnhancedResult
from .cache.history import merge_history
from .cache.queue import DependencyQueue
from .cache.store import JsonFileHistoryStore
from .comparison.fingerprint import comparison_hash as current_comparison_hash
from .comparison.service import ComparisonService
from .logging import NullLogger
from .process import SubprocessRunner
from .registry.npm_client import NpmRegistryClient
from .registry.packument import publish_record, versions_in_range
from .reproduction.builder import ConstrainedBuilder
from .reproduction.ref_resolver import GitRefResolver
from .reproduction.service import ReproductionService, pipeline_stage
from .reproduction.source_fetcher import SourceFetcher
from .reproduction.toolchain import ToolchainMatcher

if TYPE_CHECKING:
    from ..core.interfaces.registry import IRegistryClient
    from ..core.models.package import PublishRecord
    from ..core.settings import ReprogistrySettings

VersionStatus = Literal["succeeded", "skipped", "failed"]


@dataclass(frozen=True)
class VersionOutcome:
    """What happened to one version."""

    version: str
    status: VersionStatus
    stage: str | None = None
    message: str | None = None
    reproduced: bool | None = None
    score: float | None = None


@dataclass
class RunSummary:
    """Outcome of one orchestrator run."""

    package: str
    versions_range: str
    outcomes: list[VersionOutcome] = field(default_factory=list)
    not_found: bool = False
    reason: str | None = None

    def _with_status(self, status: VersionStatus) -> list[VersionOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def succeeded(self) -> list[VersionOutcome]:
        return self._with_status("succeeded")

    @property
    def skipped(self) -> list[VersionOutcome]:
        return self._with_status("skipped")

    @property
    def failed(self) -> list[VersionOutcome]:
        return self._with_status("failed")

    @property
    def ok(self) -> bool:
        return not self.failed


class Orchestrator:
    """
    Drives the reproduction pipeline for a package.

    Usage:
        orchestrator = build_orchestrator(settings)
        try:
            summary = await orchestrator.run("qs", "^6")
        finally:
            await orchestrator.aclose()
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(
        self,
        registry: IRegistryClient,
        reproduction: ReproductionService,
        comparison: ComparisonService,
        store: IHistoryStore,
        *,
        queue: DependencyQueue | None = None,
        comparison_hash: str | None = None,
        work_root: Path | None = None,
        record_uncompared: bool = False,
        logger: ILogger | None = None,
    ) -> None:
        self._registry = registry
        self._reproduction = reproduction
        self._comparison = comparison
        self._store = store
        self._queue = queue
        self._comparison_hash = comparison_hash or current_comparison_hash()
        self._work_root = work_root
        self._record_uncompared = record_uncompared
        if logger is not None:
            self.logger = logger

    async def aclose(self) -> None:
        await self._registry.aclose()

    async def run(self, package: str, versions_range: str = "*") -> RunSummary:
        """
        Reproduce every published version of `package` within `versions_range`.

        Raises:
            RegistryError: The package metadata could not be fetched (transient)
        """
        summary = RunSummary(package=package, versions_range=versions_range)
        try:
            packument = await self._registry.get_packument(package)
        except PackageNotFoundError as e:
            self.logger.warning("Package %s not found on the registry: %s", package, e)
            summary.not_found = True
            summary.reason = "package no longer exists on the registry"
            return summary

        if not packument.get("versions"):
            self.logger.warning("Package %s has no published versions", package)
            summary.not_found = True
            summary.reason = "package has no published versions"
            return summary

        versions = versions_in_range(packument, versions_range)
        if not versions:
            self.logger.warning("No versions of %s satisfy %s", package, versions_range)
            return summary

        histories = await self._prefetch_histories(package, versions)
        for version in versions:
            spec = PackageSpec(name=package, requested=versions_range, version=version)
            outcome = await self._process_version(spec, packument, histories[version])
            summary.outcomes.append(outcome)
        return summary

    async def _prefetch_histories(
        self, package: str, versions: list[str]
    ) -> dict[str, list[EnhancedResult]]:
        histories = await asyncio.gather(
            *(asyncio.to_thread(self._store.get, HistoryKey(package, v)) for v in versions)
        )
        return dict(zip(versions, histories))

    async def _process_version(
        self,
        spec: PackageSpec,
        packument: dict[str, Any],
        history: list[EnhancedResult],
    ) -> VersionOutcome:
        package, version = spec.name, spec.version
        self.logger.info("Processing %s (requested %s)", spec.spec, spec.requested)
        work_dir = Path(
            tempfile.mkdtemp(
                prefix=f"reprogistry-{int(time.time() * 1000)}-",
                dir=str(self._work_root) if self._work_root else None,
            )
        )
        try:
            return await self._reproduce_version(package, packument, version, history, work_dir)
        except NotApplicableError as e:
            self.logger.info("Skipping %s@%s: %s", package, version, e)
            return VersionOutcome(version=version, status="skipped", stage=e.stage, message=str(e))
        except StageFailedError as e:
            self.logger.error("%s", e)
            return VersionOutcome(version=version, status="failed", stage=e.stage, message=str(e))
        except Exception as e:
            # Version boundary: an unexpected error ends this version only
            failure = StageFailedError("unknown", package=package, version=version, cause=e)
            self.logger.error("%s", failure, exc_info=True)
            return VersionOutcome(
                version=version, status="failed", stage=failure.stage, message=str(failure)
            )
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

    async def _reproduce_version(
        self,
        package: str,
        packument: dict[str, Any],
        version: str,
        history: list[EnhancedResult],
        work_dir: Path,
    ) -> VersionOutcome:
        with pipeline_stage("registry", package, version):
            record = publish_record(packument, version)

        attempt = await asyncio.to_thread(
            self._reproduction.reproduce, record, packument, work_dir
        )
        transitive = attempt.build.transitive_dependencies

        try:
            diff = await self._comparison.compare_attempt(
                record, attempt.build.tarball, work_dir / "compare"
            )
        except ComparisonError as e:
            if self._record_uncompared:
                self.logger.warning("Recording %s without comparison data", record.spec)
                uncompared = EnhancedResult.enrich(
                    attempt.result,
                    comparison_hash=None,
                    diff=None,
                    transitive_dependencies=transitive,
                )
                with pipeline_stage("persist", package, version):
                    self._persist(record, history, uncompared)
            raise StageFailedError("compare", package=package, version=version, cause=e) from e

        enhanced = EnhancedResult.enrich(
            attempt.result,
            comparison_hash=self._comparison_hash,
            diff=diff,
            transitive_dependencies=transitive,
        )
        with pipeline_stage("persist", package, version):
            self._persist(record, history, enhanced)
            if self._queue is not None:
                self._queue.write(package, version, dict(record.dependencies), transitive)

        return VersionOutcome(
            version=version,
            status="succeeded",
            reproduced=enhanced.reproduced,
            score=diff.summary.score if diff.summary is not None else None,
        )

    def _persist(
        self,
        record: PublishRecord,
        history: list[EnhancedResult],
        entry: EnhancedResult,
    ) -> None:
        merged = merge_history(history, entry)
        self._store.put(HistoryKey(record.name, record.version), merged)
        self.logger.info("Saved %d result(s) for %s", len(merged), record.spec)


def build_orchestrator(
    settings: ReprogistrySettings,
    *,
    registry: IRegistryClient | None = None,
    runner: ICommandRunner | None = None,
    store: IHistoryStore | None = None,
    tool_version: str = __version__,
) -> Orchestrator:
    """Wire an Orchestrator from settings, taking services from the container when registered."""
    runner = runner or resolve_or_default(ICommandRunner, SubprocessRunner)  # type: ignore[type-abstract]
    store = store or resolve_or_default(  # type: ignore[type-abstract]
        IHistoryStore, lambda: JsonFileHistoryStore(settings.paths.results_dir)
    )
    registry = registry or NpmRegistryClient(
        settings.registry.url,
        timeout=settings.registry.timeout,
        download_timeout=settings.comparison.download_timeout,
    )

    matcher = ToolchainMatcher(
        runner,
        nvm_script=settings.toolchain.nvm_script,
        enabled=settings.toolchain.enabled,
        min_node_version=settings.toolchain.min_node_version,
    )
    reproduction = ReproductionService(
        GitRefResolver(
            runner,
            forge_host=settings.source.forge_host,
            tag_lookup_timeout=settings.source.tag_lookup_timeout,
        ),
        matcher,
        SourceFetcher(
            runner,
            cache_dir=settings.paths.cache_dir,
            probe_timeout=settings.source.probe_timeout,
        ),
        ConstrainedBuilder(
            runner,
            matcher,
            min_before_npm_version=settings.build.min_before_npm_version,
            max_dependency_retries=settings.build.max_dependency_retries,
            install_flags=settings.build.install_flags,
        ),
        tool_version=tool_version,
    )
    comparison = ComparisonService(
        registry,
        hash_algorithm=settings.comparison.hash_algorithm,
        max_diff_lines=settings.comparison.max_diff_lines,
        binary_sniff_bytes=settings.comparison.binary_sniff_bytes,
        store_matching=settings.comparison.store_matching,
    )
    queue = DependencyQueue(settings.paths.queue_dir) if settings.pipeline.write_dependency_queue else None

    return Orchestrator(
        registry,
        reproduction,
        comparison,
        store,
        queue=queue,
        work_root=settings.paths.work_dir,
        record_uncompared=settings.pipeline.record_uncompared,
    )
