"""
Comparison service: fetch, verify, extract and compare artifacts.
"""

from __future__ import annotations

import asyncio
import shutil
import tarfile
from pathlib import Path
from typing import TYPE_CHECKING

from ...core.di import LazyService
from ...core.exceptions import ComparisonError, RegistryError
from ...core.interfaces.logger import ILogger
from ...utils.integrity import verify_integrity
from ..logging import NullLogger
from .engine import (
    DEFAULT_BINARY_SNIFF_BYTES,
    DEFAULT_MAX_DIFF_LINES,
    compare_directories,
    filter_non_matching,
)

if TYPE_CHECKING:
    from ...core.interfaces.registry import IRegistryClient
    from ...core.models.comparison import ComparisonResult
    from ...core.models.package import PublishRecord


def extract_tarball(tarball: Path, dest: Path) -> Path:
    """
    Extract a package tarball and return its content root.

    npm tarballs wrap everything in a single top-level directory (usually
    `package/`); that wrapper is unwrapped. Member paths escaping `dest`,
    device files and absolute links are rejected by the `data` filter.

    Raises:
        ComparisonError: The archive is unreadable or unsafe
    """
    dest.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(tarball, mode="r:*") as archive:
            archive.extractall(dest, filter="data")
    except (tarfile.TarError, OSError) as e:
        raise ComparisonError(f"Cannot extract {tarball.name}: {e}", cause=e) from e

    entries = list(dest.iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return dest


def materialize(path: Path, dest: Path) -> Path:
    """A directory stays as is; a tarball is extracted under `dest`."""
    if path.is_dir():
        return path
    if not path.exists():
        raise ComparisonError(f"No such file or directory: {path}")
    return extract_tarball(path, dest)


class ComparisonService:
    """
    Compares a published tarball with a rebuilt one.

    Usage:
        service = ComparisonService(registry)
        result = await service.compare_attempt(record, rebuilt_tarball, work_dir)
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(
        self,
        registry: IRegistryClient | None = None,
        *,
        hash_algorithm: str = "sha256",
        max_diff_lines: int = DEFAULT_MAX_DIFF_LINES,
        binary_sniff_bytes: int = DEFAULT_BINARY_SNIFF_BYTES,
        store_matching: bool = False,
        logger: ILogger | None = None,
    ) -> None:
        self._registry = registry
        self._hash_algorithm = hash_algorithm
        self._max_diff_lines = max_diff_lines
        self._binary_sniff_bytes = binary_sniff_bytes
        self._store_matching = store_matching
        if logger is not None:
            self.logger = logger

    def compare_trees(self, package_dir: Path, source_dir: Path) -> ComparisonResult:
        return compare_directories(
            package_dir,
            source_dir,
            hash_algorithm=self._hash_algorithm,
            max_diff_lines=self._max_diff_lines,
            binary_sniff_bytes=self._binary_sniff_bytes,
        )

    def compare_paths(self, published: Path, rebuilt: Path, work_dir: Path) -> ComparisonResult:
        """Compare two tarballs or directories in any combination (full result)."""
        package_root = materialize(Path(published), work_dir / "published")
        source_root = materialize(Path(rebuilt), work_dir / "rebuilt")
        return self.compare_trees(package_root, source_root)

    async def compare_attempt(
        self,
        record: PublishRecord,
        rebuilt_tarball: Path,
        work_dir: Path,
    ) -> ComparisonResult:
        """
        Download the published tarball of `record` and compare it with a rebuild.

        Raises:
            ComparisonError: Download, integrity check or extraction failed
        """
        if self._registry is None:
            raise ComparisonError("No registry client configured for downloads")

        work_dir.mkdir(parents=True, exist_ok=True)
        published = work_dir / "published.tgz"
        try:
            size = await self._registry.download(record.tarball, published)
        except RegistryError as e:
            raise ComparisonError(f"Cannot download {record.tarball}: {e}", cause=e) from e
        self.logger.debug("Downloaded %s (%d bytes)", record.tarball, size)

        if record.integrity:
            if not await asyncio.to_thread(verify_integrity, published, record.integrity):
                raise ComparisonError(
                    f"Downloaded tarball does not match recorded integrity for {record.spec}",
                    context={"integrity": record.integrity},
                )
        else:
            self.logger.warning("No recorded integrity for %s, skipping verification", record.spec)

        try:
            result = await asyncio.to_thread(
                self.compare_paths, published, rebuilt_tarball, work_dir / "trees"
            )
        finally:
            shutil.rmtree(work_dir / "trees", ignore_errors=True)

        self.logger.info(
            "%s: %d/%d files match (score %.2f)",
            record.spec,
            result.summary.matching_files,
            result.summary.total_files,
            result.summary.score,
        )
        return result if self._store_matching else filter_non_matching(result)
