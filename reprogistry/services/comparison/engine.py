"""
File-level comparison of a published package against its rebuild.

Both inputs are directories holding extracted package contents. Every
relative path in either tree gets exactly one FileComparison, and the
summary counts always add up to the number of distinct paths.
"""

from __future__ import annotations

import difflib
import os
from dataclasses import dataclass
from pathlib import Path

from ...core.models.comparison import (
    BINARY_DIFF_MARKER,
    ComparisonResult,
    ComparisonSummary,
    FileComparison,
)
from .hashing import HashAlgorithmRegistry, HashStrategy

DEFAULT_MAX_DIFF_LINES = 200
DEFAULT_BINARY_SNIFF_BYTES = 8192


def list_files(root: Path) -> set[str]:
    """Relative POSIX paths of the regular files under `root` (symlinks skipped)."""
    files: set[str] = set()
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            full = Path(dirpath) / name
            if full.is_symlink() or not full.is_file():
                continue
            files.add(full.relative_to(root).as_posix())
    return files


@dataclass(frozen=True)
class _FileData:
    content: bytes
    binary: bool
    digest: str

    @property
    def size(self) -> int:
        return len(self.content)

    def text_lines(self) -> list[str]:
        return self.content.decode("utf-8", errors="replace").replace("\r\n", "\n").splitlines()


def _read(path: Path, strategy: HashStrategy, sniff_bytes: int) -> _FileData:
    content = path.read_bytes()
    binary = b"\0" in content[:sniff_bytes]
    normalized = content if binary else content.replace(b"\r\n", b"\n")
    return _FileData(content=content, binary=binary, digest=strategy.digest(normalized))


def bounded_unified_diff(
    path: str,
    package: list[str],
    source: list[str],
    max_lines: int,
) -> str | None:
    """Unified diff limited to `max_lines`, with a marker when truncated."""
    if max_lines <= 0:
        return None
    lines = list(
        difflib.unified_diff(
            package,
            source,
            fromfile=f"package/{path}",
            tofile=f"source/{path}",
            lineterm="",
        )
    )
    if len(lines) > max_lines:
        omitted = len(lines) - max_lines
        lines = [*lines[:max_lines], f"... diff truncated ({omitted} more lines)"]
    return "\n".join(lines)


def compare_directories(
    package_dir: Path,
    source_dir: Path,
    *,
    hash_algorithm: str = "sha256",
    max_diff_lines: int = DEFAULT_MAX_DIFF_LINES,
    binary_sniff_bytes: int = DEFAULT_BINARY_SNIFF_BYTES,
) -> ComparisonResult:
    """
    Compare an extracted published package with an extracted rebuild.

    Args:
        package_dir: Published package contents
        source_dir: Rebuilt package contents
        hash_algorithm: Per-file digest algorithm
        max_diff_lines: Bound on each text diff (0 disables diffs)
        binary_sniff_bytes: Prefix inspected for NUL bytes

    Returns:
        ComparisonResult keyed by relative path, in sorted path order
    """
    strategy = HashAlgorithmRegistry.get(hash_algorithm)
    package_dir, source_dir = Path(package_dir), Path(source_dir)
    package_files = list_files(package_dir)
    source_files = list_files(source_dir)

    files: dict[str, FileComparison] = {}
    matching = different = missing_in_source = missing_in_package = 0

    for rel in sorted(package_files | source_files):
        in_package = rel in package_files
        in_source = rel in source_files

        if in_package and in_source:
            pkg = _read(package_dir / rel, strategy, binary_sniff_bytes)
            src = _read(source_dir / rel, strategy, binary_sniff_bytes)
            binary = pkg.binary or src.binary
            if pkg.digest == src.digest:
                files[rel] = FileComparison(
                    match=True,
                    status="match",
                    package_hash=pkg.digest,
                    source_hash=src.digest,
                    size=pkg.size,
                    binary=binary,
                )
                matching += 1
            else:
                diff = (
                    BINARY_DIFF_MARKER
                    if binary
                    else bounded_unified_diff(rel, pkg.text_lines(), src.text_lines(), max_diff_lines)
                )
                files[rel] = FileComparison(
                    match=False,
                    status="content-diff",
                    package_hash=pkg.digest,
                    source_hash=src.digest,
                    size=pkg.size,
                    binary=binary,
                    diff=diff,
                )
                different += 1
        elif in_package:
            pkg = _read(package_dir / rel, strategy, binary_sniff_bytes)
            files[rel] = FileComparison(
                match=False,
                status="missing-in-source",
                package_hash=pkg.digest,
                size=pkg.size,
                binary=pkg.binary,
            )
            missing_in_source += 1
        else:
            src = _read(source_dir / rel, strategy, binary_sniff_bytes)
            files[rel] = FileComparison(
                match=False,
                status="missing-in-package",
                source_hash=src.digest,
                size=src.size,
                binary=src.binary,
            )
            missing_in_package += 1

    total = len(files)
    return ComparisonResult(
        files=files,
        summary=ComparisonSummary(
            total_files=total,
            matching_files=matching,
            different_files=different,
            missing_in_source=missing_in_source,
            missing_in_package=missing_in_package,
            score=matching / total if total else 1.0,
        ),
    )


def filter_non_matching(result: ComparisonResult) -> ComparisonResult:
    """Drop matching entries; the summary still describes the full comparison."""
    return ComparisonResult(
        files={path: entry for path, entry in result.files.items() if not entry.match},
        summary=result.summary,
    )
