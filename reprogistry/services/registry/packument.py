"""
Helpers over a registry packument (the full metadata document of a package).
"""

from __future__ import annotations

from typing import Any

from ...core.exceptions import PackageNotFoundError
from ...core.models.package import PublishRecord
from ...utils import semver
from ...utils.git_url import canonical_repo_key, parse_source_location


def versions_in_range(packument: dict[str, Any], range_: str) -> list[str]:
    """Published versions satisfying an npm range, in packument order."""
    versions = packument.get("versions") or {}
    return [v for v in versions if semver.satisfies(v, range_)]


def publish_record(packument: dict[str, Any], version: str) -> PublishRecord:
    """Build the PublishRecord of one exact version."""
    manifest = (packument.get("versions") or {}).get(version)
    if not isinstance(manifest, dict):
        raise PackageNotFoundError(
            f"Version not found: {packument.get('name')}@{version}",
            context={"version": version},
        )
    published_at = (packument.get("time") or {}).get(version)
    return PublishRecord.from_manifest(manifest, published_at=published_at or None)


def _repository_url(document: dict[str, Any]) -> str | None:
    repository = document.get("repository")
    if isinstance(repository, str):
        return repository or None
    if isinstance(repository, dict):
        return repository.get("url") or None
    return None


def fallback_repository_urls(packument: dict[str, Any], exclude: str | None = None) -> list[str]:
    """
    Candidate repository URLs for when a version's own URL is unreachable.

    The top-level repository URL comes first, then each version's URL from
    newest to oldest. Duplicates and `exclude` (after normalization) are
    dropped.
    """
    excluded = canonical_repo_key(exclude) if exclude else None
    seen: set[str] = set()
    candidates: list[str] = []

    def add(url: str | None) -> None:
        if not url:
            return
        clone_url, _ = parse_source_location(url)
        key = canonical_repo_key(clone_url)
        if key == excluded or key in seen:
            return
        seen.add(key)
        candidates.append(clone_url)

    add(_repository_url(packument))
    versions = packument.get("versions") or {}
    for version in sorted(versions, key=semver.sort_key, reverse=True):
        manifest = versions[version]
        if isinstance(manifest, dict):
            add(_repository_url(manifest))
    return candidates
