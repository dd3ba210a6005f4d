"""
Package identity, publish-time facts and source descriptors.
"""

from __future__ import annotations

import base64
import re
from typing import Any, Literal

from pydantic import Field

from .base import ImmutableModel

RefSource = Literal["git-head", "tag", "v-tag", "default-branch"]

DEFAULT_BRANCH_REF = "HEAD"

_SOURCE_SPEC_RE = re.compile(
    r"^(?P<forge>[a-z]+):(?P<location>[^#]+)#(?P<ref>.+?)(?:::path:(?P<subdir>.+))?$"
)

_FORGE_HOSTS = {
    "github": "github.com",
    "gitlab": "gitlab.com",
    "bitbucket": "bitbucket.org",
}


class PackageSpec(ImmutableModel):
    """Identity of one reproduction request."""

    name: str
    requested: str
    version: str

    @property
    def spec(self) -> str:
        """The `name@version` form used in logs and results."""
        return f"{self.name}@{self.version}"


class PublishedWith(ImmutableModel):
    """Toolchain versions recorded by the registry at publish time."""

    node: str | None = None
    npm: str | None = None


class PublishRecord(ImmutableModel):
    """
    Manifest facts captured at publish time for one exact version.

    Sourced entirely from the registry's metadata; never modified.
    """

    name: str
    version: str
    tarball: str
    integrity: str
    published_at: str | None = None
    published_with: PublishedWith = Field(default_factory=PublishedWith)
    dependencies: dict[str, str] = Field(default_factory=dict)
    repository_url: str | None = None
    repository_directory: str | None = None
    git_head: str | None = None
    attested: bool = False

    @property
    def spec(self) -> str:
        return f"{self.name}@{self.version}"

    @classmethod
    def from_manifest(
        cls,
        manifest: dict[str, Any],
        published_at: str | None = None,
    ) -> PublishRecord:
        """Build a record from a registry version manifest."""
        dist = manifest.get("dist") or {}
        repository = manifest.get("repository")
        if isinstance(repository, str):
            repo_url, repo_dir = repository, None
        elif isinstance(repository, dict):
            repo_url, repo_dir = repository.get("url"), repository.get("directory")
        else:
            repo_url, repo_dir = None, None

        attestations = dist.get("attestations")
        attested = bool(isinstance(attestations, dict) and attestations.get("url"))

        dependencies = manifest.get("dependencies")
        if not isinstance(dependencies, dict):
            dependencies = {}

        return cls(
            name=manifest["name"],
            version=manifest["version"],
            tarball=dist.get("tarball", ""),
            integrity=dist.get("integrity") or _legacy_integrity(dist.get("shasum")),
            published_at=published_at,
            published_with=PublishedWith(
                node=manifest.get("_nodeVersion") or None,
                npm=manifest.get("_npmVersion") or None,
            ),
            dependencies={str(k): str(v) for k, v in dependencies.items()},
            repository_url=repo_url or None,
            repository_directory=repo_dir or None,
            git_head=manifest.get("gitHead") or None,
            attested=attested,
        )


def _legacy_integrity(shasum: str | None) -> str:
    """Very old packages only carry a hex sha1; express it as an SRI string."""
    if not shasum:
        return ""
    return "sha1-" + base64.b64encode(bytes.fromhex(shasum)).decode("ascii")


class SourceDescriptor(ImmutableModel):
    """
    Where and at which ref the source of a version lives.

    `ref` is never empty: resolution always ends at a commit, a tag, or
    the `HEAD` marker for the default branch.
    """

    canonical_spec: str
    clone_url: str
    ref: str = Field(min_length=1)
    subdirectory: str | None = None
    ref_source: RefSource = "git-head"
    pinned: bool = True

    @classmethod
    def from_spec(cls, spec: str) -> SourceDescriptor:
        """Parse a canonical `forge:owner/repo#ref[::path:subdir]` string."""
        match = _SOURCE_SPEC_RE.match(spec)
        if not match:
            raise ValueError(f"Not a canonical source spec: {spec}")
        host = _FORGE_HOSTS.get(match.group("forge"), match.group("forge"))
        ref = match.group("ref")
        return cls(
            canonical_spec=spec,
            clone_url=f"https://{host}/{match.group('location')}.git",
            ref=ref,
            subdirectory=match.group("subdir"),
            ref_source="default-branch" if ref == DEFAULT_BRANCH_REF else "git-head",
            pinned=ref != DEFAULT_BRANCH_REF,
        )


def forge_prefix(host: str) -> str:
    """Map a forge host name to its canonical spec prefix."""
    for prefix, forge_host in _FORGE_HOSTS.items():
        if forge_host == host:
            return prefix
    return host.split(".")[0]


def build_source_spec(
    host: str,
    location: str,
    ref: str,
    subdirectory: str | None = None,
) -> str:
    """Render the canonical source spec string."""
    path = f"::path:{subdirectory}" if subdirectory else ""
    return f"{forge_prefix(host)}:{location}#{ref}{path}"
