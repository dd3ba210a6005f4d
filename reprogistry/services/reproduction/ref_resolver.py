"""
Git ref resolution for published versions.

Turns a PublishRecord into a SourceDescriptor: which repository to clone,
which ref to check out, and which monorepo subdirectory holds the package.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...core.di import LazyService
from ...core.exceptions import CommandError, NoRepositoryDeclared, UnsupportedSourceHost
from ...core.interfaces.logger import ILogger
from ...core.models.package import DEFAULT_BRANCH_REF, SourceDescriptor, build_source_spec
from ...utils.fallback import Attempt, first_success
from ...utils.git_url import parse_source_location, repository_path, url_host
from ...utils.output_parsing import parse_ls_remote_tags
from ..logging import NullLogger

if TYPE_CHECKING:
    from ...core.interfaces.runner import ICommandRunner
    from ...core.models.package import PublishRecord


class GitRefResolver:
    """
    Resolves the source repository and ref of a published version.

    Ref ladder, first hit wins:
    1. The commit recorded at publish time (`gitHead`)
    2. A tag equal to the version
    3. A tag `v<version>`
    4. The default branch (`HEAD`), flagged as unpinned

    Usage:
        resolver = GitRefResolver(runner)
        descriptor = resolver.resolve(record)
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(
        self,
        runner: ICommandRunner,
        *,
        forge_host: str = "github.com",
        tag_lookup_timeout: float = 30.0,
        logger: ILogger | None = None,
    ) -> None:
        self._runner = runner
        self._forge_host = forge_host
        self._tag_lookup_timeout = tag_lookup_timeout
        if logger is not None:
            self.logger = logger

    def locate(self, record: PublishRecord) -> tuple[str, str | None]:
        """
        Clone URL and subdirectory declared by a version.

        Raises:
            NoRepositoryDeclared: The manifest has no repository
            UnsupportedSourceHost: The repository is not on the supported forge
        """
        if not record.repository_url:
            raise NoRepositoryDeclared(
                f"{record.spec} declares no repository",
                context={"package": record.name, "version": record.version},
            )

        clone_url, subdir = parse_source_location(
            record.repository_url, record.repository_directory
        )
        host = url_host(clone_url)
        if host is None or host.lower() != self._forge_host.lower() or not repository_path(clone_url):
            raise UnsupportedSourceHost(
                f"No source tracking available for {record.spec}",
                url=record.repository_url,
                host=host,
            )
        return clone_url, subdir

    def resolve(self, record: PublishRecord, clone_url: str | None = None) -> SourceDescriptor:
        """
        Resolve the full source descriptor of a version.

        `clone_url` stands in for the declared repository when the source
        moved; tags are then looked up in the new location.
        """
        declared_url, subdir = self.locate(record)
        clone_url = clone_url or declared_url

        tags: set[str] | None = None

        def remote_tags() -> set[str]:
            nonlocal tags
            if tags is None:
                tags = self._lookup_tags(clone_url, record.version)
            return tags

        version = record.version
        ladder = [
            Attempt("git-head", lambda: record.git_head),
            Attempt("tag", lambda: version if version in remote_tags() else None),
            Attempt("v-tag", lambda: f"v{version}" if f"v{version}" in remote_tags() else None),
        ]
        found = first_success(ladder, logger=self.logger)

        if found.succeeded:
            ref = found.value
            ref_source = found.label
            if ref_source != "git-head":
                self.logger.info("Using git tag %s for %s", ref, record.spec)
        else:
            ref = DEFAULT_BRANCH_REF
            ref_source = "default-branch"
            self.logger.warning(
                "No gitHead or version tag for %s, building the default branch", record.spec
            )

        return SourceDescriptor(
            canonical_spec=build_source_spec(
                (url_host(clone_url) or self._forge_host).lower(),
                repository_path(clone_url) or "",
                ref,
                subdir,
            ),
            clone_url=clone_url,
            ref=ref,
            subdirectory=subdir,
            ref_source=ref_source,  # type: ignore[arg-type]
            pinned=ref_source != "default-branch",
        )

    def _lookup_tags(self, clone_url: str, version: str) -> set[str]:
        """One ls-remote call for both tag spellings; failures mean no tags."""
        try:
            result = self._runner.run(
                ["git", "ls-remote", "--tags", clone_url, f"v{version}", version],
                timeout=self._tag_lookup_timeout,
            )
        except CommandError as e:
            self.logger.debug("Tag lookup unavailable: %s", e)
            return set()
        if not result.ok:
            self.logger.debug("Tag lookup failed for %s: %s", clone_url, result.stderr)
            return set()
        return parse_ls_remote_tags(result.stdout)
