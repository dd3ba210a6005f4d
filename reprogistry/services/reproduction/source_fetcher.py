"""
Source checkout for reproduction.

Clones the repository of a version into a reusable cache directory and
checks out the resolved ref, falling back to other repository URLs the
package has declared over its history when the primary one is gone.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ...core.di import LazyService
from ...core.exceptions import (
    CloneError,
    CommandError,
    NoReachableRepository,
    RefCheckoutError,
)
from ...core.interfaces.logger import ILogger
from ...core.models.package import DEFAULT_BRANCH_REF
from ...utils.fallback import Attempt, first_success
from ...utils.git_url import urls_match
from ..logging import NullLogger
from ..registry.packument import fallback_repository_urls

if TYPE_CHECKING:
    from ...core.interfaces.runner import CommandResult, ICommandRunner
    from ...core.models.package import SourceDescriptor


@dataclass(frozen=True)
class FetchedSource:
    """A checked-out working tree."""

    repo_dir: Path
    package_dir: Path
    clone_url: str
    commit: str | None
    used_fallback: bool = False


def repo_cache_name(package_name: str) -> str:
    """Directory name for a package's clone (`@scope/name` -> `@scope__name`)."""
    return package_name.replace("/", "__")


class SourceFetcher:
    """
    Fetches source trees at a pinned ref.

    Clones are shallow first, then full. An existing clone of the same
    repository is reused; a directory holding anything else is replaced.

    Usage:
        fetcher = SourceFetcher(runner, cache_dir=Path("~/.cache/reprogistry"))
        source = fetcher.fetch(descriptor, "qs", packument=packument)
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(
        self,
        runner: ICommandRunner,
        *,
        cache_dir: Path,
        probe_timeout: float = 30.0,
        clone_timeout: float | None = None,
        logger: ILogger | None = None,
    ) -> None:
        self._runner = runner
        self._cache_dir = Path(cache_dir)
        self._probe_timeout = probe_timeout
        self._clone_timeout = clone_timeout
        if logger is not None:
            self.logger = logger

    def repo_dir(self, package_name: str) -> Path:
        return self._cache_dir / "repos" / repo_cache_name(package_name)

    def fetch(
        self,
        descriptor: SourceDescriptor,
        package_name: str,
        packument: dict[str, Any] | None = None,
    ) -> FetchedSource:
        """
        Clone (or reuse) the repository and check out the descriptor's ref.

        Raises:
            NoReachableRepository: Neither the primary nor any fallback URL works
            CloneError: A reachable fallback could not be cloned
            RefCheckoutError: The ref could not be checked out
        """
        repo_dir = self.repo_dir(package_name)
        clone_url, used_fallback = self._ensure_clone(
            descriptor.clone_url, repo_dir, package_name, packument
        )

        fetched = self._fetch_ref(repo_dir, descriptor.ref)
        self._checkout(repo_dir, descriptor.ref, fetched)

        head = self._git(["rev-parse", "HEAD"], cwd=repo_dir)
        commit = head.stdout.strip() if head.ok else None

        package_dir = repo_dir / descriptor.subdirectory if descriptor.subdirectory else repo_dir
        self.logger.debug("Checked out %s at %s (%s)", clone_url, descriptor.ref, commit)
        return FetchedSource(
            repo_dir=repo_dir,
            package_dir=package_dir,
            clone_url=clone_url,
            commit=commit,
            used_fallback=used_fallback,
        )

    # Cloning

    def _ensure_clone(
        self,
        primary_url: str,
        repo_dir: Path,
        package_name: str,
        packument: dict[str, Any] | None,
    ) -> tuple[str, bool]:
        if self._reuse_existing(repo_dir, primary_url):
            return primary_url, False

        if self._clone(primary_url, repo_dir):
            return primary_url, False
        self.logger.warning("Primary repository URL failed: %s", primary_url)

        candidates = fallback_repository_urls(packument or {}, exclude=primary_url)
        probes = [
            Attempt(url, lambda url=url: url if self.is_reachable(url) else None)
            for url in candidates
        ]
        found = first_success(probes, logger=self.logger)
        if not found.succeeded:
            raise NoReachableRepository(
                f"No reachable repository found for {package_name}",
                context={"primary": primary_url, "tried": found.attempted},
            )

        fallback_url = found.value or ""
        if not self._clone(fallback_url, repo_dir):
            raise CloneError(
                f"Fallback repository also failed: {fallback_url}",
                context={"package": package_name},
            )
        self.logger.info("Cloned %s from fallback repository %s", package_name, fallback_url)
        return fallback_url, True

    def _reuse_existing(self, repo_dir: Path, clone_url: str) -> bool:
        if not repo_dir.exists():
            return False
        origin = self._git(["remote", "get-url", "origin"], cwd=repo_dir)
        if origin.ok and urls_match(origin.stdout.strip(), clone_url):
            self.logger.debug("Reusing clone at %s", repo_dir)
            return True
        self.logger.debug("Replacing %s (origin %r)", repo_dir, origin.stdout.strip())
        shutil.rmtree(repo_dir, ignore_errors=True)
        return False

    def _clone(self, url: str, repo_dir: Path) -> bool:
        repo_dir.parent.mkdir(parents=True, exist_ok=True)
        for args in (
            ["clone", "--depth", "1", url, str(repo_dir)],
            ["clone", url, str(repo_dir)],
        ):
            if self._git(args, timeout=self._clone_timeout).ok:
                return True
            shutil.rmtree(repo_dir, ignore_errors=True)
        return False

    def is_reachable(self, url: str) -> bool:
        """Probe a repository URL; a timeout counts as unreachable."""
        return self._git(["ls-remote", url, "HEAD"], timeout=self._probe_timeout).ok

    # Ref handling

    def _fetch_ref(self, repo_dir: Path, ref: str) -> bool:
        """
        Fetch `ref` from origin; True when FETCH_HEAD now points at it.

        When no targeted fetch works, full history and tags are fetched
        instead so a ref that exists upstream can still be checked out.
        """
        targeted = [
            ["fetch", "--depth", "1", "origin", "tag", ref],
            ["fetch", "--depth", "1", "origin", ref],
            ["fetch", "origin", ref],
        ]
        found = first_success(self._git_attempt(args, repo_dir) for args in targeted)
        if found.succeeded:
            return True

        self.logger.debug("No targeted fetch for %s, fetching all tags", ref)
        first_success(
            self._git_attempt(args, repo_dir)
            for args in (["fetch", "--tags", "--unshallow", "origin"], ["fetch", "--tags", "origin"])
        )
        return False

    def _checkout(self, repo_dir: Path, ref: str, fetched: bool) -> None:
        if ref == DEFAULT_BRANCH_REF:
            ladder = ["FETCH_HEAD", ref] if fetched else [ref]
        else:
            ladder = [ref, f"tags/{ref}", *(["FETCH_HEAD"] if fetched else [])]
        found = first_success(
            self._git_attempt(["checkout", "--force", target], repo_dir, label=target)
            for target in ladder
        )
        if not found.succeeded:
            raise RefCheckoutError(
                f"Could not check out {ref}",
                context={"repo": str(repo_dir), "tried": found.attempted},
            )
        # Build output from an earlier run must not leak into this one
        self._git(["clean", "-ffdx", "--quiet"], cwd=repo_dir)

    def _git_attempt(self, args: list[str], cwd: Path, label: str | None = None) -> Attempt[bool]:
        return Attempt(
            label or " ".join(args),
            lambda: True if self._git(args, cwd=cwd).ok else None,
        )

    def _git(
        self,
        args: list[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        try:
            return self._runner.run(["git", *args], cwd=cwd, timeout=timeout)
        except CommandError as e:
            raise CloneError("git is not available", cause=e) from e
