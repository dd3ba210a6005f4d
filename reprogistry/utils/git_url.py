"""
Git URL utilities for repository URL normalization.

Manifests declare repositories in many shapes (git+https, git://, ssh, scp,
npm shorthands, web tree/blob links). Everything here turns them into an
https clone URL plus an optional monorepo subdirectory.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

_SHORTHAND_HOSTS = {
    "github": "github.com",
    "gitlab": "gitlab.com",
    "bitbucket": "bitbucket.org",
}

_WEB_PATH_RE = re.compile(
    r"^(?P<base>https://[^/]+/[^/]+/[^/]+?)(?:\.git)?/(?P<kind>tree|blob)/[^/]+(?:/(?P<path>.+?))?/?$"
)


def normalize_git_url(url: str) -> str:
    """
    Normalize a git URL to its https form.

    Examples:
        git+https://github.com/org/repo.git -> https://github.com/org/repo.git
        git://github.com/org/repo.git       -> https://github.com/org/repo.git
        git+ssh://git@github.com/org/repo   -> https://github.com/org/repo
        git@github.com:org/repo.git         -> https://github.com/org/repo.git

    Idempotent: normalizing an already normalized URL returns it unchanged.

    Args:
        url: Git repository URL

    Returns:
        https URL (or the input unchanged if it is in no known form)
    """
    url = url.strip()
    url = re.sub(r"^git\+", "", url)
    url = re.sub(r"^git://", "https://", url)
    if is_ssh_url(url):
        return ssh_to_https(url) or url
    return url


def expand_repository_shorthand(value: str) -> str:
    """
    Expand npm repository shorthands into full URLs.

    Converts:
    - github:user/repo -> https://github.com/user/repo
    - gitlab:user/repo -> https://gitlab.com/user/repo
    - user/repo        -> https://github.com/user/repo

    Anything else is returned unchanged.
    """
    match = re.match(r"^(github|gitlab|bitbucket):([^/\s]+/[^/\s]+)$", value)
    if match:
        return f"https://{_SHORTHAND_HOSTS[match.group(1)]}/{match.group(2)}"
    if re.match(r"^[\w.-]+/[\w.-]+$", value):
        return f"https://github.com/{value}"
    return value


def parse_source_location(
    url: str,
    directory: str | None = None,
) -> tuple[str, str | None]:
    """
    Split a repository location into clone URL and monorepo subdirectory.

    Web links such as https://github.com/org/repo/tree/main/packages/foo are
    unwrapped to the repository; the path after the branch becomes the
    subdirectory. A blob link to a file yields that file's directory.

    Args:
        url: Repository URL as declared in a manifest
        directory: Explicit `repository.directory`; wins over an inferred one

    Returns:
        (clone_url, subdirectory)
    """
    normalized = normalize_git_url(expand_repository_shorthand(url))
    subdir: str | None = None

    match = _WEB_PATH_RE.match(normalized)
    if match:
        normalized = match.group("base")
        path = match.group("path")
        if path and match.group("kind") == "blob":
            path = path.rsplit("/", 1)[0] if "/" in path else None
        subdir = path or None

    clone_url = normalized
    if clone_url.startswith("https://") and not clone_url.endswith(".git"):
        clone_url = f"{clone_url.rstrip('/')}.git"

    if directory:
        subdir = directory.strip("/") or None
    return clone_url, subdir


def url_host(url: str) -> str | None:
    """Host name of an https URL, or None."""
    parsed = urlparse(url)
    return parsed.hostname if parsed.scheme in ("http", "https") else None


def repository_path(url: str) -> str | None:
    """`owner/repo` part of an https clone URL."""
    parsed = urlparse(url)
    path = parsed.path.strip("/").removesuffix(".git")
    return path or None


def canonical_repo_key(url: str) -> str:
    """
    Reduce a git URL to host/path for comparison.

    Strips protocol, authentication, and .git suffix so that equivalent
    URLs can be compared regardless of access method.
    """
    https = normalize_git_url(expand_repository_shorthand(url))
    match = re.match(r"^https?://(?:[^@/]+@)?([^/]+)/(.+?)/?$", https)
    if match:
        return f"{match.group(1).lower()}/{match.group(2).removesuffix('.git')}"
    return https.removesuffix(".git")


def urls_match(url1: str, url2: str) -> bool:
    """
    Check if two git URLs refer to the same repository.

    Args:
        url1: First git URL
        url2: Second git URL

    Returns:
        True if both URLs normalize to the same value
    """
    return canonical_repo_key(url1) == canonical_repo_key(url2)


def is_ssh_url(url: str) -> bool:
    """
    Check if URL is SSH format.

    Supports:
    - SCP-like: git@github.com:user/repo.git
    - SSH scheme: ssh://git@github.com/user/repo.git
    """
    return bool(re.match(r"^(?:ssh://)?git@([^:/]+)[:/]", url))


def ssh_to_https(ssh_url: str) -> str | None:
    """
    Convert SSH URL to HTTPS equivalent.

    Returns:
        HTTPS URL if conversion successful, None if not an SSH URL
    """
    # SCP format: git@host:path
    scp_match = re.match(r"^git@([^:/]+):(?!/)(.+)$", ssh_url)
    if scp_match:
        return f"https://{scp_match.group(1)}/{scp_match.group(2)}"

    # SSH scheme: ssh://git@host/path
    ssh_match = re.match(r"^ssh://git@([^/:]+)(?::\d+)?/(.+)$", ssh_url)
    if ssh_match:
        return f"https://{ssh_match.group(1)}/{ssh_match.group(2)}"

    return None
