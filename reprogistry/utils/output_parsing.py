"""
Parsers for git, npm and nvm command output.

Tools print informational noise around the values we need, and npm's
phrasing changes between releases, so every parser here is tolerant and
returns None rather than raising when it finds nothing.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from urllib.parse import unquote

_VERSION_LINE_RE = re.compile(r"^v?(\d+\.\d+\.\d+\S*)$")
_RUNNING_NODE_RE = re.compile(r"node v?(\d+\.\d+\.\d+)", re.IGNORECASE)
_BARE_VERSION_RE = re.compile(r"\b(\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?)\b")

# Package name: optional @scope/ then name. Version part is optional.
_PKG = r"(?P<name>(?:@[^/\s'\"@]+/)?[^@\s'\"/]+)"

_MISSING_DEPENDENCY_PATTERNS = (
    re.compile(r"No matching version found for " + _PKG + r"@(?P<version>\S+?)\.?(?:\s|$)"),
    re.compile(r"['\"`]" + _PKG + r"@(?P<version>[^'\"`]+)['\"`] is not in (?:this|the) (?:npm )?registry"),
    re.compile(r"404 Not Found\s*-\s*GET\s+\S+?/(?P<name>(?:@[^/\s]+(?:/|%2[fF]))?[^/\s]+)\s*(?:-|$)", re.MULTILINE),
)


def extract_node_version(output: str) -> str | None:
    """
    Extract the node version from `nvm exec <v> node --version` output.

    nvm prints lines like "Running node v0.12.18 (npm v2.15.11)" before the
    actual `v0.12.18` line. Prefer a line that is just a version, then the
    "Running node" banner.
    """
    lines = [line.strip() for line in output.splitlines()]
    for line in lines:
        match = _VERSION_LINE_RE.match(line)
        if match:
            return match.group(1)
    match = _RUNNING_NODE_RE.search(output)
    if match:
        return match.group(1)
    return None


def parse_tool_version(output: str) -> str | None:
    """Extract a version from `npm --version` style output (last match wins)."""
    matches = _BARE_VERSION_RE.findall(output)
    return matches[-1] if matches else None


@dataclass(frozen=True)
class MissingDependency:
    """A dependency npm could not resolve."""

    name: str
    version: str | None = None

    def __str__(self) -> str:
        return f"{self.name}@{self.version}" if self.version else self.name


def parse_missing_dependency(output: str) -> MissingDependency | None:
    """
    Find the dependency an `npm install` failure complains about.

    Best effort: recognizes the "No matching version found", "is not in this
    registry" and "404 Not Found - GET" phrasings. Returns None when the
    output names no dependency.
    """
    for pattern in _MISSING_DEPENDENCY_PATTERNS:
        match = pattern.search(output)
        if not match:
            continue
        name = unquote(match.group("name"))
        version = match.groupdict().get("version")
        return MissingDependency(name=name, version=version.rstrip(".") if version else None)
    return None


@dataclass(frozen=True)
class PackOutput:
    """What `npm pack` reported about the tarball it wrote."""

    filename: str
    integrity: str | None = None


def parse_pack_output(stdout: str) -> PackOutput | None:
    """
    Parse `npm pack --json` output, falling back to the plain text form.

    Old npm releases ignore `--json` and print the tarball name as the last
    line; lifecycle scripts may print before the JSON document.
    """
    text = stdout.strip()
    if not text:
        return None

    start = text.find("[")
    if start != -1:
        try:
            data = json.loads(text[start:])
        except json.JSONDecodeError:
            data = None
        if isinstance(data, list) and data and isinstance(data[0], dict):
            entry = data[0]
            filename = entry.get("filename")
            if filename:
                # Scoped packages are reported as "@scope/name-1.0.0.tgz" by some releases
                filename = filename.lstrip("@").replace("/", "-")
                return PackOutput(filename=filename, integrity=entry.get("integrity"))

    last_line = text.splitlines()[-1].strip()
    if last_line.endswith(".tgz"):
        return PackOutput(filename=last_line)
    return None


def parse_ls_remote_tags(output: str) -> set[str]:
    """Tag names listed by `git ls-remote --tags` (peeled `^{}` entries folded in)."""
    tags: set[str] = set()
    for line in output.splitlines():
        parts = line.split()
        if len(parts) != 2 or not parts[1].startswith("refs/tags/"):
            continue
        tags.add(parts[1][len("refs/tags/") :].removesuffix("^{}"))
    return tags
