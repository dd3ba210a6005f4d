"""
npm-compatible semantic version helpers.

Thin wrappers around node-semver so callers never deal with its loose-mode
flags or its exceptions for malformed versions.
"""

from __future__ import annotations

import functools
import re

import nodesemver

_COERCE_RE = re.compile(r"v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def coerce(value: str | None) -> str | None:
    """
    Extract a `major.minor.patch` version from free-form text.

    `v18`, `Node v16.20.2 (npm)` and `8.1` become `18.0.0`, `16.20.2` and
    `8.1.0`. Returns None when no number is present.
    """
    if not value:
        return None
    match = _COERCE_RE.search(value)
    if not match:
        return None
    major, minor, patch = (part or "0" for part in match.groups())
    return f"{int(major)}.{int(minor)}.{int(patch)}"


def is_valid(version: str | None) -> bool:
    if not version:
        return False
    try:
        nodesemver.make_semver(version, loose=True)
    except ValueError:
        return False
    return True


def satisfies(version: str, range_: str) -> bool:
    """True when `version` is inside the npm range; malformed input is never inside."""
    try:
        return bool(nodesemver.satisfies(version, range_ or "*", loose=True))
    except ValueError:
        return False


def compare(a: str, b: str) -> int:
    """
    Three-way compare; unparseable versions order before every valid one.
    """
    a_valid, b_valid = is_valid(a), is_valid(b)
    if a_valid and b_valid:
        return nodesemver.compare(a, b, loose=True)
    if a_valid != b_valid:
        return 1 if a_valid else -1
    return (a > b) - (a < b)


def gte(a: str, b: str) -> bool:
    return compare(a, b) >= 0


def major(version: str) -> int | None:
    coerced = coerce(version)
    return int(coerced.split(".")[0]) if coerced else None


sort_key = functools.cmp_to_key(compare)
