"""
Subresource Integrity (SRI) helpers.

npm records artifact digests as `<algorithm>-<base64 digest>` strings.
"""

from __future__ import annotations

import base64
import hashlib
from pathlib import Path

_SRI_ALGORITHMS = ("sha512", "sha384", "sha256", "sha1")


def compute_integrity(path: Path, algorithm: str = "sha512") -> str:
    """Compute the SRI string of a file."""
    digest = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return f"{algorithm}-{base64.b64encode(digest.digest()).decode('ascii')}"


def parse_integrity(value: str | None) -> dict[str, str]:
    """Map algorithm -> base64 digest for every known entry in an SRI string."""
    entries: dict[str, str] = {}
    for token in (value or "").split():
        algorithm, _, digest = token.partition("-")
        if algorithm in _SRI_ALGORITHMS and digest:
            entries.setdefault(algorithm, digest.split("?", 1)[0])
    return entries


def verify_integrity(path: Path, expected: str | None) -> bool:
    """
    Check a file against an SRI string using its strongest algorithm.

    An empty expectation cannot be verified and counts as a mismatch.
    """
    entries = parse_integrity(expected)
    for algorithm in _SRI_ALGORITHMS:
        if algorithm in entries:
            actual = compute_integrity(path, algorithm)
            return actual == f"{algorithm}-{entries[algorithm]}"
    return False


def integrities_match(a: str | None, b: str | None) -> bool:
    """True when two SRI strings share an algorithm and agree on it."""
    left, right = parse_integrity(a), parse_integrity(b)
    shared = [alg for alg in _SRI_ALGORITHMS if alg in left and alg in right]
    return bool(shared) and left[shared[0]] == right[shared[0]]


def tarball_matches(path: Path, published: str | None, reported: str | None = None) -> bool:
    """
    Whether a rebuilt tarball carries the published digest.

    The digest npm reported for the rebuild is used when it shares an
    algorithm with the published one. Otherwise the tarball itself is hashed
    with the published algorithm, since old versions only record a sha1.
    """
    left, right = parse_integrity(published), parse_integrity(reported)
    if any(alg in left and alg in right for alg in _SRI_ALGORITHMS):
        return integrities_match(published, reported)
    return verify_integrity(path, published)
