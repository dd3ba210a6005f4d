"""
Identity of the comparison logic.

Stored results carry this hash; when the comparison code changes, every
result produced by the old code becomes stale and is recomputed.
"""

from __future__ import annotations

import functools
import hashlib
from pathlib import Path

from . import engine


def git_blob_hash(content: bytes) -> str:
    """SHA-1 object id git assigns to a blob with this content."""
    header = f"blob {len(content)}\0".encode("ascii")
    return hashlib.sha1(header + content).hexdigest()


@functools.lru_cache(maxsize=1)
def comparison_hash() -> str:
    """Blob hash of the comparison engine's source file."""
    return git_blob_hash(Path(engine.__file__).read_bytes())
