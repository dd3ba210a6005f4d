"""
File-level comparison of published and rebuilt packages.
"""

from .engine import compare_directories, filter_non_matching
from .fingerprint import comparison_hash
from .service import ComparisonService, extract_tarball

__all__ = [
    "ComparisonService",
    "compare_directories",
    "comparison_hash",
    "extract_tarball",
    "filter_non_matching",
]
