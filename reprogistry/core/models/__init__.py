"""
Pydantic models for reprogistry.

Re-exports the models shared across services.
"""

from .base import ImmutableModel, RecordModel, ReprogistryBaseModel
from .comparison import (
    BINARY_DIFF_MARKER,
    ComparisonResult,
    ComparisonSummary,
    FileComparison,
    FileStatus,
)
from .package import (
    DEFAULT_BRANCH_REF,
    PackageSpec,
    PublishedWith,
    PublishRecord,
    SourceDescriptor,
    build_source_spec,
)
from .result import (
    EnhancedResult,
    PackageInfo,
    PublishedWithInfo,
    ReproductionResult,
    SourceInfo,
    parse_timestamp,
    utc_now_iso,
)

__all__ = [
    "BINARY_DIFF_MARKER",
    "DEFAULT_BRANCH_REF",
    "ComparisonResult",
    "ComparisonSummary",
    "EnhancedResult",
    "FileComparison",
    "FileStatus",
    "ImmutableModel",
    "PackageInfo",
    "PackageSpec",
    "PublishRecord",
    "PublishedWith",
    "PublishedWithInfo",
    "RecordModel",
    "ReprogistryBaseModel",
    "ReproductionResult",
    "SourceDescriptor",
    "SourceInfo",
    "build_source_spec",
    "parse_timestamp",
    "utc_now_iso",
]
