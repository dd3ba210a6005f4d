"""
Reproduction result models.

A ReproductionResult describes one rebuild attempt. An EnhancedResult adds
the file-level comparison and is the unit stored in a version's history.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import Field

from .base import RecordModel
from .comparison import ComparisonResult


class PublishedWithInfo(RecordModel):
    """Toolchain recorded by the registry at publish time."""

    node: str | None = None
    npm: str | None = None


class PackageInfo(RecordModel):
    """Subset of the publish record kept for display."""

    spec: str
    name: str
    version: str
    location: str
    integrity: str
    published_at: str | None = None
    published_with: PublishedWithInfo = Field(default_factory=PublishedWithInfo)
    dependencies: dict[str, str] = Field(default_factory=dict)


class SourceInfo(RecordModel):
    """Source provenance actually used for the rebuild."""

    integrity: str | None = None
    location: str | None = None
    spec: str
    clone_url: str | None = None
    commit: str | None = None
    pinned: bool | None = None


class ReproductionResult(RecordModel):
    """One reproduction attempt. Never mutated after creation."""

    reproduce_version: str
    timestamp: str
    os: str
    arch: str
    strategy: str
    reproduced: bool
    attested: bool
    package: PackageInfo
    source: SourceInfo

    @property
    def timestamp_value(self) -> datetime:
        """Parsed timestamp; unparseable values sort first."""
        return parse_timestamp(self.timestamp)


class EnhancedResult(ReproductionResult):
    """A reproduction result enriched with its file-level comparison."""

    comparison_hash: str | None = None
    diff: ComparisonResult | None = None
    transitive_dependencies: list[str] | None = None

    @property
    def has_comparison(self) -> bool:
        return self.diff is not None and self.diff.summary is not None

    @classmethod
    def enrich(
        cls,
        result: ReproductionResult,
        *,
        comparison_hash: str | None,
        diff: ComparisonResult | None,
        transitive_dependencies: list[str] | None = None,
    ) -> EnhancedResult:
        data = result.model_dump(by_alias=False)
        data.update(
            comparison_hash=comparison_hash,
            diff=diff,
            transitive_dependencies=transitive_dependencies,
        )
        return cls.model_validate(data)


def utc_now_iso() -> str:
    """Current UTC time in the `2024-01-02T03:04:05.678Z` format."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def parse_timestamp(value: str | None) -> datetime:
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
