"""
Base Pydantic models for reprogistry.

Provides common configuration and base classes for all reprogistry models.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ReprogistryBaseModel(BaseModel):
    """Base model for internal reprogistry models.

    Configuration:
        - strict: Strict type coercion (no implicit conversions)
        - validate_assignment: Validate on attribute assignment
        - extra: Reject unknown fields
        - populate_by_name: Allow field aliases
        - use_enum_values: Serialize enums as values
    """

    model_config = ConfigDict(
        strict=True,
        validate_assignment=True,
        extra="forbid",
        populate_by_name=True,
        use_enum_values=True,
        revalidate_instances="never",
    )


class ImmutableModel(ReprogistryBaseModel):
    """Immutable base model for DTOs that should not change after creation."""

    model_config = ConfigDict(
        frozen=True,
        strict=True,
        extra="forbid",
        populate_by_name=True,
        use_enum_values=True,
        revalidate_instances="never",
    )


class RecordModel(BaseModel):
    """Base model for records persisted as camelCase JSON.

    Records are immutable once created. Coercion is relaxed because they are
    read back from JSON files, and unknown keys written by other tool versions
    are kept so a rewrite of the history never drops data.
    """

    model_config = ConfigDict(
        frozen=True,
        strict=False,
        extra="allow",
        alias_generator=to_camel,
        populate_by_name=True,
        revalidate_instances="never",
    )

    def to_json_dict(self) -> dict:
        """Dump to the camelCase dictionary used on disk."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=False)
