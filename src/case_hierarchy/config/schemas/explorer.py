"""Schemas for the shaping engine: normalizer, columns and display state."""

from dataclasses import field
from typing import List

from pydantic import field_validator
from pydantic.dataclasses import dataclass

from case_hierarchy.catalog import CATALOG, DEFAULT_FIELD_NAMES, DEFAULT_NEW_FIELD
from case_hierarchy.models import ExpansionPolicy
from case_hierarchy.normalizer import LINK_PREFIX, NO_DATA_SENTINEL, RECORD_ID_LENGTHS


@dataclass
class NormalizerConfig:
    """Record id shape, no-data sentinel and warning settings."""

    id_lengths: List[int] = field(default_factory=lambda: list(RECORD_ID_LENGTHS))
    no_data_sentinel: str = NO_DATA_SENTINEL
    link_prefix: str = LINK_PREFIX
    report_unrecognized_fields: bool = True

    @field_validator("id_lengths")
    @classmethod
    def validate_id_lengths(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError("id_lengths cannot be empty")
        if any(length <= 0 for length in v):
            raise ValueError(f"id_lengths must be positive, got {v}")
        return v

    @field_validator("no_data_sentinel")
    @classmethod
    def validate_sentinel(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("no_data_sentinel cannot be empty")
        return v


@dataclass
class ColumnsConfig:
    """Initial column set and the field used for newly added columns."""

    default_fields: List[str] = field(default_factory=lambda: list(DEFAULT_FIELD_NAMES))
    new_column_field: str = DEFAULT_NEW_FIELD

    @field_validator("default_fields")
    @classmethod
    def validate_default_fields(cls, v: List[str]) -> List[str]:
        unknown = [name for name in v if not CATALOG.resolves(name)]
        if unknown:
            raise ValueError(f"Unknown default column fields: {unknown}")
        return v

    @field_validator("new_column_field")
    @classmethod
    def validate_new_column_field(cls, v: str) -> str:
        if not CATALOG.resolves(v):
            raise ValueError(f"Unknown field for new columns: {v}")
        return v


@dataclass
class DisplayConfig:
    """Expand/collapse behaviour when the display tree is rebuilt."""

    expansion_policy: ExpansionPolicy = ExpansionPolicy.RESET
