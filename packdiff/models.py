# -*- coding: utf-8 -*-
"""
PackDiff Data Models

Pydantic v2 data models for the package comparison run. Defines the
typed representation of exported records and dictionary documents, the
classification enumerations, and the immutable result models produced by
the record-diff and schema-diff engines.

Enumerations (2):
    - DiffStatus, ReasonCode

Input models (4):
    - Location, Record, FieldDescriptor, SchemaDocument

Result models (7):
    - RecordDiff, ParseIssue, FileDiffResult, TypeChange,
      SchemaDiffResult, FileSetDiff, PackageDiffResult
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _drop_nulls(data: Any) -> Any:
    """Remove ``null`` values so the field falls back to its zero value."""
    if isinstance(data, dict):
        return {k: v for k, v in data.items() if v is not None}
    return data


# =============================================================================
# Enumerations
# =============================================================================


class DiffStatus(str, Enum):
    """Classification of one record between the old and new package.

    ADDED: Identity only present in the new file.
    REMOVED: Identity only present in the old file.
    CHANGED: Identity present in both with at least one differing field.
    """

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"


class ReasonCode(str, Enum):
    """Short tag written next to each id in the verbose updates report."""

    NEW = "NEW"
    NPI = "NPI"
    TTID = "TTID"
    FIRST_NAME = "FN"
    LAST_NAME = "LN"
    MIDDLE_NAME = "MN"
    LOCATION_ID = "LID"
    LOCATION_AFFILIATION = "LAF"
    LOCATION_CITY = "LCI"
    LOCATION_ZIP = "LZ"
    LOCATION_LATITUDE = "LLA"
    LOCATION_LONGITUDE = "LLO"
    LOCATION_STATE = "LST"
    LOCATION_ADDRESS = "LAD"
    LOCATION_COUNTRY = "LCO"
    SPECIALTIES = "SPL"
    DELETED = "DEL"


# =============================================================================
# Input models
# =============================================================================


class Location(BaseModel):
    """Location block of an exported record.

    Numeric JSON values for the text attributes (zip codes, coordinates)
    are coerced to strings so both snapshot generations compare equal.
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )

    location_id: int = Field(default=0, alias="location")
    affiliation: str = ""
    city: str = ""
    address: str = ""
    zip: str = ""
    state: str = ""
    country: str = ""
    latitude: str = ""
    longitude: str = ""

    @model_validator(mode="before")
    @classmethod
    def strip_nulls(cls, data: Any) -> Any:
        return _drop_nulls(data)


class Record(BaseModel):
    """One exported entity (one line of a record file)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: int
    npi: int = 0
    ttid: int = 0
    first_name: str = ""
    middle_name: str = ""
    last_name: str = ""
    specialties: List[str] = Field(default_factory=list)
    location: Location = Field(default_factory=Location)
    position: int = Field(default=0, alias="ranking.position")

    @model_validator(mode="before")
    @classmethod
    def strip_nulls(cls, data: Any) -> Any:
        return _drop_nulls(data)

    @field_validator("location", mode="before")
    @classmethod
    def flattened_location(cls, value: Any) -> Any:
        # Older exports carry only the location id as a bare integer.
        if isinstance(value, int) and not isinstance(value, bool):
            return {"location": value}
        return value

    @field_validator("position", mode="before")
    @classmethod
    def lenient_position(cls, value: Any) -> Any:
        # Parsed but never compared; unusable values fall back to 0.
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        try:
            return int(value)
        except (TypeError, ValueError, OverflowError):
            return 0


class FieldDescriptor(BaseModel):
    """Descriptor of one field in a dictionary document.

    Only ``type`` takes part in the comparison; every other key is kept
    as extra data.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    type: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def type_label(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return json.dumps(value, sort_keys=True)


class SchemaDocument(BaseModel):
    """A ``dict<Name>.json`` document: field name -> descriptor."""

    model_config = ConfigDict(frozen=True)

    name: str
    descriptors: Dict[str, FieldDescriptor] = Field(default_factory=dict)


# =============================================================================
# Result models
# =============================================================================


class RecordDiff(BaseModel):
    """Classification of a single identity key.

    Attributes:
        id: Identity key of the record.
        status: Added, removed or changed.
        code: Reason tag for the verbose report.
        field_name: First differing field (changed records only).
        old_value: Value of that field in the old package.
        new_value: Value of that field in the new package.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    status: DiffStatus
    code: ReasonCode
    field_name: Optional[str] = None
    old_value: Any = None
    new_value: Any = None

    @property
    def reason(self) -> str:
        """Human readable reason, e.g. ``npi: 111 != 222``."""
        if self.status == DiffStatus.ADDED:
            return "new record"
        if self.status == DiffStatus.REMOVED:
            return "removed record"
        return f"{self.field_name}: {self.old_value} != {self.new_value}"


class ParseIssue(BaseModel):
    """A record line that was skipped instead of being compared."""

    model_config = ConfigDict(frozen=True)

    source: str
    line_number: int
    kind: str = "malformed"
    message: str


class FileDiffResult(BaseModel):
    """Outcome of comparing one pair of record files."""

    model_config = ConfigDict(frozen=True)

    file_name: str
    diffs: List[RecordDiff] = Field(default_factory=list)
    parse_issues: List[ParseIssue] = Field(default_factory=list)
    old_count: int = 0
    new_count: int = 0

    def _count(self, status: DiffStatus) -> int:
        return sum(1 for d in self.diffs if d.status == status)

    @property
    def added_count(self) -> int:
        return self._count(DiffStatus.ADDED)

    @property
    def changed_count(self) -> int:
        return self._count(DiffStatus.CHANGED)

    @property
    def removed_count(self) -> int:
        return self._count(DiffStatus.REMOVED)


class TypeChange(BaseModel):
    """Declared type of a field before and after."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_type: Optional[str] = Field(default=None, alias="from")
    to_type: Optional[str] = Field(default=None, alias="to")


class SchemaDiffResult(BaseModel):
    """Field-level differences between two dictionary documents."""

    model_config = ConfigDict(frozen=True)

    name: str
    added: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    type_changed: Dict[str, TypeChange] = Field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.type_changed)


class FileSetDiff(BaseModel):
    """Files present in only one of the two package directories."""

    model_config = ConfigDict(frozen=True)

    added_files: List[str] = Field(default_factory=list)
    removed_files: List[str] = Field(default_factory=list)


class PackageDiffResult(BaseModel):
    """Everything one comparison run produced."""

    model_config = ConfigDict(frozen=True)

    old_label: str
    new_label: str
    record_results: List[FileDiffResult] = Field(default_factory=list)
    schema_results: List[SchemaDiffResult] = Field(default_factory=list)
    file_set: FileSetDiff = Field(default_factory=FileSetDiff)
    unpaired_record_files: List[str] = Field(default_factory=list)
    report_paths: Dict[str, str] = Field(default_factory=dict)
    cleaned_up: bool = False

    @property
    def added_count(self) -> int:
        return sum(r.added_count for r in self.record_results)

    @property
    def changed_count(self) -> int:
        return sum(r.changed_count for r in self.record_results)

    @property
    def removed_count(self) -> int:
        return sum(r.removed_count for r in self.record_results)

    @property
    def parse_issue_count(self) -> int:
        return sum(len(r.parse_issues) for r in self.record_results)


__all__ = [
    "DiffStatus",
    "ReasonCode",
    "Location",
    "Record",
    "FieldDescriptor",
    "SchemaDocument",
    "RecordDiff",
    "ParseIssue",
    "FileDiffResult",
    "TypeChange",
    "SchemaDiffResult",
    "FileSetDiff",
    "PackageDiffResult",
]
