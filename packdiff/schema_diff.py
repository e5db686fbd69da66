# -*- coding: utf-8 -*-
"""
Schema Diff Engine - PackDiff

Field-level comparison of the ``dict<Name>.json`` dictionary documents of
two packages, plus the file-set difference between the two package
directories.

Every field name present in either document lands in exactly one bucket:
added, removed, type changed, or unchanged (not reported). Field order
inside a document is irrelevant.

Example:
    >>> from packdiff.models import SchemaDocument
    >>> from packdiff.schema_diff import SchemaDiffEngine
    >>> old = SchemaDocument.model_validate(
    ...     {"name": "dictA", "descriptors": {"score": {"type": "integer"}}})
    >>> new = SchemaDocument.model_validate(
    ...     {"name": "dictA", "descriptors": {"score": {"type": "string"}}})
    >>> SchemaDiffEngine().diff_documents(old, new).type_changed["score"].to_type
    'string'
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from packdiff import metrics
from packdiff.archive import list_files
from packdiff.config import PackDiffConfig, get_config
from packdiff.exceptions import DataAccessError, InvalidSchemaDocument
from packdiff.models import (
    FieldDescriptor,
    FileSetDiff,
    SchemaDiffResult,
    SchemaDocument,
    TypeChange,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

__all__ = [
    "SchemaDiffEngine",
    "load_schema_document",
    "diff_file_sets",
]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_schema_document(path: PathLike) -> SchemaDocument:
    """Load a dictionary file into a typed ``SchemaDocument``.

    Args:
        path: Path of a ``dict<Name>.json`` file.

    Returns:
        SchemaDocument named after the file stem.

    Raises:
        DataAccessError: If the file cannot be read.
        InvalidSchemaDocument: If the file is not a JSON object of
            descriptor objects.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DataAccessError(
            f"Cannot read dictionary file {path}: {exc.strerror or exc}",
            path=str(path),
            operation="read",
        ) from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidSchemaDocument(
            f"Dictionary file {path} is not valid JSON: {exc.msg} "
            f"(line {exc.lineno}, column {exc.colno})",
            path=str(path),
        ) from exc

    if not isinstance(data, dict):
        raise InvalidSchemaDocument(
            f"Dictionary file {path} must contain a JSON object, "
            f"got {type(data).__name__}",
            path=str(path),
        )

    bad_fields = sorted(k for k, v in data.items() if not isinstance(v, dict))
    if bad_fields:
        raise InvalidSchemaDocument(
            f"Dictionary file {path} has non-object descriptors: "
            f"{', '.join(bad_fields)}",
            path=str(path),
            schema_errors=[f"{name}: descriptor must be an object" for name in bad_fields],
        )

    try:
        return SchemaDocument(
            name=path.stem,
            descriptors={k: FieldDescriptor.model_validate(v) for k, v in data.items()},
        )
    except ValidationError as exc:
        raise InvalidSchemaDocument(
            f"Dictionary file {path} has invalid descriptors",
            path=str(path),
            schema_errors=[str(err["msg"]) for err in exc.errors()],
        ) from exc


# ---------------------------------------------------------------------------
# File-set difference
# ---------------------------------------------------------------------------


def diff_file_sets(old_files: Iterable[str], new_files: Iterable[str]) -> FileSetDiff:
    """Files only in the old listing are removed, only in the new are added."""
    old_set = set(old_files)
    new_set = set(new_files)
    return FileSetDiff(
        added_files=sorted(new_set - old_set),
        removed_files=sorted(old_set - new_set),
    )


# ============================================================================
# SchemaDiffEngine
# ============================================================================


class SchemaDiffEngine:
    """Compares paired dictionary documents field by field.

    Attributes:
        _config: Configuration providing ``schema_file_pattern``.
    """

    def __init__(self, config: Optional[PackDiffConfig] = None) -> None:
        self._config = config or get_config()

    def diff_documents(
        self,
        old: SchemaDocument,
        new: SchemaDocument,
        name: Optional[str] = None,
    ) -> SchemaDiffResult:
        """Classify every field of two dictionary documents.

        Each old field is looked up in a working copy of the new field
        set and consumed whether or not its type matched; fields left
        over in the working copy were added.

        Args:
            old: Dictionary document from the old package.
            new: Dictionary document from the new package.
            name: Result name; defaults to the old document's name.

        Returns:
            SchemaDiffResult with sorted buckets.
        """
        remaining: Dict[str, FieldDescriptor] = dict(new.descriptors)
        removed: List[str] = []
        type_changed: Dict[str, TypeChange] = {}

        for field_name, old_descriptor in old.descriptors.items():
            new_descriptor = remaining.pop(field_name, None)
            if new_descriptor is None:
                removed.append(field_name)
                continue
            if old_descriptor.type != new_descriptor.type:
                type_changed[field_name] = TypeChange(
                    from_type=old_descriptor.type,
                    to_type=new_descriptor.type,
                )

        result = SchemaDiffResult(
            name=name or old.name,
            added=sorted(remaining),
            removed=sorted(removed),
            type_changed=dict(sorted(type_changed.items())),
        )

        metrics.inc_files_compared("schema")
        metrics.inc_schema_changes("added", len(result.added))
        metrics.inc_schema_changes("removed", len(result.removed))
        metrics.inc_schema_changes("type_changed", len(result.type_changed))

        logger.info(
            "Compared %s: %d fields added, %d removed, %d type changes",
            result.name,
            len(result.added),
            len(result.removed),
            len(result.type_changed),
        )
        return result

    def diff_files(self, old_path: PathLike, new_path: PathLike) -> SchemaDiffResult:
        """Load and compare two dictionary files."""
        old_doc = load_schema_document(old_path)
        new_doc = load_schema_document(new_path)
        return self.diff_documents(old_doc, new_doc)

    def diff_directories(self, old_dir: PathLike, new_dir: PathLike) -> List[SchemaDiffResult]:
        """Compare every dictionary file present in both directories.

        Dictionary files present in only one directory are not compared
        here; they show up in the file-set difference.

        Returns:
            Results ordered by dictionary name.
        """
        pattern = self._config.schema_file_pattern
        old_names = set(list_files(old_dir, pattern))
        new_names = set(list_files(new_dir, pattern))

        for name in sorted(old_names ^ new_names):
            logger.info("Dictionary %s exists in only one package, not compared", name)

        return [
            self.diff_files(Path(old_dir) / name, Path(new_dir) / name)
            for name in sorted(old_names & new_names)
        ]

    @staticmethod
    def diff_directory_listings(old_dir: PathLike, new_dir: PathLike) -> FileSetDiff:
        """File-set difference of the two complete directory listings."""
        result = diff_file_sets(list_files(old_dir), list_files(new_dir))
        logger.info(
            "File listing: %d added, %d removed",
            len(result.added_files),
            len(result.removed_files),
        )
        return result
