# -*- coding: utf-8 -*-
"""
PackDiff: snapshot comparison for exported record packages
==========================================================

Compares two successive exports (each a tar archive of newline-delimited
JSON record files plus ``dict<Name>.json`` dictionary files) and writes
human-readable reports of what changed:

- Record diff: records matched by id and classified as added, removed or
  changed, with the first differing field as the reason
- Schema diff: dictionary fields added, removed or with a changed type
- File-set diff: files present in only one of the two packages

Key Components:
    - config: PackDiffConfig with PACKDIFF_ env prefix
    - models: pydantic models for records, dictionaries and results
    - record_diff: RecordDiffEngine
    - schema_diff: SchemaDiffEngine and file-set difference
    - archive: archive extraction and directory listing
    - report: report rendering and writing
    - pipeline: PackageDiffPipeline orchestrating a full run
    - metrics: Prometheus metrics
    - cli: ``packdiff`` command

Example:
    >>> from packdiff import PackageDiffPipeline, PackDiffConfig
    >>> result = PackageDiffPipeline(PackDiffConfig(cleanup=True)).run(
    ...     "export_2024_04.tar.gz", "export_2024_05.tar.gz",
    ... )
    >>> print(result.changed_count)
"""

__version__ = "1.0.0"

from packdiff.config import PackDiffConfig, get_config, reset_config, set_config
from packdiff.exceptions import (
    DataAccessError,
    DataException,
    ExtractionError,
    InvalidSchemaDocument,
    PackDiffException,
    ReportWriteError,
    UsageError,
)
from packdiff.models import (
    DiffStatus,
    FileDiffResult,
    FileSetDiff,
    PackageDiffResult,
    ParseIssue,
    ReasonCode,
    Record,
    RecordDiff,
    SchemaDiffResult,
    SchemaDocument,
    TypeChange,
)
from packdiff.pipeline import PackageDiffPipeline
from packdiff.record_diff import RecordDiffEngine
from packdiff.schema_diff import SchemaDiffEngine, diff_file_sets, load_schema_document

__all__ = [
    "__version__",
    # Config
    "PackDiffConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Exceptions
    "PackDiffException",
    "UsageError",
    "ExtractionError",
    "DataException",
    "DataAccessError",
    "InvalidSchemaDocument",
    "ReportWriteError",
    # Models
    "DiffStatus",
    "ReasonCode",
    "Record",
    "RecordDiff",
    "ParseIssue",
    "FileDiffResult",
    "SchemaDocument",
    "SchemaDiffResult",
    "TypeChange",
    "FileSetDiff",
    "PackageDiffResult",
    # Engines
    "RecordDiffEngine",
    "SchemaDiffEngine",
    "diff_file_sets",
    "load_schema_document",
    "PackageDiffPipeline",
]
