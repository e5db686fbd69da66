# -*- coding: utf-8 -*-
"""
Record Diff Engine - PackDiff

Keyed comparison of two newline-delimited JSON record files. The old file
is loaded into an index keyed by record id, the new file is streamed line
by line, and every identity seen in either file is classified exactly
once as added, removed or changed.

Changed records report only the first differing field in a fixed priority
order (npi, ttid, names, location sub-fields, specialties): one record
yields one report line.

Malformed lines never abort a file: they are skipped, logged and returned
as ``ParseIssue`` entries alongside the classifications.

Example:
    >>> from packdiff.record_diff import RecordDiffEngine
    >>> engine = RecordDiffEngine()
    >>> result = engine.diff_lines(
    ...     ['{"id": 5, "npi": 111, "first_name": "Ann"}'],
    ...     ['{"id": 5, "npi": 222, "first_name": "Ann"}'],
    ... )
    >>> result.diffs[0].reason
    'npi: 111 != 222'
"""

from __future__ import annotations

import json
import logging
import time
from collections import Counter
from operator import attrgetter
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, TextIO, Tuple, Union

from pydantic import ValidationError

from packdiff import metrics
from packdiff.config import PackDiffConfig, get_config
from packdiff.exceptions import DataAccessError
from packdiff.models import (
    DiffStatus,
    FileDiffResult,
    ParseIssue,
    ReasonCode,
    Record,
    RecordDiff,
)

logger = logging.getLogger(__name__)

__all__ = ["RecordDiffEngine", "FIELD_PRIORITY"]


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Scalar fields compared in order; the first mismatch is the reason.
FIELD_PRIORITY: Tuple[Tuple[str, ReasonCode], ...] = (
    ("npi", ReasonCode.NPI),
    ("ttid", ReasonCode.TTID),
    ("first_name", ReasonCode.FIRST_NAME),
    ("last_name", ReasonCode.LAST_NAME),
    ("middle_name", ReasonCode.MIDDLE_NAME),
    ("location.location_id", ReasonCode.LOCATION_ID),
    ("location.affiliation", ReasonCode.LOCATION_AFFILIATION),
    ("location.city", ReasonCode.LOCATION_CITY),
    ("location.zip", ReasonCode.LOCATION_ZIP),
    ("location.latitude", ReasonCode.LOCATION_LATITUDE),
    ("location.longitude", ReasonCode.LOCATION_LONGITUDE),
    ("location.state", ReasonCode.LOCATION_STATE),
    ("location.address", ReasonCode.LOCATION_ADDRESS),
    ("location.country", ReasonCode.LOCATION_COUNTRY),
)

_GETTERS: Dict[str, Callable[[Record], Any]] = {
    path: attrgetter(path) for path, _ in FIELD_PRIORITY
}

_ISSUE_MALFORMED = "malformed"
_ISSUE_DUPLICATE = "duplicate"

PathLike = Union[str, Path]


# ============================================================================
# RecordDiffEngine
# ============================================================================


class RecordDiffEngine:
    """Classifies records of one old/new record file pair.

    The engine holds no state between calls: each call builds its own
    index of the old records and returns an immutable ``FileDiffResult``.
    Running it twice on the same input yields identical output.

    Attributes:
        _config: Configuration providing ``specialties_order_sensitive``
            and ``sort_removed``.
    """

    def __init__(self, config: Optional[PackDiffConfig] = None) -> None:
        self._config = config or get_config()
        logger.debug(
            "RecordDiffEngine initialized (specialties_order_sensitive=%s, "
            "sort_removed=%s)",
            self._config.specialties_order_sensitive,
            self._config.sort_removed,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def diff_files(self, old_path: PathLike, new_path: PathLike) -> FileDiffResult:
        """Compare two record files on disk.

        Args:
            old_path: Record file from the old package.
            new_path: Record file with the same name from the new package.

        Returns:
            FileDiffResult named after the new file.

        Raises:
            DataAccessError: If either file cannot be opened or read.
        """
        old_path = Path(old_path)
        new_path = Path(new_path)
        with _open_records(old_path) as old_fh, _open_records(new_path) as new_fh:
            try:
                return self._compare(
                    old_fh, new_fh,
                    file_name=new_path.name,
                    old_source=str(old_path),
                    new_source=str(new_path),
                )
            except OSError as exc:
                raise DataAccessError(
                    f"Failed to read record files {old_path} / {new_path}: {exc}",
                    path=str(new_path),
                    operation="read",
                ) from exc

    def diff_lines(
        self,
        old_lines: Iterable[str],
        new_lines: Iterable[str],
        file_name: str = "<memory>",
    ) -> FileDiffResult:
        """Compare two in-memory sequences of JSON lines.

        Args:
            old_lines: Lines of the old record file.
            new_lines: Lines of the new record file.
            file_name: Name used for the result and parse issues.

        Returns:
            FileDiffResult for the pair.
        """
        return self._compare(
            old_lines, new_lines,
            file_name=file_name,
            old_source=f"old/{file_name}",
            new_source=f"new/{file_name}",
        )

    # ------------------------------------------------------------------
    # Comparison passes
    # ------------------------------------------------------------------

    def _compare(
        self,
        old_lines: Iterable[str],
        new_lines: Iterable[str],
        file_name: str,
        old_source: str,
        new_source: str,
    ) -> FileDiffResult:
        start_t = time.time()
        issues: List[ParseIssue] = []

        # Phase 1: index the old records (last occurrence wins).
        index: Dict[int, Record] = {}
        old_count = 0
        for line_number, record in _parse_lines(old_lines, old_source, issues):
            old_count += 1
            if record.id in index:
                logger.debug(
                    "Duplicate id %d in %s line %d replaces earlier record",
                    record.id, old_source, line_number,
                )
                issues.append(ParseIssue(
                    source=old_source,
                    line_number=line_number,
                    kind=_ISSUE_DUPLICATE,
                    message=f"duplicate id {record.id}, last occurrence kept",
                ))
            index[record.id] = record

        # Phase 2: stream the new records in file order.
        diffs: List[RecordDiff] = []
        consumed = set()
        new_count = 0
        for line_number, record in _parse_lines(new_lines, new_source, issues):
            new_count += 1
            if record.id in consumed:
                logger.warning(
                    "Duplicate id %d in %s line %d skipped",
                    record.id, new_source, line_number,
                )
                issues.append(ParseIssue(
                    source=new_source,
                    line_number=line_number,
                    kind=_ISSUE_DUPLICATE,
                    message=f"duplicate id {record.id}, first occurrence kept",
                ))
                continue
            consumed.add(record.id)

            previous = index.get(record.id)
            if previous is None:
                diffs.append(RecordDiff(
                    id=record.id,
                    status=DiffStatus.ADDED,
                    code=ReasonCode.NEW,
                ))
                continue

            change = self.first_difference(previous, record)
            if change is not None:
                diffs.append(change)

        # Phase 3: whatever was never consumed is gone from the new file.
        removed_ids = [rid for rid in index if rid not in consumed]
        if self._config.sort_removed:
            removed_ids.sort()
        diffs.extend(
            RecordDiff(id=rid, status=DiffStatus.REMOVED, code=ReasonCode.DELETED)
            for rid in removed_ids
        )

        result = FileDiffResult(
            file_name=file_name,
            diffs=diffs,
            parse_issues=issues,
            old_count=old_count,
            new_count=new_count,
        )
        self._record_metrics(result)

        logger.info(
            "Compared %s: %d added, %d changed, %d removed, %d issues (%.1f ms)",
            file_name,
            result.added_count,
            result.changed_count,
            result.removed_count,
            len(issues),
            (time.time() - start_t) * 1000.0,
        )
        return result

    def first_difference(self, old: Record, new: Record) -> Optional[RecordDiff]:
        """Return the CHANGED classification for the first differing field.

        Args:
            old: Record from the old package.
            new: Record with the same id from the new package.

        Returns:
            RecordDiff with status CHANGED, or None when the records are
            equal on every compared field.
        """
        for path, code in FIELD_PRIORITY:
            getter = _GETTERS[path]
            old_value, new_value = getter(old), getter(new)
            if old_value != new_value:
                return RecordDiff(
                    id=new.id,
                    status=DiffStatus.CHANGED,
                    code=code,
                    field_name=path,
                    old_value=old_value,
                    new_value=new_value,
                )

        if not self._same_specialties(old.specialties, new.specialties):
            return RecordDiff(
                id=new.id,
                status=DiffStatus.CHANGED,
                code=ReasonCode.SPECIALTIES,
                field_name="specialties",
                old_value=list(old.specialties),
                new_value=list(new.specialties),
            )
        return None

    def _same_specialties(self, old: List[str], new: List[str]) -> bool:
        if self._config.specialties_order_sensitive:
            return old == new
        return Counter(old) == Counter(new)

    @staticmethod
    def _record_metrics(result: FileDiffResult) -> None:
        metrics.inc_files_compared("record")
        metrics.inc_records_classified(DiffStatus.ADDED.value, result.added_count)
        metrics.inc_records_classified(DiffStatus.CHANGED.value, result.changed_count)
        metrics.inc_records_classified(DiffStatus.REMOVED.value, result.removed_count)
        kinds = Counter(issue.kind for issue in result.parse_issues)
        for kind, count in kinds.items():
            metrics.inc_parse_issues(kind, count)


# ---------------------------------------------------------------------------
# Line parsing
# ---------------------------------------------------------------------------


def _open_records(path: Path) -> TextIO:
    try:
        return open(path, "r", encoding="utf-8", errors="replace")
    except OSError as exc:
        raise DataAccessError(
            f"Cannot open record file {path}: {exc.strerror or exc}",
            path=str(path),
            operation="open",
        ) from exc


def _parse_lines(
    lines: Iterable[str],
    source: str,
    issues: List[ParseIssue],
) -> Iterator[Tuple[int, Record]]:
    """Yield ``(line_number, Record)`` for every well-formed line.

    Blank lines are ignored. Anything else that does not decode into a
    Record is appended to ``issues`` and skipped.
    """
    for line_number, line in enumerate(lines, start=1):
        text = line.strip()
        if not text:
            continue
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            _skip(issues, source, line_number, f"invalid JSON: {exc.msg}")
            continue
        if not isinstance(data, dict):
            _skip(
                issues, source, line_number,
                f"expected a JSON object, got {type(data).__name__}",
            )
            continue
        try:
            record = Record.model_validate(data)
        except ValidationError as exc:
            first = exc.errors()[0]
            loc = ".".join(str(part) for part in first["loc"]) or "record"
            _skip(issues, source, line_number, f"invalid record: {loc}: {first['msg']}")
            continue
        yield line_number, record


def _skip(issues: List[ParseIssue], source: str, line_number: int, message: str) -> None:
    logger.warning("Skipping %s line %d: %s", source, line_number, message)
    issues.append(ParseIssue(
        source=source,
        line_number=line_number,
        kind=_ISSUE_MALFORMED,
        message=message,
    ))
