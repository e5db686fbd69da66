# -*- coding: utf-8 -*-
"""
Report Renderer - PackDiff

Formats engine results into the three plain-text reports of a run:

- ``updates_<new>.diff``      one changed/added/removed id per line
- ``updates_ext_<new>.diff``  the same ids annotated with a reason tag
- ``report.diff``             dictionary field changes and file-set changes

Rendering functions are pure: they take result models and return text.
``ReportWriter`` is the only part that touches the filesystem.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Union

from packdiff.exceptions import ReportWriteError
from packdiff.models import (
    FileDiffResult,
    FileSetDiff,
    RecordDiff,
    ReasonCode,
    SchemaDiffResult,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_ARCHIVE_SUFFIXES = (".tar.gz", ".tgz", ".tar.bz2", ".tar.xz", ".tar")

#: Reason codes written without old/new values.
_BARE_CODES = (ReasonCode.NEW, ReasonCode.DELETED, ReasonCode.SPECIALTIES)

FINAL_REPORT_NAME = "report.diff"

__all__ = [
    "FINAL_REPORT_NAME",
    "ReportWriter",
    "package_label",
    "updates_report_name",
    "updates_ext_report_name",
    "format_verbose_line",
    "render_updates_report",
    "render_updates_ext_report",
    "render_final_report",
]


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


def package_label(archive: PathLike) -> str:
    """Archive file name without directory and archive suffix.

    >>> package_label("/data/export_2024_05.tar.gz")
    'export_2024_05'
    """
    name = Path(archive).name
    for suffix in _ARCHIVE_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def updates_report_name(new_label: str) -> str:
    return f"updates_{new_label}.diff"


def updates_ext_report_name(new_label: str) -> str:
    return f"updates_ext_{new_label}.diff"


# ---------------------------------------------------------------------------
# Record reports
# ---------------------------------------------------------------------------


def _updates_header(old_label: str, new_label: str) -> str:
    return f"Update report ({old_label} - {new_label})"


def _iter_diffs(results: Iterable[FileDiffResult]) -> Iterable[RecordDiff]:
    for result in results:
        yield from result.diffs


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def format_verbose_line(diff: RecordDiff) -> str:
    """One line of the verbose report, e.g. ``5 - NPI 111!=222``."""
    if diff.code in _BARE_CODES:
        return f"{diff.id} - {diff.code.value} "
    return (
        f"{diff.id} - {diff.code.value} "
        f"{_format_value(diff.old_value)}!={_format_value(diff.new_value)}"
    )


def render_updates_report(
    results: Sequence[FileDiffResult],
    old_label: str,
    new_label: str,
) -> str:
    """Terse report: header, then one id per added/changed/removed record."""
    lines = [_updates_header(old_label, new_label)]
    lines.extend(f"{diff.id} " for diff in _iter_diffs(results))
    return "\n".join(lines) + "\n"


def render_updates_ext_report(
    results: Sequence[FileDiffResult],
    old_label: str,
    new_label: str,
) -> str:
    """Verbose report: same ids as the terse report, each with its reason."""
    lines = [_updates_header(old_label, new_label)]
    lines.extend(format_verbose_line(diff) for diff in _iter_diffs(results))
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Final report
# ---------------------------------------------------------------------------


def _type_label(value: Optional[str]) -> str:
    return "null" if value is None else value


def _append_schema_result(lines: List[str], result: SchemaDiffResult) -> None:
    lines.append("")
    lines.append(f"-> {result.name}")

    lines.append(f"{len(result.added)} fields added")
    lines.extend(f"- {name}" for name in result.added)

    lines.append(f"{len(result.removed)} fields removed")
    lines.extend(f"- {name}" for name in result.removed)

    lines.append(f"{len(result.type_changed)} changes detected")
    for name, change in result.type_changed.items():
        lines.append(
            f"- {name} (from: `{_type_label(change.from_type)}` "
            f"to: `{_type_label(change.to_type)}`)"
        )


def _append_file_section(lines: List[str], title: str, files: List[str]) -> None:
    if not files:
        return
    lines.append("")
    lines.append(f"-> {title}")
    lines.extend(f"- {name}" for name in files)


def render_final_report(
    schema_results: Sequence[SchemaDiffResult],
    file_set: FileSetDiff,
    old_label: str,
    new_label: str,
) -> str:
    """Per-dictionary field changes followed by removed and added files."""
    lines = [f"Final package report ({old_label} - {new_label})"]
    for result in schema_results:
        _append_schema_result(lines, result)
    _append_file_section(lines, "Removed files", file_set.removed_files)
    _append_file_section(lines, "Added files", file_set.added_files)
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


class ReportWriter:
    """Writes fully rendered reports into one output directory."""

    def __init__(self, output_dir: PathLike = ".") -> None:
        self.output_dir = Path(output_dir)

    def write(self, name: str, text: str) -> Path:
        """Write ``text`` to ``<output_dir>/<name>``, replacing any old file.

        Raises:
            ReportWriteError: If the file cannot be created or written.
        """
        path = self.output_dir / name
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as fh:
                fh.write(text)
        except OSError as exc:
            raise ReportWriteError(
                f"Cannot write report {path}: {exc.strerror or exc}",
                path=str(path),
            ) from exc
        logger.info("Wrote %s (%d lines)", path, text.count("\n"))
        return path