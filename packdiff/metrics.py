# -*- coding: utf-8 -*-
"""
Prometheus Metrics - PackDiff

6 Prometheus metrics describing a package comparison run. A batch run
exposes them through the node-exporter textfile collector: when
``metrics_textfile`` is configured the registry is written there once the
run finishes.

Metrics:
    1. packdiff_runs_total (Counter, labels: status)
    2. packdiff_records_classified_total (Counter, labels: status)
    3. packdiff_parse_issues_total (Counter, labels: kind)
    4. packdiff_schema_field_changes_total (Counter, labels: change)
    5. packdiff_files_compared_total (Counter, labels: kind)
    6. packdiff_stage_duration_seconds (Histogram, labels: stage)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from prometheus_client import REGISTRY, Counter, Histogram, write_to_textfile

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Comparison runs by final status
pd_runs_total = Counter(
    "packdiff_runs_total",
    "Total package comparison runs",
    labelnames=["status"],
)

# 2. Record classifications by status
pd_records_classified_total = Counter(
    "packdiff_records_classified_total",
    "Total records classified as added, removed or changed",
    labelnames=["status"],
)

# 3. Skipped record lines by kind
pd_parse_issues_total = Counter(
    "packdiff_parse_issues_total",
    "Total record lines skipped during comparison",
    labelnames=["kind"],
)

# 4. Dictionary field changes by change type
pd_schema_field_changes_total = Counter(
    "packdiff_schema_field_changes_total",
    "Total dictionary field changes detected",
    labelnames=["change"],
)

# 5. Files compared by kind
pd_files_compared_total = Counter(
    "packdiff_files_compared_total",
    "Total file pairs compared",
    labelnames=["kind"],
)

# 6. Stage duration histogram
pd_stage_duration_seconds = Histogram(
    "packdiff_stage_duration_seconds",
    "Duration of each comparison stage in seconds",
    labelnames=["stage"],
    buckets=(
        0.01, 0.05, 0.1, 0.5, 1.0,
        5.0, 10.0, 30.0, 60.0, 300.0,
    ),
)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def inc_runs(status: str) -> None:
    """Record a finished run.

    Args:
        status: Run status (completed, failed).
    """
    pd_runs_total.labels(status=status).inc()


def inc_records_classified(status: str, count: int = 1) -> None:
    """Record classified records.

    Args:
        status: Classification (added, removed, changed).
        count: Number of records.
    """
    if count:
        pd_records_classified_total.labels(status=status).inc(count)


def inc_parse_issues(kind: str, count: int = 1) -> None:
    """Record skipped record lines.

    Args:
        kind: Issue kind (malformed, duplicate).
        count: Number of lines.
    """
    if count:
        pd_parse_issues_total.labels(kind=kind).inc(count)


def inc_schema_changes(change: str, count: int = 1) -> None:
    """Record dictionary field changes.

    Args:
        change: Change type (added, removed, type_changed).
        count: Number of fields.
    """
    if count:
        pd_schema_field_changes_total.labels(change=change).inc(count)


def inc_files_compared(kind: str, count: int = 1) -> None:
    """Record compared file pairs.

    Args:
        kind: File kind (record, schema).
        count: Number of pairs.
    """
    pd_files_compared_total.labels(kind=kind).inc(count)


def observe_stage_duration(stage: str, duration: float) -> None:
    """Record how long a stage took.

    Args:
        stage: Stage name (extract, updates, report, cleanup).
        duration: Duration in seconds.
    """
    pd_stage_duration_seconds.labels(stage=stage).observe(duration)


def write_textfile(path: Union[str, Path]) -> bool:
    """Write the default registry in textfile-collector format.

    A failed write is logged and never changes the outcome of the run.

    Args:
        path: Destination ``.prom`` file.

    Returns:
        True if the file was written.
    """
    try:
        write_to_textfile(str(path), REGISTRY)
    except OSError as exc:
        logger.warning("Failed to write metrics to %s: %s", path, exc)
        return False
    logger.info("Metrics written to %s", path)
    return True


__all__ = [
    "pd_runs_total",
    "pd_records_classified_total",
    "pd_parse_issues_total",
    "pd_schema_field_changes_total",
    "pd_files_compared_total",
    "pd_stage_duration_seconds",
    "inc_runs",
    "inc_records_classified",
    "inc_parse_issues",
    "inc_schema_changes",
    "inc_files_compared",
    "observe_stage_duration",
    "write_textfile",
]
