# -*- coding: utf-8 -*-
"""
Package Diff Pipeline - PackDiff

End-to-end orchestration of one comparison run:

    extract both archives (parallel) -> compare paired record files ->
    write updates reports -> compare dictionaries and file listings ->
    write final report -> optional cleanup

Every stage either completes or raises a ``PackDiffException``; skipped
record lines are the only non-fatal problems and are carried in the
returned ``PackageDiffResult``.

Example:
    >>> from packdiff.config import PackDiffConfig
    >>> from packdiff.pipeline import PackageDiffPipeline
    >>> pipeline = PackageDiffPipeline(PackDiffConfig(cleanup=True))
    >>> result = pipeline.run("export_old.tar.gz", "export_new.tar.gz")
    >>> print(result.added_count, result.removed_count)
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from packdiff import metrics
from packdiff.archive import extract_packages, list_files, remove_directories
from packdiff.config import PackDiffConfig, get_config
from packdiff.exceptions import UsageError
from packdiff.models import FileDiffResult, PackageDiffResult
from packdiff.record_diff import RecordDiffEngine
from packdiff.report import (
    FINAL_REPORT_NAME,
    ReportWriter,
    package_label,
    render_final_report,
    render_updates_ext_report,
    render_updates_report,
    updates_ext_report_name,
    updates_report_name,
)
from packdiff.schema_diff import SchemaDiffEngine

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

#: Asked before the extracted package directories are deleted.
CLEANUP_QUESTION = "Do you want to remove the temporary files?"

__all__ = ["PackageDiffPipeline", "CLEANUP_QUESTION"]


@contextmanager
def _stage(name: str) -> Iterator[None]:
    start_t = time.time()
    logger.debug("Stage %s started", name)
    try:
        yield
    finally:
        duration = time.time() - start_t
        metrics.observe_stage_duration(name, duration)
        logger.debug("Stage %s finished in %.3f s", name, duration)


class PackageDiffPipeline:
    """Runs the whole comparison between an old and a new package archive.

    Attributes:
        config: Run configuration (directories, patterns, cleanup policy).
        confirm: Callback answering the cleanup question when
            ``config.cleanup`` is None. Without one nothing is removed.
    """

    def __init__(
        self,
        config: Optional[PackDiffConfig] = None,
        confirm: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self.config = config or get_config()
        self.confirm = confirm
        self.record_engine = RecordDiffEngine(self.config)
        self.schema_engine = SchemaDiffEngine(self.config)
        self.writer = ReportWriter(self.config.output_dir)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, old_archive: PathLike, new_archive: PathLike) -> PackageDiffResult:
        """Compare two package archives and write the three reports.

        Args:
            old_archive: Archive of the previous export.
            new_archive: Archive of the current export.

        Returns:
            PackageDiffResult with every classification and report path.

        Raises:
            UsageError: If an archive path does not exist.
            ExtractionError: If either archive cannot be extracted.
            DataAccessError: If an extracted file cannot be read.
            InvalidSchemaDocument: If a dictionary file is malformed.
            ReportWriteError: If a report cannot be written.
        """
        try:
            result = self._run(Path(old_archive), Path(new_archive))
        except Exception:
            metrics.inc_runs("failed")
            raise
        else:
            metrics.inc_runs("completed")
            return result
        finally:
            if self.config.metrics_textfile:
                metrics.write_textfile(self.config.metrics_textfile)

    def compare_directories(
        self,
        old_dir: PathLike,
        new_dir: PathLike,
        old_label: str,
        new_label: str,
    ) -> PackageDiffResult:
        """Compare two already extracted package directories and write reports."""
        old_dir = Path(old_dir)
        new_dir = Path(new_dir)
        report_paths: Dict[str, str] = {}

        logger.info("Reading the packages and generating the updates report")
        with _stage("updates"):
            record_results, unpaired = self._diff_record_files(old_dir, new_dir)
            report_paths["updates"] = str(self.writer.write(
                updates_report_name(new_label),
                render_updates_report(record_results, old_label, new_label),
            ))
            report_paths["updates_ext"] = str(self.writer.write(
                updates_ext_report_name(new_label),
                render_updates_ext_report(record_results, old_label, new_label),
            ))

        logger.info("Generating the final report")
        with _stage("report"):
            schema_results = self.schema_engine.diff_directories(old_dir, new_dir)
            file_set = self.schema_engine.diff_directory_listings(old_dir, new_dir)
            report_paths["final"] = str(self.writer.write(
                FINAL_REPORT_NAME,
                render_final_report(schema_results, file_set, old_label, new_label),
            ))

        return PackageDiffResult(
            old_label=old_label,
            new_label=new_label,
            record_results=record_results,
            schema_results=schema_results,
            file_set=file_set,
            unpaired_record_files=unpaired,
            report_paths=report_paths,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _run(self, old_archive: Path, new_archive: Path) -> PackageDiffResult:
        missing = [str(p) for p in (old_archive, new_archive) if not p.is_file()]
        if missing:
            raise UsageError(
                f"Package archive not found: {', '.join(missing)}",
                context={"missing": missing},
            )

        old_dir, new_dir = self.config.old_dir, self.config.new_dir
        start_t = time.time()

        logger.info("Unpacking files")
        with _stage("extract"):
            extract_packages(
                old_archive, new_archive, old_dir, new_dir,
                timeout=self.config.extraction_timeout,
            )

        result = self.compare_directories(
            old_dir, new_dir,
            old_label=package_label(old_archive),
            new_label=package_label(new_archive),
        )

        logger.info("All done in %.1f minutes", (time.time() - start_t) / 60.0)

        cleaned = self._cleanup(old_dir, new_dir)
        return result.model_copy(update={"cleaned_up": cleaned})

    def _diff_record_files(
        self, old_dir: Path, new_dir: Path,
    ) -> Tuple[List[FileDiffResult], List[str]]:
        pattern = self.config.record_file_pattern
        new_files = list_files(new_dir, pattern)
        old_files = set(list_files(old_dir, pattern))

        if not new_files:
            logger.warning("No valid record files found in %s", new_dir)

        results: List[FileDiffResult] = []
        unpaired = sorted(old_files.symmetric_difference(new_files))
        for name in unpaired:
            logger.info("Record file %s exists in only one package, not compared", name)

        for name in new_files:
            if name not in old_files:
                continue
            results.append(self.record_engine.diff_files(old_dir / name, new_dir / name))
        return results, unpaired

    def _cleanup(self, old_dir: Path, new_dir: Path) -> bool:
        remove = self.config.cleanup
        if remove is None:
            remove = bool(self.confirm and self.confirm(CLEANUP_QUESTION))
        if not remove:
            logger.info("Keeping extracted packages in %s and %s", old_dir, new_dir)
            return False
        with _stage("cleanup"):
            remove_directories(old_dir, new_dir)
        logger.info("Files removed")
        return True
