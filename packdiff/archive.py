# -*- coding: utf-8 -*-
"""
Package archive handling - PackDiff

Filesystem glue around the comparison engines:

- ``extract_archive`` unpacks one package archive (any tar compression)
- ``extract_packages`` unpacks the old and new package side by side on a
  two-worker thread pool and waits for both before returning
- ``list_files`` enumerates the files of an extracted package, optionally
  filtered by a full-match regular expression
- ``remove_directories`` deletes the extracted packages after a run

Example:
    >>> from packdiff.archive import extract_packages, list_files
    >>> extract_packages("old.tar.gz", "new.tar.gz", "oldPackage", "newPackage")
    >>> list_files("newPackage", r"\\d{1,2}\\.json")
    ['1.json', '2.json']
"""

from __future__ import annotations

import logging
import lzma
import re
import shutil
import tarfile
import time
import zlib
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import Dict, List, Optional, Union

from packdiff.exceptions import DataAccessError, ExtractionError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

__all__ = [
    "extract_archive",
    "extract_packages",
    "list_files",
    "remove_directories",
]


def extract_archive(archive: PathLike, target: PathLike) -> Path:
    """Extract a package archive into ``target``.

    A stale ``target`` left over from an earlier run is removed first so
    files from a previous package never leak into the comparison.

    Args:
        archive: Path of the tar archive (gzip, bzip2, xz or plain).
        target: Directory to extract into.

    Returns:
        The target directory.

    Raises:
        ExtractionError: If the archive is missing, unreadable, corrupt or
            truncated.
    """
    archive = Path(archive)
    target = Path(target)
    start_t = time.time()

    if not archive.is_file():
        raise ExtractionError(
            f"Archive not found: {archive}",
            failures={str(archive): "file not found"},
        )

    try:
        if target.exists():
            logger.warning("Removing stale directory %s before extraction", target)
            shutil.rmtree(target)
        target.mkdir(parents=True)

        with tarfile.open(archive, "r:*") as tar:
            if hasattr(tarfile, "data_filter"):
                tar.extractall(target, filter="data")
            else:
                tar.extractall(target)
    except (tarfile.TarError, OSError, EOFError, zlib.error, lzma.LZMAError) as exc:
        raise ExtractionError(
            f"Failed to extract {archive} into {target}: {exc}",
            failures={str(archive): str(exc)},
        ) from exc

    logger.info(
        "Extracted %s into %s (%.1f ms)",
        archive, target, (time.time() - start_t) * 1000.0,
    )
    return target


def extract_packages(
    old_archive: PathLike,
    new_archive: PathLike,
    old_target: PathLike,
    new_target: PathLike,
    timeout: Optional[float] = None,
) -> None:
    """Extract both package archives concurrently.

    The two extractions share nothing, so they run as independent tasks.
    This call returns only once both have finished; every failure is
    collected and reported together.

    Args:
        old_archive: Archive of the old package.
        new_archive: Archive of the new package.
        old_target: Extraction directory for the old package.
        new_target: Extraction directory for the new package.
        timeout: Seconds to wait for both tasks. None waits indefinitely.

    Raises:
        ExtractionError: If either extraction failed or timed out.
    """
    jobs = ((old_archive, old_target), (new_archive, new_target))
    failures: Dict[str, str] = {}

    executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="extract")
    try:
        futures = {
            executor.submit(extract_archive, archive, target): str(archive)
            for archive, target in jobs
        }
        done, not_done = wait(futures, timeout=timeout)
    finally:
        # A timed-out extraction keeps its worker thread; do not block on it.
        executor.shutdown(wait=False, cancel_futures=True)

    for future in not_done:
        failures[futures[future]] = f"timed out after {timeout} seconds"

    for future in done:
        archive = futures[future]
        try:
            future.result()
        except ExtractionError as exc:
            failures.update(exc.failures or {archive: exc.message})
        except Exception as exc:
            logger.exception("Unexpected error extracting %s", archive)
            failures[archive] = f"{type(exc).__name__}: {exc}"

    if failures:
        for archive, reason in failures.items():
            logger.error("Extraction failed for %s: %s", archive, reason)
        names = ", ".join(sorted(failures))
        raise ExtractionError(
            f"Failed to extract package archive(s): {names}",
            failures=failures,
        )


def list_files(directory: PathLike, pattern: Optional[str] = None) -> List[str]:
    """List file names in ``directory``, sorted.

    Args:
        directory: Directory to list (not recursive).
        pattern: Optional regular expression the whole file name must
            match, e.g. ``r"dict[A-Za-z]+\\.json"``.

    Returns:
        Sorted list of matching file names.

    Raises:
        DataAccessError: If the directory cannot be listed.
    """
    directory = Path(directory)
    regex = re.compile(pattern) if pattern else None
    try:
        entries = [p for p in directory.iterdir() if p.is_file()]
    except OSError as exc:
        raise DataAccessError(
            f"Cannot list directory {directory}: {exc.strerror or exc}",
            path=str(directory),
            operation="list",
        ) from exc

    names = sorted(
        p.name for p in entries
        if regex is None or regex.fullmatch(p.name)
    )
    logger.debug("Listed %d file(s) in %s (pattern=%s)", len(names), directory, pattern)
    return names


def remove_directories(*directories: PathLike) -> None:
    """Remove extracted package directories; missing ones are ignored.

    Raises:
        DataAccessError: If a directory exists but cannot be removed.
    """
    for directory in directories:
        directory = Path(directory)
        if not directory.exists():
            continue
        try:
            shutil.rmtree(directory)
        except OSError as exc:
            raise DataAccessError(
                f"Cannot remove directory {directory}: {exc.strerror or exc}",
                path=str(directory),
                operation="remove",
            ) from exc
        logger.info("Removed %s", directory)
