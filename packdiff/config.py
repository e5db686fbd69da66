# -*- coding: utf-8 -*-
"""
PackDiff Configuration

Centralized configuration for a package comparison run covering:
- Logging level
- Working, output and extraction directory names
- Record and dictionary file name patterns
- Record comparison toggles (specialty ordering, removed-id ordering)
- Cleanup policy for the extracted package directories
- Extraction timeout and Prometheus textfile export

All settings can be overridden via environment variables with the
``PACKDIFF_`` prefix (e.g. ``PACKDIFF_OUTPUT_DIR``).

Example:
    >>> from packdiff.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.old_dir_name, cfg.new_dir_name)
"""

from __future__ import annotations

import logging
import os
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "PACKDIFF_"


# ---------------------------------------------------------------------------
# PackDiffConfig
# ---------------------------------------------------------------------------


@dataclass
class PackDiffConfig:
    """Complete configuration for one package comparison run.

    Attributes:
        log_level: Logging level for the CLI. Accepts standard Python
            logging levels: DEBUG, INFO, WARNING, ERROR, CRITICAL.
        work_dir: Directory under which both packages are extracted.
        output_dir: Directory the three report files are written to.
        old_dir_name: Name of the directory the old package is
            extracted into (relative to ``work_dir``).
        new_dir_name: Name of the directory the new package is
            extracted into (relative to ``work_dir``).
        record_file_pattern: Regular expression (full match) selecting
            the newline-delimited record files of a package.
        schema_file_pattern: Regular expression (full match) selecting
            the dictionary files of a package.
        specialties_order_sensitive: When True the specialty lists of
            two records must be equal element by element. When False
            (default) they are compared as multisets.
        sort_removed: Emit removed ids in ascending order. When False
            they follow the order of the old file.
        cleanup: Remove the extracted directories after the run. None
            means ask through the confirmation callback.
        extraction_timeout: Seconds to wait for both extractions. None
            waits indefinitely.
        metrics_textfile: Optional path the Prometheus metrics are
            written to at the end of a run (textfile collector format).
    """

    # -- Logging -------------------------------------------------------------
    log_level: str = "INFO"

    # -- Directories ---------------------------------------------------------
    work_dir: str = "."
    output_dir: str = "."
    old_dir_name: str = "oldPackage"
    new_dir_name: str = "newPackage"

    # -- File selection ------------------------------------------------------
    record_file_pattern: str = r"\d{1,2}\.json"
    schema_file_pattern: str = r"dict[A-Za-z]+\.json"

    # -- Record comparison ---------------------------------------------------
    specialties_order_sensitive: bool = False
    sort_removed: bool = True

    # -- Cleanup -------------------------------------------------------------
    cleanup: Optional[bool] = None

    # -- Extraction ----------------------------------------------------------
    extraction_timeout: Optional[float] = None

    # -- Metrics -------------------------------------------------------------
    metrics_textfile: Optional[str] = None

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def old_dir(self) -> Path:
        return Path(self.work_dir) / self.old_dir_name

    @property
    def new_dir(self) -> Path:
        return Path(self.work_dir) / self.new_dir_name

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> PackDiffConfig:
        """Build a PackDiffConfig from environment variables.

        Every field can be overridden via ``PACKDIFF_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).
        Optional values are cleared by an empty string.

        Returns:
            Populated PackDiffConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _opt_bool(name: str, default: Optional[bool]) -> Optional[bool]:
            val = _env(name)
            if val is None:
                return default
            if val == "":
                return None
            return val.lower() in ("true", "1", "yes")

        def _opt_float(name: str, default: Optional[float]) -> Optional[float]:
            val = _env(name)
            if val is None:
                return default
            if val == "":
                return None
            try:
                return float(val)
            except ValueError:
                logger.warning(
                    "Invalid float for %s%s=%s, using default %s",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val

        def _opt_str(name: str, default: Optional[str]) -> Optional[str]:
            val = _env(name)
            if val is None:
                return default
            return val or None

        config = cls(
            log_level=_str("LOG_LEVEL", cls.log_level),
            work_dir=_str("WORK_DIR", cls.work_dir),
            output_dir=_str("OUTPUT_DIR", cls.output_dir),
            old_dir_name=_str("OLD_DIR_NAME", cls.old_dir_name),
            new_dir_name=_str("NEW_DIR_NAME", cls.new_dir_name),
            record_file_pattern=_str(
                "RECORD_FILE_PATTERN", cls.record_file_pattern,
            ),
            schema_file_pattern=_str(
                "SCHEMA_FILE_PATTERN", cls.schema_file_pattern,
            ),
            specialties_order_sensitive=_bool(
                "SPECIALTIES_ORDER_SENSITIVE",
                cls.specialties_order_sensitive,
            ),
            sort_removed=_bool("SORT_REMOVED", cls.sort_removed),
            cleanup=_opt_bool("CLEANUP", cls.cleanup),
            extraction_timeout=_opt_float(
                "EXTRACTION_TIMEOUT", cls.extraction_timeout,
            ),
            metrics_textfile=_opt_str(
                "METRICS_TEXTFILE", cls.metrics_textfile,
            ),
        )

        logger.debug(
            "PackDiffConfig loaded: work_dir=%s, output_dir=%s, "
            "old=%s, new=%s, records=%s, schemas=%s, "
            "specialties_ordered=%s, sort_removed=%s, cleanup=%s, "
            "timeout=%s",
            config.work_dir,
            config.output_dir,
            config.old_dir_name,
            config.new_dir_name,
            config.record_file_pattern,
            config.schema_file_pattern,
            config.specialties_order_sensitive,
            config.sort_removed,
            config.cleanup,
            config.extraction_timeout,
        )
        return config

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def __post_init__(self) -> None:
        """Validate all configuration constraints after initialization.

        Raises:
            ValueError: If any constraint is violated.
        """
        errors: list[str] = []

        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if self.log_level.upper() not in valid_levels:
            errors.append(
                f"log_level must be one of {valid_levels}, "
                f"got '{self.log_level}'"
            )

        if not self.old_dir_name:
            errors.append("old_dir_name must not be empty")
        if not self.new_dir_name:
            errors.append("new_dir_name must not be empty")
        if self.old_dir_name == self.new_dir_name:
            errors.append("old_dir_name and new_dir_name must differ")

        for name in ("record_file_pattern", "schema_file_pattern"):
            try:
                re.compile(getattr(self, name))
            except re.error as exc:
                errors.append(f"{name} is not a valid regular expression: {exc}")

        if self.extraction_timeout is not None and self.extraction_timeout <= 0:
            errors.append("extraction_timeout must be > 0")

        if errors:
            msg = "; ".join(errors)
            logger.error("PackDiffConfig validation failed: %s", msg)
            raise ValueError(f"PackDiffConfig validation failed: {msg}")


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[PackDiffConfig] = None
_config_lock = threading.Lock()


def get_config() -> PackDiffConfig:
    """Return the singleton PackDiffConfig, creating from env if needed.

    Returns:
        PackDiffConfig singleton instance.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = PackDiffConfig.from_env()
    return _config_instance


def set_config(config: PackDiffConfig) -> None:
    """Replace the singleton PackDiffConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.debug("PackDiffConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "PackDiffConfig",
    "get_config",
    "set_config",
    "reset_config",
]
