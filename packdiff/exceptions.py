"""PackDiff Exception Hierarchy.

Every failure the comparison run can surface to the user is raised as a
subclass of ``PackDiffException`` so the CLI can report the failing
operation and path in one place.

Exception Hierarchy:
    PackDiffException (base)
    ├── UsageError
    ├── ExtractionError
    └── DataException
        ├── DataAccessError
        ├── InvalidSchemaDocument
        └── ReportWriteError

All exceptions include rich context:
- error_code: Unique error identifier
- context: Dictionary with error-specific details
- timestamp: When the error occurred

Example:
    >>> from packdiff.exceptions import DataAccessError
    >>> raise DataAccessError(
    ...     message="Cannot open record file",
    ...     path="oldPackage/3.json",
    ...     operation="read",
    ... )
"""

import json
import re
from datetime import datetime
from typing import Any, Dict, List, Optional


# ==============================================================================
# Base Exception
# ==============================================================================

class PackDiffException(Exception):
    """Base exception for all PackDiff errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "PD_DATA_ACCESS_ERROR")
        context: Dictionary with error-specific details
        timestamp: When the error occurred
    """

    ERROR_PREFIX = "PD"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.context = context or {}
        self.timestamp = datetime.now()

    def _generate_error_code(self) -> str:
        """Generate error code like "PD_DATA_ACCESS_ERROR" from the class name."""
        class_name = self.__class__.__name__
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', class_name).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        return f"[{self.error_code}] - {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}')"
        )


# ==============================================================================
# Run-level Exceptions
# ==============================================================================

class UsageError(PackDiffException):
    """The command was invoked with unusable arguments.

    Raised before any extraction or comparison work starts.
    """


class ExtractionError(PackDiffException):
    """One or both package archives could not be extracted.

    Example:
        >>> raise ExtractionError(
        ...     message="Failed to extract old.tar.gz",
        ...     failures={"old.tar.gz": "not a gzip file"},
        ... )
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        failures: Optional[Dict[str, str]] = None,
    ):
        """Initialize extraction error.

        Args:
            message: Error message
            context: Error context
            failures: Mapping of archive path -> failure reason
        """
        context = context or {}
        if failures:
            context["failures"] = failures
        super().__init__(message, context=context)

    @property
    def failures(self) -> Dict[str, str]:
        return self.context.get("failures", {})


# ==============================================================================
# Data Exceptions
# ==============================================================================

class DataException(PackDiffException):
    """Base exception for errors reading or writing package data."""
    ERROR_PREFIX = "PD_DATA"


class DataAccessError(DataException):
    """A file or directory could not be read.

    Example:
        >>> raise DataAccessError(
        ...     message="Cannot open record file",
        ...     path="newPackage/7.json",
        ...     operation="read",
        ... )
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        path: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        """Initialize data access error.

        Args:
            message: Error message
            context: Error context
            path: File or directory that failed
            operation: Operation attempted (read, list, remove)
        """
        context = context or {}
        if path:
            context["path"] = str(path)
        if operation:
            context["operation"] = operation
        super().__init__(message, context=context)


class InvalidSchemaDocument(DataException):
    """A dictionary file is not a mapping of field name -> descriptor object."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        path: Optional[str] = None,
        schema_errors: Optional[List[str]] = None,
    ):
        """Initialize schema document error.

        Args:
            message: Error message
            context: Error context
            path: Dictionary file that failed to load
            schema_errors: List of structural problems found
        """
        context = context or {}
        if path:
            context["path"] = str(path)
        if schema_errors:
            context["schema_errors"] = schema_errors
        super().__init__(message, context=context)


class ReportWriteError(DataException):
    """A report file could not be written (disk full, permission denied)."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        path: Optional[str] = None,
    ):
        context = context or {}
        if path:
            context["path"] = str(path)
        super().__init__(message, context=context)


# ==============================================================================
# Utilities
# ==============================================================================

def format_exception_chain(exc: BaseException) -> str:
    """Format exception chain for logging/display.

    Args:
        exc: Exception to format

    Returns:
        Formatted string with full exception chain
    """
    lines = []
    current: Optional[BaseException] = exc

    while current is not None:
        if isinstance(current, PackDiffException):
            lines.append(str(current))
            if current.context:
                lines.append(f"  Context: {current.context}")
        else:
            lines.append(f"{type(current).__name__}: {current}")

        current = current.__cause__

    return "\n".join(lines)


__all__ = [
    "PackDiffException",
    "UsageError",
    "ExtractionError",
    "DataException",
    "DataAccessError",
    "InvalidSchemaDocument",
    "ReportWriteError",
    "format_exception_chain",
]
