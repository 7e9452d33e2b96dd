"""Structured exception hierarchy for hourgen.

Every failure a run can hit is raised as a ``GeneratorError`` subclass that
carries an :class:`ErrorKind`. Domain code never exits the process; the run
orchestrator turns these into a failed ``RunResult`` and the CLI maps that to
an exit status.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

__all__ = [
    "ErrorKind",
    "GeneratorError",
    "ConfigurationError",
    "InvalidDatetimeError",
    "SchemaError",
    "StorageError",
    "RecordWriteError",
    "EmissionInterruptedError",
    "WriterReleaseError",
]


class ErrorKind(Enum):
    """Failure categories reported by a run."""

    CONFIGURATION = "configuration"
    SCHEMA = "schema"
    STORAGE = "storage"
    WRITE = "write"
    INTERRUPTED = "interrupted"
    RELEASE = "release"


class GeneratorError(Exception):
    """Base exception for all hourgen errors.

    Carries structured details plus an optional fix hint.
    """

    kind: ErrorKind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.suggestion = suggestion
        self.cause = cause

        if cause is not None:
            self.details.setdefault("cause", str(cause))
            self.details.setdefault("cause_type", type(cause).__name__)

        parts = [message]

        if self.details:
            detail_lines = [f"  {k}: {v}" for k, v in self.details.items()]
            parts.append("\nDetails:")
            parts.extend(detail_lines)

        if suggestion:
            parts.append(f"\nSuggestion: {suggestion}")

        super().__init__("\n".join(parts) if len(parts) > 1 else message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialisable form attached to the failure log record."""
        return {
            "error_type": self.__class__.__name__,
            "error_kind": self.kind.value,
            "message": self.message,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class ConfigurationError(GeneratorError):
    """Invalid command-line or environment configuration."""

    kind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value

        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(message, details=details, **kwargs)


class InvalidDatetimeError(ConfigurationError):
    """The target hour override is too short or not numeric."""

    def __init__(self, message: str, *, value: Optional[str] = None, **kwargs: Any) -> None:
        kwargs.setdefault("suggestion", "Pass the override as YYYYMMDDHH, e.g. 2024031507")
        super().__init__(message, field="datetime", value=value, **kwargs)


class SchemaError(GeneratorError):
    """The record schema could not be read, parsed or validated."""

    kind = ErrorKind.SCHEMA

    def __init__(self, message: str, *, schema_path: Optional[str] = None, **kwargs: Any) -> None:
        self.schema_path = schema_path

        details = kwargs.pop("details", {})
        if schema_path:
            details["schema_path"] = schema_path

        super().__init__(message, details=details, **kwargs)


class StorageError(GeneratorError):
    """A filesystem handle or the output file could not be acquired."""

    kind = ErrorKind.STORAGE

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.path = path
        self.operation = operation

        details = kwargs.pop("details", {})
        if path:
            details["path"] = path
        if operation:
            details["operation"] = operation

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = (
                "Check that the path prefix is reachable and writable, and that "
                "the fsspec implementation for its protocol is installed."
            )

        super().__init__(message, details=details, suggestion=suggestion, **kwargs)


class RecordWriteError(GeneratorError):
    """Appending a record to the open writer failed."""

    kind = ErrorKind.WRITE

    def __init__(self, message: str, *, record_index: Optional[int] = None, **kwargs: Any) -> None:
        self.record_index = record_index

        details = kwargs.pop("details", {})
        if record_index is not None:
            details["record_index"] = record_index

        super().__init__(message, details=details, **kwargs)


class EmissionInterruptedError(GeneratorError):
    """Emission was cancelled, normally while waiting between records."""

    kind = ErrorKind.INTERRUPTED

    def __init__(self, message: str, *, records_written: Optional[int] = None, **kwargs: Any) -> None:
        self.records_written = records_written

        details = kwargs.pop("details", {})
        if records_written is not None:
            details["records_written"] = records_written

        super().__init__(message, details=details, **kwargs)


class WriterReleaseError(GeneratorError):
    """Finalizing (closing) the output file failed."""

    kind = ErrorKind.RELEASE

    def __init__(self, message: str, *, path: Optional[str] = None, **kwargs: Any) -> None:
        self.path = path

        details = kwargs.pop("details", {})
        if path:
            details["path"] = path

        super().__init__(message, details=details, **kwargs)
