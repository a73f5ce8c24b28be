"""
Typed error taxonomy for the section pipeline.

Callers branch on ``SectionPipelineError.kind`` instead of matching messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional


class ErrorKind(str, Enum):
    REPORT_NOT_FOUND = "ReportNotFound"
    PREREQUISITES_NOT_MET = "PrerequisitesNotMet"
    SOURCE_TEXT_UNAVAILABLE = "SourceTextUnavailable"
    SOURCE_TEXT_TOO_SHORT = "SourceTextTooShort"
    MODEL_INVOCATION_FAILED = "ModelInvocationFailed"
    MODEL_OUTPUT_NOT_JSON = "ModelOutputNotJSON"
    MODEL_OUTPUT_TRUNCATED = "ModelOutputTruncated"
    MODEL_OUTPUT_SCHEMA_INVALID = "ModelOutputSchemaInvalid"


class SectionPipelineError(Exception):
    """Base class for every error the pipeline reports by kind."""

    kind: ErrorKind
    # Sequencing errors are the caller's to fix; redelivery cannot help.
    retryable: bool = True

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ReportNotFound(SectionPipelineError):
    kind = ErrorKind.REPORT_NOT_FOUND
    retryable = False

    def __init__(self, report_id: str) -> None:
        super().__init__(f"Report not found: {report_id}")
        self.report_id = report_id


class PrerequisitesNotMet(SectionPipelineError):
    kind = ErrorKind.PREREQUISITES_NOT_MET
    retryable = False

    def __init__(self, section: str, missing: Iterable[str]) -> None:
        self.section = section
        self.missing = list(missing)
        super().__init__(
            f"Section '{section}' requires complete sections: {', '.join(self.missing)}"
        )


class SourceTextUnavailable(SectionPipelineError):
    kind = ErrorKind.SOURCE_TEXT_UNAVAILABLE


class SourceTextTooShort(SectionPipelineError):
    kind = ErrorKind.SOURCE_TEXT_TOO_SHORT

    def __init__(self, length: int, minimum: int, documents: int) -> None:
        super().__init__(
            f"Merged source text is too short ({length} chars, minimum {minimum}). "
            f"Loaded {documents} document(s)."
        )
        self.length = length
        self.minimum = minimum


class ModelInvocationFailed(SectionPipelineError):
    kind = ErrorKind.MODEL_INVOCATION_FAILED


class ModelOutputNotJSON(SectionPipelineError):
    kind = ErrorKind.MODEL_OUTPUT_NOT_JSON


class ModelOutputTruncated(SectionPipelineError):
    kind = ErrorKind.MODEL_OUTPUT_TRUNCATED


class ModelOutputSchemaInvalid(SectionPipelineError):
    kind = ErrorKind.MODEL_OUTPUT_SCHEMA_INVALID

    def __init__(self, message: str, raw_output: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw_output = raw_output


class StoreConditionFailed(RuntimeError):
    """Raised by document stores when a conditional update does not hold."""


class InvalidDocumentPath(ValueError):
    """Raised when an update addresses a nested attribute whose parent is missing."""


def format_error(error: object) -> str:
    """Render an error the way it is persisted on a failed section."""
    if isinstance(error, SectionPipelineError):
        return f"{error.kind.value}: {error.message}"
    if isinstance(error, BaseException):
        return f"{type(error).__name__}: {error}"
    if isinstance(error, str) and error:
        return error
    return "Unknown error"


__all__ = [
    "ErrorKind",
    "InvalidDocumentPath",
    "ModelInvocationFailed",
    "ModelOutputNotJSON",
    "ModelOutputSchemaInvalid",
    "ModelOutputTruncated",
    "PrerequisitesNotMet",
    "ReportNotFound",
    "SectionPipelineError",
    "SourceTextTooShort",
    "SourceTextUnavailable",
    "StoreConditionFailed",
    "format_error",
]
