"""Fatal pipeline errors.

Each one stops the pipeline before normalization. The orchestrator turns them
into a single blocking ValidationError on a rejected ParseResult, so callers
only see them when they drive the stages by hand.
"""
from __future__ import annotations

from typing import Iterable, Mapping

from .results import IssueType, ValidationError


class PipelineError(ValueError):
    """Base class for failures that abort a whole import."""

    issue_type = "pipeline-error"

    def __init__(self, message: str, details: Mapping[str, object] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def to_validation_error(self) -> ValidationError:
        return ValidationError(
            type=self.issue_type,
            message=self.message,
            details=self.details or None,
        )


class UnsupportedFileError(PipelineError):
    issue_type = IssueType.UNSUPPORTED_FILE_TYPE


class FileTooLargeError(PipelineError):
    issue_type = IssueType.FILE_TOO_LARGE


class UnreadableFileError(PipelineError):
    issue_type = IssueType.UNREADABLE_FILE


class EmptyFileError(PipelineError):
    issue_type = IssueType.EMPTY_FILE


class FormatDetectionError(PipelineError):
    """No row in the scanned region looks like a trial balance header."""

    issue_type = IssueType.FORMAT_DETECTION_FAILED


class MissingColumnError(PipelineError):
    issue_type = IssueType.MISSING_COLUMNS

    def __init__(self, missing: Iterable[str], balance_format: str) -> None:
        self.missing = tuple(missing)
        super().__init__(
            f"Required columns not found for {balance_format} layout: {', '.join(self.missing)}",
            details={"missing": list(self.missing), "format": balance_format},
        )
