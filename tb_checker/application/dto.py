"""Application-level DTOs for trial balance processing."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from tb_checker.domain.models import ProcessingContext, ProcessingOptions, TrialBalanceAccount
from tb_checker.domain.results import ParseResult, ValidationError, ValidationWarning


@dataclass(slots=True, frozen=True)
class ProcessingRequest:
    content: bytes
    file_name: str
    mime_type: str = ""
    options: ProcessingOptions = field(default_factory=ProcessingOptions)
    context: ProcessingContext | None = None


@dataclass(slots=True, frozen=True)
class PreviewResponse:
    """Outcome of a quick check on the first rows of an upload."""

    is_valid: bool
    preview_accounts: Sequence[TrialBalanceAccount]
    errors: Sequence[ValidationError]
    warnings: Sequence[ValidationWarning]
    result: ParseResult
