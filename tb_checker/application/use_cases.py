"""Application services orchestrating the trial balance ingestion workflow."""
from __future__ import annotations

import logging
import time
from dataclasses import replace
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path

from tb_checker.application.dto import PreviewResponse, ProcessingRequest
from tb_checker.config import SETTINGS, Settings
from tb_checker.domain.errors import EmptyFileError, PipelineError
from tb_checker.domain.models import (
    BalanceTotals,
    FileMetadata,
    ProcessingContext,
    ProcessingOptions,
)
from tb_checker.domain.repositories import TrialBalanceFileRepository
from tb_checker.domain.results import (
    IssueType,
    ParseResult,
    PipelineStage,
    ProcessingStatistics,
    ValidationWarning,
)
from tb_checker.domain.services import TrialBalanceValidator
from tb_checker.infrastructure.parsing.detector import detect_format
from tb_checker.infrastructure.parsing.mapper import map_columns
from tb_checker.infrastructure.parsing.normalizer import normalize_lines
from tb_checker.infrastructure.parsing.readers import (
    check_file_size,
    detect_file_kind,
    grid_to_raw_lines,
    read_grid,
)
from tb_checker.infrastructure.parsing.utils import compute_file_hash, ensure_bytes

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class ProcessTrialBalanceUseCase:
    """Runs one upload through detection, mapping, normalization and validation.

    Fatal failures (unreadable file, unknown layout, missing columns) end the
    run early with a rejected result holding that single error. Row failures
    never abort: the remaining rows are still validated.
    """

    def __init__(
        self,
        settings: Settings = SETTINGS,
        validator: TrialBalanceValidator | None = None,
    ) -> None:
        self._settings = settings
        self._validator = validator or TrialBalanceValidator(settings)

    def execute(self, request: ProcessingRequest) -> ParseResult:
        started = time.perf_counter()
        options = request.options
        content = request.content
        metadata = FileMetadata(
            file_name=request.file_name,
            file_size=len(content),
            mime_type=request.mime_type,
            processed_at=datetime.now(timezone.utc),
            file_hash=compute_file_hash(content),
        )
        stage = PipelineStage.RECEIVED
        logger.info(f"Processing {request.file_name} ({len(content)} bytes)")

        try:
            file_kind = detect_file_kind(request.file_name, request.mime_type)
            check_file_size(content, self._settings)
            grid = read_grid(content, request.file_name, file_kind, self._settings)
            if not any(any(cell is not None for cell in row) for row in grid.rows):
                raise EmptyFileError(f"{request.file_name} contains no data")

            stage = PipelineStage.DETECTING
            logger.debug(f"{request.file_name}: {stage.value}")
            detection = detect_format(grid.rows, grid.delimiter, grid.delimiter_consistency, self._settings)
            raw_lines = grid_to_raw_lines(grid.rows, detection.header_labels, detection.data_start_row)
            if not raw_lines:
                raise EmptyFileError(f"{request.file_name} has a header but no account rows")

            stage = PipelineStage.MAPPING
            logger.debug(f"{request.file_name}: {stage.value}")
            mapping = map_columns(detection.format, detection.header_labels)
        except PipelineError as exc:
            logger.warning(f"Rejected {request.file_name} while {stage.value}: {exc.message}")
            return ParseResult(
                accounts=(),
                raw_lines=(),
                total_lines=0,
                totals=BalanceTotals(),
                errors=(exc.to_validation_error(),),
                warnings=(),
                metadata=metadata,
                status=PipelineStage.REJECTED,
                statistics=ProcessingStatistics(total_duration=_elapsed_ms(started)),
            )

        parsing_duration = _elapsed_ms(started)
        metadata = replace(
            metadata,
            file_kind=grid.file_kind,
            detected_format=detection.format,
            column_count=detection.column_count,
            column_mapping=mapping,
            sheet_name=grid.sheet_name,
            delimiter=grid.delimiter,
            header_row=detection.header_row,
            confidence=detection.confidence,
        )

        total_lines = len(raw_lines)
        truncated = 0
        if options.max_lines is not None and total_lines > options.max_lines:
            truncated = total_lines - options.max_lines
            raw_lines = raw_lines[: options.max_lines]
            logger.info(f"Truncated {request.file_name} to {options.max_lines} of {total_lines} rows")

        stage = PipelineStage.NORMALIZING
        logger.debug(f"{request.file_name}: {stage.value}")
        normalization_started = time.perf_counter()
        normalization = normalize_lines(raw_lines, mapping, options)
        normalization_duration = _elapsed_ms(normalization_started)

        stage = PipelineStage.VALIDATING
        logger.debug(f"{request.file_name}: {stage.value}")
        validation_started = time.perf_counter()
        validation = self._validator.validate(
            normalization.accounts,
            options,
            request.context,
            truncated_rows=truncated,
            codes_checked=True,
        )
        validation_duration = _elapsed_ms(validation_started)

        warnings: list[ValidationWarning] = []
        if detection.confidence < self._settings.min_confidence:
            warnings.append(
                ValidationWarning(
                    type=IssueType.LOW_DETECTION_CONFIDENCE,
                    message=(
                        f"Layout detected as {detection.format.value} with low confidence "
                        f"({detection.confidence:.0%}); check the column mapping"
                    ),
                    suggestion="Export the balance with a single header row and no merged cells",
                    details={"confidence": detection.confidence},
                )
            )
        warnings.extend(normalization.warnings)
        warnings.extend(validation.warnings)
        errors = tuple(normalization.errors) + tuple(validation.errors)

        status = PipelineStage.ACCEPTED if not errors else PipelineStage.REJECTED
        needs_review = any(w.severity == "warning" for w in warnings) and not options.ignore_warnings
        processed = normalization.processed_lines
        statistics = ProcessingStatistics(
            total_duration=_elapsed_ms(started),
            parsing_duration=parsing_duration,
            normalization_duration=normalization_duration,
            validation_duration=validation_duration,
            total_lines=total_lines,
            successful_lines=normalization.successful_lines,
            failed_lines=normalization.failed_lines,
            skipped_lines=normalization.skipped_lines,
            truncated_lines=truncated,
            success_rate=(normalization.successful_lines / processed * 100) if processed else 0.0,
        )
        logger.info(
            f"{request.file_name} {status.value}: {len(normalization.accounts)} accounts, "
            f"{len(errors)} errors, {len(warnings)} warnings in {statistics.total_duration:.1f}ms"
        )
        return ParseResult(
            accounts=tuple(normalization.accounts),
            raw_lines=tuple(raw_lines),
            total_lines=total_lines,
            totals=BalanceTotals.from_accounts(normalization.accounts),
            errors=errors,
            warnings=tuple(warnings),
            metadata=metadata,
            status=status,
            validation=validation,
            statistics=statistics,
            needs_review=needs_review,
        )

    def execute_from_repository(
        self,
        repository: TrialBalanceFileRepository,
        options: ProcessingOptions | None = None,
        context: ProcessingContext | None = None,
    ) -> ParseResult:
        with repository.open() as stream:
            content = stream.read()
        request = ProcessingRequest(
            content=content,
            file_name=repository.file_name,
            mime_type=repository.mime_type,
            options=options or ProcessingOptions(),
            context=context,
        )
        return self.execute(request)


class QuickValidateUseCase:
    """Fast sanity check of an upload: first rows only, loose tolerance."""

    def __init__(
        self,
        settings: Settings = SETTINGS,
        process_use_case: ProcessTrialBalanceUseCase | None = None,
    ) -> None:
        self._settings = settings
        self._process = process_use_case or ProcessTrialBalanceUseCase(settings)

    def execute(self, request: ProcessingRequest) -> PreviewResponse:
        options = replace(
            request.options,
            max_lines=self._settings.preview_max_lines,
            balance_tolerance=self._settings.preview_balance_tolerance,
            ignore_warnings=True,
        )
        result = self._process.execute(replace(request, options=options))
        return PreviewResponse(
            is_valid=result.is_accepted,
            preview_accounts=tuple(result.accounts[: self._settings.preview_accounts]),
            errors=result.errors,
            warnings=result.warnings,
            result=result,
        )


def _as_bytes(content: bytes | bytearray | str | BytesIO | Path) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return ensure_bytes(content)


def process_trial_balance(
    content: bytes | bytearray | str | BytesIO | Path,
    file_name: str,
    mime_type: str = "",
    options: ProcessingOptions | None = None,
    context: ProcessingContext | None = None,
    settings: Settings = SETTINGS,
) -> ParseResult:
    """Process one upload. Text content is treated as an already decoded CSV export."""
    request = ProcessingRequest(
        content=_as_bytes(content),
        file_name=file_name,
        mime_type=mime_type,
        options=options or ProcessingOptions(),
        context=context,
    )
    return ProcessTrialBalanceUseCase(settings).execute(request)


def preview_trial_balance(
    content: bytes | bytearray | str | BytesIO | Path,
    file_name: str,
    mime_type: str = "",
    context: ProcessingContext | None = None,
    settings: Settings = SETTINGS,
) -> PreviewResponse:
    request = ProcessingRequest(
        content=_as_bytes(content),
        file_name=file_name,
        mime_type=mime_type,
        context=context,
    )
    return QuickValidateUseCase(settings).execute(request)
