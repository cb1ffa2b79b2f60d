"""Ingestion and validation toolkit for Romanian trial balances."""
from tb_checker.application.use_cases import (
    ProcessTrialBalanceUseCase,
    QuickValidateUseCase,
    preview_trial_balance,
    process_trial_balance,
)
from tb_checker.domain.models import ProcessingContext, ProcessingOptions
from tb_checker.domain.services import TrialBalanceValidator
from tb_checker.infrastructure.repositories.file_repositories import (
    InMemoryFileRepository,
    LocalFileRepository,
)

__all__ = [
    "ProcessTrialBalanceUseCase",
    "QuickValidateUseCase",
    "preview_trial_balance",
    "process_trial_balance",
    "ProcessingContext",
    "ProcessingOptions",
    "TrialBalanceValidator",
    "InMemoryFileRepository",
    "LocalFileRepository",
]
