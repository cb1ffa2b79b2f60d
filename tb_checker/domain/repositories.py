"""Repository interfaces anchoring the domain layer."""
from __future__ import annotations

from typing import BinaryIO, ContextManager, Protocol


class TrialBalanceFileRepository(Protocol):
    """Supplies the uploaded file. The pipeline never sees buckets or paths."""

    file_name: str
    mime_type: str

    def open(self) -> ContextManager[BinaryIO]:
        ...
