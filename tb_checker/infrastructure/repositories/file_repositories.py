"""File-backed repositories supplying trial balance uploads."""
from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import BinaryIO, ContextManager

from tb_checker.domain.repositories import TrialBalanceFileRepository
from tb_checker.infrastructure.parsing.readers import guess_mime_type
from tb_checker.infrastructure.parsing.utils import ensure_bytes


class LocalFileRepository(TrialBalanceFileRepository):
    def __init__(self, source: Path | str, mime_type: str | None = None) -> None:
        self._path = Path(source)
        self.file_name = self._path.name
        self.mime_type = mime_type or guess_mime_type(self.file_name)

    def open(self) -> ContextManager[BinaryIO]:
        return self._path.open("rb")


class InMemoryFileRepository(TrialBalanceFileRepository):
    """Wraps content already held in memory, e.g. an HTTP upload body."""

    def __init__(
        self,
        source: BytesIO | bytes,
        file_name: str,
        mime_type: str | None = None,
    ) -> None:
        self._source = ensure_bytes(source)
        self.file_name = file_name
        self.mime_type = mime_type or guess_mime_type(file_name)

    def open(self) -> ContextManager[BinaryIO]:
        return BytesIO(self._source)
