"""Persistence protocol contracts."""

from typing import Protocol
from uuid import UUID

from doc_bot.models import FileResult, RunRecord


class RecordStore(Protocol):
    def save_run(self, run: RunRecord) -> None: ...

    def save_file_result(self, run_id: UUID, index: int, file_result: FileResult) -> None: ...

    def get_run(self, run_id: UUID) -> RunRecord | None: ...

    def list_runs(self) -> list[RunRecord]: ...


__all__ = ["RecordStore"]
