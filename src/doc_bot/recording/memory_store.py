"""In-process record store."""

from uuid import UUID

from doc_bot.models import FileResult, RunRecord


class InMemoryRecordStore:
    """Keeps deep copies so callers cannot mutate stored history."""

    def __init__(self) -> None:
        self._runs: dict[UUID, RunRecord] = {}

    def save_run(self, run: RunRecord) -> None:
        stored = self._runs.get(run.run_id)
        file_results = stored.file_results if stored else []
        copy = run.model_copy(deep=True, update={"file_results": file_results})
        self._runs[run.run_id] = copy

    def save_file_result(self, run_id: UUID, index: int, file_result: FileResult) -> None:
        stored = self._runs.get(run_id)
        if stored is None:
            raise KeyError(f"Unknown run {run_id}")
        copy = file_result.model_copy(deep=True)
        if index < len(stored.file_results):
            stored.file_results[index] = copy
        elif index == len(stored.file_results):
            stored.file_results.append(copy)
        else:
            raise IndexError(f"File index {index} skips ahead of {len(stored.file_results)}")

    def get_run(self, run_id: UUID) -> RunRecord | None:
        stored = self._runs.get(run_id)
        return stored.model_copy(deep=True) if stored else None

    def list_runs(self) -> list[RunRecord]:
        return [
            run.model_copy(deep=True)
            for run in sorted(self._runs.values(), key=lambda r: r.start_time)
        ]
