"""Append-only accounting for runs, files, build attempts and interactions."""

import logging
from datetime import datetime

from doc_bot.models import (
    MAX_BUILD_RETRIES_LIMIT,
    AIInteraction,
    BuildAttempt,
    FileOutcome,
    FileResult,
    InteractionType,
    RunRecord,
)
from doc_bot.orchestrator.exceptions import RecordInvariantError
from doc_bot.recording.contracts import RecordStore
from doc_bot.recording.memory_store import InMemoryRecordStore
from doc_bot.recording.statistics import RunStatistics

logger = logging.getLogger(__name__)


class RunRecorder:
    """Owns the accounting invariants of a run.

    Records are only ever appended. A file result is frozen once it has an
    outcome, and a run is frozen once it has an end time.
    """

    def __init__(
        self,
        store: RecordStore | None = None,
        max_build_retries: int = MAX_BUILD_RETRIES_LIMIT,
    ) -> None:
        self.store: RecordStore = store if store is not None else InMemoryRecordStore()
        self.max_build_retries = max_build_retries

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def start_run(
        self,
        *,
        repository_url: str = "",
        branch_name: str = "",
        model_name: str = "",
        server_url: str = "",
        configuration_json: str = "",
        total_files_discovered: int = 0,
    ) -> RunRecord:
        run = RunRecord(
            repository_url=repository_url,
            branch_name=branch_name,
            model_name=model_name,
            server_url=server_url,
            configuration_json=configuration_json,
            total_files_discovered=total_files_discovered,
        )
        self.store.save_run(run)
        logger.info("Started run %s with model %s", run.run_id, model_name or "(unset)")
        return run

    def finish_run(
        self,
        run: RunRecord,
        *,
        error_message: str | None = None,
        require_all_files_succeed: bool = False,
    ) -> RunRecord:
        """Close a run and decide its terminal success flag."""
        if run.is_closed:
            raise RecordInvariantError(f"Run {run.run_id} is already closed")
        run.end_time = datetime.now()
        if error_message:
            run.error_message = error_message
        run.success = run.error_message is None and (
            not require_all_files_succeed or run.files_failed == 0
        )
        self.store.save_run(run)
        logger.info(
            "Finished run %s: success=%s succeeded=%d skipped=%d failed=%d",
            run.run_id,
            run.success,
            run.files_succeeded,
            run.files_skipped,
            run.files_failed,
        )
        return run

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def start_file(self, run: RunRecord, file_path: str) -> FileResult:
        if run.is_closed:
            raise RecordInvariantError(f"Run {run.run_id} is already closed")
        file_result = FileResult(file_path=file_path)
        run.file_results.append(file_result)
        return file_result

    def record_build_attempt(self, file_result: FileResult, attempt: BuildAttempt) -> None:
        self._ensure_open(file_result)
        expected = len(file_result.build_attempts) + 1
        if attempt.attempt_number != expected:
            raise RecordInvariantError(
                f"Build attempt {attempt.attempt_number} for '{file_result.file_path}' "
                f"out of sequence (expected {expected})"
            )
        file_result.build_attempts.append(attempt)

    def record_interaction(self, file_result: FileResult, interaction: AIInteraction) -> None:
        self._ensure_open(file_result)
        if interaction.build_fix_attempt is not None:
            if interaction.interaction_type != InteractionType.BUILD_FIX:
                raise RecordInvariantError("Only build-fix interactions carry an attempt number")
            if interaction.build_fix_attempt > self.max_build_retries:
                raise RecordInvariantError(
                    f"Build-fix attempt {interaction.build_fix_attempt} exceeds "
                    f"max_build_retries={self.max_build_retries}"
                )
        file_result.ai_interactions.append(interaction)

    def finalize_file(
        self,
        file_result: FileResult,
        outcome: FileOutcome,
        error_message: str | None = None,
    ) -> FileResult:
        """Stamp the terminal state of a file; no record may be added afterwards."""
        self._ensure_open(file_result)
        if error_message:
            file_result.error_message = error_message
        if file_result.was_reverted and file_result.success and file_result.build_passed is not False:
            raise RecordInvariantError(
                f"'{file_result.file_path}' was reverted without a failure"
            )
        file_result.outcome = outcome
        file_result.end_time = datetime.now()
        return file_result

    def complete_file(self, run: RunRecord, file_result: FileResult) -> None:
        """Fold a finalized file into the run counters and persist both."""
        if not file_result.is_finalized:
            raise RecordInvariantError(
                f"'{file_result.file_path}' must be finalized before it is aggregated"
            )
        if file_result.success and file_result.was_modified:
            run.files_succeeded += 1
        elif file_result.success:
            run.files_skipped += 1
        else:
            run.files_failed += 1
        run.total_build_failures += file_result.failed_build_count
        run.total_build_retries += file_result.build_fix_count
        run.total_prompt_tokens += file_result.prompt_tokens
        run.total_response_tokens += file_result.response_tokens
        run.total_items_documented += file_result.members_documented
        run.total_sanitization_fixes += file_result.sanitization_fixes

        index = next(
            i for i, candidate in enumerate(run.file_results) if candidate is file_result
        )
        self.store.save_run(run)
        self.store.save_file_result(run.run_id, index, file_result)

    def statistics(self, run: RunRecord) -> RunStatistics:
        return RunStatistics.from_run(run)

    @staticmethod
    def _ensure_open(file_result: FileResult) -> None:
        if file_result.is_finalized:
            raise RecordInvariantError(
                f"'{file_result.file_path}' is finalized as {file_result.outcome.value}"
            )
