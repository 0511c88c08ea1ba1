"""Tests for RunRecorder, record stores and derived statistics."""

from datetime import datetime, timedelta

import pytest

from doc_bot.models import (
    AIInteraction,
    BuildAttempt,
    FileOutcome,
    FileResult,
    InteractionType,
    RunRecord,
)
from doc_bot.orchestrator.exceptions import RecordInvariantError
from doc_bot.recording import (
    InMemoryRecordStore,
    RunRecorder,
    RunStatistics,
    SQLiteRecordStore,
    compare_models,
)


def attempt(number: int, success: bool) -> BuildAttempt:
    return BuildAttempt(
        attempt_number=number,
        start_time=datetime(2024, 1, 1, 12, 0, number),
        success=success,
        error_count=0 if success else 1,
        ai_fix_attempted=not success,
    )


def interaction(kind=InteractionType.DOCUMENTATION, fix_attempt=None, tokens=(100, 20)):
    return AIInteraction(
        interaction_type=kind,
        start_time=datetime(2024, 1, 1, 12, 0, 0),
        prompt="prompt",
        response="<doc><summary>S.</summary></doc>",
        prompt_tokens=tokens[0],
        response_tokens=tokens[1],
        applied=True,
        build_fix_attempt=fix_attempt,
        member_name="Add" if kind == InteractionType.DOCUMENTATION else None,
    )


def documented_file(recorder, run, path="Widget.cs", items=2, fixes=1):
    file_result = recorder.start_file(run, path)
    file_result.members_processed = items
    file_result.members_documented = items
    file_result.sanitization_fixes = fixes
    file_result.was_modified = True
    for _ in range(items):
        recorder.record_interaction(file_result, interaction())
    file_result.success = True
    recorder.finalize_file(file_result, FileOutcome.COMMITTED)
    recorder.complete_file(run, file_result)
    return file_result


# ---------------------------------------------------------------------------
# Recorder invariants
# ---------------------------------------------------------------------------


class TestRecorderInvariants:
    def test_build_attempts_must_be_sequential(self, recorder, run):
        file_result = recorder.start_file(run, "Widget.cs")
        recorder.record_build_attempt(file_result, attempt(1, False))

        with pytest.raises(RecordInvariantError):
            recorder.record_build_attempt(file_result, attempt(3, True))

    def test_fix_attempt_bounded_by_max_retries(self, record_store, run):
        recorder = RunRecorder(store=record_store, max_build_retries=2)
        file_result = recorder.start_file(run, "Widget.cs")

        recorder.record_interaction(file_result, interaction(InteractionType.BUILD_FIX, 2))
        with pytest.raises(RecordInvariantError):
            recorder.record_interaction(file_result, interaction(InteractionType.BUILD_FIX, 3))

    def test_documentation_interaction_cannot_carry_fix_attempt(self, recorder, run):
        file_result = recorder.start_file(run, "Widget.cs")

        with pytest.raises(RecordInvariantError):
            recorder.record_interaction(
                file_result, interaction(InteractionType.DOCUMENTATION, fix_attempt=1)
            )

    def test_finalized_file_rejects_new_records(self, recorder, run):
        file_result = recorder.start_file(run, "Widget.cs")
        recorder.finalize_file(file_result, FileOutcome.COMMITTED)

        with pytest.raises(RecordInvariantError):
            recorder.record_interaction(file_result, interaction())
        with pytest.raises(RecordInvariantError):
            recorder.record_build_attempt(file_result, attempt(1, True))
        with pytest.raises(RecordInvariantError):
            recorder.finalize_file(file_result, FileOutcome.FAILED_HARD)

    def test_revert_requires_a_failure(self, recorder, run):
        file_result = recorder.start_file(run, "Widget.cs")
        file_result.was_reverted = True
        file_result.success = True

        with pytest.raises(RecordInvariantError):
            recorder.finalize_file(file_result, FileOutcome.REVERTED)

    def test_unfinalized_file_cannot_be_aggregated(self, recorder, run):
        file_result = recorder.start_file(run, "Widget.cs")

        with pytest.raises(RecordInvariantError):
            recorder.complete_file(run, file_result)

    def test_closed_run_cannot_be_reopened(self, recorder, run):
        recorder.finish_run(run)

        with pytest.raises(RecordInvariantError):
            recorder.finish_run(run)
        with pytest.raises(RecordInvariantError):
            recorder.start_file(run, "Late.cs")


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


class TestAggregation:
    def test_counters_fold_into_run(self, recorder, run):
        run.files_selected = 3
        documented_file(recorder, run, "A.cs", items=2, fixes=1)

        skipped = recorder.start_file(run, "B.cs")
        skipped.success = True
        recorder.finalize_file(skipped, FileOutcome.COMMITTED)
        recorder.complete_file(run, skipped)

        failed = recorder.start_file(run, "C.cs")
        failed.was_modified = True
        recorder.record_build_attempt(failed, attempt(1, False))
        recorder.record_interaction(failed, interaction(InteractionType.BUILD_FIX, 1, (50, 500)))
        recorder.record_build_attempt(failed, attempt(2, False))
        failed.build_passed = False
        failed.was_reverted = True
        recorder.finalize_file(failed, FileOutcome.REVERTED)
        recorder.complete_file(run, failed)

        assert run.files_succeeded == 1
        assert run.files_skipped == 1
        assert run.files_failed == 1
        assert run.total_build_failures == 2
        assert run.total_build_retries == 1
        assert run.total_prompt_tokens == 250
        assert run.total_response_tokens == 540
        assert run.total_items_documented == 2
        assert run.total_sanitization_fixes == 1

    def test_finish_run_success_rules(self, recorder, run):
        failed = recorder.start_file(run, "C.cs")
        recorder.finalize_file(failed, FileOutcome.FAILED_HARD, "boom")
        recorder.complete_file(run, failed)

        recorder.finish_run(run, require_all_files_succeed=True)

        assert run.success is False
        assert run.error_message is None

    def test_fatal_error_fails_run(self, recorder, run):
        recorder.finish_run(run, error_message="disk full")

        assert run.success is False
        assert run.error_message == "disk full"


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


class TestStatistics:
    def test_rates_derived_on_read(self, recorder, run):
        run.files_selected = 4
        documented_file(recorder, run, "A.cs", items=2, fixes=1)
        documented_file(recorder, run, "B.cs", items=2, fixes=2)
        recorder.finish_run(run)

        stats = recorder.statistics(run)

        assert stats.success_rate == pytest.approx(0.5)
        assert stats.total_tokens == 480
        assert stats.average_tokens_per_file == pytest.approx(240.0)
        assert stats.average_sanitization_fixes_per_item == pytest.approx(0.75)
        assert stats.duration_seconds is not None

    def test_empty_run_has_zero_rates(self):
        stats = RunStatistics.from_run(RunRecord())

        assert stats.success_rate == 0.0
        assert stats.average_tokens_per_file == 0.0
        assert stats.average_sanitization_fixes_per_item == 0.0
        assert stats.duration_seconds is None

    def test_compare_models_sorted_by_success_rate(self):
        def make_run(model, succeeded, failed, success=True):
            return RunRecord(
                model_name=model,
                files_selected=succeeded + failed,
                files_succeeded=succeeded,
                files_failed=failed,
                total_prompt_tokens=100 * (succeeded + failed),
                total_items_documented=succeeded * 2,
                total_sanitization_fixes=succeeded,
                success=success,
            )

        rows = compare_models([
            make_run("codellama:7b", 1, 1),
            make_run("mistral", 2, 0),
            make_run("codellama:7b", 1, 1, success=False),
        ])

        assert [row.model_name for row in rows] == ["mistral", "codellama:7b"]
        assert rows[0].success_rate == pytest.approx(100.0)
        codellama = rows[1]
        assert codellama.total_runs == 2
        assert codellama.successful_runs == 1
        assert codellama.total_files_processed == 4
        assert codellama.success_rate == pytest.approx(50.0)
        assert codellama.average_tokens_per_file == pytest.approx(100.0)
        assert codellama.average_sanitization_fixes_per_item == pytest.approx(0.5)


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class TestStores:
    def test_memory_store_keeps_copies(self, recorder, record_store, run):
        documented_file(recorder, run)
        stored = record_store.get_run(run.run_id)
        stored.file_results[0].members_documented = 99

        assert record_store.get_run(run.run_id).file_results[0].members_documented == 2

    def test_memory_store_rejects_skipped_index(self, run):
        store = InMemoryRecordStore()
        store.save_run(run)

        with pytest.raises(IndexError):
            store.save_file_result(run.run_id, 2, FileResult(file_path="A.cs"))

    def test_memory_store_rejects_unknown_run(self):
        store = InMemoryRecordStore()

        with pytest.raises(KeyError):
            store.save_file_result(RunRecord().run_id, 0, FileResult(file_path="A.cs"))

    def test_sqlite_round_trip(self, tmp_path):
        store = SQLiteRecordStore(tmp_path / "runs.db")
        recorder = RunRecorder(store=store, max_build_retries=3)
        run = recorder.start_run(model_name="mistral", server_url="http://localhost:11434/v1")
        run.files_selected = 1

        file_result = recorder.start_file(run, "src/Widget.cs")
        file_result.was_modified = True
        file_result.members_documented = 1
        recorder.record_interaction(file_result, interaction())
        recorder.record_build_attempt(file_result, attempt(1, False))
        recorder.record_interaction(file_result, interaction(InteractionType.BUILD_FIX, 1))
        recorder.record_build_attempt(file_result, attempt(2, True))
        file_result.build_passed = True
        file_result.success = True
        recorder.finalize_file(file_result, FileOutcome.COMMITTED)
        recorder.complete_file(run, file_result)
        recorder.finish_run(run)

        loaded = SQLiteRecordStore(tmp_path / "runs.db").get_run(run.run_id)

        assert loaded is not None
        assert loaded.run_id == run.run_id
        assert loaded.model_name == "mistral"
        assert loaded.success is True
        assert loaded.end_time is not None
        assert loaded.total_build_retries == 1
        loaded_file = loaded.file_results[0]
        assert loaded_file.file_path == "src/Widget.cs"
        assert loaded_file.outcome == FileOutcome.COMMITTED
        assert loaded_file.build_passed is True
        assert [a.success for a in loaded_file.build_attempts] == [False, True]
        assert [i.interaction_type for i in loaded_file.ai_interactions] == [
            InteractionType.DOCUMENTATION,
            InteractionType.BUILD_FIX,
        ]
        assert loaded_file.ai_interactions[1].build_fix_attempt == 1

    def test_sqlite_keeps_unvalidated_build_state(self, tmp_path):
        store = SQLiteRecordStore(tmp_path / "runs.db")
        recorder = RunRecorder(store=store)
        run = recorder.start_run(model_name="m")
        file_result = recorder.start_file(run, "A.cs")
        file_result.success = True
        recorder.finalize_file(file_result, FileOutcome.COMMITTED)
        recorder.complete_file(run, file_result)

        loaded = store.get_run(run.run_id)

        assert loaded.file_results[0].build_passed is None

    def test_sqlite_list_runs_in_start_order(self, tmp_path):
        store = SQLiteRecordStore(tmp_path / "runs.db")
        first = RunRecord(model_name="a", start_time=datetime(2024, 1, 1))
        second = RunRecord(model_name="b", start_time=datetime(2024, 1, 1) + timedelta(hours=1))
        store.save_run(second)
        store.save_run(first)

        assert [r.model_name for r in store.list_runs()] == ["a", "b"]
        assert store.get_run(RunRecord().run_id) is None
