"""Statistics derived from run records on read."""

from pydantic import BaseModel, ConfigDict

from doc_bot.models import RunRecord


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


class RunStatistics(BaseModel):
    model_config = ConfigDict(frozen=False, protected_namespaces=())

    run_id: str
    model_name: str
    files_selected: int
    files_succeeded: int
    files_failed: int
    files_skipped: int
    success_rate: float                 # succeeded / selected, 0..1
    total_build_failures: int
    total_build_retries: int
    total_tokens: int
    average_tokens_per_file: float
    total_items_documented: int
    total_sanitization_fixes: int
    average_sanitization_fixes_per_item: float
    duration_seconds: float | None = None

    @classmethod
    def from_run(cls, run: RunRecord) -> "RunStatistics":
        total_tokens = run.total_prompt_tokens + run.total_response_tokens
        processed = run.files_succeeded + run.files_failed + run.files_skipped
        duration = None
        if run.end_time is not None:
            duration = (run.end_time - run.start_time).total_seconds()
        return cls(
            run_id=str(run.run_id),
            model_name=run.model_name,
            files_selected=run.files_selected,
            files_succeeded=run.files_succeeded,
            files_failed=run.files_failed,
            files_skipped=run.files_skipped,
            success_rate=_ratio(run.files_succeeded, run.files_selected),
            total_build_failures=run.total_build_failures,
            total_build_retries=run.total_build_retries,
            total_tokens=total_tokens,
            average_tokens_per_file=_ratio(total_tokens, processed),
            total_items_documented=run.total_items_documented,
            total_sanitization_fixes=run.total_sanitization_fixes,
            average_sanitization_fixes_per_item=_ratio(
                run.total_sanitization_fixes, run.total_items_documented
            ),
            duration_seconds=duration,
        )


class ModelStatistics(BaseModel):
    """Aggregate of every recorded run that used one model."""

    model_config = ConfigDict(frozen=False, protected_namespaces=())

    model_name: str
    total_runs: int = 0
    successful_runs: int = 0
    total_files_processed: int = 0
    total_files_successful: int = 0
    total_files_failed: int = 0
    success_rate: float = 0.0           # percent
    total_build_failures: int = 0
    total_build_retries: int = 0
    total_prompt_tokens: int = 0
    total_response_tokens: int = 0
    average_tokens_per_file: float = 0.0
    total_items_documented: int = 0
    total_sanitization_fixes: int = 0
    average_sanitization_fixes_per_item: float = 0.0


def compare_models(runs: list[RunRecord]) -> list[ModelStatistics]:
    """Group runs by model name, best success rate first.

    Args:
        runs: Recorded runs, in any order.

    Returns:
        One ModelStatistics per model name, sorted by descending success rate
        and then by name.
    """
    grouped: dict[str, ModelStatistics] = {}
    for run in runs:
        stats = grouped.setdefault(run.model_name, ModelStatistics(model_name=run.model_name))
        stats.total_runs += 1
        stats.successful_runs += int(run.success)
        stats.total_files_processed += run.files_succeeded + run.files_failed + run.files_skipped
        stats.total_files_successful += run.files_succeeded
        stats.total_files_failed += run.files_failed
        stats.total_build_failures += run.total_build_failures
        stats.total_build_retries += run.total_build_retries
        stats.total_prompt_tokens += run.total_prompt_tokens
        stats.total_response_tokens += run.total_response_tokens
        stats.total_items_documented += run.total_items_documented
        stats.total_sanitization_fixes += run.total_sanitization_fixes

    for stats in grouped.values():
        stats.success_rate = _ratio(stats.total_files_successful, stats.total_files_processed) * 100
        stats.average_tokens_per_file = _ratio(
            stats.total_prompt_tokens + stats.total_response_tokens,
            stats.total_files_processed,
        )
        stats.average_sanitization_fixes_per_item = _ratio(
            stats.total_sanitization_fixes, stats.total_items_documented
        )

    return sorted(grouped.values(), key=lambda s: (-s.success_rate, s.model_name))
