"""Single build validation with its accounting record."""

import json
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from doc_bot.models import BuildAttempt, BuildOutcome, BuildResult, FileResult

if TYPE_CHECKING:
    from doc_bot.recording import RunRecorder

logger = logging.getLogger(__name__)

MAX_RAW_OUTPUT_CHARS = 20_000


class BuildValidator(Protocol):
    def validate(self, solution_ref: str) -> BuildResult: ...


class BuildGate:
    """Invokes the build validator exactly once per call; retries live in the caller."""

    def __init__(
        self,
        validator: BuildValidator,
        recorder: "RunRecorder",
        solution_ref: str,
    ) -> None:
        self.validator = validator
        self.recorder = recorder
        self.solution_ref = solution_ref

    def validate(
        self,
        file_result: FileResult,
        attempt_number: int,
        fix_allowed: bool,
    ) -> BuildOutcome:
        """Compile once and append a BuildAttempt.

        Args:
            file_result: Record of the file under validation.
            attempt_number: 1-based attempt number for this file.
            fix_allowed: Whether the caller will ask for an AI fix if this
                attempt fails. Stored on the attempt record.

        Returns:
            BuildOutcome with the errors and warnings of this attempt.

        Raises:
            BuildValidationError: If the validator itself cannot run.
        """
        start_time = datetime.now()
        result = self.validator.validate(self.solution_ref)

        raw_output = result.raw_output
        if len(raw_output) > MAX_RAW_OUTPUT_CHARS:
            raw_output = raw_output[-MAX_RAW_OUTPUT_CHARS:]

        attempt = BuildAttempt(
            attempt_number=attempt_number,
            start_time=start_time,
            duration_seconds=result.duration_seconds,
            success=result.success,
            error_count=len(result.errors),
            warning_count=len(result.warnings),
            errors_json=json.dumps([e.model_dump() for e in result.errors]) if result.errors else None,
            ai_fix_attempted=not result.success and fix_allowed,
            raw_output=raw_output or None,
        )
        self.recorder.record_build_attempt(file_result, attempt)

        if result.success:
            logger.info("Build attempt %d for %s passed", attempt_number, file_result.file_path)
        else:
            logger.warning(
                "Build attempt %d for %s failed with %d error(s)",
                attempt_number,
                file_result.file_path,
                len(result.errors),
            )
        return BuildOutcome(
            passed=result.success,
            attempt_number=attempt_number,
            errors=result.errors,
            warnings=result.warnings,
        )
