"""Accounting records for runs, files, build attempts and AI interactions."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field


class MemberOutcome(str, Enum):
    SKIPPED = "skipped"
    DOCUMENTED = "documented"
    FAILED = "failed"


class FileOutcome(str, Enum):
    """Terminal state of the per-file state machine."""

    COMMITTED = "committed"
    REVERTED = "reverted"
    FAILED_HARD = "failed_hard"


class InteractionType(str, Enum):
    DOCUMENTATION = "documentation"
    BUILD_FIX = "build_fix"


class BuildAttempt(BaseModel):
    """One compile validation. Never mutated after it is appended."""

    model_config = ConfigDict(frozen=True)

    attempt_number: int = Field(ge=1)
    start_time: datetime
    duration_seconds: float = 0.0
    success: bool
    error_count: int = 0
    warning_count: int = 0
    errors_json: str | None = None
    ai_fix_attempted: bool = False
    raw_output: str | None = None


class AIInteraction(BaseModel):
    """One round trip with the inference provider."""

    model_config = ConfigDict(frozen=True)

    interaction_type: InteractionType
    start_time: datetime
    duration_seconds: float = 0.0
    prompt: str = ""
    response: str = ""
    prompt_tokens: int = 0
    response_tokens: int = 0
    applied: bool = False
    build_fix_attempt: int | None = None
    member_name: str | None = None


class FileResult(BaseModel):
    """Processing result for a single file within a run."""

    model_config = ConfigDict(frozen=False)

    file_path: str                              # Relative to the repository root
    start_time: datetime = Field(default_factory=datetime.now)
    end_time: datetime | None = None
    success: bool = False
    was_modified: bool = False
    members_processed: int = 0
    members_already_documented: int = 0
    members_documented: int = 0
    sanitization_fixes: int = 0
    build_passed: bool | None = None            # None: no build validation ran
    was_reverted: bool = False
    outcome: FileOutcome | None = None
    error_message: str | None = None
    build_attempts: list[BuildAttempt] = Field(default_factory=list)
    ai_interactions: list[AIInteraction] = Field(default_factory=list)

    @computed_field
    @property
    def prompt_tokens(self) -> int:
        return sum(i.prompt_tokens for i in self.ai_interactions)

    @computed_field
    @property
    def response_tokens(self) -> int:
        return sum(i.response_tokens for i in self.ai_interactions)

    @computed_field
    @property
    def build_attempt_count(self) -> int:
        return len(self.build_attempts)

    @property
    def failed_build_count(self) -> int:
        return sum(1 for attempt in self.build_attempts if not attempt.success)

    @property
    def build_fix_count(self) -> int:
        return sum(
            1
            for interaction in self.ai_interactions
            if interaction.interaction_type == InteractionType.BUILD_FIX
        )

    @property
    def is_finalized(self) -> bool:
        return self.outcome is not None


class RunRecord(BaseModel):
    """One execution of a workload over a batch of files."""

    model_config = ConfigDict(frozen=False, protected_namespaces=())

    run_id: UUID = Field(default_factory=uuid4)
    start_time: datetime = Field(default_factory=datetime.now)
    end_time: datetime | None = None
    workload_type: str = "CodeDocumentation"
    repository_url: str = ""
    branch_name: str = ""
    model_name: str = ""
    server_url: str = ""
    configuration_json: str = ""
    total_files_discovered: int = 0
    files_selected: int = 0
    files_succeeded: int = 0
    files_failed: int = 0
    files_skipped: int = 0
    total_build_failures: int = 0
    total_build_retries: int = 0
    total_prompt_tokens: int = 0
    total_response_tokens: int = 0
    total_items_documented: int = 0
    total_sanitization_fixes: int = 0
    success: bool = False
    error_message: str | None = None
    pull_request_url: str | None = None
    file_results: list[FileResult] = Field(default_factory=list)

    @property
    def is_closed(self) -> bool:
        return self.end_time is not None
