"""Configuration models for the documentation workload."""

import json
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from doc_bot.models.member_models import MemberVisibility

MAX_BUILD_RETRIES_LIMIT = 10


class DocumentVisibility(str, Enum):
    """Which members a run documents."""

    PUBLIC = "public"
    INTERNAL = "internal"  # Everything visible inside the assembly
    ALL = "all"

    def allows(self, visibility: MemberVisibility) -> bool:
        return visibility in VISIBILITY_FILTERS[self]


VISIBILITY_FILTERS: dict[DocumentVisibility, frozenset[MemberVisibility]] = {
    DocumentVisibility.PUBLIC: frozenset({MemberVisibility.PUBLIC}),
    DocumentVisibility.INTERNAL: frozenset({
        MemberVisibility.PUBLIC,
        MemberVisibility.INTERNAL,
        MemberVisibility.PROTECTED_INTERNAL,
    }),
    DocumentVisibility.ALL: frozenset(MemberVisibility),
}


class WorkloadConfig(BaseModel):
    model_config = ConfigDict(frozen=False)

    batch_size: int = Field(default=10, ge=1)
    validate_builds: bool = True
    max_build_retries: int = 2
    revert_on_build_failure: bool = True
    ignore_projects: set[str] = Field(default_factory=set)
    document_visibility: DocumentVisibility = DocumentVisibility.PUBLIC
    require_all_files_succeed: bool = False
    solution_path: str = ""  # Relative to the repository root
    project_path: str = ""   # Relative to the repository root

    @field_validator("max_build_retries")
    @classmethod
    def _clamp_retries(cls, value: int) -> int:
        return max(0, min(value, MAX_BUILD_RETRIES_LIMIT))

    @field_validator("document_visibility", mode="before")
    @classmethod
    def _normalize_visibility(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class AIServerConfig(BaseModel):
    model_config = ConfigDict(frozen=False, protected_namespaces=())

    provider: Literal["auto", "anthropic", "openai"] = "auto"
    model_name: str = "claude-sonnet-4-5-20250929"
    base_url: str | None = None  # OpenAI-compatible endpoint, e.g. Ollama's /v1
    timeout_seconds: int = Field(default=300, ge=1)
    max_tokens: int = Field(default=2048, ge=1)
    fallback_provider: Literal["anthropic", "openai"] | None = None
    allow_fallback: bool = False


class PromptConfig(BaseModel):
    model_config = ConfigDict(frozen=False)

    directory: str = "./prompts"
    enable_custom_prompts: bool = True


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=False)

    workload: WorkloadConfig = Field(default_factory=WorkloadConfig)
    ai_server: AIServerConfig = Field(default_factory=AIServerConfig)
    prompts: PromptConfig = Field(default_factory=PromptConfig)
    database_path: str = "./data/doc_bot.db"
    build_timeout_seconds: int = Field(default=600, ge=1)

    @classmethod
    def from_file(cls, path: str | Path) -> "AppConfig":
        """Load configuration from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist.
            pydantic.ValidationError: If the content does not match the schema.
        """
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))

    def workload_json(self) -> str:
        """Serialized workload settings stored on each run record."""
        return json.dumps(
            self.workload.model_dump(mode="json"),
            sort_keys=True,
            default=sorted,
        )
