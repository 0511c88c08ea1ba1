"""Data models for the documentation bot."""

from doc_bot.models.build_models import BuildDiagnostic, BuildOutcome, BuildResult
from doc_bot.models.config_models import (
    MAX_BUILD_RETRIES_LIMIT,
    AIServerConfig,
    AppConfig,
    DocumentVisibility,
    PromptConfig,
    WorkloadConfig,
)
from doc_bot.models.inference_models import InferenceResponse
from doc_bot.models.member_models import (
    MemberDescriptor,
    MemberKind,
    MemberSignature,
    MemberVisibility,
    ReturnCategory,
    SanitizeResult,
    SourceSpan,
)
from doc_bot.models.record_models import (
    AIInteraction,
    BuildAttempt,
    FileOutcome,
    FileResult,
    InteractionType,
    MemberOutcome,
    RunRecord,
)

__all__ = [
    "AIInteraction",
    "AIServerConfig",
    "AppConfig",
    "BuildAttempt",
    "BuildDiagnostic",
    "BuildOutcome",
    "BuildResult",
    "DocumentVisibility",
    "FileOutcome",
    "FileResult",
    "InferenceResponse",
    "InteractionType",
    "MAX_BUILD_RETRIES_LIMIT",
    "MemberDescriptor",
    "MemberKind",
    "MemberOutcome",
    "MemberSignature",
    "MemberVisibility",
    "PromptConfig",
    "ReturnCategory",
    "RunRecord",
    "SanitizeResult",
    "SourceSpan",
    "WorkloadConfig",
]
