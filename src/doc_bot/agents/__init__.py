"""Agent components for the documentation bot."""

from doc_bot.agents.exceptions import (
    AgentError,
    BuildValidationError,
    CodeModelError,
    GenerationInvalidError,
    InvalidResponseError,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    RepositoryIOError,
    VcsError,
)
from doc_bot.agents.build_gate import BuildGate, BuildValidator
from doc_bot.agents.build_validator import DotnetBuildValidator, parse_build_output
from doc_bot.agents.code_model import CSharpCodeModel
from doc_bot.agents.inference import InferenceClient
from doc_bot.agents.member_processor import InferenceProvider, MemberProcessor
from doc_bot.agents.sanitizer import DocSanitizer

__all__ = [
    "AgentError",
    "BuildGate",
    "BuildValidationError",
    "BuildValidator",
    "CSharpCodeModel",
    "CodeModelError",
    "DocSanitizer",
    "DotnetBuildValidator",
    "GenerationInvalidError",
    "InferenceClient",
    "InferenceProvider",
    "InvalidResponseError",
    "MemberProcessor",
    "ProviderError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "RepositoryIOError",
    "VcsError",
    "parse_build_output",
]
