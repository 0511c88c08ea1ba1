"""Exceptions for agent operations."""


class AgentError(Exception):
    """Base exception for all agent operations."""


class GenerationInvalidError(AgentError):
    """Raised when generated documentation cannot be repaired into a usable block."""

    def __init__(self, message: str, fix_count: int = 0) -> None:
        super().__init__(message)
        self.fix_count = fix_count


class ProviderError(AgentError):
    """Base exception for inference provider failures."""


class ProviderUnavailableError(ProviderError):
    """Raised when no inference provider can be reached or configured."""


class ProviderTimeoutError(ProviderError):
    """Raised when an inference call exceeds its timeout."""


class InvalidResponseError(ProviderError):
    """Raised when the provider answers with an empty or malformed payload."""


class BuildValidationError(AgentError):
    """Raised when the build validator itself cannot run."""


class RepositoryIOError(AgentError):
    """Raised when the working tree cannot be read or written."""


class VcsError(AgentError):
    """Raised when a git or pull-request operation fails."""


class CodeModelError(AgentError):
    """Raised when a source file cannot be parsed into members."""
