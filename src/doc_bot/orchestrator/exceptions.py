"""Exceptions for orchestrator operations."""


class OrchestratorError(Exception):
    """Base exception for all orchestrator operations."""


class GraphBuildError(OrchestratorError):
    """Raised when graph construction fails."""


class RecordInvariantError(OrchestratorError):
    """Raised when a record would violate the accounting invariants."""
