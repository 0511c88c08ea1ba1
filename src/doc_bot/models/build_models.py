"""Models for build validation results."""

from pydantic import BaseModel, ConfigDict, Field


class BuildDiagnostic(BaseModel):
    model_config = ConfigDict(frozen=False)

    file_path: str = ""      # As reported by the compiler
    line_number: int = 0
    code: str = ""           # e.g. CS1002
    message: str = ""
    full_text: str = ""      # Original diagnostic line


class BuildResult(BaseModel):
    """What a build validator returns for one compilation."""

    model_config = ConfigDict(frozen=False)

    success: bool
    errors: list[BuildDiagnostic] = Field(default_factory=list)
    warnings: list[BuildDiagnostic] = Field(default_factory=list)
    raw_output: str = ""
    duration_seconds: float = 0.0


class BuildOutcome(BaseModel):
    """Classification of a single Build Gate invocation."""

    model_config = ConfigDict(frozen=False)

    passed: bool
    attempt_number: int
    errors: list[BuildDiagnostic] = Field(default_factory=list)
    warnings: list[BuildDiagnostic] = Field(default_factory=list)
