"""Models describing documentable members as reported by a code model provider."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MemberKind(str, Enum):
    METHOD = "method"
    CONSTRUCTOR = "constructor"
    PROPERTY = "property"
    FIELD = "field"
    EVENT = "event"


class ReturnCategory(str, Enum):
    """What a <returns> tag may describe for a member."""

    VOID = "void"                      # void, Task, ValueTask
    VALUE = "value"                    # anything that produces a value
    NOT_APPLICABLE = "not_applicable"  # properties, fields, events, constructors


class MemberVisibility(str, Enum):
    PUBLIC = "public"
    INTERNAL = "internal"
    PROTECTED = "protected"
    PROTECTED_INTERNAL = "protected internal"
    PRIVATE_PROTECTED = "private protected"
    PRIVATE = "private"


class SourceSpan(BaseModel):
    """1-based, inclusive line range of a member declaration (attributes included)."""

    model_config = ConfigDict(frozen=True)

    start_line: int = Field(ge=1)
    end_line: int = Field(ge=1)


class MemberSignature(BaseModel):
    model_config = ConfigDict(frozen=False)

    name: str
    parameters: list[str] = Field(default_factory=list)
    type_parameters: list[str] = Field(default_factory=list)
    return_type: str | None = None
    return_category: ReturnCategory = ReturnCategory.NOT_APPLICABLE


class MemberDescriptor(BaseModel):
    """A single member as seen by the pipeline."""

    model_config = ConfigDict(frozen=False)

    name: str
    kind: MemberKind
    signature: MemberSignature
    visibility: MemberVisibility
    has_documentation: bool = False
    documentation: str | None = None   # existing /// block, if any
    source_span: SourceSpan
    source_text: str = ""              # declaration text used in prompts
    container: str | None = None       # enclosing type name


class SanitizeResult(BaseModel):
    """Documentation block accepted by the sanitizer."""

    model_config = ConfigDict(frozen=False)

    documentation: str                  # Bare XML, one element per line group
    lines: list[str] = Field(default_factory=list)
    fix_count: int = 0
