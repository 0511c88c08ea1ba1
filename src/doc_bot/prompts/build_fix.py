"""Prompt for repairing a compilation failure introduced by documentation edits."""

import re

from doc_bot.models import BuildDiagnostic
from doc_bot.prompts.families import substitute

MAX_ERRORS_IN_PROMPT = 20
CODE_FENCE_PATTERN = re.compile(r"^\s*```[\w#+-]*\s*\n(.*?)\n\s*```\s*$", re.DOTALL)

_BUILD_FIX_TEMPLATE = """\
You are a C# build repair assistant. XML documentation comments were just added
to the file below and the project no longer compiles.

FILE: {file_path}

BUILD ERRORS:
{errors}

CURRENT FILE CONTENT:
```csharp
{content}
```

INSTRUCTIONS:
1. Fix ONLY what causes the errors listed above
2. Keep every documentation comment that is valid
3. Return the COMPLETE modified file
4. Do NOT add comments or explanations
5. Do NOT include markdown code block markers in your response
"""


def format_errors(errors: list[BuildDiagnostic]) -> str:
    lines = []
    for error in errors[:MAX_ERRORS_IN_PROMPT]:
        if error.full_text:
            lines.append(f"- {error.full_text}")
        else:
            lines.append(f"- {error.file_path}({error.line_number}): {error.code} {error.message}")
    if len(errors) > MAX_ERRORS_IN_PROMPT:
        lines.append(f"...and {len(errors) - MAX_ERRORS_IN_PROMPT} more")
    return "\n".join(lines) if lines else "- (no structured errors reported)"


def render_build_fix_prompt(
    file_path: str,
    content: str,
    errors: list[BuildDiagnostic],
) -> str:
    """Render the build-fix prompt for one failing file.

    Args:
        file_path: Path of the edited file, relative to the repository.
        content: Current content of the file on disk.
        errors: Errors reported by the failing build attempt.

    Returns:
        Prompt text asking for the complete corrected file.
    """
    return substitute(
        _BUILD_FIX_TEMPLATE,
        {"file_path": file_path, "errors": format_errors(errors), "content": content},
    )


def strip_code_fences(text: str) -> str:
    """Remove a markdown fence wrapped around the whole response, if any."""
    match = CODE_FENCE_PATTERN.match(text.strip())
    if match:
        return match.group(1) + "\n"
    return text
