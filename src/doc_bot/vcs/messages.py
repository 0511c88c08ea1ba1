"""Commit message and pull request text for a documentation run."""

from doc_bot.models import FileOutcome, RunRecord

MAX_LISTED_ERRORS = 10


def committed_files(run: RunRecord) -> list[str]:
    """Files that ended COMMITTED with a modification, in processing order."""
    return [
        file_result.file_path
        for file_result in run.file_results
        if file_result.outcome == FileOutcome.COMMITTED and file_result.was_modified
    ]


def build_commit_message(run: RunRecord) -> str:
    files = committed_files(run)
    return (
        f"Add XML documentation to {len(files)} file(s)\n\n"
        f"- Items documented: {run.total_items_documented}\n"
        f"- Model: {run.model_name or 'unknown'}\n"
    )


def build_pr_title(run: RunRecord) -> str:
    files = committed_files(run)
    if len(files) == 1:
        return f"Add XML documentation to {files[0].rsplit('/', 1)[-1]}"
    return f"Add XML documentation to {len(files)} files"


def build_pr_body(run: RunRecord) -> str:
    """Markdown description listing the files, counters and per-file errors."""
    files = committed_files(run)
    lines = [
        "## Summary",
        "",
        "Adds XML documentation comments to the following files:",
        "",
        *(f"- `{path}`" for path in files),
        "",
        "## Statistics",
        "",
        f"- **Files selected**: {run.files_selected}",
        f"- **Files documented**: {run.files_succeeded}",
        f"- **Files failed**: {run.files_failed}",
        f"- **Items documented**: {run.total_items_documented}",
        f"- **Sanitization fixes**: {run.total_sanitization_fixes}",
        f"- **Build retries**: {run.total_build_retries}",
        f"- **Tokens**: {run.total_prompt_tokens + run.total_response_tokens}",
        "",
    ]

    errors = [
        f"`{file_result.file_path}`: {file_result.error_message}"
        for file_result in run.file_results
        if file_result.error_message
    ]
    if errors:
        lines.extend(["## Errors", ""])
        lines.extend(f"- {error}" for error in errors[:MAX_LISTED_ERRORS])
        if len(errors) > MAX_LISTED_ERRORS:
            lines.extend(["", f"...and {len(errors) - MAX_LISTED_ERRORS} more"])
        lines.append("")

    lines.extend([
        "## Review Notes",
        "",
        "Please review the generated documentation for:",
        "- Accuracy of descriptions",
        "- Parameter documentation",
        "- Return value descriptions",
    ])
    return "\n".join(lines) + "\n"
