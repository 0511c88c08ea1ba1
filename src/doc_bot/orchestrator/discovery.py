"""Candidate discovery: C# files that still have undocumented members."""

import logging
from pathlib import Path

from doc_bot.agents import CodeModelError
from doc_bot.models import WorkloadConfig
from doc_bot.orchestrator.graph import CodeModelProvider

logger = logging.getLogger(__name__)

EXCLUDED_DIRS = frozenset({"bin", "obj", ".git", ".vs", "node_modules"})


def _project_root(path: Path, repo_path: Path) -> str | None:
    """Name of the nearest directory above ``path`` holding a .csproj file."""
    for parent in path.parents:
        if parent == repo_path.parent:
            break
        if any(parent.glob("*.csproj")):
            return parent.name
    return None


def discover_candidates(
    repo_path: str | Path,
    code_model: CodeModelProvider,
    workload: WorkloadConfig,
) -> list[Path]:
    """Find ``.cs`` files with at least one undocumented member in scope.

    Files under build output directories or inside an ignored project are
    skipped. Files the code model cannot parse are skipped with a warning.

    Args:
        repo_path: Repository root.
        code_model: Source of each file's members.
        workload: Supplies ``ignore_projects`` and ``document_visibility``.

    Returns:
        Candidate paths in sorted order.
    """
    root = Path(repo_path)
    search_root = root / workload.project_path if workload.project_path else root
    if search_root.is_file():
        search_root = search_root.parent
    ignored = {name.lower() for name in workload.ignore_projects}

    candidates: list[Path] = []
    for path in sorted(search_root.rglob("*.cs")):
        relative_parts = path.relative_to(root).parts
        if any(part in EXCLUDED_DIRS for part in relative_parts[:-1]):
            continue
        if ignored:
            project = _project_root(path, root)
            if project is not None and project.lower() in ignored:
                continue
        try:
            members = code_model.get_members(str(path))
        except CodeModelError as e:
            logger.warning("Skipping %s: %s", path, e)
            continue
        if any(
            not member.has_documentation and workload.document_visibility.allows(member.visibility)
            for member in members
        ):
            candidates.append(path)

    logger.info("Discovered %d candidate file(s) under %s", len(candidates), search_root)
    return candidates
