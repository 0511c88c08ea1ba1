"""Git and GitHub operations through the git and gh command-line tools."""

import logging
import subprocess
from datetime import datetime, timezone
from pathlib import Path

from doc_bot.agents.exceptions import VcsError

logger = logging.getLogger(__name__)

# Constants
GIT_TIMEOUT_SECONDS = 120
BRANCH_PREFIX = "doc-bot"


def default_branch_name(workload_type: str = "CodeDocumentation") -> str:
    """Branch name of the form ``doc-bot/{yyyymmdd}-{workload-type}``."""
    date = datetime.now(timezone.utc).strftime("%Y%m%d")
    kebab = "".join(
        f"-{char.lower()}" if char.isupper() and index else char.lower()
        for index, char in enumerate(workload_type)
    ).replace(" ", "-")
    return f"{BRANCH_PREFIX}/{date}-{kebab}"


class GitManager:
    """Commits documented files on a branch and opens a pull request.

    All commands run inside ``repo_path``. Any failing command raises
    VcsError carrying its stderr.
    """

    def __init__(
        self,
        repo_path: str | Path,
        remote: str = "origin",
        base_branch: str | None = None,
        timeout_seconds: int = GIT_TIMEOUT_SECONDS,
    ) -> None:
        self.repo_path = Path(repo_path)
        self.remote = remote
        self.base_branch = base_branch
        self.timeout_seconds = timeout_seconds

    def create_branch(self, branch_name: str) -> None:
        """Create and check out ``branch_name``, or check it out if it exists."""
        existing = self._run(["git", "branch", "--list", branch_name]).strip()
        if existing:
            logger.info("Branch %s already exists; checking it out", branch_name)
            self._run(["git", "checkout", branch_name])
            return
        self._run(["git", "checkout", "-b", branch_name])
        logger.info("Created branch %s", branch_name)

    def apply_and_commit(self, file_paths: list[str], message: str) -> None:
        """Stage exactly ``file_paths`` (relative to the repository) and commit them."""
        if not file_paths:
            raise VcsError("No files to commit")
        self._run(["git", "add", "--", *file_paths])
        self._run(["git", "commit", "-m", message, "--", *file_paths])
        logger.info("Committed %d file(s)", len(file_paths))

    def push(self, branch_name: str) -> None:
        self._run(["git", "push", "--set-upstream", self.remote, branch_name])
        logger.info("Pushed %s to %s", branch_name, self.remote)

    def create_pull_request(self, branch_name: str, title: str, body: str) -> str:
        """Open a pull request with the GitHub CLI.

        Returns:
            URL of the created pull request.
        """
        cmd = ["gh", "pr", "create", "--head", branch_name, "--title", title, "--body", body]
        if self.base_branch:
            cmd.extend(["--base", self.base_branch])
        output = self._run(cmd).strip()
        url = output.splitlines()[-1] if output else ""
        logger.info("Created pull request %s", url or "(no URL reported)")
        return url

    def _run(self, cmd: list[str]) -> str:
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                cwd=self.repo_path,
            )
        except subprocess.TimeoutExpired as e:
            raise VcsError(f"'{cmd[0]} {cmd[1]}' timed out after {self.timeout_seconds}s") from e
        except OSError as e:
            raise VcsError(f"Failed to run '{cmd[0]}': {e}") from e

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise VcsError(f"'{' '.join(cmd[:3])}' failed with code {result.returncode}: {detail}")
        return result.stdout or ""
