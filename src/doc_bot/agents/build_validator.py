"""Build validation through the dotnet CLI."""

import logging
import re
import subprocess
import time
from pathlib import Path

from doc_bot.agents.exceptions import BuildValidationError
from doc_bot.models import BuildDiagnostic, BuildResult

logger = logging.getLogger(__name__)

# Constants
DEFAULT_BUILD_TIMEOUT_SECONDS = 600
DIAGNOSTIC_PATTERN = re.compile(
    r"^\s*(?P<file>[^\s(][^(]*?)\((?P<line>\d+)(?:,\d+)*\)\s*:\s*"
    r"(?P<severity>error|warning)\s+(?P<code>[A-Za-z]+\d+)\s*:\s*"
    r"(?P<message>.*?)(?:\s+\[[^\]]+\])?\s*$"
)


def parse_build_output(output: str) -> tuple[list[BuildDiagnostic], list[BuildDiagnostic]]:
    """Extract MSBuild errors and warnings, dropping repeated lines.

    Args:
        output: Combined stdout and stderr of the build.

    Returns:
        Tuple of (errors, warnings).
    """
    errors: list[BuildDiagnostic] = []
    warnings: list[BuildDiagnostic] = []
    seen: set[tuple[str, str, int, str]] = set()

    for line in output.splitlines():
        match = DIAGNOSTIC_PATTERN.match(line)
        if not match:
            continue
        key = (
            match.group("severity"),
            match.group("file"),
            int(match.group("line")),
            match.group("code"),
        )
        if key in seen:
            continue
        seen.add(key)
        diagnostic = BuildDiagnostic(
            file_path=match.group("file").strip(),
            line_number=int(match.group("line")),
            code=match.group("code"),
            message=match.group("message").strip(),
            full_text=line.strip(),
        )
        if match.group("severity") == "error":
            errors.append(diagnostic)
        else:
            warnings.append(diagnostic)
    return errors, warnings


class DotnetBuildValidator:
    """Runs ``dotnet build`` against a solution or project in a repository."""

    def __init__(
        self,
        repo_path: str | Path,
        timeout_seconds: int = DEFAULT_BUILD_TIMEOUT_SECONDS,
        executable: str = "dotnet",
    ) -> None:
        self.repo_path = Path(repo_path)
        self.timeout_seconds = timeout_seconds
        self.executable = executable

    def validate(self, solution_ref: str) -> BuildResult:
        """Build the solution once.

        Args:
            solution_ref: Solution or project path relative to the repository,
                or empty to let dotnet pick the one in the repository root.

        Returns:
            BuildResult. A timeout is reported as a failed build.

        Raises:
            BuildValidationError: If the dotnet executable cannot be started.
        """
        cmd = [self.executable, "build"]
        if solution_ref:
            cmd.append(solution_ref)
        cmd.extend(["--nologo", "-clp:NoSummary"])

        logger.info("Running %s in %s", " ".join(cmd), self.repo_path)
        started = time.monotonic()
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                cwd=self.repo_path,
            )
        except subprocess.TimeoutExpired:
            return BuildResult(
                success=False,
                raw_output=f"Build timed out after {self.timeout_seconds}s",
                duration_seconds=time.monotonic() - started,
            )
        except OSError as e:
            raise BuildValidationError(f"Failed to run '{self.executable}': {e}") from e

        raw_output = (result.stdout or "") + (result.stderr or "")
        errors, warnings = parse_build_output(raw_output)
        return BuildResult(
            success=result.returncode == 0 and not errors,
            errors=errors,
            warnings=warnings,
            raw_output=raw_output,
            duration_seconds=time.monotonic() - started,
        )
