"""CLI entry point for the documentation bot."""
import argparse
from dotenv import load_dotenv
import json
import os
import signal
import sys
import threading
import traceback
from pathlib import Path

from pydantic import ValidationError

from doc_bot.agents.exceptions import AgentError
from doc_bot.logging_config import setup_logging
from doc_bot.models import AppConfig, DocumentVisibility, RunRecord
from doc_bot.orchestrator.exceptions import OrchestratorError

load_dotenv()

# Exit codes
EXIT_SUCCESS = 0
EXIT_INVALID_INPUT = 1
EXIT_AGENT_ERROR = 2
EXIT_ORCHESTRATOR_ERROR = 3
EXIT_RUN_FAILED = 4
EXIT_UNEXPECTED = 5
EXIT_KEYBOARD_INTERRUPT = 130

# Safe keys allowed in config output (no secrets)
_SAFE_CONFIG_KEYS = frozenset({
    "repo_path", "solution_path", "project_path", "batch_size", "validate_builds",
    "max_build_retries", "revert_on_build_failure", "ignore_projects",
    "document_visibility", "require_all_files_succeed", "provider", "model_name",
    "base_url", "timeout_seconds", "max_tokens", "fallback_provider",
    "allow_fallback", "prompts_directory", "enable_custom_prompts",
    "database_path", "build_timeout_seconds", "branch_name", "use_git",
})


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser.

    Options left unset fall back to the configuration file, then to the
    model defaults.
    """
    parser = argparse.ArgumentParser(
        prog="doc-bot",
        description="Adds AI-generated XML documentation comments to C# repositories",
    )
    parser.add_argument(
        "repo_path", type=str, nargs="?", default=None, help="Path to the repository root"
    )
    parser.add_argument("--config", type=str, default=None, help="JSON configuration file")
    parser.add_argument("--solution", type=str, default=None, help="Solution file to build")
    parser.add_argument("--project", type=str, default=None, help="Project directory to document")
    parser.add_argument("--batch-size", type=int, default=None, help="Files per run")
    parser.add_argument(
        "--max-build-retries",
        type=int,
        default=None,
        help="AI build-fix attempts per file (clamped to 0..10)",
    )
    parser.add_argument(
        "--no-validate", action="store_true", help="Skip build validation after documenting"
    )
    parser.add_argument(
        "--no-revert", action="store_true", help="Keep edits when the build keeps failing"
    )
    parser.add_argument(
        "--require-all",
        action="store_true",
        help="Mark the run unsuccessful if any file fails",
    )
    parser.add_argument(
        "--visibility",
        type=str,
        default=None,
        choices=[v.value for v in DocumentVisibility],
        help="Which members to document (default: public)",
    )
    parser.add_argument(
        "--ignore-project",
        action="append",
        default=[],
        help="Project directory name to skip (repeatable)",
    )
    parser.add_argument("--model", type=str, default=None, help="Model ID to use")
    parser.add_argument(
        "--provider",
        type=str,
        default=None,
        choices=("auto", "anthropic", "openai"),
        help="Inference provider (default: auto)",
    )
    parser.add_argument(
        "--fallback-provider",
        type=str,
        default=None,
        choices=("anthropic", "openai"),
        help="Provider to try when the primary one fails",
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        help="OpenAI-compatible server URL, e.g. http://localhost:11434/v1",
    )
    parser.add_argument("--timeout", type=int, default=None, help="Inference timeout in seconds")
    parser.add_argument("--db-path", type=str, default=None, help="SQLite run database")
    parser.add_argument("--prompts-dir", type=str, default=None, help="Prompt override directory")
    parser.add_argument("--branch", type=str, default=None, help="Branch to commit to")
    parser.add_argument(
        "--no-git", action="store_true", help="Do not create a branch, commit or open a PR"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default="text",
        choices=("text", "json"),
        help="Log output format (default: text)",
    )
    parser.add_argument("--verbose", action="store_true", help="Print tracebacks on error")
    parser.add_argument(
        "--dry-run", action="store_true", help="Print config and exit without running"
    )
    parser.add_argument(
        "--output-json", action="store_true", help="Output results as JSON"
    )
    parser.add_argument(
        "--report",
        action="store_true",
        help="Print the per-model comparison of recorded runs and exit",
    )
    return parser


def validate_repo_path(raw_path: str | None) -> str:
    """Validate and resolve the repository path.

    Raises:
        SystemExit: If path is not a valid directory.
    """
    if not raw_path:
        print("Error: repo_path is required.", file=sys.stderr)
        raise SystemExit(EXIT_INVALID_INPUT)
    resolved = Path(raw_path).resolve()
    if not resolved.is_dir():
        print(f"Error: '{raw_path}' is not a valid directory.", file=sys.stderr)
        raise SystemExit(EXIT_INVALID_INPUT)
    return str(resolved)


def load_config(args: argparse.Namespace) -> AppConfig:
    """Load the configuration file, if any, and apply command-line overrides.

    Raises:
        FileNotFoundError: If ``--config`` names a missing file.
        pydantic.ValidationError: If the file or an override is invalid.
    """
    config = AppConfig.from_file(args.config) if args.config else AppConfig()

    workload = config.workload.model_dump()
    if args.solution is not None:
        workload["solution_path"] = args.solution
    if args.project is not None:
        workload["project_path"] = args.project
    if args.batch_size is not None:
        workload["batch_size"] = args.batch_size
    if args.max_build_retries is not None:
        workload["max_build_retries"] = args.max_build_retries
    if args.no_validate:
        workload["validate_builds"] = False
    if args.no_revert:
        workload["revert_on_build_failure"] = False
    if args.require_all:
        workload["require_all_files_succeed"] = True
    if args.visibility is not None:
        workload["document_visibility"] = args.visibility
    if args.ignore_project:
        workload["ignore_projects"] = set(workload["ignore_projects"]) | set(args.ignore_project)

    ai_server = config.ai_server.model_dump()
    if args.model is not None:
        ai_server["model_name"] = args.model
    if args.provider is not None:
        ai_server["provider"] = args.provider
    if args.fallback_provider is not None:
        ai_server["fallback_provider"] = args.fallback_provider
        ai_server["allow_fallback"] = True
    if args.base_url is not None:
        ai_server["base_url"] = args.base_url
    if args.timeout is not None:
        ai_server["timeout_seconds"] = args.timeout

    prompts = config.prompts.model_dump()
    if args.prompts_dir is not None:
        prompts["directory"] = args.prompts_dir

    data = config.model_dump()
    data.update(workload=workload, ai_server=ai_server, prompts=prompts)
    if args.db_path is not None:
        data["database_path"] = args.db_path
    return AppConfig.model_validate(data)


def config_summary(config: AppConfig, repo_path: str, branch_name: str, use_git: bool) -> dict:
    """Flatten the configuration for display, keeping only allowlisted keys."""
    flat = {
        "repo_path": repo_path,
        **config.workload.model_dump(mode="json"),
        **config.ai_server.model_dump(mode="json"),
        "prompts_directory": config.prompts.directory,
        "enable_custom_prompts": config.prompts.enable_custom_prompts,
        "database_path": config.database_path,
        "build_timeout_seconds": config.build_timeout_seconds,
        "branch_name": branch_name,
        "use_git": use_git,
    }
    return {key: value for key, value in flat.items() if key in _SAFE_CONFIG_KEYS}


def create_scheduler(
    config: AppConfig,
    repo_path: str,
    use_git: bool,
):
    """Wire every collaborator of a run.

    Agent imports are deferred to avoid loading the provider SDKs and
    tree-sitter for --help and --dry-run.

    Returns:
        Tuple of (scheduler, code_model, inference client).
    """
    from doc_bot.agents import (
        BuildGate,
        CSharpCodeModel,
        DotnetBuildValidator,
        InferenceClient,
        MemberProcessor,
    )
    from doc_bot.orchestrator import BatchScheduler, FileProcessor
    from doc_bot.prompts import PromptLibrary
    from doc_bot.recording import RunRecorder, SQLiteRecordStore
    from doc_bot.vcs import GitManager

    workload = config.workload
    inference = InferenceClient(
        config.ai_server,
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
    )
    recorder = RunRecorder(
        store=SQLiteRecordStore(config.database_path),
        max_build_retries=workload.max_build_retries,
    )
    code_model = CSharpCodeModel()
    prompts = PromptLibrary(config.prompts, model_name=config.ai_server.model_name)
    build_gate = BuildGate(
        DotnetBuildValidator(repo_path, timeout_seconds=config.build_timeout_seconds),
        recorder,
        solution_ref=workload.solution_path or workload.project_path,
    )
    file_processor = FileProcessor(
        code_model=code_model,
        member_processor=MemberProcessor(inference, prompts, recorder),
        build_gate=build_gate,
        inference=inference,
        recorder=recorder,
        workload=workload,
    )
    scheduler = BatchScheduler(
        file_processor,
        recorder,
        workload,
        repo_path=repo_path,
        vcs=GitManager(repo_path) if use_git else None,
    )
    return scheduler, code_model, inference


def format_run_json(run: RunRecord) -> str:
    from doc_bot.recording import RunStatistics

    payload = {
        "run": run.model_dump(mode="json", exclude={"file_results"}),
        "statistics": RunStatistics.from_run(run).model_dump(mode="json"),
        "files": [
            {
                "file_path": f.file_path,
                "outcome": f.outcome.value if f.outcome else None,
                "members_documented": f.members_documented,
                "build_attempts": f.build_attempt_count,
                "error_message": f.error_message,
            }
            for f in run.file_results
        ],
    }
    return json.dumps(payload, indent=2, default=str)


def print_run_human(run: RunRecord) -> None:
    """Print run results in human-readable format."""
    from doc_bot.recording import RunStatistics

    stats = RunStatistics.from_run(run)
    print(f"\n{'='*60}")
    print("Documentation Run Results")
    print(f"{'='*60}")
    print(f"\nRun: {run.run_id}")
    print(f"Model: {run.model_name}")
    print(f"Files: selected={run.files_selected} succeeded={run.files_succeeded} "
          f"skipped={run.files_skipped} failed={run.files_failed}")
    print(f"Items documented: {run.total_items_documented} "
          f"(sanitization fixes: {run.total_sanitization_fixes})")
    print(f"Builds: failures={run.total_build_failures} retries={run.total_build_retries}")
    print(f"Tokens: {stats.total_tokens} ({stats.average_tokens_per_file:.0f} per file)")
    print(f"Success rate: {stats.success_rate:.2%}")
    if run.pull_request_url:
        print(f"Pull request: {run.pull_request_url}")

    failures = [f for f in run.file_results if f.error_message]
    if failures:
        print(f"\nErrors ({len(failures)}):")
        for f in failures:
            print(f"  - {f.file_path}: {f.error_message}")
    if run.error_message:
        print(f"\nRun error: {run.error_message}")
    print(f"\n{'='*60}")


def print_report(database_path: str, output_json: bool) -> int:
    """Print the per-model comparison of every recorded run."""
    from doc_bot.recording import SQLiteRecordStore, compare_models

    rows = compare_models(SQLiteRecordStore(database_path).list_runs())
    if output_json:
        print(json.dumps([row.model_dump(mode="json") for row in rows], indent=2))
        return EXIT_SUCCESS

    if not rows:
        print("No runs recorded.")
        return EXIT_SUCCESS

    header = f"{'Model':<40} {'Runs':>5} {'Files':>6} {'Success':>8} {'Tok/File':>9} {'Fix/Item':>9}"
    print(header)
    print("-" * len(header))
    for row in rows:
        print(
            f"{row.model_name[:40]:<40} {row.total_runs:>5} {row.total_files_processed:>6} "
            f"{row.success_rate:>7.1f}% {row.average_tokens_per_file:>9.0f} "
            f"{row.average_sanitization_fixes_per_item:>9.2f}"
        )
    return EXIT_SUCCESS


def print_config_human(config: dict) -> None:
    """Print configuration in human-readable format.

    Only prints keys in the safe allowlist to prevent secret leakage.
    """
    print("\nConfiguration:")
    print(f"{'='*40}")
    for key, value in config.items():
        if key in _SAFE_CONFIG_KEYS:
            print(f"  {key}: {value}")
    print(f"{'='*40}")


def _handle_error(label: str, exc: BaseException, verbose: bool, exit_code: int) -> int:
    """Print error message to stderr and return the exit code."""
    print(f"{label}: {exc}", file=sys.stderr)
    if verbose:
        traceback.print_exc(file=sys.stderr)
    return exit_code


def _install_cancel_handler(cancel_event: threading.Event):
    """Route SIGINT to ``cancel_event``; a second SIGINT interrupts the current file.

    Returns the previous handler so the caller can restore it.
    """

    def _handle_sigint(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        cancel_event.set()
        print(
            "\n[Cancel] Stopping after the current file; press Ctrl+C again to abort.",
            file=sys.stderr,
        )

    return signal.signal(signal.SIGINT, _handle_sigint)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code integer.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level, args.log_format)

    try:
        config = load_config(args)
    except (OSError, ValidationError) as exc:
        return _handle_error("Invalid configuration", exc, args.verbose, EXIT_INVALID_INPUT)

    if args.report:
        return print_report(config.database_path, args.output_json)

    try:
        repo_path = validate_repo_path(args.repo_path)
    except SystemExit as exc:
        return exc.code

    from doc_bot.vcs import default_branch_name

    use_git = not args.no_git
    branch_name = args.branch or default_branch_name()
    summary = config_summary(config, repo_path, branch_name, use_git)

    if args.dry_run:
        if args.output_json:
            print(json.dumps(summary, indent=2, default=str))
        else:
            print_config_human(summary)
        return EXIT_SUCCESS

    cancel_event = threading.Event()
    try:
        from doc_bot.orchestrator import discover_candidates

        scheduler, code_model, inference = create_scheduler(config, repo_path, use_git)
        candidates = discover_candidates(repo_path, code_model, config.workload)
        previous_handler = _install_cancel_handler(cancel_event)
        try:
            run = scheduler.run_batch(
                candidates,
                repository_url=repo_path,
                branch_name=branch_name if use_git else "",
                model_name=config.ai_server.model_name,
                server_url=inference.server_url,
                configuration_json=config.workload_json(),
                cancel_event=cancel_event,
            )
        finally:
            if previous_handler is not None:
                signal.signal(signal.SIGINT, previous_handler)

        if args.output_json:
            print(format_run_json(run))
        else:
            print_run_human(run)

        return EXIT_SUCCESS if run.success else EXIT_RUN_FAILED

    except AgentError as exc:
        return _handle_error("Agent error", exc, args.verbose, EXIT_AGENT_ERROR)

    except OrchestratorError as exc:
        return _handle_error("Orchestrator error", exc, args.verbose, EXIT_ORCHESTRATOR_ERROR)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_KEYBOARD_INTERRUPT

    except Exception as exc:
        return _handle_error("Unexpected error", exc, args.verbose, EXIT_UNEXPECTED)


if __name__ == "__main__":
    sys.exit(main())
