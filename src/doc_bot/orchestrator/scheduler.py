"""Batch scheduler: runs the file processor over a bounded batch of files."""

import logging
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from doc_bot.agents import RepositoryIOError, VcsError
from doc_bot.models import FileOutcome, FileResult, RunRecord, WorkloadConfig
from doc_bot.orchestrator.file_processor import FileProcessor
from doc_bot.vcs import (
    build_commit_message,
    build_pr_body,
    build_pr_title,
    committed_files,
)

if TYPE_CHECKING:
    from doc_bot.recording import RunRecorder

logger = logging.getLogger(__name__)


class VcsCollaborator(Protocol):
    def create_branch(self, branch_name: str) -> None: ...

    def apply_and_commit(self, file_paths: list[str], message: str) -> None: ...

    def push(self, branch_name: str) -> None: ...

    def create_pull_request(self, branch_name: str, title: str, body: str) -> str: ...


class BatchScheduler:
    """Processes the first ``batch_size`` candidates one at a time.

    Candidates are taken in the caller's order and never re-ranked. A file
    that fails hard does not stop the batch; a repository I/O failure does.
    """

    def __init__(
        self,
        file_processor: FileProcessor,
        recorder: "RunRecorder",
        workload: WorkloadConfig,
        repo_path: str | Path | None = None,
        vcs: VcsCollaborator | None = None,
    ) -> None:
        self.file_processor = file_processor
        self.recorder = recorder
        self.workload = workload
        self.repo_path = Path(repo_path) if repo_path is not None else None
        self.vcs = vcs

    def run_batch(
        self,
        candidates: Sequence[str | Path],
        batch_size: int | None = None,
        *,
        repository_url: str = "",
        branch_name: str = "",
        model_name: str = "",
        server_url: str = "",
        configuration_json: str = "",
        total_files_discovered: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> RunRecord:
        """Run one batch and return its closed run record.

        Args:
            candidates: Ordered candidate files.
            batch_size: Maximum number of files to process. Defaults to the
                workload's batch size.
            repository_url: Recorded on the run.
            branch_name: Branch to commit to when a VCS collaborator is set.
            model_name: Recorded on the run.
            server_url: Recorded on the run.
            configuration_json: Serialized workload settings for the record.
            total_files_discovered: Size of the candidate pool before
                batching. Defaults to ``len(candidates)``.
            cancel_event: Checked between files. Once set, no further file
                is started and the files already completed are published.

        Raises:
            KeyboardInterrupt: Re-raised after the in-flight file and the run
                are closed.

        Returns:
            RunRecord with ``end_time`` set.
        """
        size = batch_size if batch_size is not None else self.workload.batch_size
        batch = list(candidates)[: max(size, 0)]

        run = self.recorder.start_run(
            repository_url=repository_url,
            branch_name=branch_name,
            model_name=model_name,
            server_url=server_url,
            configuration_json=configuration_json,
            total_files_discovered=(
                total_files_discovered if total_files_discovered is not None else len(candidates)
            ),
        )
        run.files_selected = len(batch)
        logger.info("Processing %d of %d candidate file(s)", len(batch), len(candidates))

        if self.vcs is not None and batch:
            try:
                self.vcs.create_branch(branch_name)
            except VcsError as e:
                logger.error("Failed to create branch %s: %s", branch_name, e)
                return self.recorder.finish_run(run, error_message=f"VCS: {e}")

        fatal_error: str | None = None
        cancelled: str | None = None
        for index, path in enumerate(batch):
            if cancel_event is not None and cancel_event.is_set():
                cancelled = f"Cancelled after {index} of {len(batch)} file(s)"
                logger.warning("%s; saving completed work", cancelled)
                break

            file_result = self.recorder.start_file(run, self._display_path(path))
            try:
                self.file_processor.process(path, file_result)
            except RepositoryIOError as e:
                fatal_error = f"Repository I/O failure: {e}"
                logger.error("Aborting run %s: %s", run.run_id, e)
                self.recorder.complete_file(run, file_result)
                break
            except KeyboardInterrupt:
                self._close_interrupted(run, file_result)
                raise
            self.recorder.complete_file(run, file_result)

        publish_error: str | None = None
        if fatal_error is None and self.vcs is not None:
            publish_error = self._publish(run, branch_name)

        messages = [m for m in (fatal_error, cancelled, publish_error) if m]
        return self.recorder.finish_run(
            run,
            error_message="; ".join(messages) or None,
            require_all_files_succeed=self.workload.require_all_files_succeed,
        )

    def _close_interrupted(self, run: RunRecord, file_result: FileResult) -> None:
        """Finalize the in-flight file and close the run before an interrupt propagates."""
        message = f"Interrupted while processing '{file_result.file_path}'"
        logger.warning(message)
        if not file_result.is_finalized:
            file_result.success = False
            self.recorder.finalize_file(file_result, FileOutcome.FAILED_HARD, message)
        self.recorder.complete_file(run, file_result)
        self.recorder.finish_run(run, error_message=message)

    def _publish(self, run: RunRecord, branch_name: str) -> str | None:
        """Commit, push and open a pull request. Returns an error message on failure."""
        files = committed_files(run)
        if not files:
            logger.info("No committed changes; skipping pull request")
            return None
        try:
            self.vcs.apply_and_commit(files, build_commit_message(run))
            self.vcs.push(branch_name)
            run.pull_request_url = self.vcs.create_pull_request(
                branch_name,
                build_pr_title(run),
                build_pr_body(run),
            )
        except VcsError as e:
            logger.error("Failed to publish run %s: %s", run.run_id, e)
            return f"VCS: {e}"
        return None

    def _display_path(self, path: str | Path) -> str:
        path = Path(path)
        if self.repo_path is not None:
            try:
                return path.resolve().relative_to(self.repo_path.resolve()).as_posix()
            except ValueError:
                pass
        return path.as_posix()
