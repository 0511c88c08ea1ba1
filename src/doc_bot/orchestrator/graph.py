"""LangGraph state machine that documents a single file.

Edge topology:
  START -> select_node -> conditional -> {document_node, finalize_node}
  document_node -> conditional -> {validate_node, finalize_node}
  validate_node -> conditional(decide_fn) -> {finalize_node, fix_node}
  fix_node -> validate_node
  finalize_node -> END
"""

import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Protocol

from langgraph.graph import END, START, StateGraph

from doc_bot.agents import BuildGate, InferenceProvider, MemberProcessor
from doc_bot.models import (
    AIInteraction,
    FileOutcome,
    InteractionType,
    MemberDescriptor,
    MemberOutcome,
    WorkloadConfig,
)
from doc_bot.orchestrator.exceptions import GraphBuildError
from doc_bot.orchestrator.state import FileState
from doc_bot.prompts import render_build_fix_prompt, strip_code_fences

if TYPE_CHECKING:
    from doc_bot.recording import RunRecorder

logger = logging.getLogger(__name__)

# Supersteps used outside the validate/fix loop
BASE_RECURSION_LIMIT = 10


class CodeModelProvider(Protocol):
    def get_members(self, file_path: str) -> list[MemberDescriptor]: ...


def recursion_limit_for(max_build_retries: int) -> int:
    """Superstep budget large enough for every validate/fix round of a file."""
    return BASE_RECURSION_LIMIT + 4 * (max_build_retries + 1)


# ---------------------------------------------------------------------------
# Node factories
# ---------------------------------------------------------------------------


def make_select_node(
    code_model: CodeModelProvider,
    workload: WorkloadConfig,
) -> Callable[[FileState], dict]:
    """Factory: returns select_node that loads the members to document.

    Members come back in source order and are filtered by the configured
    visibility.
    """

    def select_node(state: FileState) -> dict:
        members = code_model.get_members(state["file_path"])
        selected = [m for m in members if workload.document_visibility.allows(m.visibility)]
        logger.info(
            "Selected %d of %d member(s) in %s",
            len(selected),
            len(members),
            state["display_path"],
        )
        return {"members": selected}

    return select_node


def make_document_node(member_processor: MemberProcessor) -> Callable[[FileState], dict]:
    """Factory: returns document_node that runs the member processor over each member.

    Each documented member is flushed to disk before the next one is
    generated, so a later provider failure leaves the counted blocks written.
    """

    def document_node(state: FileState) -> dict:
        editor = state["editor"]
        file_result = state["file_result"]

        for member in state["members"]:
            outcome = member_processor.process_member(member, editor, file_result)
            if outcome == MemberOutcome.DOCUMENTED:
                editor.flush()
                file_result.was_modified = True

        if file_result.was_modified and logger.isEnabledFor(logging.DEBUG):
            logger.debug("Written changes:\n%s", editor.diff())

        logger.info(
            "Documented %d member(s) in %s (%d already documented)",
            file_result.members_documented,
            state["display_path"],
            file_result.members_already_documented,
        )
        return {}

    return document_node


def make_validate_node(build_gate: BuildGate) -> Callable[[FileState], dict]:
    """Factory: returns validate_node that compiles once through the build gate."""

    def validate_node(state: FileState) -> dict:
        file_result = state["file_result"]
        attempt_number = state["attempt_number"]
        fix_allowed = attempt_number <= state["max_build_retries"]

        outcome = build_gate.validate(file_result, attempt_number, fix_allowed)
        if outcome.passed:
            file_result.build_passed = True
        elif not fix_allowed:
            file_result.build_passed = False
        return {"last_outcome": outcome}

    return validate_node


def make_fix_node(
    inference: InferenceProvider,
    recorder: "RunRecorder",
) -> Callable[[FileState], dict]:
    """Factory: returns fix_node that asks the model to repair the build.

    The returned code replaces the file verbatim; only a markdown fence
    around the whole answer is removed.
    """

    def fix_node(state: FileState) -> dict:
        editor = state["editor"]
        file_result = state["file_result"]
        attempt_number = state["attempt_number"]
        outcome = state["last_outcome"]
        errors = outcome.errors if outcome is not None else []

        prompt = render_build_fix_prompt(state["display_path"], editor.content, errors)
        start_time = datetime.now()
        started = time.monotonic()
        response = inference.generate(prompt)
        duration = time.monotonic() - started

        editor.replace_content(strip_code_fences(response.text))
        editor.flush()

        recorder.record_interaction(
            file_result,
            AIInteraction(
                interaction_type=InteractionType.BUILD_FIX,
                start_time=start_time,
                duration_seconds=duration,
                prompt=prompt,
                response=response.text,
                prompt_tokens=response.prompt_tokens,
                response_tokens=response.response_tokens,
                applied=True,
                build_fix_attempt=attempt_number,
            ),
        )
        logger.info(
            "Applied build fix %d/%d to %s",
            attempt_number,
            state["max_build_retries"],
            state["display_path"],
        )
        return {"attempt_number": attempt_number + 1}

    return fix_node


def make_finalize_node(
    recorder: "RunRecorder",
    workload: WorkloadConfig,
) -> Callable[[FileState], dict]:
    """Factory: returns finalize_node that stamps the terminal outcome.

    A failed build is reverted to the original bytes when the workload
    asks for it; every other path commits the working copy as it is.
    """

    def finalize_node(state: FileState) -> dict:
        editor = state["editor"]
        file_result = state["file_result"]

        if file_result.build_passed is False and workload.revert_on_build_failure:
            editor.revert()
            file_result.was_reverted = True
            file_result.success = False
            message = (
                f"Build still failing after {file_result.build_fix_count} fix attempt(s); "
                "changes reverted"
            )
            recorder.finalize_file(file_result, FileOutcome.REVERTED, message)
            return {"errors": [message]}

        file_result.success = True
        recorder.finalize_file(file_result, FileOutcome.COMMITTED)
        return {}

    return finalize_node


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------


def after_select(state: FileState) -> str:
    return "document" if state["members"] else "finalize"


def make_after_document_fn(workload: WorkloadConfig) -> Callable[[FileState], str]:
    """Factory: validate only when builds are enabled and the file changed."""

    def after_document(state: FileState) -> str:
        if workload.validate_builds and state["file_result"].was_modified:
            return "validate"
        return "finalize"

    return after_document


def decide_fn(state: FileState) -> str:
    """Router for the post-validate conditional edge.

    Decision logic:
    1. build passed -> "finalize"
    2. attempt_number > max_build_retries -> "finalize" (budget spent)
    3. else -> "fix"
    """
    outcome = state["last_outcome"]
    if outcome is not None and outcome.passed:
        return "finalize"
    if state["attempt_number"] > state["max_build_retries"]:
        return "finalize"
    return "fix"


def build_file_graph(
    code_model: CodeModelProvider,
    member_processor: MemberProcessor,
    build_gate: BuildGate,
    inference: InferenceProvider,
    recorder: "RunRecorder",
    workload: WorkloadConfig,
):
    """Build and compile the per-file StateGraph.

    No checkpointer; state lives in memory for the duration of one file.

    Args:
        code_model: Source of the file's members.
        member_processor: Documents one member at a time.
        build_gate: Runs one build per call.
        inference: Provider used for build-fix requests.
        recorder: Accounting sink for interactions and the terminal outcome.
        workload: Workload settings (visibility, validation, revert).

    Returns:
        CompiledStateGraph ready to invoke with a FileState.

    Raises:
        GraphBuildError: If graph construction fails.
    """
    try:
        graph = StateGraph(FileState)

        graph.add_node("select_node", make_select_node(code_model, workload))
        graph.add_node("document_node", make_document_node(member_processor))
        graph.add_node("validate_node", make_validate_node(build_gate))
        graph.add_node("fix_node", make_fix_node(inference, recorder))
        graph.add_node("finalize_node", make_finalize_node(recorder, workload))

        graph.add_edge(START, "select_node")
        graph.add_conditional_edges(
            "select_node",
            after_select,
            {"document": "document_node", "finalize": "finalize_node"},
        )
        graph.add_conditional_edges(
            "document_node",
            make_after_document_fn(workload),
            {"validate": "validate_node", "finalize": "finalize_node"},
        )
        graph.add_conditional_edges(
            "validate_node",
            decide_fn,
            {"fix": "fix_node", "finalize": "finalize_node"},
        )
        graph.add_edge("fix_node", "validate_node")
        graph.add_edge("finalize_node", END)

        return graph.compile()

    except Exception as exc:
        raise GraphBuildError(f"Failed to build file graph: {exc}") from exc
