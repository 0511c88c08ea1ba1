"""Unit tests for the per-file graph nodes, routers and initial state."""
from unittest.mock import MagicMock, patch

import pytest

from doc_bot.agents import BuildGate
from doc_bot.models import (
    MAX_BUILD_RETRIES_LIMIT,
    BuildOutcome,
    FileOutcome,
    InteractionType,
    MemberVisibility,
    WorkloadConfig,
)
from doc_bot.orchestrator import GraphBuildError, build_file_graph, decide_fn, make_initial_state
from doc_bot.orchestrator.graph import (
    after_select,
    make_after_document_fn,
    make_finalize_node,
    make_fix_node,
    make_select_node,
    make_validate_node,
    recursion_limit_for,
)
from doc_bot.utils import SourceEditor

from fakes import WIDGET_SOURCE, FakeBuildValidator, FakeCodeModel, FakeInference, make_member


# ---------------------------------------------------------------------------
# Helpers / shared fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def state(widget_file, recorder, run):
    file_result = recorder.start_file(run, "Widget.cs")
    editor = SourceEditor(widget_file, display_path="Widget.cs")
    return make_initial_state(str(widget_file), editor, file_result, max_build_retries=2)


def failed_outcome(attempt=1):
    return BuildOutcome(passed=False, attempt_number=attempt)


# ---------------------------------------------------------------------------
# Initial state
# ---------------------------------------------------------------------------

class TestMakeInitialState:
    def test_fields(self, state):
        assert state["display_path"] == "Widget.cs"
        assert state["attempt_number"] == 1
        assert state["members"] == []
        assert state["last_outcome"] is None
        assert state["errors"] == []

    @pytest.mark.parametrize("value, expected", [(-1, 0), (3, 3), (50, MAX_BUILD_RETRIES_LIMIT)])
    def test_retries_clamped(self, widget_file, recorder, run, value, expected):
        file_result = recorder.start_file(run, "Widget.cs")
        state = make_initial_state(str(widget_file), SourceEditor(widget_file), file_result, value)
        assert state["max_build_retries"] == expected

    def test_recursion_limit_grows_with_retries(self):
        assert recursion_limit_for(0) < recursion_limit_for(2) < recursion_limit_for(10)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

class TestRouters:
    def test_after_select(self, state):
        assert after_select(state) == "finalize"
        state["members"] = [make_member("Add", 5)]
        assert after_select(state) == "document"

    def test_after_document_requires_modification(self, state):
        route = make_after_document_fn(WorkloadConfig())
        assert route(state) == "finalize"
        state["file_result"].was_modified = True
        assert route(state) == "validate"

    def test_after_document_validation_disabled(self, state):
        state["file_result"].was_modified = True
        assert make_after_document_fn(WorkloadConfig(validate_builds=False))(state) == "finalize"

    def test_decide_pass(self, state):
        state["last_outcome"] = BuildOutcome(passed=True, attempt_number=1)
        assert decide_fn(state) == "finalize"

    def test_decide_fix_within_budget(self, state):
        state["last_outcome"] = failed_outcome()
        assert decide_fn(state) == "fix"
        state["attempt_number"] = 2
        assert decide_fn(state) == "fix"

    def test_decide_budget_spent(self, state):
        state["attempt_number"] = 3
        state["last_outcome"] = failed_outcome(3)
        assert decide_fn(state) == "finalize"


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

class TestNodes:
    def test_select_filters_visibility(self, state):
        members = [
            make_member("Add", 5),
            make_member("Hidden", 10, visibility=MemberVisibility.PRIVATE),
        ]
        node = make_select_node(FakeCodeModel(default=members), WorkloadConfig())

        result = node(state)

        assert [m.name for m in result["members"]] == ["Add"]

    def test_validate_marks_final_failure(self, state, recorder):
        node = make_validate_node(BuildGate(FakeBuildValidator([False]), recorder, solution_ref=""))
        state["max_build_retries"] = 0

        result = node(state)

        assert result["last_outcome"].passed is False
        assert state["file_result"].build_passed is False

    def test_validate_leaves_build_state_open_while_fixable(self, state, recorder):
        node = make_validate_node(BuildGate(FakeBuildValidator([False]), recorder, solution_ref=""))

        node(state)

        assert state["file_result"].build_passed is None
        assert state["file_result"].build_attempts[0].ai_fix_attempted is True

    def test_fix_replaces_content_and_records(self, state, recorder, widget_file):
        state["last_outcome"] = failed_outcome()
        inference = FakeInference(["```csharp\nclass Fixed {}\n```"])
        node = make_fix_node(inference, recorder)

        result = node(state)

        assert result == {"attempt_number": 2}
        assert widget_file.read_text(encoding="utf-8") == "class Fixed {}\n"
        assert "CURRENT FILE CONTENT" in inference.prompts[0]
        interaction = state["file_result"].ai_interactions[0]
        assert interaction.interaction_type == InteractionType.BUILD_FIX
        assert interaction.build_fix_attempt == 1
        assert interaction.applied is True

    def test_finalize_reverts_failed_build(self, state, recorder, widget_file):
        state["editor"].replace_content("broken")
        state["editor"].flush()
        state["file_result"].build_passed = False

        result = make_finalize_node(recorder, WorkloadConfig())(state)

        assert widget_file.read_text(encoding="utf-8") == WIDGET_SOURCE
        assert state["file_result"].outcome == FileOutcome.REVERTED
        assert state["file_result"].was_reverted is True
        assert len(result["errors"]) == 1

    def test_finalize_commits_without_revert(self, state, recorder):
        state["file_result"].build_passed = False

        result = make_finalize_node(recorder, WorkloadConfig(revert_on_build_failure=False))(state)

        assert result == {}
        assert state["file_result"].outcome == FileOutcome.COMMITTED
        assert state["file_result"].success is True


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------

class TestBuildFileGraph:
    def test_compiles(self, recorder):
        graph = build_file_graph(
            FakeCodeModel(),
            MagicMock(),
            MagicMock(),
            FakeInference(),
            recorder,
            WorkloadConfig(),
        )
        assert graph is not None

    def test_construction_error_wrapped(self, recorder):
        with patch("doc_bot.orchestrator.graph.StateGraph", side_effect=RuntimeError("bad")):
            with pytest.raises(GraphBuildError):
                build_file_graph(
                    FakeCodeModel(), MagicMock(), MagicMock(), FakeInference(), recorder, WorkloadConfig()
                )
