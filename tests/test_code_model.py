"""
Unit tests for the tree-sitter C# code model.

Tests run against tests/fixtures/SampleClass.cs.
"""

import pytest

from doc_bot.agents import CodeModelError, CSharpCodeModel
from doc_bot.agents.code_model import classify_return_type
from doc_bot.models import MemberKind, MemberVisibility, ReturnCategory


@pytest.fixture(scope="module")
def code_model():
    return CSharpCodeModel()


@pytest.fixture
def members(code_model, fixtures_dir):
    return {m.name: m for m in code_model.get_members(fixtures_dir / "SampleClass.cs")}


class TestClassifyReturnType:
    """Test which return types can carry a <returns> tag."""

    @pytest.mark.parametrize(
        "return_type, category",
        [
            ("void", ReturnCategory.VOID),
            ("Task", ReturnCategory.VOID),
            ("ValueTask", ReturnCategory.VOID),
            ("System.Threading.Tasks.Task", ReturnCategory.VOID),
            ("Task<int>", ReturnCategory.VALUE),
            ("int", ReturnCategory.VALUE),
            ("IEnumerable<string>", ReturnCategory.VALUE),
            (None, ReturnCategory.NOT_APPLICABLE),
            ("", ReturnCategory.NOT_APPLICABLE),
        ],
    )
    def test_categories(self, return_type, category):
        assert classify_return_type(return_type) == category


class TestGetMembers:
    """Test member extraction from a parsed file."""

    def test_members_in_source_order(self, code_model, fixtures_dir):
        names = [m.name for m in code_model.get_members(fixtures_dir / "SampleClass.cs")]

        assert names.index("OrderService") < names.index("Place")
        assert names.index("Place") < names.index("SubmitAsync")
        assert names.index("Reset") < names.index("Price")
        assert names[-1] == "Save"

    def test_member_kinds(self, members):
        assert members["OrderService"].kind == MemberKind.CONSTRUCTOR
        assert members["Retries"].kind == MemberKind.PROPERTY
        assert members["Name"].kind == MemberKind.PROPERTY
        assert members["_retries"].kind == MemberKind.FIELD
        assert members["Completed"].kind == MemberKind.EVENT
        assert members["Place"].kind == MemberKind.METHOD

    def test_method_signature(self, members):
        place = members["Place"]

        assert place.signature.parameters == ["sku", "quantity"]
        assert place.signature.return_type == "bool"
        assert place.signature.return_category == ReturnCategory.VALUE

    def test_task_returns(self, members):
        assert members["SubmitAsync"].signature.return_category == ReturnCategory.VOID
        assert members["CountAsync"].signature.return_category == ReturnCategory.VALUE

    def test_type_parameters(self, members):
        assert members["Convert"].signature.type_parameters == ["T"]

    def test_non_methods_have_no_return_category(self, members):
        assert members["Name"].signature.return_category == ReturnCategory.NOT_APPLICABLE
        assert members["OrderService"].signature.return_category == ReturnCategory.NOT_APPLICABLE

    def test_visibility(self, members):
        assert members["Place"].visibility == MemberVisibility.PUBLIC
        assert members["_retries"].visibility == MemberVisibility.PRIVATE
        assert members["Convert"].visibility == MemberVisibility.INTERNAL
        assert members["Reset"].visibility == MemberVisibility.PROTECTED_INTERNAL
        assert members["Save"].visibility == MemberVisibility.PUBLIC

    def test_existing_documentation_detected(self, members):
        retries = members["Retries"]

        assert retries.has_documentation is True
        assert "Gets the configured retry count." in retries.documentation
        assert members["Name"].has_documentation is False

    def test_span_includes_attributes(self, members):
        place = members["Place"]

        assert place.source_span.start_line == 24
        assert place.source_span.end_line == 28
        assert "[Obsolete" in place.source_text

    def test_nested_type_container(self, members):
        assert members["Place"].container == "OrderService"
        assert members["Price"].container == "OrderService.Line"
        assert members["Save"].container == "IOrderStore"


class TestErrors:
    def test_missing_file(self, code_model, tmp_path):
        with pytest.raises(CodeModelError):
            code_model.get_members(tmp_path / "Missing.cs")

    def test_syntax_error(self, code_model, tmp_path):
        path = tmp_path / "Broken.cs"
        path.write_text("public class Broken { public void M( { }", encoding="utf-8")

        with pytest.raises(CodeModelError):
            code_model.get_members(path)
