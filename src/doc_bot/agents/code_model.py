"""C# member extraction using tree-sitter."""

import logging
from pathlib import Path

import tree_sitter_c_sharp as tscs
from tree_sitter import Language, Node, Parser

from doc_bot.agents.exceptions import CodeModelError
from doc_bot.models import (
    MemberDescriptor,
    MemberKind,
    MemberSignature,
    MemberVisibility,
    ReturnCategory,
    SourceSpan,
)

logger = logging.getLogger(__name__)

CSHARP_LANGUAGE = Language(tscs.language())

# Constants
MAX_SOURCE_CHARS = 4_000
TYPE_DECLARATIONS = frozenset({
    "class_declaration",
    "struct_declaration",
    "interface_declaration",
    "record_declaration",
    "record_struct_declaration",
})
NAMESPACE_DECLARATIONS = frozenset({
    "namespace_declaration",
    "file_scoped_namespace_declaration",
})
MEMBER_KINDS = {
    "method_declaration": MemberKind.METHOD,
    "constructor_declaration": MemberKind.CONSTRUCTOR,
    "property_declaration": MemberKind.PROPERTY,
    "field_declaration": MemberKind.FIELD,
    "event_field_declaration": MemberKind.EVENT,
    "event_declaration": MemberKind.EVENT,
}
VOID_LIKE_RETURN_TYPES = frozenset({"void", "Task", "ValueTask"})


def get_parser() -> Parser:
    """Return a tree-sitter Parser configured for C#."""
    parser = Parser()
    parser.language = CSHARP_LANGUAGE
    return parser


def classify_return_type(return_type: str | None) -> ReturnCategory:
    """Decide whether a ``<returns>`` tag can describe anything.

    ``void``, ``Task`` and ``ValueTask`` (optionally namespace-qualified)
    produce no value; generic ``Task<T>`` does.
    """
    if not return_type:
        return ReturnCategory.NOT_APPLICABLE
    simple = return_type.strip().rsplit(".", 1)[-1]
    if simple in VOID_LIKE_RETURN_TYPES:
        return ReturnCategory.VOID
    return ReturnCategory.VALUE


def _text(node: Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8")


def _name_of(node: Node) -> str:
    name_node = node.child_by_field_name("name")
    if name_node is None:
        for child in reversed(node.named_children):
            if child.type == "identifier":
                name_node = child
                break
    return _text(name_node)


class CSharpCodeModel:
    """Reports documentable members of a C# file in source order."""

    def __init__(self) -> None:
        self._parser = get_parser()

    def get_members(self, file_path: str | Path) -> list[MemberDescriptor]:
        """Parse a file and return its members.

        Args:
            file_path: Path to a ``.cs`` file.

        Returns:
            Members in source order, nested types included.

        Raises:
            CodeModelError: If the file cannot be read or does not parse cleanly.
        """
        try:
            source_bytes = Path(file_path).read_bytes()
        except OSError as e:
            raise CodeModelError(f"Failed to read '{file_path}': {e}") from e

        tree = self._parser.parse(source_bytes)
        if tree.root_node.has_error:
            raise CodeModelError(f"'{file_path}' contains syntax the C# parser cannot read")

        members: list[MemberDescriptor] = []
        self._walk(tree.root_node, container=None, members=members)
        logger.debug("Found %d member(s) in %s", len(members), file_path)
        return members

    def _walk(self, node: Node, container: str | None, members: list[MemberDescriptor]) -> None:
        for child in node.named_children:
            if child.type in NAMESPACE_DECLARATIONS:
                self._walk(child.child_by_field_name("body") or child, container, members)
            elif child.type in TYPE_DECLARATIONS:
                self._walk_type(child, container, members)
            elif child.type == "declaration_list":
                self._walk(child, container, members)

    def _walk_type(
        self,
        node: Node,
        container: str | None,
        members: list[MemberDescriptor],
    ) -> None:
        name = _name_of(node)
        qualified = f"{container}.{name}" if container else name
        body = node.child_by_field_name("body")
        if body is None:
            body = next((c for c in node.named_children if c.type == "declaration_list"), None)
        if body is None:
            return

        is_interface = node.type == "interface_declaration"
        for child in body.named_children:
            if child.type in TYPE_DECLARATIONS:
                self._walk_type(child, qualified, members)
                continue
            kind = MEMBER_KINDS.get(child.type)
            if kind is None:
                continue
            member = self._describe(child, kind, qualified, is_interface)
            if member is not None:
                members.append(member)

    def _describe(
        self,
        node: Node,
        kind: MemberKind,
        container: str,
        is_interface: bool,
    ) -> MemberDescriptor | None:
        name, return_type, parameters, type_parameters = self._signature_parts(node, kind)
        if not name:
            return None

        documentation = self._doc_comment(node)
        source_text = _text(node)
        if len(source_text) > MAX_SOURCE_CHARS:
            source_text = source_text[:MAX_SOURCE_CHARS] + "\n// ..."

        if kind == MemberKind.METHOD:
            return_category = classify_return_type(return_type)
        else:
            return_category = ReturnCategory.NOT_APPLICABLE

        return MemberDescriptor(
            name=name,
            kind=kind,
            signature=MemberSignature(
                name=name,
                parameters=parameters,
                type_parameters=type_parameters,
                return_type=return_type,
                return_category=return_category,
            ),
            visibility=self._visibility(node, is_interface),
            has_documentation=documentation is not None,
            documentation=documentation,
            source_span=SourceSpan(
                start_line=node.start_point[0] + 1,
                end_line=node.end_point[0] + 1,
            ),
            source_text=source_text,
            container=container,
        )

    def _signature_parts(
        self,
        node: Node,
        kind: MemberKind,
    ) -> tuple[str, str | None, list[str], list[str]]:
        if kind in (MemberKind.FIELD, MemberKind.EVENT) and node.type != "event_declaration":
            declaration = next(
                (c for c in node.named_children if c.type == "variable_declaration"),
                None,
            )
            if declaration is None:
                return "", None, [], []
            names = [
                _name_of(declarator)
                for declarator in declaration.named_children
                if declarator.type == "variable_declarator"
            ]
            type_node = declaration.child_by_field_name("type")
            return ", ".join(n for n in names if n), _text(type_node) or None, [], []

        name = _name_of(node)
        type_node = node.child_by_field_name("returns") or node.child_by_field_name("type")
        return_type = _text(type_node) or None

        parameters: list[str] = []
        parameter_list = node.child_by_field_name("parameters")
        if parameter_list is not None:
            for parameter in parameter_list.named_children:
                if parameter.type == "parameter":
                    parameter_name = _name_of(parameter)
                    if parameter_name:
                        parameters.append(parameter_name)

        type_parameters: list[str] = []
        type_parameter_list = node.child_by_field_name("type_parameters")
        if type_parameter_list is None:
            type_parameter_list = next(
                (c for c in node.named_children if c.type == "type_parameter_list"),
                None,
            )
        if type_parameter_list is not None:
            for type_parameter in type_parameter_list.named_children:
                if type_parameter.type == "type_parameter":
                    type_parameters.append(_name_of(type_parameter) or _text(type_parameter))

        return name, return_type, parameters, type_parameters

    @staticmethod
    def _doc_comment(node: Node) -> str | None:
        lines: list[str] = []
        expected_row = node.start_point[0] - 1
        sibling = node.prev_named_sibling
        while sibling is not None and sibling.type == "comment":
            text = _text(sibling).strip()
            if not text.startswith("///") or sibling.end_point[0] != expected_row:
                break
            lines.insert(0, text)
            expected_row = sibling.start_point[0] - 1
            sibling = sibling.prev_named_sibling

        for child in node.named_children:
            if child.type != "comment":
                break
            text = _text(child).strip()
            if text.startswith("///"):
                lines.append(text)

        return "\n".join(lines) if lines else None

    @staticmethod
    def _visibility(node: Node, is_interface: bool) -> MemberVisibility:
        modifiers = {
            _text(child).strip() for child in node.children if child.type == "modifier"
        }
        if "public" in modifiers:
            return MemberVisibility.PUBLIC
        if "protected" in modifiers and "internal" in modifiers:
            return MemberVisibility.PROTECTED_INTERNAL
        if "protected" in modifiers and "private" in modifiers:
            return MemberVisibility.PRIVATE_PROTECTED
        if "protected" in modifiers:
            return MemberVisibility.PROTECTED
        if "internal" in modifiers:
            return MemberVisibility.INTERNAL
        if "private" in modifiers:
            return MemberVisibility.PRIVATE
        return MemberVisibility.PUBLIC if is_interface else MemberVisibility.PRIVATE
