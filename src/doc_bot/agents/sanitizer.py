"""Repair and validation of generated XML documentation blocks.

The sanitizer never trusts model output. It extracts the ``<doc>`` block,
parses the XML loosely, and rewrites it against the member's real
signature. Every corrective action is counted so runs can report how much
repair each model needed.
"""

import logging
import re

from doc_bot.agents.exceptions import GenerationInvalidError
from doc_bot.models import MemberSignature, ReturnCategory, SanitizeResult

logger = logging.getLogger(__name__)

# Constants
DOC_BLOCK_PATTERN = re.compile(r"<doc>(.*?)</doc>", re.DOTALL | re.IGNORECASE)
TAG_PATTERN = re.compile(r"<(/?)([A-Za-z][\w:.-]*)((?:\s[^<>]*?)?)\s*(/?)>")
NAME_ATTR_PATTERN = re.compile(r"""\bname\s*=\s*(?:"([^"]*)"|'([^']*)')""")
FENCE_PATTERN = re.compile(r"^\s*```")
LITERAL_ESCAPES = {"\\r\\n": "\n", "\\n": "\n", "\\t": "    "}
# Code spans are matched first so escapes inside them stay literal
ESCAPE_OR_CODE_PATTERN = re.compile(
    r"(<(c|code)\b[^>]*>.*?</\2\s*>)|\\r\\n|\\n|\\t", re.DOTALL | re.IGNORECASE
)

# Tags that may stand on their own in a documentation block
TOP_LEVEL_TAGS = frozenset({
    "summary", "remarks", "param", "typeparam", "returns", "value",
    "exception", "example", "seealso", "inheritdoc", "include", "permission",
})
# Tags that only make sense inside another element
INLINE_TAGS = frozenset({
    "see", "c", "code", "para", "paramref", "typeparamref", "list",
    "listheader", "item", "term", "description", "b", "i", "br",
})
SINGLE_OCCURRENCE_TAGS = frozenset({
    "summary", "remarks", "returns", "value", "example", "inheritdoc",
})
SUMMARY_TAGS = frozenset({"summary", "inheritdoc"})


class _Element:
    """Loosely parsed XML element that keeps its original tag text."""

    __slots__ = ("name", "open_text", "close_text", "children", "closed")

    def __init__(self, name: str, open_text: str, closed: bool = False) -> None:
        self.name = name
        self.open_text = open_text
        self.close_text = ""
        self.children: list = []
        self.closed = closed

    @property
    def self_closing(self) -> bool:
        return self.closed and not self.close_text and self.open_text.endswith("/>")

    @property
    def attr_name(self) -> str | None:
        match = NAME_ATTR_PATTERN.search(self.open_text)
        if not match:
            return None
        return match.group(1) if match.group(1) is not None else match.group(2)

    def render(self) -> str:
        inner = "".join(
            child if isinstance(child, str) else child.render()
            for child in self.children
        )
        return f"{self.open_text}{inner}{self.close_text}"

    def has_content(self) -> bool:
        for child in self.children:
            if isinstance(child, str):
                if child.strip():
                    return True
            else:
                return True
        return False


class DocSanitizer:
    """Validates and repairs generated documentation against a member signature."""

    def sanitize(self, raw_text: str, signature: MemberSignature) -> SanitizeResult:
        """Extract and repair the documentation block in a model response.

        Args:
            raw_text: Raw text returned by the inference provider.
            signature: The member's real signature.

        Returns:
            SanitizeResult with the cleaned block, its lines and the number
            of corrective actions applied.

        Raises:
            GenerationInvalidError: If no ``<doc>`` wrapper is present, or if
                nothing usable remains after repair.
        """
        match = DOC_BLOCK_PATTERN.search(raw_text or "")
        if not match:
            raise GenerationInvalidError(
                f"No <doc> block found in response for '{signature.name}'",
                fix_count=0,
            )

        fixes = 0
        body, step_fixes = self._normalize_body(match.group(1))
        fixes += step_fixes

        root, step_fixes = self._parse(body)
        fixes += step_fixes

        elements, step_fixes = self._repair_top_level(root.children, signature)
        fixes += step_fixes

        if not any(element.name.lower() in SUMMARY_TAGS for element in elements):
            raise GenerationInvalidError(
                f"No usable summary for '{signature.name}' after repair",
                fix_count=fixes,
            )

        lines: list[str] = []
        for element in elements:
            lines.extend(
                line.strip() for line in element.render().splitlines() if line.strip()
            )

        if fixes:
            logger.info(
                "Applied %d sanitization fix(es) to documentation for %s",
                fixes,
                signature.name,
            )
        return SanitizeResult(
            documentation="\n".join(lines),
            lines=lines,
            fix_count=fixes,
        )

    # ------------------------------------------------------------------
    # Text normalization
    # ------------------------------------------------------------------

    def _normalize_body(self, body: str) -> tuple[str, int]:
        """Expand literal escapes outside code spans and strip comment prefixes and prose."""
        fixes = 0
        expanded = False

        def _expand(match: re.Match) -> str:
            nonlocal expanded
            if match.group(1):
                return match.group(1)
            expanded = True
            return LITERAL_ESCAPES[match.group(0)]

        body = ESCAPE_OR_CODE_PATTERN.sub(_expand, body)
        if expanded:
            logger.warning("Expanded literal escape sequences in generated documentation")
            fixes += 1

        lines = [line for line in body.splitlines() if not FENCE_PATTERN.match(line)]
        if any(line.strip().startswith("///") for line in lines):
            kept: list[str] = []
            dropped_prose = False
            for line in lines:
                stripped = line.strip()
                if stripped.startswith("///"):
                    kept.append(stripped[3:].removeprefix(" ").rstrip("\\"))
                elif stripped:
                    dropped_prose = True
            if dropped_prose:
                logger.warning("Dropped prose lines mixed into the documentation comment")
                fixes += 1
            lines = kept
        return "\n".join(lines), fixes

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def _parse(self, body: str) -> tuple[_Element, int]:
        """Build an element tree, dropping orphaned and unclosed tags."""
        fixes = 0
        root = _Element("#root", "", closed=True)
        stack = [root]
        position = 0

        for match in TAG_PATTERN.finditer(body):
            if match.start() > position:
                stack[-1].children.append(body[position:match.start()])
            position = match.end()

            is_closing = match.group(1) == "/"
            name = match.group(2)
            if match.group(4) == "/" and not is_closing:
                stack[-1].children.append(_Element(name, match.group(0), closed=True))
            elif not is_closing:
                element = _Element(name, match.group(0))
                stack[-1].children.append(element)
                stack.append(element)
            else:
                depth = self._find_open(stack, name)
                if depth is None:
                    logger.warning("Dropped orphaned closing tag </%s>", name)
                    fixes += 1
                    continue
                while len(stack) - 1 > depth:
                    stack.pop()
                element = stack.pop()
                element.close_text = match.group(0)
                element.closed = True

        if position < len(body):
            stack[-1].children.append(body[position:])

        fixes += self._unwrap_unclosed(root)
        return root, fixes

    @staticmethod
    def _find_open(stack: list[_Element], name: str) -> int | None:
        for depth in range(len(stack) - 1, 0, -1):
            if stack[depth].name.lower() == name.lower():
                return depth
        return None

    def _unwrap_unclosed(self, element: _Element) -> int:
        fixes = 0
        children: list = []
        for child in element.children:
            if isinstance(child, str):
                children.append(child)
                continue
            fixes += self._unwrap_unclosed(child)
            if child.closed:
                children.append(child)
            else:
                logger.warning("Dropped unclosed tag <%s> and kept its text", child.name)
                fixes += 1
                children.extend(child.children)
        element.children = children
        return fixes

    # ------------------------------------------------------------------
    # Signature-aware repair
    # ------------------------------------------------------------------

    def _repair_top_level(
        self,
        nodes: list,
        signature: MemberSignature,
    ) -> tuple[list[_Element], int]:
        fixes = 0
        parameters = set(signature.parameters)
        type_parameters = set(signature.type_parameters)

        flat, step_fixes = self._unwrap_unknown(nodes)
        fixes += step_fixes

        elements: list[_Element] = []
        loose: list = []
        seen_single: set[str] = set()
        seen_params: set[tuple[str, str]] = set()

        for node in flat:
            if isinstance(node, str) or node.name.lower() in INLINE_TAGS:
                loose.append(node)
                continue

            tag = node.name.lower()
            if tag in ("param", "typeparam"):
                known = parameters if tag == "param" else type_parameters
                name = node.attr_name
                if name not in known:
                    logger.warning("Removed <%s> for unknown name '%s'", tag, name)
                    fixes += 1
                    continue
                if (tag, name) in seen_params:
                    logger.warning("Removed duplicate <%s name=\"%s\">", tag, name)
                    fixes += 1
                    continue
                seen_params.add((tag, name))
            elif tag == "returns" and signature.return_category != ReturnCategory.VALUE:
                logger.warning(
                    "Removed <returns> from %s member %s",
                    signature.return_category.value,
                    signature.name,
                )
                fixes += 1
                continue

            if tag in SINGLE_OCCURRENCE_TAGS:
                if tag in seen_single:
                    logger.warning("Removed duplicate <%s>", tag)
                    fixes += 1
                    continue
                seen_single.add(tag)

            fixes += self._strip_references(node, parameters, type_parameters)

            if not node.self_closing and not node.has_content():
                logger.debug("Removed empty <%s>", tag)
                fixes += 1
                continue

            elements.append(node)

        fixes += self._place_loose_text(elements, loose)
        fixes += self._add_missing_params(elements, signature)
        return elements, fixes

    def _unwrap_unknown(self, nodes: list) -> tuple[list, int]:
        """Replace unrecognized wrapper elements with their children."""
        fixes = 0
        flat: list = []
        for node in nodes:
            if isinstance(node, str):
                flat.append(node)
                continue
            tag = node.name.lower()
            if tag in TOP_LEVEL_TAGS or tag in INLINE_TAGS:
                flat.append(node)
                continue
            logger.warning("Unwrapped unknown tag <%s>", node.name)
            fixes += 1
            children, child_fixes = self._unwrap_unknown(node.children)
            fixes += child_fixes
            flat.extend(children)
        return flat, fixes

    def _strip_references(
        self,
        element: _Element,
        parameters: set[str],
        type_parameters: set[str],
    ) -> int:
        """Remove paramref/typeparamref children that name nothing real."""
        fixes = 0
        kept: list = []
        for child in element.children:
            if isinstance(child, str):
                kept.append(child)
                continue
            tag = child.name.lower()
            if tag in ("paramref", "typeparamref"):
                known = parameters if tag == "paramref" else type_parameters
                if child.attr_name not in known:
                    logger.warning("Removed <%s> to unknown name '%s'", tag, child.attr_name)
                    fixes += 1
                    continue
            fixes += self._strip_references(child, parameters, type_parameters)
            kept.append(child)
        element.children = kept
        return fixes

    def _place_loose_text(self, elements: list[_Element], loose: list) -> int:
        text = " ".join(
            "".join(
                node if isinstance(node, str) else node.render() for node in loose
            ).split()
        )
        if not text:
            return 0

        if any(element.name.lower() in SUMMARY_TAGS for element in elements):
            logger.warning("Dropped text outside of any documentation tag")
            return 1

        summary = _Element("summary", "<summary>", closed=True)
        summary.children = [text]
        summary.close_text = "</summary>"
        elements.insert(0, summary)
        logger.warning("Wrapped loose documentation text in <summary>")
        return 1

    def _add_missing_params(
        self,
        elements: list[_Element],
        signature: MemberSignature,
    ) -> int:
        documented = {
            element.attr_name for element in elements if element.name.lower() == "param"
        }
        missing = [name for name in signature.parameters if name not in documented]
        if not missing:
            return 0

        insert_at = 0
        for index, element in enumerate(elements):
            if element.name.lower() in ("summary", "typeparam", "param", "inheritdoc"):
                insert_at = index + 1
        for name in missing:
            stand_in = _Element("param", f'<param name="{name}">', closed=True)
            stand_in.children = [f"The {name}."]
            stand_in.close_text = "</param>"
            elements.insert(insert_at, stand_in)
            insert_at += 1
            logger.warning("Added stand-in <param> for undocumented parameter '%s'", name)
        return len(missing)
