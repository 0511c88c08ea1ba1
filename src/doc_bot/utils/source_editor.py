"""Working copy of a single source file."""

import codecs
import logging
from pathlib import Path

from doc_bot.agents.exceptions import CodeModelError, RepositoryIOError
from doc_bot.models import SourceSpan
from doc_bot.utils.diff_generator import (
    detect_newline,
    generate_unified_diff,
    leading_indentation,
)

logger = logging.getLogger(__name__)

DOC_COMMENT_PREFIX = "///"


class SourceEditor:
    """Stages edits to one file and can restore its exact original bytes.

    Documentation is staged against line numbers of the file as it was
    first read, so spans reported by the code model stay valid while
    earlier members gain comment lines.
    """

    def __init__(self, path: str | Path, display_path: str | None = None) -> None:
        self.path = Path(path)
        self.display_path = display_path or str(path)
        try:
            self._original_bytes = self.path.read_bytes()
        except OSError as e:
            raise RepositoryIOError(f"Failed to read '{self.display_path}': {e}") from e

        self._bom = self._original_bytes.startswith(codecs.BOM_UTF8)
        try:
            self._original_text = self._original_bytes.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise CodeModelError(
                f"File '{self.display_path}' is not valid UTF-8: {e}"
            ) from e

        self.newline = detect_newline(self._original_text)
        self._original_line_count = len(self._original_text.splitlines())
        self._lines: list[str] = self._original_text.splitlines(keepends=True)
        self._insertions: list[tuple[int, int]] = []  # (original line, lines added)
        self._replaced = False

    @property
    def original_content(self) -> str:
        return self._original_text

    @property
    def content(self) -> str:
        return "".join(self._lines)

    @property
    def is_modified(self) -> bool:
        return self.content != self._original_text

    def stage_documentation(
        self,
        span: SourceSpan,
        doc_lines: list[str],
        prefix: str = DOC_COMMENT_PREFIX,
    ) -> None:
        """Insert a comment block above the member starting at ``span.start_line``.

        Args:
            span: Span of the member in the original file.
            doc_lines: Bare documentation lines, without comment prefix.
            prefix: Comment prefix written before each line.

        Raises:
            ValueError: If the span lies outside the original file, or the
                content was already replaced by a build fix.
        """
        if self._replaced:
            raise ValueError("Cannot stage documentation after the content was replaced")
        if span.start_line > self._original_line_count:
            raise ValueError(
                f"Line {span.start_line} is outside '{self.display_path}' "
                f"({self._original_line_count} lines)"
            )
        if not doc_lines:
            return

        offset = sum(count for line, count in self._insertions if line <= span.start_line)
        index = span.start_line - 1 + offset
        indentation = leading_indentation(self._lines[index])
        block = [f"{indentation}{prefix} {line}{self.newline}" for line in doc_lines]
        self._lines[index:index] = block
        self._insertions.append((span.start_line, len(block)))

    def replace_content(self, content: str) -> None:
        """Replace the whole working copy, e.g. with a build fix."""
        self._lines = content.splitlines(keepends=True)
        self._replaced = True

    def flush(self) -> None:
        """Write the working copy to disk."""
        data = self.content.encode("utf-8")
        if self._bom:
            data = codecs.BOM_UTF8 + data
        self._write(data)

    def revert(self) -> None:
        """Restore the file to the bytes read when the editor was created."""
        self._write(self._original_bytes)
        self._lines = self._original_text.splitlines(keepends=True)
        self._insertions.clear()
        self._replaced = False
        logger.info("Reverted %s to its original content", self.display_path)

    def diff(self) -> str:
        return generate_unified_diff(self.display_path, self._original_text, self.content)

    def _write(self, data: bytes) -> None:
        try:
            self.path.write_bytes(data)
        except OSError as e:
            raise RepositoryIOError(f"Failed to write '{self.display_path}': {e}") from e
