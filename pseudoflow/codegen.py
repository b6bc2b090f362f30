"""
pseudoflow/codegen.py
=====================

Low-level text emission shared by the C and Python backends.

:class:`CodeEmitter` tracks indentation, offers a block context manager for
headers that open an indented region, and keeps a source map from each
generated line back to the pseudocode line it came from.  The Python
runtime uses that map to report execution errors against the user's source.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from io import StringIO
from typing import Any, Dict, Optional, Tuple

PYTHON_COMMENTS: Tuple[str, str] = ("# ", "")
C_COMMENTS: Tuple[str, str] = ("/* ", " */")


class CodeEmitter:
    """Low-level code emission with indentation management.

    Provides a structured way to emit code with:
    - Automatic indentation tracking
    - Block context managers
    - Line and source mapping
    - String literal escaping
    """

    def __init__(
        self,
        indent_str: str = "    ",
        comments: Tuple[str, str] = PYTHON_COMMENTS,
    ) -> None:
        self._buffer = StringIO()
        self._indent_str = indent_str
        self._indent_level = 0
        self._line_number = 1
        self._comments = comments
        self._source_map: Dict[int, int] = {}
        self._current_source: Optional[int] = None

    @property
    def level(self) -> int:
        return self._indent_level

    def emit(self, code: str) -> None:
        """Emit a line of code at the current indentation."""
        if code.strip():
            self._buffer.write(self._indent_str * self._indent_level)
            self._buffer.write(code)
            if self._current_source is not None:
                self._source_map[self._line_number] = self._current_source
        self._buffer.write("\n")
        self._line_number += 1

    def emit_blank(self, count: int = 1) -> None:
        """Emit blank lines."""
        for _ in range(count):
            self._buffer.write("\n")
            self._line_number += 1

    def emit_comment(self, text: str) -> None:
        opener, closer = self._comments
        for line in text.split("\n"):
            if closer:
                line = line.replace(closer.strip(), "* /")
            self.emit(f"{opener}{line}{closer}")

    def indent(self) -> None:
        """Increase indentation level."""
        self._indent_level += 1

    def dedent(self, minimum: int = 0) -> None:
        """Decrease indentation level, never below *minimum*."""
        self._indent_level = max(minimum, self._indent_level - 1)

    def block(self, header: str) -> "CodeEmitter._BlockContext":
        """Context manager for indented blocks."""
        return self._BlockContext(self, header)

    class _BlockContext:
        """Context manager for code blocks."""

        def __init__(self, emitter: "CodeEmitter", header: str) -> None:
            self._emitter = emitter
            self._header = header

        def __enter__(self) -> "CodeEmitter":
            self._emitter.emit(self._header)
            self._emitter.indent()
            return self._emitter

        def __exit__(self, *args: Any) -> None:
            self._emitter.dedent()

    def set_source(self, line: Optional[int]) -> None:
        """Set the pseudocode line that following output maps back to."""
        self._current_source = line

    def get_code(self) -> str:
        """Get the generated code."""
        return self._buffer.getvalue()

    def get_source_map(self) -> Dict[int, int]:
        """Get the source map (generated line -> pseudocode line)."""
        return dict(self._source_map)

    @staticmethod
    def escape_string(s: str) -> str:
        """Escape a string for Python code."""
        return repr(s)


@dataclass(frozen=True)
class GeneratedCode:
    """Output of a backend: the program text and its source map."""

    code: str
    source_map: Dict[int, int] = field(default_factory=dict)
    entry_point: Optional[str] = None

    def source_line(self, generated_line: int) -> Optional[int]:
        """Pseudocode line for a generated line, if it maps back to one."""
        return self.source_map.get(generated_line)

    def __str__(self) -> str:
        return self.code
