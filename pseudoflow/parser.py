"""
pseudoflow/parser.py
====================

Structural parser: raw pseudocode text → :class:`ProgramModel` + diagnostics.

The scan is a single pass over the source lines with a small amount of
state: the nesting stack of :class:`BlockFrame`, the current indentation
level (in units of ``AnalysisConfig.indent_width`` spaces), the function
currently being filled (if any) and whether the ``inicio`` section is open.

Every problem becomes a :class:`Diagnostic`; the scan never stops early and
never raises, so callers always get the best-effort model.

Indentation rules
-----------------
A line is expected at the current level, except:

* ``finsi`` expects two levels less (it closes both the ``si`` and the
  branch opened by ``entonces``/``sino``);
* ``sino`` and the other closers (``fin``, ``finmientras``, ``finpara``,
  ``hasta(...)``) expect one level less.

Leading tabs are always an error, independently of the depth check.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from pseudoflow.config import AnalysisConfig
from pseudoflow.errors import Codes, Diagnostic, DiagnosticReporter, SourceSpan
from pseudoflow.grammar import StatementKind, classify
from pseudoflow.model import (
    CLOSERS,
    OPENERS,
    BlockFrame,
    BlockKind,
    FunctionBuilder,
    ProgramModel,
    Statement,
)

logger = logging.getLogger(__name__)

_LINE_SPLIT = re.compile(r"\r?\n")
_LEADING = re.compile(r"^[\t ]*")

_CLOSER_WORDS = {
    StatementKind.END_WHILE: "finmientras",
    StatementKind.END_FOR: "finpara",
    StatementKind.UNTIL: "hasta",
    StatementKind.END_IF: "finsi",
}

_ONE_LEVEL_BACK = (
    StatementKind.ELSE,
    StatementKind.END,
    StatementKind.END_WHILE,
    StatementKind.END_FOR,
    StatementKind.UNTIL,
)


@dataclass(frozen=True)
class ParseResult:
    model: ProgramModel
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def has_errors(self) -> bool:
        return any(d.severity.is_error() for d in self.diagnostics)


@dataclass
class _Scan:
    """State of one parse. Discarded when the parse finishes."""

    text: str
    indent_width: int
    lines: List[str] = field(default_factory=list)
    line_starts: List[int] = field(default_factory=list)
    reporter: DiagnosticReporter = field(default_factory=DiagnosticReporter)
    stack: List[BlockFrame] = field(default_factory=list)
    indent_level: int = 0
    current_function: Optional[FunctionBuilder] = None
    in_main: bool = False
    functions: List[FunctionBuilder] = field(default_factory=list)
    main_body: List[Statement] = field(default_factory=list)
    program_name: Optional[str] = None

    def __post_init__(self) -> None:
        self.lines = _LINE_SPLIT.split(self.text)
        self.line_starts = [0]
        for pos, char in enumerate(self.text):
            if char == "\n":
                self.line_starts.append(pos + 1)

    # ─────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────

    def line_start(self, index: int) -> int:
        return self.line_starts[min(index, len(self.line_starts) - 1)]

    def line_span(self, index: int) -> SourceSpan:
        start = self.line_start(index)
        return SourceSpan(start, start + len(self.lines[index]), line=index + 1)

    def error(self, code, index: int, message: str, span: Optional[SourceSpan] = None) -> None:
        if span is None:
            span = self.line_span(index)
        self.reporter.report(code, span, message)

    def append(self, stmt: Statement) -> None:
        if self.current_function is not None:
            self.current_function.body.append(stmt)
        elif self.in_main:
            self.main_body.append(stmt)
        else:
            logger.debug("line %d is outside any scope, dropped", stmt.line)

    def expected_indent(self, kind: StatementKind) -> int:
        if kind is StatementKind.END_IF:
            return max(0, self.indent_level - 2)
        if kind in _ONE_LEVEL_BACK:
            return max(0, self.indent_level - 1)
        return self.indent_level

    # ─────────────────────────────────────────────────────────────
    # Main loop
    # ─────────────────────────────────────────────────────────────

    def run(self) -> ParseResult:
        for index, raw in enumerate(self.lines):
            if raw.strip():
                self.scan_line(index, raw)
        self.finish()
        functions = tuple(builder.freeze() for builder in self.functions)
        model = ProgramModel(
            functions=functions,
            main_body=tuple(self.main_body),
            program_name=self.program_name,
        )
        return ParseResult(model=model, diagnostics=tuple(self.reporter.diagnostics))

    def scan_line(self, index: int, raw: str) -> None:
        text = raw.strip()
        shape = classify(text)
        kind = shape.kind
        stmt = Statement(text=text, line=index + 1, shape=shape)

        if kind is StatementKind.COMMENT:
            self.append(stmt)
            return

        self.check_indentation(index, raw, kind)

        if kind in (StatementKind.OPAQUE, StatementKind.LEGACY_ARRAY):
            self.reporter.report(
                Codes.UNRECOGNIZED_STATEMENT,
                self.line_span(index),
                "Linea no reconocida del pseudocodigo.",
            )
        if kind is StatementKind.OPAQUE:
            self.append(stmt)
            return

        if kind is StatementKind.LEGACY_ARRAY:
            self.error(
                Codes.LEGACY_ARRAY, index,
                "Sintaxis invalida. Usa: tipo nombre[cantidad]. Ejemplo: entero numeros[5]",
            )
            self.append(stmt)
            return

        if kind is StatementKind.PROGRAM:
            if self.program_name is None:
                self.program_name = shape.name
            return

        if kind in OPENERS:
            self.open_block(index, stmt)
        elif kind in CLOSERS:
            self.close_block(index, stmt)
        elif kind in (StatementKind.THEN, StatementKind.ELSE):
            self.switch_branch(index, stmt)
        elif kind is StatementKind.END:
            self.close_scope(index)
        else:
            self.append(stmt)

    def check_indentation(self, index: int, raw: str, kind: StatementKind) -> None:
        leading = _LEADING.match(raw).group(0)
        span = SourceSpan(
            self.line_start(index),
            self.line_start(index) + len(leading),
            line=index + 1,
        )
        if "\t" in leading:
            self.error(
                Codes.TAB_INDENT, index,
                "La indentacion debe usar espacios, no tabulaciones.",
                span,
            )
        expected = self.expected_indent(kind) * self.indent_width
        if leading.count(" ") != expected:
            self.error(Codes.BAD_INDENT, index, f"Se esperaban {expected} espacios.", span)

    # ─────────────────────────────────────────────────────────────
    # Block handling
    # ─────────────────────────────────────────────────────────────

    def open_block(self, index: int, stmt: Statement) -> None:
        block = OPENERS[stmt.kind]
        self.indent_level += 1
        self.stack.append(BlockFrame(block, index))

        if block is BlockKind.FUNCTION:
            if stmt.kind is StatementKind.MALFORMED_FUNCTION:
                self.error(
                    Codes.BAD_FUNCTION_HEADER, index,
                    "Encabezado de funcion invalido. Usa: funcion Nombre(param)",
                )
                self.current_function = None
                return
            builder = FunctionBuilder(
                name=stmt.shape.name,
                parameters=stmt.shape.params,
                header_line=stmt.line,
            )
            self.functions.append(builder)
            self.current_function = builder
            return

        if block is BlockKind.MAIN:
            self.in_main = True
            return

        self.append(stmt)

    def close_block(self, index: int, stmt: Statement) -> None:
        wanted = CLOSERS[stmt.kind]
        last = self.stack.pop() if self.stack else None
        if last is None or last.kind is not wanted:
            self.error(
                Codes.UNMATCHED_CLOSER, index,
                f'Hay un "{_CLOSER_WORDS[stmt.kind]}" sin "{wanted.value}".',
            )
            return
        step = 2 if stmt.kind is StatementKind.END_IF else 1
        self.indent_level = max(0, self.indent_level - step)
        self.append(stmt)

    def switch_branch(self, index: int, stmt: Statement) -> None:
        word = stmt.text.lower()
        if not any(frame.kind is BlockKind.IF for frame in self.stack):
            self.error(Codes.BRANCH_WITHOUT_IF, index, f'"{word}" sin un "si" abierto.')
            return
        if stmt.kind is StatementKind.THEN:
            self.indent_level += 1
        else:
            self.indent_level = max(0, self.indent_level - 1) + 1
        self.append(stmt)

    def close_scope(self, index: int) -> None:
        if not self.stack:
            self.error(Codes.UNMATCHED_CLOSER, index, 'Hay un "fin" sin bloque abierto.')
            return
        last = self.stack.pop()
        if not last.kind.is_scope:
            self.error(Codes.MISMATCHED_CLOSER, index, "Bloque abierto con un cierre incorrecto.")
            return
        self.indent_level = max(0, self.indent_level - 1)
        if last.kind is BlockKind.FUNCTION:
            self.current_function = None
        else:
            self.in_main = False

    def finish(self) -> None:
        for frame in self.stack:
            self.error(
                Codes.UNCLOSED_BLOCK, frame.line_index,
                f'Falta cerrar el bloque con "{frame.kind.closer}".',
            )
        if not any(line.strip().lower() == "inicio" for line in self.lines):
            self.reporter.report(
                Codes.MISSING_MAIN,
                SourceSpan(0, min(len(self.text), 8), line=1),
                'Falta la seccion "inicio".',
            )


class StructuralParser:
    """
    Reusable parser front end.

    Usage::

        result = StructuralParser().parse(source_text)
        for diag in result.diagnostics:
            print(diag.to_gcc_format("programa.psc"))
        model = result.model
    """

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        self._config = config or AnalysisConfig()

    def parse(self, text: str) -> ParseResult:
        result = _Scan(text=text, indent_width=self._config.indent_width).run()
        logger.debug(
            "parsed %d function(s), %d main statement(s), %d diagnostic(s)",
            len(result.model.functions),
            len(result.model.main_body),
            len(result.diagnostics),
        )
        return result


def parse_program(text: str, config: Optional[AnalysisConfig] = None) -> ParseResult:
    """Parse *text* into a model and its diagnostics. Never raises."""
    return StructuralParser(config).parse(text)
