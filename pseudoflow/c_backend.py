"""
pseudoflow/c_backend.py
=======================

Plain C source emitter.

The output is a single translation unit: ``#include <stdio.h>``, one
prototype per function, the function definitions (``void`` with
``const char*`` parameters) and finally ``int main(void)``.

Text values live in fixed-size ``char`` buffers whose size comes from
``AnalysisConfig.string_buffer_size``.  Read targets that are never declared
become such buffers, declared at the top of their function.

Conversions for ``scanf``/``printf`` follow the type known for a name:

    entero, booleano   int       %d
    caracter           char      %c
    cadena, undeclared char[N]   %s

Counted loops are emitted ascending only (``for (int i = a; i <= b; i += 1)``).
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence, Set

from pseudoflow.codegen import C_COMMENTS, CodeEmitter, GeneratedCode
from pseudoflow.config import AnalysisConfig
from pseudoflow.expressions import (
    is_string_literal,
    split_arguments,
    translate_index,
    translate_indices,
)
from pseudoflow.grammar import StatementKind
from pseudoflow.model import ProgramModel, Statement

logger = logging.getLogger(__name__)

INT = "int"
CHAR = "char"
TEXT = "text"

_VALUE_TYPES = {"entero": INT, "booleano": INT, "caracter": CHAR, "cadena": TEXT}

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_SUBSCRIPTED = re.compile(r"([A-Za-z_][A-Za-z0-9_]*)\s*\[.+\]")
_INT_LITERAL = re.compile(r"-?\d+")
_FLOAT_LITERAL = re.compile(r"-?\d+\.\d+")


class _Scope:
    """What the emitter knows about the names of one function body."""

    def __init__(self, body: Sequence[Statement], params: Sequence[str] = ()) -> None:
        self.types: Dict[str, str] = {p: TEXT for p in params}
        self.arrays: Set[str] = set()
        self.declared: Set[str] = set(params)
        self.buffers: List[str] = []

        for stmt in body:
            shape = stmt.shape
            if stmt.kind is StatementKind.DECLARE:
                self.declared.add(shape.name)
                self.types[shape.name] = _VALUE_TYPES[shape.type_name]
                if shape.is_array:
                    self.arrays.add(shape.name)
            elif stmt.kind is StatementKind.FOR:
                self.types.setdefault(shape.name, INT)

        for stmt in body:
            if stmt.kind is StatementKind.READ and stmt.shape.index is None:
                name = stmt.shape.name
                if name not in self.declared and name not in self.buffers:
                    self.buffers.append(name)
                    self.types[name] = TEXT

    def value_type(self, expr: str) -> Optional[str]:
        """Type of a bare name, a subscripted name or a literal, if known."""
        expr = expr.strip()
        if _IDENT.fullmatch(expr):
            if expr in self.arrays:
                return None
            return self.types.get(expr)
        match = _SUBSCRIPTED.fullmatch(expr)
        if match:
            return self.types.get(match.group(1))
        if _INT_LITERAL.fullmatch(expr):
            return INT
        return None


class CEmitter:
    """Emits the C translation of a :class:`ProgramModel`."""

    def __init__(self, model: ProgramModel, config: Optional[AnalysisConfig] = None) -> None:
        self._model = model
        self._config = config or AnalysisConfig()
        self._out = CodeEmitter(self._config.c_indent, C_COMMENTS)
        self._scope: Optional[_Scope] = None
        self._in_main = False

    @property
    def _buffer_size(self) -> int:
        return self._config.string_buffer_size

    def emit(self) -> GeneratedCode:
        out = self._out
        out.emit("#include <stdio.h>")
        out.emit_blank()

        if self._model.functions:
            for fn in self._model.functions:
                out.emit(f"{self._signature(fn.name, fn.parameters)};")
            out.emit_blank()

        for fn in self._model.functions:
            out.set_source(fn.header_line)
            with out.block(f"{self._signature(fn.name, fn.parameters)} {{"):
                self._emit_body(fn.body, fn.parameters)
            out.set_source(None)
            out.emit("}")
            out.emit_blank()

        self._in_main = True
        with out.block("int main(void) {"):
            self._emit_body(self._model.main_body, ())
            out.set_source(None)
            out.emit("return 0;")
        out.emit("}")
        return GeneratedCode(out.get_code(), out.get_source_map())

    @staticmethod
    def _signature(name: str, params: Sequence[str]) -> str:
        rendered = ", ".join(f"const char* {p}" for p in params) or "void"
        return f"void {name}({rendered})"

    # ------------------------------------------------------------------
    # Bodies
    # ------------------------------------------------------------------

    def _emit_body(self, body: Sequence[Statement], params: Sequence[str]) -> None:
        self._scope = _Scope(body, params)
        for name in self._scope.buffers:
            self._out.emit(f"char {name}[{self._buffer_size}];")
        floor = self._out.level
        for stmt in body:
            self._out.set_source(stmt.line)
            self._emit_statement(stmt, floor)

    def _emit_statement(self, stmt: Statement, floor: int) -> None:
        out = self._out
        shape = stmt.shape
        kind = stmt.kind

        if kind is StatementKind.COMMENT:
            out.emit_comment(stmt.text.lstrip("/#").strip())
        elif kind is StatementKind.DECLARE:
            out.emit(self._declaration(shape.type_name, shape.name, shape.size))
        elif kind is StatementKind.READ:
            out.emit(self._scanf(shape.name, shape.index))
        elif kind is StatementKind.WHILE:
            out.emit(f"while ({translate_indices(shape.condition)}) {{")
            out.indent()
        elif kind is StatementKind.FOR:
            var = shape.name
            init = var if var in self._scope.declared else f"int {var}"
            start = translate_indices(shape.start)
            end = translate_indices(shape.end)
            out.emit(f"for ({init} = {start}; {var} <= {end}; {var} += 1) {{")
            out.indent()
        elif kind is StatementKind.REPEAT:
            out.emit("do {")
            out.indent()
        elif kind is StatementKind.UNTIL:
            out.dedent(floor)
            out.emit(f"}} while (!({translate_indices(shape.condition)}));")
        elif kind is StatementKind.IF:
            out.emit(f"if ({translate_indices(shape.condition)}) {{")
            out.indent()
        elif kind is StatementKind.ELSE:
            out.dedent(floor)
            out.emit("} else {")
            out.indent()
        elif kind in (StatementKind.END_WHILE, StatementKind.END_FOR, StatementKind.END_IF):
            out.dedent(floor)
            out.emit("}")
        elif kind is StatementKind.THEN:
            pass
        elif kind is StatementKind.WRITE:
            out.emit(self._printf(split_arguments(shape.text)))
        elif kind is StatementKind.RETURN:
            out.emit("return 0;" if self._in_main else "return;")
        elif kind is StatementKind.CALL:
            call = translate_indices(stmt.text)
            out.emit(call if call.endswith(";") else f"{call};")
        else:
            out.emit_comment(stmt.text)

    # ------------------------------------------------------------------
    # Statement helpers
    # ------------------------------------------------------------------

    def _declaration(self, type_name: str, name: str, size: Optional[int]) -> str:
        value_type = _VALUE_TYPES[type_name]
        extent = f"[{size}]" if size is not None else ""
        if value_type == TEXT:
            return f"char {name}{extent}[{self._buffer_size}];"
        c_type = "int" if value_type == INT else "char"
        return f"{c_type} {name}{extent};"

    def _scanf(self, name: str, index: Optional[str]) -> str:
        target = name
        if index is not None:
            target = f"{name}[{translate_index(translate_indices(index))}]"
        value_type = self._scope.types.get(name, TEXT)
        if value_type == INT:
            return f'scanf("%d", &{target});'
        if value_type == CHAR:
            return f'scanf(" %c", &{target});'
        return f'scanf("%{self._buffer_size - 1}s", {target});'

    def _printf(self, args: Sequence[str]) -> str:
        fmt: List[str] = []
        values: List[str] = []
        for arg in args:
            if is_string_literal(arg):
                fmt.append(arg[1:-1].replace("%", "%%"))
                continue
            value_type = self._scope.value_type(arg)
            if value_type == INT:
                fmt.append("%d")
            elif value_type == CHAR:
                fmt.append("%c")
            elif _FLOAT_LITERAL.fullmatch(arg):
                fmt.append("%g")
            else:
                fmt.append("%s")
            values.append(translate_indices(arg))
        rendered = "".join(fmt) + "\\n"
        tail = "".join(f", {v}" for v in values)
        return f'printf("{rendered}"{tail});'


def emit_c(model: ProgramModel, config: Optional[AnalysisConfig] = None) -> GeneratedCode:
    """Translate *model* to C source text."""
    generated = CEmitter(model, config).emit()
    logger.debug("emitted %d line(s) of C", generated.code.count("\n"))
    return generated
