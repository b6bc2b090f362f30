"""
pseudoflow/trace_backend.py
===========================

Instrumented-execution emitter: pseudocode → asynchronous Python.

The generated module defines one coroutine function (``__programa__`` by
default) that takes a host object ``io`` with:

    write(text)                      fire-and-forget output
    await read(label) -> value       suspends until the host supplies a value
    trace(line, snapshot, output)    optional step hook

Inside it every pseudocode function becomes a nested ``async def`` and the
main body becomes ``__main``.  Reads are awaited, so a run suspends at each
``leer`` until the host answers.

Instrumentation
---------------
After each state-changing statement (read, declaration, loop-counter entry,
write) the code calls ``__trace(line, snapshot[, output])``.  ``snapshot`` is
a list aligned with the global slot order of
:class:`~pseudoflow.scope.VariableTables`: slots of other scopes are ``None``
and slots of the current scope are ``{"state": ..., "value": ...}`` dicts,
with state ``"value"``, ``"unset"``, ``"forced"`` (loop counter at iteration
start) or ``"cleared"`` (scope left through ``volver``).
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Set

from pseudoflow import __version__
from pseudoflow.codegen import CodeEmitter, GeneratedCode
from pseudoflow.config import AnalysisConfig
from pseudoflow.expressions import (
    is_string_literal,
    python_condition,
    split_arguments,
    translate_index,
    translate_indices,
)
from pseudoflow.grammar import StatementKind
from pseudoflow.model import ProgramModel, Statement
from pseudoflow.scope import ScopeTable, VariableTables, build_variable_tables

logger = logging.getLogger(__name__)

_DEFAULTS = {"entero": "0", "booleano": "False", "caracter": '""', "cadena": '""'}

_PRELUDE = '''\
__UNSET = object()

def __slot(value, state="value"):
    if value is __UNSET:
        return {"state": "unset", "value": None}
    if isinstance(value, list):
        value = list(value)
    return {"state": state, "value": value}

def __trace(line, snapshot, output=""):
    hook = getattr(io, "trace", None)
    if hook is not None:
        hook(line, snapshot, output)

def __text(value):
    if value is __UNSET:
        return "undefined"
    if value is True:
        return "verdadero"
    if value is False:
        return "falso"
    return str(value)

def __write(text):
    io.write(text)

def __coerce(raw):
    if not isinstance(raw, str):
        return raw
    text = raw.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return raw

async def __read(label):
    return __coerce(await io.read(label))

def __span(start, end):
    start, end = int(start), int(end)
    if start <= end:
        return range(start, end + 1)
    return range(start, end - 1, -1)
'''


class TraceEmitter:
    """Emits instrumented Python for a :class:`ProgramModel`."""

    def __init__(
        self,
        model: ProgramModel,
        tables: Optional[VariableTables] = None,
        config: Optional[AnalysisConfig] = None,
    ) -> None:
        self._model = model
        self._tables = tables or build_variable_tables(model)
        self._config = config or AnalysisConfig()
        self._out = CodeEmitter(self._config.python_indent)
        self._functions: Set[str] = set(model.function_names())
        self._scope: Optional[ScopeTable] = None
        self._in_function = False
        self._out_counter = 0
        # one flag per open Python block: has it received a statement yet?
        self._filled: List[bool] = []

    def emit(self) -> GeneratedCode:
        out = self._out
        entry = self._config.entry_point
        out.emit(f"# Generated by pseudoflow {__version__}: instrumented program")
        with out.block(f"async def {entry}(io):"):
            for line in _PRELUDE.splitlines():
                out.emit(line)

            for position, fn in enumerate(self._model.functions):
                out.emit_blank()
                table = self._tables.function_table(position)
                out.set_source(fn.header_line)
                with out.block(f"async def {fn.name}({', '.join(fn.parameters)}):"):
                    self._begin_scope(table, fn.parameters, in_function=True)
                    self._statement(f"__trace({fn.header_line}, {self._snapshot()})")
                    self._emit_body(fn.body)
                out.set_source(None)

            out.emit_blank()
            with out.block("async def __main():"):
                self._begin_scope(self._tables.table_for("main"), (), in_function=False)
                self._emit_body(self._model.main_body)
                out.set_source(None)
                self._close_python_block()
            out.emit_blank()
            out.emit("await __main()")

        return GeneratedCode(out.get_code(), out.get_source_map(), entry_point=entry)

    # ------------------------------------------------------------------
    # Scope handling
    # ------------------------------------------------------------------

    def _begin_scope(self, table: ScopeTable, params: Sequence[str], in_function: bool) -> None:
        self._scope = table
        self._in_function = in_function
        self._out_counter = 0
        self._filled = [False]
        for name in table.names:
            if name not in params:
                self._statement(f"{name} = __UNSET")

    def _snapshot(self, states: Optional[Dict[str, str]] = None, state: str = "value") -> str:
        """Render the slot list for the current scope.

        *states* overrides the state of individual names; *state* applies to
        every other slot of the scope.
        """
        states = states or {}
        entries = []
        for slot in self._tables.slots:
            if slot.scope_id != self._scope.scope_id:
                entries.append("None")
                continue
            slot_state = states.get(slot.name, state)
            if slot_state == "value":
                entries.append(f"__slot({slot.name})")
            else:
                entries.append(f"__slot({slot.name}, {slot_state!r})")
        return f"[{', '.join(entries)}]"

    # ------------------------------------------------------------------
    # Python block bookkeeping
    # ------------------------------------------------------------------

    def _statement(self, code: str) -> None:
        self._out.emit(code)
        if self._filled:
            self._filled[-1] = True

    def _open_python_block(self, header: str) -> None:
        self._statement(header)
        self._out.indent()
        self._filled.append(False)

    def _close_python_block(self) -> None:
        if len(self._filled) <= 1:
            if self._filled and not self._filled[0]:
                self._statement("pass")
            return
        if not self._filled.pop():
            self._out.emit("pass")
        self._out.dedent()

    # ------------------------------------------------------------------
    # Bodies
    # ------------------------------------------------------------------

    def _emit_body(self, body: Sequence[Statement]) -> None:
        depth = len(self._filled)
        for stmt in body:
            self._out.set_source(stmt.line)
            self._emit_statement(stmt)
        while len(self._filled) > depth:
            self._close_python_block()

    def _emit_statement(self, stmt: Statement) -> None:
        shape = stmt.shape
        kind = stmt.kind
        line = stmt.line

        if kind is StatementKind.COMMENT:
            self._out.emit_comment(stmt.text.lstrip("/#").strip())
        elif kind is StatementKind.DECLARE:
            default = _DEFAULTS[shape.type_name]
            if shape.is_array:
                self._statement(f"{shape.name} = [{default}] * {shape.size}")
            else:
                self._statement(f"{shape.name} = {default}")
            self._trace(line)
        elif kind is StatementKind.READ:
            target = shape.name
            if shape.index is not None:
                target = f"{shape.name}[{translate_index(translate_indices(shape.index))}]"
            label = CodeEmitter.escape_string(shape.name)
            self._statement(f"{target} = await __read({label})")
            self._trace(line)
        elif kind is StatementKind.WHILE:
            self._open_python_block(f"while {python_condition(shape.condition)}:")
        elif kind is StatementKind.FOR:
            start = python_condition(shape.start)
            end = python_condition(shape.end)
            self._open_python_block(f"for {shape.name} in __span({start}, {end}):")
            self._statement(f"__trace({line}, {self._snapshot({shape.name: 'forced'})})")
        elif kind is StatementKind.REPEAT:
            self._open_python_block("while True:")
        elif kind is StatementKind.UNTIL:
            self._statement(f"if {python_condition(shape.condition)}:")
            self._out.indent()
            self._out.emit("break")
            self._out.dedent()
            self._close_python_block()
        elif kind is StatementKind.IF:
            self._open_python_block(f"if {python_condition(shape.condition)}:")
        elif kind is StatementKind.ELSE:
            self._close_python_block()
            self._open_python_block("else:")
        elif kind in (StatementKind.END_WHILE, StatementKind.END_FOR, StatementKind.END_IF):
            self._close_python_block()
        elif kind is StatementKind.THEN:
            pass
        elif kind is StatementKind.WRITE:
            self._emit_write(line, split_arguments(shape.text))
        elif kind is StatementKind.RETURN:
            if self._in_function:
                self._statement(f"__trace({line}, {self._snapshot(state='cleared')})")
            self._statement("return")
        elif kind is StatementKind.CALL:
            call = translate_indices(stmt.text).rstrip(";")
            if shape.name in self._functions:
                call = f"await {call}"
            self._statement(call)
        else:
            self._out.emit_comment(stmt.text)

    def _emit_write(self, line: int, args: Sequence[str]) -> None:
        parts = []
        for arg in args:
            if is_string_literal(arg):
                parts.append(arg)
            else:
                parts.append(f"__text({python_condition(arg)})")
        var = f"__out{self._out_counter}"
        self._out_counter += 1
        self._statement(f"{var} = {' + '.join(parts) or repr('')}")
        self._statement(f"__write({var})")
        self._statement(f"__trace({line}, {self._snapshot()}, {var})")

    def _trace(self, line: int) -> None:
        self._statement(f"__trace({line}, {self._snapshot()})")


def emit_traced_python(
    model: ProgramModel,
    tables: Optional[VariableTables] = None,
    config: Optional[AnalysisConfig] = None,
) -> GeneratedCode:
    """Translate *model* to instrumented asynchronous Python."""
    generated = TraceEmitter(model, tables, config).emit()
    logger.debug("emitted %d line(s) of instrumented Python", generated.code.count("\n"))
    return generated
