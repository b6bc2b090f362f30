"""
pseudoflow/scope.py
===================

Variable tables used to instrument execution.

Each scope (``"main"`` or ``"fn:<name>"``) gets an ordered table of the
variable names observed in it: read targets (base name for subscripted
targets), declarations and counted-loop counters.  A function scope starts
with its parameters.  First appearance wins; duplicates collapse.

The global *slot order* concatenates the main table with each function's
table, in function order.  Every trace snapshot is a list aligned with
that order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pseudoflow.grammar import StatementKind
from pseudoflow.model import ProgramModel, Statement

logger = logging.getLogger(__name__)

MAIN_SCOPE = "main"

_CONTRIBUTING = (StatementKind.READ, StatementKind.DECLARE, StatementKind.FOR)


@dataclass(frozen=True)
class VariableSlot:
    scope_id: str
    name: str

    @property
    def label(self) -> str:
        return self.name


@dataclass(frozen=True)
class ScopeTable:
    scope_id: str
    names: Tuple[str, ...] = ()

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def __iter__(self):
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)


@dataclass(frozen=True)
class VariableTables:
    """Per-scope tables plus the global slot order."""

    tables: Tuple[ScopeTable, ...] = ()
    slots: Tuple[VariableSlot, ...] = ()

    def table_for(self, scope_id: str) -> ScopeTable:
        for table in self.tables:
            if table.scope_id == scope_id:
                return table
        return ScopeTable(scope_id)

    def function_table(self, position: int) -> ScopeTable:
        """Table of the function at *position* in ``ProgramModel.functions``."""
        return self.tables[position + 1]

    def labels(self) -> List[str]:
        return [slot.label for slot in self.slots]

    def slot_index(self, scope_id: str, name: str) -> Optional[int]:
        for index, slot in enumerate(self.slots):
            if slot.scope_id == scope_id and slot.name == name:
                return index
        return None

    def to_json(self) -> Dict[str, List[str]]:
        return {table.scope_id: list(table.names) for table in self.tables}


def collect_scope_variables(
    body: Sequence[Statement], initial: Iterable[str] = ()
) -> Tuple[str, ...]:
    """Names observed in *body*, in first-seen order, after *initial*."""
    seen: Dict[str, None] = dict.fromkeys(initial)
    for stmt in body:
        if stmt.kind in _CONTRIBUTING and stmt.shape.name:
            seen.setdefault(stmt.shape.name, None)
    return tuple(seen)


def build_variable_tables(model: ProgramModel) -> VariableTables:
    """
    Build one table per scope: main first, then each function in order.

    ``tables[i + 1]`` always belongs to ``model.functions[i]``; a repeated
    function name gets a ``#n`` suffix on its scope id so slots stay distinct.
    """
    tables = [ScopeTable(MAIN_SCOPE, collect_scope_variables(model.main_body))]
    used = {MAIN_SCOPE}
    for fn in model.functions:
        scope_id = fn.scope_id
        suffix = 2
        while scope_id in used:
            scope_id = f"{fn.scope_id}#{suffix}"
            suffix += 1
        used.add(scope_id)
        tables.append(ScopeTable(scope_id, collect_scope_variables(fn.body, fn.parameters)))

    slots = tuple(
        VariableSlot(table.scope_id, name) for table in tables for name in table.names
    )
    logger.debug("variable tables: %d scope(s), %d slot(s)", len(tables), len(slots))
    return VariableTables(tables=tuple(tables), slots=slots)
