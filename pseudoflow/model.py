"""
pseudoflow/model.py
===================

The program model shared by every backend.

A :class:`ProgramModel` is a flat list of function definitions plus the main
body.  Each body is an ordered tuple of :class:`Statement` objects; nested
constructs are not trees here, they are represented by their opening and
closing statements in sequence (``mientras(...)`` … ``finmientras``).  The
backends rebuild whatever nesting they need in a single forward pass.

:class:`BlockKind` is the nesting-stack vocabulary of the structural parser.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from pseudoflow.grammar import Shape, StatementKind


class BlockKind(enum.Enum):
    """Kinds of block frames on the parser's nesting stack."""

    FUNCTION = "funcion"
    MAIN = "inicio"
    WHILE = "mientras"
    FOR = "para"
    REPEAT = "repetir"
    IF = "si"

    @property
    def closer(self) -> str:
        """The token that closes a block of this kind, as users write it."""
        return _CLOSER_TOKENS[self]

    @property
    def is_scope(self) -> bool:
        return self in (BlockKind.FUNCTION, BlockKind.MAIN)


_CLOSER_TOKENS: Dict[BlockKind, str] = {
    BlockKind.FUNCTION: "fin",
    BlockKind.MAIN: "fin",
    BlockKind.WHILE: "finmientras",
    BlockKind.FOR: "finpara",
    BlockKind.REPEAT: "hasta(...)",
    BlockKind.IF: "finsi",
}

#: Statement kinds that push a frame, and the frame they push.
OPENERS: Dict[StatementKind, BlockKind] = {
    StatementKind.FUNCTION: BlockKind.FUNCTION,
    StatementKind.MALFORMED_FUNCTION: BlockKind.FUNCTION,
    StatementKind.MAIN: BlockKind.MAIN,
    StatementKind.WHILE: BlockKind.WHILE,
    StatementKind.FOR: BlockKind.FOR,
    StatementKind.REPEAT: BlockKind.REPEAT,
    StatementKind.IF: BlockKind.IF,
}

#: Specific closers and the single frame kind each one may pop.
CLOSERS: Dict[StatementKind, BlockKind] = {
    StatementKind.END_WHILE: BlockKind.WHILE,
    StatementKind.END_FOR: BlockKind.FOR,
    StatementKind.UNTIL: BlockKind.REPEAT,
    StatementKind.END_IF: BlockKind.IF,
}


@dataclass(frozen=True)
class BlockFrame:
    """An open construct awaiting its closer. ``line_index`` is 0-based."""

    kind: BlockKind
    line_index: int


@dataclass(frozen=True)
class Statement:
    """One body line: trimmed text, 1-based source line and its shape."""

    text: str
    line: int
    shape: Shape

    @property
    def kind(self) -> StatementKind:
        return self.shape.kind


@dataclass(frozen=True)
class FunctionDefinition:
    name: str
    parameters: Tuple[str, ...]
    body: Tuple[Statement, ...]
    header_line: int

    @property
    def scope_id(self) -> str:
        return f"fn:{self.name}"


@dataclass(frozen=True)
class ProgramModel:
    """
    Immutable result of structural parsing.

    Every statement belongs to exactly one scope: either the body of one
    function or ``main_body``.
    """

    functions: Tuple[FunctionDefinition, ...] = ()
    main_body: Tuple[Statement, ...] = ()
    program_name: Optional[str] = None

    def function_names(self) -> List[str]:
        return [fn.name for fn in self.functions]

    def find_function(self, name: str) -> Optional[FunctionDefinition]:
        for fn in self.functions:
            if fn.name == name:
                return fn
        return None

    def iter_scopes(self) -> Iterator[Tuple[str, Tuple[Statement, ...]]]:
        """Yield ``(scope_id, body)`` with main first, then each function."""
        yield "main", self.main_body
        for fn in self.functions:
            yield fn.scope_id, fn.body


@dataclass
class FunctionBuilder:
    """Mutable accumulator the parser fills while a function is open."""

    name: str
    parameters: Tuple[str, ...]
    header_line: int
    body: List[Statement] = field(default_factory=list)

    def freeze(self) -> FunctionDefinition:
        return FunctionDefinition(
            name=self.name,
            parameters=self.parameters,
            body=tuple(self.body),
            header_line=self.header_line,
        )
