"""
grammar.py — Statement classifier for the pseudocode language
=============================================================

Every non-blank source line is trimmed and matched, as a whole, against a
small PEG grammar.  The alternatives are tried in a fixed order and each one
is anchored on a leading keyword (or, for calls, on ``name(...)``), so a
well-formed line matches at most one of them.  The parse tree is folded into
a flat, immutable :class:`Shape` by :class:`ShapeBuilder`.

Lines the grammar rejects are classified as :attr:`StatementKind.OPAQUE`;
the classifier never raises.

Usage::

    from pseudoflow.grammar import classify, StatementKind

    shape = classify("para i desde 1 hasta 10 hacer")
    assert shape.kind is StatementKind.FOR
    assert (shape.name, shape.start, shape.end) == ("i", "1", "10")

Depends on:
    - parsimonious (PEG parser)
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from parsimonious.exceptions import ParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import NodeVisitor

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  PART 1 — STATEMENT GRAMMAR (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

STATEMENT_GRAMMAR = Grammar(r'''
    statement           = comment / program / function / main_start / block_end
                        / while_open / for_open / repeat_open / until
                        / then_branch / else_branch / if_open / declaration
                        / legacy_array / read / write / return_stmt / call

    # ─────────────────────────────────────────────────────────────
    # Program structure
    # ─────────────────────────────────────────────────────────────

    comment             = ~r"(?://|#).*"
    program             = ~r"programa\b"i __ rest
    function            = ~r"funcion\b"i __ (function_signature / rest)
    function_signature  = identifier _ parameter_list
    parameter_list      = ~r"\((?P<params>[^)]*)\)\s*$"
    main_start          = ~r"inicio$"i
    block_end           = ~r"fin(?:mientras|para|si)?$"i

    # ─────────────────────────────────────────────────────────────
    # Loops and conditionals
    # ─────────────────────────────────────────────────────────────

    while_open          = ~r"mientras"i _ parenthesized
    for_open            = ~r"para\b"i __ identifier __ ~r"desde\b"i __ for_range
    for_range           = ~r"(?P<start>.+?)\s+hasta\s+(?P<end>.+?)\s+hacer\s*$"i
    repeat_open         = ~r"repetir$"i
    until               = ~r"hasta"i _ parenthesized
    then_branch         = ~r"entonces$"i
    else_branch         = ~r"sino$"i
    if_open             = ~r"si\b"i __ rest

    # ─────────────────────────────────────────────────────────────
    # Simple statements
    # ─────────────────────────────────────────────────────────────

    declaration         = type_name __ identifier _ array_size? _
    array_size          = "[" _ ~r"\d+" _ "]"
    type_name           = ~r"(?:entero|cadena|caracter|booleano)\b"i
    legacy_array        = ~r"arreglo\b"i __ rest
    read                = ~r"leer\b"i __ (subscript / rest)
    subscript           = identifier _ ~r"\[(?P<index>.+)\]$"
    write               = ~r"escribir\b"i __ rest
    return_stmt         = ~r"volver$"i
    call                = ~r"(?P<callee>[A-Za-z_][A-Za-z0-9_]*)\s*\(.*\)\s*$"

    # ─────────────────────────────────────────────────────────────
    # Lexical
    # ─────────────────────────────────────────────────────────────

    parenthesized       = ~r"\((?P<inner>.*)\)\s*$"
    identifier          = ~r"[A-Za-z_][A-Za-z0-9_]*"
    rest                = ~r".+"
    _                   = ~r"\s*"
    __                  = ~r"\s+"
''')


# ═══════════════════════════════════════════════════════════════════
#  PART 2 — SHAPES
# ═══════════════════════════════════════════════════════════════════

class StatementKind(enum.Enum):
    """Every statement shape the classifier can report."""

    COMMENT = "comment"
    PROGRAM = "program"
    FUNCTION = "function"
    MALFORMED_FUNCTION = "malformed_function"
    MAIN = "main"
    END = "end"
    END_WHILE = "end_while"
    END_FOR = "end_for"
    END_IF = "end_if"
    WHILE = "while"
    FOR = "for"
    REPEAT = "repeat"
    UNTIL = "until"
    THEN = "then"
    ELSE = "else"
    IF = "if"
    DECLARE = "declare"
    LEGACY_ARRAY = "legacy_array"
    READ = "read"
    WRITE = "write"
    RETURN = "return"
    CALL = "call"
    OPAQUE = "opaque"

    @property
    def is_recognized(self) -> bool:
        return self is not StatementKind.OPAQUE


_BLOCK_END_KINDS = {
    "fin": StatementKind.END,
    "finmientras": StatementKind.END_WHILE,
    "finpara": StatementKind.END_FOR,
    "finsi": StatementKind.END_IF,
}


@dataclass(frozen=True)
class Shape:
    """
    The classified form of one trimmed line.

    Only the fields meaningful for ``kind`` are filled in:

    ========== =====================================================
    kind       fields
    ========== =====================================================
    PROGRAM    ``name``
    FUNCTION   ``name``, ``params``
    WHILE      ``condition``
    UNTIL      ``condition``
    IF         ``condition``
    FOR        ``name`` (counter), ``start``, ``end``
    DECLARE    ``type_name`` (lower case), ``name``, ``size``
    READ       ``text`` (whole target), ``name`` (base), ``index``
    WRITE      ``text`` (raw argument list)
    CALL       ``name`` (callee)
    COMMENT    ``text``
    ========== =====================================================
    """

    kind: StatementKind
    name: str = ""
    params: Tuple[str, ...] = ()
    condition: str = ""
    start: str = ""
    end: str = ""
    type_name: str = ""
    size: Optional[int] = None
    index: Optional[str] = None
    text: str = ""

    @property
    def is_array(self) -> bool:
        return self.size is not None


# ═══════════════════════════════════════════════════════════════════
#  PART 3 — PARSE TREE → SHAPE
# ═══════════════════════════════════════════════════════════════════

class ShapeBuilder(NodeVisitor):
    """Folds a statement parse tree into a :class:`Shape`."""

    grammar = STATEMENT_GRAMMAR

    def generic_visit(self, node, visited_children):
        """Default: return children or node text."""
        if visited_children:
            if len(visited_children) == 1:
                return visited_children[0]
            return visited_children
        return node.text.strip()

    def visit_statement(self, node, visited_children):
        return visited_children[0]

    # ─────────────────────────────────────────────────────────────
    # Program structure
    # ─────────────────────────────────────────────────────────────

    def visit_comment(self, node, visited_children):
        return Shape(StatementKind.COMMENT, text=node.text)

    def visit_program(self, node, visited_children):
        _, _, name = visited_children
        return Shape(StatementKind.PROGRAM, name=name)

    def visit_function(self, node, visited_children):
        _, _, signature = visited_children
        if isinstance(signature, Shape):
            return signature
        return Shape(StatementKind.MALFORMED_FUNCTION, text=node.text)

    def visit_function_signature(self, node, visited_children):
        name, _, params = visited_children
        return Shape(StatementKind.FUNCTION, name=name, params=params)

    def visit_parameter_list(self, node, visited_children):
        raw = node.match.group("params")
        return tuple(p.strip() for p in raw.split(",") if p.strip())

    def visit_main_start(self, node, visited_children):
        return Shape(StatementKind.MAIN)

    def visit_block_end(self, node, visited_children):
        return Shape(_BLOCK_END_KINDS[node.text.lower()])

    # ─────────────────────────────────────────────────────────────
    # Loops and conditionals
    # ─────────────────────────────────────────────────────────────

    def visit_while_open(self, node, visited_children):
        return Shape(StatementKind.WHILE, condition=visited_children[-1])

    def visit_for_open(self, node, visited_children):
        name = visited_children[2]
        start, end = visited_children[-1]
        return Shape(StatementKind.FOR, name=name, start=start, end=end)

    def visit_for_range(self, node, visited_children):
        return (node.match.group("start"), node.match.group("end"))

    def visit_repeat_open(self, node, visited_children):
        return Shape(StatementKind.REPEAT)

    def visit_until(self, node, visited_children):
        return Shape(StatementKind.UNTIL, condition=visited_children[-1])

    def visit_then_branch(self, node, visited_children):
        return Shape(StatementKind.THEN)

    def visit_else_branch(self, node, visited_children):
        return Shape(StatementKind.ELSE)

    def visit_if_open(self, node, visited_children):
        return Shape(StatementKind.IF, condition=visited_children[-1])

    def visit_parenthesized(self, node, visited_children):
        return node.match.group("inner")

    # ─────────────────────────────────────────────────────────────
    # Simple statements
    # ─────────────────────────────────────────────────────────────

    def visit_declaration(self, node, visited_children):
        type_name, _, name, _, size, _ = visited_children
        return Shape(
            StatementKind.DECLARE,
            type_name=type_name.lower(),
            name=name,
            size=size if isinstance(size, int) else None,
        )

    def visit_array_size(self, node, visited_children):
        return int(visited_children[2])

    def visit_legacy_array(self, node, visited_children):
        return Shape(StatementKind.LEGACY_ARRAY, text=node.text)

    def visit_read(self, node, visited_children):
        _, _, target = visited_children
        text = node.text.split(None, 1)[1].strip()
        if isinstance(target, tuple):
            name, index = target
            return Shape(StatementKind.READ, name=name, index=index, text=text)
        return Shape(StatementKind.READ, name=text, text=text)

    def visit_subscript(self, node, visited_children):
        name = visited_children[0]
        return (name, node.children[2].match.group("index"))

    def visit_write(self, node, visited_children):
        return Shape(StatementKind.WRITE, text=visited_children[-1])

    def visit_return_stmt(self, node, visited_children):
        return Shape(StatementKind.RETURN)

    def visit_call(self, node, visited_children):
        return Shape(StatementKind.CALL, name=node.match.group("callee"))


_BUILDER = ShapeBuilder()


def classify(line: str) -> Shape:
    """Classify one line. Surrounding whitespace is ignored."""
    text = line.strip()
    if not text:
        return Shape(StatementKind.OPAQUE)
    try:
        return _BUILDER.parse(text)
    except ParseError:
        logger.debug("unrecognized statement: %r", text)
        return Shape(StatementKind.OPAQUE, text=text)
