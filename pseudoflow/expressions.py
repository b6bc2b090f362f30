"""
Helpers for the opaque expression text carried by statements.

Expressions are never parsed into trees.  The only rewrites applied are
textual: 1-based subscripts become 0-based, and (for the Python target)
the C-style boolean operators become Python keywords.  Text inside
double-quoted literals is never rewritten.
"""

from __future__ import annotations

import re
from typing import Iterator, List, Optional, Tuple

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_OPEN_BRACKET = re.compile(r"\s*\[")
_INT_LITERAL = re.compile(r"^\s*\d+\s*$")
_AND = re.compile(r"\s*&&\s*")
_OR = re.compile(r"\s*\|\|\s*")
_NOT = re.compile(r"!(?!=)\s*")


def _string_end(text: str, start: int) -> int:
    """Index just past the literal opened at *start* (or the end of *text*)."""
    pos = start + 1
    while pos < len(text):
        char = text[pos]
        if char == "\\":
            pos += 2
            continue
        if char == '"':
            return pos + 1
        pos += 1
    return len(text)


def _matching_bracket(text: str, start: int) -> Optional[int]:
    """Index of the ``]`` closing the ``[`` at *start*, or None."""
    depth = 0
    pos = start
    while pos < len(text):
        char = text[pos]
        if char == '"':
            pos = _string_end(text, pos)
            continue
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return pos
        pos += 1
    return None


def _segments(text: str) -> Iterator[Tuple[bool, str]]:
    """Yield ``(quoted, chunk)`` pieces of *text* in order."""
    pos = 0
    chunk_start = 0
    while pos < len(text):
        if text[pos] == '"':
            if pos > chunk_start:
                yield False, text[chunk_start:pos]
            end = _string_end(text, pos)
            yield True, text[pos:end]
            pos = chunk_start = end
            continue
        pos += 1
    if chunk_start < len(text):
        yield False, text[chunk_start:]


def translate_index(index: str) -> str:
    """Turn one 1-based index expression into its 0-based form."""
    if _INT_LITERAL.match(index):
        return str(int(index) - 1)
    return f"({index.strip()}) - 1"


def translate_indices(expr: str) -> str:
    """Rewrite every ``name[expr]`` in *expr* to ``name[<expr - 1>]``.

    Subscripts nest; the index text is rewritten before it is shifted.

    >>> translate_indices("numeros[i] + numeros[2]")
    'numeros[(i) - 1] + numeros[1]'
    >>> translate_indices("a[b[1]]")
    'a[(b[0]) - 1]'
    """
    out: List[str] = []
    pos = 0
    while pos < len(expr):
        char = expr[pos]
        if char == '"':
            end = _string_end(expr, pos)
            out.append(expr[pos:end])
            pos = end
            continue
        ident = _IDENTIFIER.match(expr, pos)
        if ident is None:
            out.append(char)
            pos += 1
            continue
        bracket = _OPEN_BRACKET.match(expr, ident.end())
        close = _matching_bracket(expr, bracket.end() - 1) if bracket else None
        inner = expr[bracket.end():close] if close is not None else ""
        if not inner.strip():
            out.append(ident.group(0))
            pos = ident.end()
            continue
        out.append(f"{ident.group(0)}[{translate_index(translate_indices(inner))}]")
        pos = close + 1
    return "".join(out)


def split_arguments(text: str) -> List[str]:
    """
    Split an argument list on top-level commas.

    Commas inside double-quoted text do not separate; a backslash keeps the
    following character verbatim (so ``\\"`` does not end a string).  Empty
    arguments are dropped and the rest are trimmed.
    """
    args: List[str] = []
    current: List[str] = []
    in_string = False
    escaped = False

    for char in text:
        if escaped:
            current.append(char)
            escaped = False
            continue
        if char == "\\":
            current.append(char)
            escaped = True
            continue
        if char == '"':
            in_string = not in_string
            current.append(char)
            continue
        if char == "," and not in_string:
            arg = "".join(current).strip()
            if arg:
                args.append(arg)
            current = []
            continue
        current.append(char)

    last = "".join(current).strip()
    if last:
        args.append(last)
    return args


def is_string_literal(arg: str) -> bool:
    return len(arg) >= 2 and arg.startswith('"') and arg.endswith('"')


def python_condition(expr: str) -> str:
    """Translate a condition for the Python target (``&&``, ``||``, ``!``)."""
    parts = []
    for quoted, chunk in _segments(translate_indices(expr)):
        if not quoted:
            chunk = _AND.sub(" and ", chunk)
            chunk = _OR.sub(" or ", chunk)
            chunk = _NOT.sub("not ", chunk)
        parts.append(chunk)
    return "".join(parts).strip()


def sanitize_label(label: str) -> str:
    """Escape a node label for the textual flow-graph grammar."""
    return (
        label.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace("[", "(")
        .replace("]", ")")
        .replace("{", "(")
        .replace("}", ")")
        .replace('"', "&quot;")
    )
