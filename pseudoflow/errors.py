# pseudoflow/errors.py
"""
Diagnostics and exception types for the pseudoflow compiler.

Two kinds of problems are reported by this package:

* **Diagnostics** are values. The structural parser never raises; every
  layout or structure problem it finds becomes a :class:`Diagnostic` with a
  stable code, a severity, a Spanish user-facing message and a character
  span into the analysed text. A consuming editor highlights them inline.

* **Exceptions** are reserved for misuse of the API and for failures of an
  instrumented program while it runs.

Error Codes:
────────────
Codes follow the pattern ``PSC-NNNN``:
  - 1000-1999: layout and statement-shape problems (one line)
  - 2000-2999: block structure problems (nesting across lines)

Example Usage:
──────────────
    reporter = DiagnosticReporter()
    reporter.report(Codes.TAB_INDENT, SourceSpan(0, 2, line=1),
                    "La indentacion debe usar espacios, no tabulaciones.")
    if reporter.has_errors():
        for diag in reporter.diagnostics:
            print(diag.to_gcc_format("programa.psc"))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any, Dict, List, Optional


# ═══════════════════════════════════════════════════════════════════════════════
# SEVERITY AND PHASE
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class Severity(Enum):
    """Severity of a diagnostic. Only two levels exist."""

    WARNING = "warning"
    ERROR = "error"

    def is_error(self) -> bool:
        return self is Severity.ERROR


@unique
class Phase(Enum):
    """Which pass of the parser produced a diagnostic."""

    LAYOUT = "layout"
    STRUCTURE = "structure"


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES
# ═══════════════════════════════════════════════════════════════════════════════

class DiagnosticCode:
    """Structured diagnostic code (``PSC-1001`` and so on)."""

    __slots__ = ("prefix", "number", "phase", "default_severity")

    def __init__(
        self,
        number: int,
        phase: Phase,
        default_severity: Severity = Severity.ERROR,
        prefix: str = "PSC",
    ) -> None:
        self.prefix = prefix
        self.number = number
        self.phase = phase
        self.default_severity = default_severity

    @property
    def code(self) -> str:
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"DiagnosticCode({self.code!r}, {self.phase.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DiagnosticCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class Codes:
    """Predefined diagnostic codes."""

    # ─── layout / statement shape ────────────────────────────────────────────
    TAB_INDENT = DiagnosticCode(1001, Phase.LAYOUT)
    BAD_INDENT = DiagnosticCode(1002, Phase.LAYOUT)
    UNRECOGNIZED_STATEMENT = DiagnosticCode(1003, Phase.LAYOUT, Severity.WARNING)
    LEGACY_ARRAY = DiagnosticCode(1004, Phase.LAYOUT)
    BAD_FUNCTION_HEADER = DiagnosticCode(1005, Phase.LAYOUT)

    # ─── block structure ─────────────────────────────────────────────────────
    UNMATCHED_CLOSER = DiagnosticCode(2001, Phase.STRUCTURE)
    MISMATCHED_CLOSER = DiagnosticCode(2002, Phase.STRUCTURE)
    BRANCH_WITHOUT_IF = DiagnosticCode(2003, Phase.STRUCTURE)
    UNCLOSED_BLOCK = DiagnosticCode(2004, Phase.STRUCTURE)
    MISSING_MAIN = DiagnosticCode(2005, Phase.STRUCTURE)


# ═══════════════════════════════════════════════════════════════════════════════
# SOURCE SPANS AND DIAGNOSTICS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceSpan:
    """
    Half-open character range ``[start, end)`` into the analysed text.

    ``line`` is the 1-based line the range starts on; it is carried for
    GCC-style rendering and is not needed to highlight the range.
    """

    start: int = 0
    end: int = 0
    line: int = 0

    def __post_init__(self) -> None:
        if self.end < self.start:
            object.__setattr__(self, "end", self.start)

    def __len__(self) -> int:
        return self.end - self.start

    def __str__(self) -> str:
        if self.line > 0:
            return f"{self.line}"
        return f"@{self.start}"


@dataclass(frozen=True)
class Diagnostic:
    """One parser finding. Immutable once created."""

    code: DiagnosticCode
    message: str
    span: SourceSpan = field(default_factory=SourceSpan)
    severity: Severity = Severity.ERROR

    @property
    def line(self) -> int:
        return self.span.line

    def to_gcc_format(self, filename: str = "<input>") -> str:
        """Format as ``file:line: severity: message [code]``."""
        return f"{filename}:{self.span}: {self.severity.value}: {self.message} [{self.code}]"

    def to_json(self) -> Dict[str, Any]:
        return {
            "code": self.code.code,
            "message": self.message,
            "severity": self.severity.value,
            "span": {"start": self.span.start, "end": self.span.end},
            "line": self.span.line,
            "phase": self.code.phase.value,
        }

    def __str__(self) -> str:
        return self.to_gcc_format()


class DiagnosticReporter:
    """Accumulates diagnostics in the order they are reported."""

    def __init__(self) -> None:
        self._diagnostics: List[Diagnostic] = []

    def report(
        self,
        code: DiagnosticCode,
        span: SourceSpan,
        message: str,
        severity: Optional[Severity] = None,
    ) -> Diagnostic:
        diag = Diagnostic(
            code=code,
            message=message,
            span=span,
            severity=severity or code.default_severity,
        )
        self._diagnostics.append(diag)
        return diag

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)

    def has_errors(self) -> bool:
        return any(d.severity.is_error() for d in self._diagnostics)

    def error_count(self) -> int:
        return sum(1 for d in self._diagnostics if d.severity.is_error())

    def warning_count(self) -> int:
        return sum(1 for d in self._diagnostics if not d.severity.is_error())

    def __len__(self) -> int:
        return len(self._diagnostics)


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class PseudoflowError(Exception):
    """Base exception for all pseudoflow errors."""


class ConfigError(PseudoflowError):
    """Raised when an :class:`~pseudoflow.config.AnalysisConfig` is unusable."""


class SessionBusyError(PseudoflowError):
    """Raised when a run is started while another one is still in flight."""


class ExecutionError(PseudoflowError):
    """
    A failure inside a running instrumented program.

    ``line`` is the pseudocode line the failure maps back to, or ``None``
    when the generated code cannot be traced to a source line.
    """

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line

    def __str__(self) -> str:
        if self.line is not None:
            return f"Error (linea {self.line}): {self.message}"
        return f"Error: {self.message}"
