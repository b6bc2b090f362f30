"""Tuning knobs shared by the parser and the emitters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from pseudoflow.errors import ConfigError


@dataclass
class AnalysisConfig:
    """Settings for one analysis run."""

    indent_width: int = 2
    string_buffer_size: int = 100
    c_indent: str = "  "
    python_indent: str = "    "
    entry_point: str = "__programa__"

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if self.indent_width <= 0:
            warnings.append("indent_width must be positive")
        if self.string_buffer_size < 2:
            warnings.append("string_buffer_size must be at least 2")
        if not self.python_indent or self.python_indent.strip():
            warnings.append("python_indent must contain only whitespace")
        if not self.entry_point.isidentifier():
            warnings.append("entry_point must be a valid Python identifier")
        return warnings

    def check(self) -> "AnalysisConfig":
        """Raise :class:`ConfigError` if :meth:`validate` finds problems."""
        problems = self.validate()
        if problems:
            raise ConfigError("; ".join(problems))
        return self
