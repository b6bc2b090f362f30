"""
pseudoflow/pipeline.py
======================

One full analysis: text → model + diagnostics → every backend.

Each call works on fresh state only, so analysing byte-identical text twice
yields identical results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pseudoflow.c_backend import emit_c
from pseudoflow.codegen import GeneratedCode
from pseudoflow.config import AnalysisConfig
from pseudoflow.errors import Diagnostic
from pseudoflow.flowgraph import FlowGraph, FlowStep, build_flow_graph, build_flow_steps
from pseudoflow.model import ProgramModel
from pseudoflow.parser import parse_program
from pseudoflow.scope import VariableTables, build_variable_tables
from pseudoflow.trace_backend import emit_traced_python

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    model: ProgramModel
    diagnostics: Tuple[Diagnostic, ...]
    variables: VariableTables
    flow_graph: FlowGraph
    flow_steps: Tuple[FlowStep, ...]
    c_program: GeneratedCode
    python_program: GeneratedCode

    @property
    def c_code(self) -> str:
        return self.c_program.code

    @property
    def python_code(self) -> str:
        return self.python_program.code

    @property
    def mermaid(self) -> str:
        return self.flow_graph.to_mermaid()

    @property
    def trace_labels(self) -> List[str]:
        return self.variables.labels()

    @property
    def has_errors(self) -> bool:
        return any(d.severity.is_error() for d in self.diagnostics)

    def summary(self) -> Dict[str, Any]:
        errors = sum(1 for d in self.diagnostics if d.severity.is_error())
        return {
            "program": self.model.program_name,
            "functions": self.model.function_names(),
            "main_statements": len(self.model.main_body),
            "errors": errors,
            "warnings": len(self.diagnostics) - errors,
            "nodes": len(self.flow_graph.nodes),
            "edges": len(self.flow_graph.edges),
            "variables": self.variables.to_json(),
        }


def analyze(text: str, config: Optional[AnalysisConfig] = None) -> AnalysisResult:
    """Parse *text* and run every backend on the resulting model."""
    config = (config or AnalysisConfig()).check()

    parsed = parse_program(text, config)
    model = parsed.model
    variables = build_variable_tables(model)
    result = AnalysisResult(
        model=model,
        diagnostics=parsed.diagnostics,
        variables=variables,
        flow_graph=build_flow_graph(model.main_body),
        flow_steps=tuple(build_flow_steps(model.main_body)),
        c_program=emit_c(model, config),
        python_program=emit_traced_python(model, variables, config),
    )
    logger.info(
        "analysis done: %d diagnostic(s), %d flow node(s)",
        len(result.diagnostics),
        len(result.flow_graph.nodes),
    )
    return result


def lint(text: str, config: Optional[AnalysisConfig] = None) -> List[Diagnostic]:
    """Only the diagnostics of *text*."""
    return list(parse_program(text, config).diagnostics)
