"""pseudoflow — compiler for Spanish-keyword teaching pseudocode.

One parsed program model feeds three backends that agree on statement
meaning, loop bounds and 1-based array indexing: plain C source,
instrumented asynchronous Python for step-by-step execution, and a
control-flow diagram description.

Submodules
----------
grammar
    Statement classifier: a parsimonious PEG grammar over one trimmed
    line and the ``Shape`` it produces.

parser
    Structural parser: indentation accounting, block matching and
    ``Diagnostic`` reporting.  Never raises.

scope
    Per-scope variable tables and the global slot order used by traces.

flowgraph
    ``FlowGraph`` of the main body, its textual rendering and the linear
    step listing.

c_backend / trace_backend
    C emitter and instrumented Python emitter.

runtime
    ``ExecutionSession``: asyncio host running one instrumented program
    at a time, suspending on reads.

pipeline
    ``analyze`` / ``lint``: the whole chain in one call.

main
    CLI entry-point with subcommands: ``check``, ``c``, ``python``,
    ``flow``, ``steps``, ``vars``, ``run``.

Usage
-----
Command-line::

    python -m pseudoflow check programa.psc
    python -m pseudoflow c programa.psc -o programa.c
    python -m pseudoflow run programa.psc --input Ana

Programmatic::

    from pseudoflow import analyze

    result = analyze(source_text)
    for diag in result.diagnostics:
        print(diag.to_gcc_format("programa.psc"))
    print(result.c_code)
    print(result.mermaid)
"""

from __future__ import annotations

__version__: str = "0.1.0"

from pseudoflow.pipeline import AnalysisResult, analyze, lint  # noqa: E402

__all__: list[str] = [
    "__version__",
    "AnalysisResult",
    "analyze",
    "lint",
]
