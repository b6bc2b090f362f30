#!/usr/bin/env python3
"""pseudoflow/main.py — CLI entry-point for the pseudoflow compiler.

Usage examples
--------------
    # Report indentation / structure problems
    python -m pseudoflow check programa.psc

    # Translate to C
    python -m pseudoflow c programa.psc -o programa.c

    # Dump the instrumented Python used for step-by-step execution
    python -m pseudoflow python programa.psc

    # Print the flow diagram description (or its JSON form)
    python -m pseudoflow flow programa.psc
    python -m pseudoflow flow programa.psc --format json

    # Run the program, answering reads from the command line
    python -m pseudoflow run programa.psc --input Ana --input 18

Exit codes
----------
    0   Success.
    1   One or more diagnostics with severity ERROR were emitted.
    2   Infrastructure failure (missing file, bad option, etc.).
    3   The program failed while running.

The module doubles as ``python -m pseudoflow`` via the companion
``pseudoflow/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import textwrap
from pathlib import Path
from typing import Any, List, Optional, Sequence, TextIO

from pseudoflow import __version__
from pseudoflow.config import AnalysisConfig
from pseudoflow.errors import Diagnostic, PseudoflowError
from pseudoflow.pipeline import AnalysisResult, analyze
from pseudoflow.runtime import ExecutionSession, ScriptedInput, TraceEvent

_log = logging.getLogger("pseudoflow")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2
EXIT_EXECUTION: int = 3


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``pseudoflow`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    root = logging.getLogger("pseudoflow")
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
                datefmt="%H:%M:%S",
            )
        )
        root.addHandler(handler)


def _read_source(raw: str) -> str:
    """Read the pseudocode source; ``-`` reads standard input."""
    if raw == "-":
        return sys.stdin.read()
    p = Path(raw).expanduser().resolve()
    if not p.exists():
        _log.error("source file not found: %s", p)
        raise SystemExit(EXIT_INFRA)
    return p.read_text(encoding="utf-8")


def _open_output(dest: Optional[str]) -> TextIO:
    """Return a writable text stream.

    *dest* ``None`` or ``"-"`` → ``sys.stdout``; otherwise open the path
    for writing (creating parent directories as needed).
    """
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _write_output(dest: Optional[str], text: str) -> None:
    out = _open_output(dest)
    try:
        out.write(text)
        if not text.endswith("\n"):
            out.write("\n")
    finally:
        if out is not sys.stdout:
            out.close()


def _emit_diagnostics(
    diagnostics: Sequence[Diagnostic],
    fmt: str,
    stream: TextIO,
    filename: str,
) -> int:
    """Write *diagnostics* to *stream* in the chosen format.

    Returns the count of ERROR-severity diagnostics.
    """
    error_count = 0
    for diag in diagnostics:
        if diag.severity.is_error():
            error_count += 1
        if fmt == "json":
            stream.write(json.dumps(diag.to_json()) + "\n")
        else:
            stream.write(diag.to_gcc_format(filename) + "\n")

    if fmt == "summary":
        stream.write(f"\n--- {len(diagnostics)} diagnostic(s), "
                     f"{error_count} error(s) ---\n")
    return error_count


def _config_from_args(args: argparse.Namespace) -> AnalysisConfig:
    config = AnalysisConfig()
    if getattr(args, "indent_width", None) is not None:
        config.indent_width = args.indent_width
    if getattr(args, "buffer_size", None) is not None:
        config.string_buffer_size = args.buffer_size
    return config


def _analyze(args: argparse.Namespace) -> AnalysisResult:
    return analyze(_read_source(args.source_file), _config_from_args(args))


def _display_name(args: argparse.Namespace) -> str:
    return "<stdin>" if args.source_file == "-" else args.source_file


def _report_to_stderr(args: argparse.Namespace, result: AnalysisResult) -> int:
    """Print diagnostics on stderr and pick the exit code for a backend run."""
    errors = _emit_diagnostics(result.diagnostics, "gcc", sys.stderr, _display_name(args))
    return EXIT_ERROR if errors else EXIT_OK


# ===========================================================================
# Subcommands
# ===========================================================================

def cmd_check(args: argparse.Namespace) -> int:
    """Parse a program and report its diagnostics."""
    result = _analyze(args)
    out = _open_output(args.output)
    try:
        errors = _emit_diagnostics(result.diagnostics, args.format, out, _display_name(args))
    finally:
        if out is not sys.stdout:
            out.close()
    return EXIT_ERROR if errors else EXIT_OK


def cmd_c(args: argparse.Namespace) -> int:
    result = _analyze(args)
    _write_output(args.output, result.c_code)
    return _report_to_stderr(args, result)


def cmd_python(args: argparse.Namespace) -> int:
    result = _analyze(args)
    _write_output(args.output, result.python_code)
    return _report_to_stderr(args, result)


def cmd_flow(args: argparse.Namespace) -> int:
    result = _analyze(args)
    if args.format == "json":
        text = json.dumps(result.flow_graph.to_json(), indent=2)
    else:
        text = result.mermaid
    _write_output(args.output, text)
    return _report_to_stderr(args, result)


def cmd_steps(args: argparse.Namespace) -> int:
    result = _analyze(args)
    lines: List[str] = []
    for index, step in enumerate(result.flow_steps):
        suffix = f"  (vuelve a {step.loop_back_to})" if step.loop_back_to is not None else ""
        lines.append(f"{index:3d}  {step.label}{suffix}")
    _write_output(args.output, "\n".join(lines))
    return _report_to_stderr(args, result)


def cmd_vars(args: argparse.Namespace) -> int:
    result = _analyze(args)
    if args.format == "json":
        text = json.dumps(result.variables.to_json(), indent=2)
    else:
        text = "\n".join(
            f"{table.scope_id}: {', '.join(table.names) or '-'}"
            for table in result.variables.tables
        )
    _write_output(args.output, text)
    return _report_to_stderr(args, result)


async def _console_input(label: str) -> Any:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, input, f"{label}? ")


def _print_trace(labels: Sequence[str], event: TraceEvent) -> None:
    shown = []
    for label, slot in zip(labels, event.snapshot):
        if slot is None:
            continue
        if slot["state"] == "unset":
            shown.append(f"{label}=?")
        elif slot["state"] == "cleared":
            shown.append(f"{label}=-")
        else:
            shown.append(f"{label}={slot['value']!r}")
    sys.stderr.write(f"[linea {event.line}] {' '.join(shown)}\n")


def cmd_run(args: argparse.Namespace) -> int:
    """Run the instrumented program on this terminal."""
    result = _analyze(args)
    if result.has_errors and not args.force:
        _report_to_stderr(args, result)
        _log.error("program has errors; use --force to run it anyway")
        return EXIT_ERROR

    provider = ScriptedInput(args.input) if args.input else _console_input
    labels = result.trace_labels
    session = ExecutionSession(
        input_provider=provider,
        on_write=lambda text: print(text, flush=True),
        on_trace=(lambda event: _print_trace(labels, event)) if args.trace else None,
    )
    outcome = asyncio.run(session.run(result.python_program))
    if not outcome.ok:
        sys.stderr.write(f"{outcome.error}\n")
        return EXIT_EXECUTION
    return EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""

    parser = argparse.ArgumentParser(
        prog="pseudoflow",
        description=(
            "pseudoflow — compiler for Spanish-keyword pseudocode.\n\n"
            "Validates a program, translates it to C or instrumented Python,\n"
            "draws its flow diagram and runs it step by step."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              pseudoflow check programa.psc
              pseudoflow c     programa.psc -o programa.c
              pseudoflow flow  programa.psc --format json
              pseudoflow run   programa.psc --input Ana --trace
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # Shared argument groups (reusable) ------------------------------------

    def _add_source_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "source_file",
            metavar="SOURCE",
            help='Pseudocode file ("-" for stdin).',
        )
        g = p.add_argument_group("analysis tuning")
        g.add_argument(
            "--indent-width",
            type=int,
            default=None,
            metavar="N",
            help="Spaces per indentation level (default: 2).",
        )
        g.add_argument(
            "--buffer-size",
            type=int,
            default=None,
            metavar="N",
            help="Size of C text buffers (default: 100).",
        )

    def _add_output_arg(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "-o", "--output",
            default=None,
            metavar="FILE",
            help='Output file ("-" or omit for stdout).',
        )

    # --- check -------------------------------------------------------------
    p_check = subparsers.add_parser(
        "check",
        aliases=["lint"],
        help="Report diagnostics for a program.",
    )
    _add_source_args(p_check)
    _add_output_arg(p_check)
    p_check.add_argument(
        "-f", "--format",
        choices=["gcc", "json", "summary"],
        default="gcc",
        help="Output format (default: gcc).",
    )
    p_check.set_defaults(func=cmd_check)

    # --- c -----------------------------------------------------------------
    p_c = subparsers.add_parser("c", help="Translate a program to C.")
    _add_source_args(p_c)
    _add_output_arg(p_c)
    p_c.set_defaults(func=cmd_c)

    # --- python ------------------------------------------------------------
    p_py = subparsers.add_parser(
        "python",
        help="Emit the instrumented Python used for step-by-step runs.",
    )
    _add_source_args(p_py)
    _add_output_arg(p_py)
    p_py.set_defaults(func=cmd_python)

    # --- flow --------------------------------------------------------------
    p_flow = subparsers.add_parser("flow", help="Print the flow diagram of the main body.")
    _add_source_args(p_flow)
    _add_output_arg(p_flow)
    p_flow.add_argument(
        "-f", "--format",
        choices=["mermaid", "json"],
        default="mermaid",
        help="Output format (default: mermaid).",
    )
    p_flow.set_defaults(func=cmd_flow)

    # --- steps -------------------------------------------------------------
    p_steps = subparsers.add_parser("steps", help="Print the linear step listing.")
    _add_source_args(p_steps)
    _add_output_arg(p_steps)
    p_steps.set_defaults(func=cmd_steps)

    # --- vars --------------------------------------------------------------
    p_vars = subparsers.add_parser("vars", help="Print the variable table of every scope.")
    _add_source_args(p_vars)
    _add_output_arg(p_vars)
    p_vars.add_argument(
        "-f", "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text).",
    )
    p_vars.set_defaults(func=cmd_vars)

    # --- run ---------------------------------------------------------------
    p_run = subparsers.add_parser("run", help="Run a program.")
    _add_source_args(p_run)
    p_run.add_argument(
        "-i", "--input",
        action="append",
        default=None,
        metavar="VALUE",
        help="Answer for the next read (repeatable). Without it, reads prompt on stdin.",
    )
    p_run.add_argument(
        "--trace",
        action="store_true",
        help="Print a variable snapshot on stderr after every traced step.",
    )
    p_run.add_argument(
        "--force",
        action="store_true",
        help="Run even when the program has errors.",
    )
    p_run.set_defaults(func=cmd_run)

    return parser


# ===========================================================================
# Entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the pseudoflow CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except PseudoflowError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
