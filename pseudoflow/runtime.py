"""
pseudoflow/runtime.py
=====================

Asyncio host for instrumented programs.

:class:`ExecutionSession` loads the Python produced by
:mod:`pseudoflow.trace_backend` and drives one run at a time:

* ``write`` calls are collected as output lines (and forwarded to an
  optional ``on_write`` callback);
* ``trace`` calls are collected as :class:`TraceEvent` objects (and
  forwarded to ``on_trace``);
* ``read`` suspends the run.  The value comes either from the
  ``input_provider`` coroutine function given to the session, or from a
  later :meth:`ExecutionSession.provide_input` call.

Only one run may be in flight.  :meth:`ExecutionSession.cancel` stops the
current run and drops its pending read, so a late ``provide_input`` can
never resume a newer run.

Failures inside the program never propagate out of :meth:`run`; they are
reported as an :class:`ExecutionOutcome` with status ``FAILED``.

Usage::

    session = ExecutionSession(input_provider=ScriptedInput(["Ana"]))
    outcome = asyncio.run(session.run(result.python_program))
    print(outcome.output)
"""

from __future__ import annotations

import asyncio
import enum
import logging
import traceback
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Dict, Iterable, List, Optional, Tuple

from pseudoflow.codegen import GeneratedCode
from pseudoflow.errors import ExecutionError, SessionBusyError

logger = logging.getLogger(__name__)

PROGRAM_FILENAME = "<pseudoflow>"

InputProvider = Callable[[str], Awaitable[Any]]
Snapshot = Tuple[Optional[Dict[str, Any]], ...]


class RunStatus(enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class TraceEvent:
    """One instrumentation call: source line, slot snapshot, output text."""

    line: int
    snapshot: Snapshot = ()
    output: str = ""


@dataclass
class ExecutionOutcome:
    status: RunStatus = RunStatus.COMPLETED
    output: List[str] = field(default_factory=list)
    trace: List[TraceEvent] = field(default_factory=list)
    error: Optional[ExecutionError] = None

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.COMPLETED

    @property
    def text(self) -> str:
        return "".join(self.output)


class ScriptedInput:
    """Input provider answering reads from a fixed sequence of values."""

    def __init__(self, values: Iterable[Any]) -> None:
        self._values: Deque[Any] = deque(values)

    @property
    def remaining(self) -> int:
        return len(self._values)

    async def __call__(self, label: str) -> Any:
        if not self._values:
            raise ExecutionError(f'No hay mas datos de entrada para "{label}".')
        return self._values.popleft()


# ===================================================================== #
#  Loading                                                              #
# ===================================================================== #

def load_program(program: GeneratedCode) -> Callable[[Any], Awaitable[None]]:
    """Compile *program* and return its entry coroutine function."""
    try:
        code = compile(program.code, PROGRAM_FILENAME, "exec")
    except SyntaxError as exc:
        line = program.source_line(exc.lineno) if exc.lineno else None
        raise ExecutionError(f"codigo generado invalido: {exc.msg}", line) from exc
    namespace: Dict[str, Any] = {"__name__": "pseudoflow_program"}
    exec(code, namespace)
    return namespace[program.entry_point or "__programa__"]


def _failing_line(exc: BaseException, program: GeneratedCode) -> Optional[int]:
    """Pseudocode line of the innermost generated frame in *exc*'s traceback."""
    line = None
    for frame in traceback.extract_tb(exc.__traceback__):
        if frame.filename == PROGRAM_FILENAME and frame.lineno is not None:
            mapped = program.source_line(frame.lineno)
            if mapped is not None:
                line = mapped
    return line


# ===================================================================== #
#  Session                                                              #
# ===================================================================== #

class _SessionIO:
    """The ``io`` object handed to a running program."""

    def __init__(self, session: "ExecutionSession", token: int, outcome: ExecutionOutcome) -> None:
        self._session = session
        self._token = token
        self._outcome = outcome

    def write(self, text: str) -> None:
        self._outcome.output.append(text)
        if self._session.on_write is not None:
            self._session.on_write(text)

    async def read(self, label: str) -> Any:
        return await self._session._await_input(self._token, label)

    def trace(self, line: int, snapshot: List[Any], output: str = "") -> None:
        event = TraceEvent(line, tuple(snapshot), output)
        self._outcome.trace.append(event)
        if self._session.on_trace is not None:
            self._session.on_trace(event)


class ExecutionSession:
    """Runs instrumented programs, one at a time."""

    def __init__(
        self,
        input_provider: Optional[InputProvider] = None,
        on_write: Optional[Callable[[str], None]] = None,
        on_trace: Optional[Callable[[TraceEvent], None]] = None,
    ) -> None:
        self.input_provider = input_provider
        self.on_write = on_write
        self.on_trace = on_trace
        self._task: Optional[asyncio.Future] = None
        self._token = 0
        self._pending: Optional[Tuple[int, str, asyncio.Future]] = None
        self._cancel_requested = False

    @property
    def running(self) -> bool:
        return self._task is not None

    @property
    def waiting_for(self) -> Optional[str]:
        """Label of the pending read, or ``None`` when nothing is waiting."""
        if self._pending is None:
            return None
        return self._pending[1]

    async def run(self, program: GeneratedCode) -> ExecutionOutcome:
        if self._task is not None:
            raise SessionBusyError("Ya hay una ejecucion en curso.")

        outcome = ExecutionOutcome()
        try:
            entry = load_program(program)
        except ExecutionError as exc:
            logger.info("program failed to load: %s", exc)
            outcome.status = RunStatus.FAILED
            outcome.error = exc
            return outcome

        self._token += 1
        self._cancel_requested = False
        io = _SessionIO(self, self._token, outcome)
        self._task = asyncio.ensure_future(entry(io))
        try:
            await self._task
            outcome.status = RunStatus.COMPLETED
        except asyncio.CancelledError:
            if not self._cancel_requested:
                raise
            outcome.status = RunStatus.CANCELLED
        except ExecutionError as exc:
            outcome.status = RunStatus.FAILED
            outcome.error = exc
        except Exception as exc:
            logger.debug("program raised", exc_info=True)
            outcome.status = RunStatus.FAILED
            outcome.error = ExecutionError(
                f"{type(exc).__name__}: {exc}", _failing_line(exc, program)
            )
        finally:
            self._task = None
            self._drop_pending()
        logger.info("run finished: %s", outcome.status.value)
        return outcome

    def provide_input(self, value: Any) -> bool:
        """Resume the pending read with *value*. False if nothing is waiting."""
        if self._pending is None:
            return False
        token, label, future = self._pending
        if token != self._token or future.done():
            self._pending = None
            return False
        logger.debug("input for %r supplied", label)
        future.set_result(value)
        return True

    def cancel(self) -> bool:
        """Cancel the run in flight. False if there is none."""
        if self._task is None:
            return False
        self._cancel_requested = True
        self._drop_pending()
        self._task.cancel()
        return True

    # ----- internals --------------------------------------------------------

    async def _await_input(self, token: int, label: str) -> Any:
        if token != self._token or self._cancel_requested:
            raise asyncio.CancelledError()
        if self.input_provider is not None:
            return await self.input_provider(label)

        future = asyncio.get_running_loop().create_future()
        self._pending = (token, label, future)
        try:
            return await future
        finally:
            if self._pending is not None and self._pending[2] is future:
                self._pending = None

    def _drop_pending(self) -> None:
        if self._pending is not None:
            future = self._pending[2]
            if not future.done():
                future.cancel()
            self._pending = None


async def run_program(
    program: GeneratedCode,
    inputs: Iterable[Any] = (),
    on_write: Optional[Callable[[str], None]] = None,
) -> ExecutionOutcome:
    """Run *program* once, answering reads from *inputs* in order."""
    session = ExecutionSession(input_provider=ScriptedInput(inputs), on_write=on_write)
    return await session.run(program)
