"""Turn blocking device operations into tasks with exactly one outcome message.

A :class:`Task` is a unit of background work the controller asks the
runtime to schedule. Running it through :func:`execute` always yields the
task's outcome, even when the work raises.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from gadget.tui.capture import CaptureResult, capture_function
from gadget.tui.messages import LiveOutput, Message, OperationResult
from gadget.utils.logging import get_logger

logger = get_logger(__name__)

Emit = Callable[[Message], None]
OutcomeFactory = Callable[[bool, str, tuple[str, ...]], OperationResult]

# Serializes captured operations; the capture slot itself only rejects overlap
_capture_lock = threading.Lock()


@dataclass(frozen=True)
class Task:
    """Background work plus the message to report if it blows up.

    Attributes:
        name: Short label for logs.
        run: Does the work. May call ``emit`` with interim messages and
            returns the outcome message, or None for tasks that report
            nothing (a cancelled timer).
        on_error: Builds the outcome when ``run`` raises.
        foreground: Must run on the UI thread with the terminal released
            (an external editor).
    """

    name: str
    run: Callable[[Emit], Message | None]
    on_error: Callable[[Exception], Message] | None = None
    foreground: bool = False


def execute(task: Task, emit: Emit) -> Message | None:
    """Run *task* and return its outcome, converting exceptions via ``on_error``."""
    logger.debug("task_start", task=task.name)
    try:
        outcome = task.run(emit)
    except Exception as exc:
        logger.exception("task_failed", task=task.name)
        if task.on_error is None:
            return None
        return task.on_error(exc)
    logger.debug("task_done", task=task.name, outcome=type(outcome).__name__)
    return outcome


def run_captured(
    fn: Callable[[], Any],
    on_line: Callable[[str], None] | None = None,
) -> CaptureResult:
    """Capture the output of *fn*, waiting for any other captured call to finish."""
    with _capture_lock:
        return capture_function(fn, on_line=on_line)


def operation_task(
    name: str,
    operation: Callable[[], str],
    outcome: OutcomeFactory,
    capture: bool = True,
    stream: bool = False,
) -> Task:
    """Wrap *operation* so it reports through *outcome*.

    Args:
        name: Task label.
        operation: Performs the work and returns the success message.
            Raising marks the outcome as failed with ``str(exc)``.
        outcome: Outcome message class (or a partial of one) called as
            ``outcome(success, message, captured_lines)``.
        capture: Collect what *operation* prints into ``captured_lines``.
        stream: Also forward every printed line as a :class:`LiveOutput`
            while the operation runs. Implies *capture*.
    """

    def run(emit: Emit) -> Message:
        if not (capture or stream):
            return outcome(True, operation(), ())
        on_line = (lambda line: emit(LiveOutput(line))) if stream else None
        result = run_captured(operation, on_line=on_line)
        if result.error is not None:
            logger.info("operation_failed", task=name, error=str(result.error))
            return outcome(False, str(result.error), result.lines)
        return outcome(True, str(result.value), result.lines)

    def on_error(exc: Exception) -> Message:
        return outcome(False, str(exc), ())

    return Task(name=name, run=run, on_error=on_error)
