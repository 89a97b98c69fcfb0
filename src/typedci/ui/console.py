"""Console output for the typedci commands."""

from __future__ import annotations

import sys
import traceback
from typing import Iterable, Optional

from ..errors import CompileError, ValidationError
from ..model import Job


class Console:
    """Everything the CLI shows goes through here. Errors and debug go to stderr."""

    def __init__(self, debug: bool = False):
        self.debug = debug

    def _err(self, text: str = "") -> None:
        print(text, file=sys.stderr)

    def print_header(self, title: str) -> None:
        print(f"\n{title}\n{'=' * len(title)}")

    def print_job(self, name: str, job: Job) -> None:
        """One job: executor, wiring and a numbered step list."""
        print(f"\nJOB: {name}")
        print(f"Executor: {job.executor}")
        wiring = [
            ("Needs", job.needs),
            ("Env outputs", job.env_outputs),
            ("Artifacts", list(job.outputs)),
            ("Artifact inputs", job.inputs),
        ]
        for label, values in wiring:
            if values:
                print(f"{label}: {', '.join(values)}")
        for idx, step in enumerate(job.steps):
            kind = step.action.action_name if step.action is not None else "sh"
            suffix = f" [if {step.condition}]" if step.condition else ""
            print(f"  {idx}. {step.name} ({kind}){suffix}")

    def print_validation_ok(self, workflow: str, job_count: int) -> None:
        print(f"VALID: {workflow} ({job_count} job(s))")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[Iterable[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Structured error block on stderr.

        Args:
            title: one-line summary, printed after "ERROR:"
            message: what went wrong
            details: extra lines, indented
            suggestion: how to fix it, after a blank line
        """
        self._err()
        self._err(f"ERROR: {title}")
        self._err(message)
        for line in details or ():
            self._err(f"  {line}")
        if suggestion:
            self._err()
            self._err(suggestion)

    def print_compile_error(self, title: str, where: str, exc: CompileError) -> None:
        """A CompileError; a ValidationError is listed issue by issue."""
        if isinstance(exc, ValidationError):
            lines = str(exc).splitlines()
            self.print_error(title, f"{where}: {lines[0]}", details=[line.strip() for line in lines[1:]])
        else:
            self.print_error(title, f"{where}: {type(exc).__name__}", details=str(exc).splitlines())
        if self.debug:
            traceback.print_exc()

    def print_exception(self, exc: Exception) -> None:
        """Traceback in debug mode, the message otherwise."""
        if self.debug:
            traceback.print_exc()
        else:
            self._err(f"Error: {exc}")

    def print_debug(self, message: str) -> None:
        if self.debug:
            self._err(f"[DEBUG] {message}")


_console: Optional[Console] = None


def get_console() -> Console:
    """The shared console, created on first use. The CLI replaces it with set_console()."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    global _console
    _console = console
