"""
References: placeholders for values that only exist while the script runs.

A reference is never resolved here. It compiles to a shell expansion:

    step_output("build-image", "imageRef")  ->  ${STEP_OUTPUT_build_image_imageRef}
    from_env("REGISTRY_URL")                ->  ${REGISTRY_URL}
    matrix("node")                          ->  ${MATRIX_node}
    job_output("build", "buildId")          ->  ${JOB_OUTPUT_build_buildId}
"""
from __future__ import annotations

import os
import re
import shlex
from dataclasses import dataclass
from typing import Any, Iterable, Union

from .errors import InvalidName, UnknownReferenceKind, UnsupportedValueKind


@dataclass(frozen=True)
class StepOutput:
    """Output of an earlier step in the same job."""
    step: str
    output: str


@dataclass(frozen=True)
class EnvVar:
    """An environment variable, read as-is."""
    name: str


@dataclass(frozen=True)
class Matrix:
    """The value of one matrix dimension for the current job."""
    key: str


@dataclass(frozen=True)
class JobOutput:
    """An env output of an upstream job, imported by the env-outputs extension."""
    job: str
    output: str


Reference = Union[StepOutput, EnvVar, Matrix, JobOutput]
REFERENCE_TYPES = (StepOutput, EnvVar, Matrix, JobOutput)


# ---------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------

def step_output(step: str, output: str) -> StepOutput:
    return StepOutput(step=step, output=output)


def from_env(name: str) -> EnvVar:
    return EnvVar(name=name)


def matrix(key: str) -> Matrix:
    return Matrix(key=key)


def job_output(job: str, output: str) -> JobOutput:
    return JobOutput(job=job, output=output)


def is_reference(value: Any) -> bool:
    return isinstance(value, REFERENCE_TYPES)


# ---------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------

_UNSAFE = re.compile(r"[^A-Za-z0-9_]")
_SHELL_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def sanitize(name: str) -> str:
    """Make a step/job/output name usable inside a shell variable name."""
    return _UNSAFE.sub("_", name)


def check_shell_names(owner: str, names: Iterable[str], what: str) -> None:
    """
    Input and output names become INPUT_<name> / OUTPUT_<name> as written, so
    they must already be shell identifiers. Step and job names are sanitized
    instead.
    """
    for name in names:
        if not isinstance(name, str) or not _SHELL_NAME.match(name):
            raise InvalidName(owner=owner, name=str(name), what=what)


def step_output_var(step: str, output: str) -> str:
    return f"STEP_OUTPUT_{sanitize(step)}_{sanitize(output)}"


def job_output_var(job: str, output: str) -> str:
    return f"JOB_OUTPUT_{sanitize(job)}_{sanitize(output)}"


def matrix_var(key: str) -> str:
    return f"MATRIX_{sanitize(key)}"


# ---------------------------------------------------------------------
# Shell emission
# ---------------------------------------------------------------------

def to_execution_expression(ref: Reference) -> str:
    """Bare ${...} expansion for a reference."""
    if isinstance(ref, StepOutput):
        return "${" + step_output_var(ref.step, ref.output) + "}"
    if isinstance(ref, EnvVar):
        return "${" + ref.name + "}"
    if isinstance(ref, Matrix):
        return "${" + matrix_var(ref.key) + "}"
    if isinstance(ref, JobOutput):
        return "${" + job_output_var(ref.job, ref.output) + "}"
    raise UnknownReferenceKind(ref)


def to_shell(value: Any, quoted: bool = True) -> str:
    """
    Render a literal or reference as shell text.

    quoted=True is for fixed values: strings are escaped so they cannot
    word-split or inject, references become "${...}".
    quoted=False is for text that is already a shell expression: strings go
    out raw, references become a bare ${...}.

    Lists render each element in the same mode, joined by a single space.
    """
    if is_reference(value):
        expr = to_execution_expression(value)
        return f'"{expr}"' if quoted else expr
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return shlex.quote(value) if quoted else value
    if isinstance(value, os.PathLike):
        text = os.fspath(value)
        return shlex.quote(text) if quoted else text
    if isinstance(value, (list, tuple)):
        return " ".join(to_shell(item, quoted) for item in value)
    raise UnsupportedValueKind(value)


def _contains_reference(value: Any) -> bool:
    if is_reference(value):
        return True
    if isinstance(value, (list, tuple)):
        return any(_contains_reference(item) for item in value)
    return False


def _flatten(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        out: list = []
        for item in value:
            out.extend(_flatten(item))
        return out
    return [value]


def shell_assignment(var: str, value: Any) -> str:
    """
    `VAR=<value>` for a generated script.

    A reference is assigned unquoted so the shell expands it. A literal is
    rendered unquoted and then escaped once as a whole. A list that mixes
    the two becomes adjacent words glued by a quoted space, e.g.
    VAR=a' '"${X}", so literals stay escaped and references still expand.
    """
    if is_reference(value):
        return f"{var}={to_execution_expression(value)}"
    if isinstance(value, (list, tuple)) and _contains_reference(value):
        words = [to_shell(item, quoted=True) or "''" for item in _flatten(value)]
        return f"{var}=" + "' '".join(words)
    return f"{var}={shlex.quote(to_shell(value, quoted=False))}"
