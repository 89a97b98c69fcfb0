from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple


# ---------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------

class CompileError(Exception):
    """
    Base class for everything that can go wrong while turning definitions
    into steps, jobs and workflows.

    All of these are terminal: nothing here is retried, and no partially
    built workflow is ever returned alongside one.
    """


class TypeDefinitionError(CompileError, ValueError):
    """A type descriptor was built with nonsensical arguments."""


# ---------------------------------------------------------------------
# Input resolution
# ---------------------------------------------------------------------

@dataclass
class MissingRequiredInput(CompileError):
    owner: str
    input: str
    kind: str = "action"
    step_index: Optional[int] = None

    def __str__(self) -> str:
        return f"{self.kind.capitalize()} '{self.owner}': missing required input '{self.input}'"


@dataclass
class UnknownInput(CompileError):
    owner: str
    input: str
    known: Tuple[str, ...] = ()
    kind: str = "action"

    def __str__(self) -> str:
        return (
            f"{self.kind.capitalize()} '{self.owner}': unknown input '{self.input}'. "
            f"Declared inputs: {sorted(self.known)}"
        )


@dataclass
class InvalidName(CompileError):
    """An input/output name that cannot be part of a shell variable name."""
    owner: str
    name: str
    what: str = "input"

    def __str__(self) -> str:
        return (
            f"'{self.owner}': {self.what} name '{self.name}' is not a valid shell identifier "
            "(letters, digits and '_', not starting with a digit)"
        )


@dataclass
class MissingExecutor(CompileError):
    job: str

    def __str__(self) -> str:
        return f"Job '{self.job}': executor must be provided"


# ---------------------------------------------------------------------
# Values and references
# ---------------------------------------------------------------------

@dataclass
class UnknownReferenceKind(CompileError):
    value: Any

    def __str__(self) -> str:
        return f"Unknown reference type: {type(self.value).__name__}"


@dataclass
class UnsupportedValueKind(CompileError):
    value: Any

    def __str__(self) -> str:
        return f"Cannot convert value to shell: {type(self.value).__name__}"


# ---------------------------------------------------------------------
# Validation issues
# ---------------------------------------------------------------------

@dataclass
class TypeMismatch(CompileError):
    job: str
    step_index: int
    action: str
    input: str
    expected: str

    def __str__(self) -> str:
        return f"Input '{self.input}' failed type validation (expected {self.expected})"


@dataclass
class UnknownStepReference(CompileError):
    job: str
    step: str
    target: str
    input: Optional[str] = None
    step_index: Optional[int] = None

    def __str__(self) -> str:
        return f"Step '{self.step}' references unknown step '{self.target}'"


@dataclass
class GeneratedNameCollision(CompileError):
    job: str
    step: str
    variable: str
    indices: Tuple[int, ...] = ()

    def __str__(self) -> str:
        where = ", ".join(str(i) for i in self.indices)
        return (
            f"Job '{self.job}': steps {where} all compile to step name '{self.step}' "
            f"and would share {self.variable}_*; give each invocation a distinct 'as'"
        )


@dataclass
class ValidationError(CompileError):
    """
    Aggregated report for one failing job.

    `issues` holds the typed errors (TypeMismatch, MissingRequiredInput, ...)
    in step order; str() renders them as one multi-line report.
    """
    title: str
    job: str
    issues: List[CompileError] = field(default_factory=list)

    def __str__(self) -> str:
        lines = [f"{self.title} in job '{self.job}':"]
        for issue in self.issues:
            prefix = ""
            step_index = getattr(issue, "step_index", None)
            action = getattr(issue, "action", None)
            if step_index is not None:
                prefix = f"step {step_index} ({action}): " if action else f"step {step_index}: "
            lines.append(f"  - {prefix}{issue}")
        return "\n".join(lines)


# ---------------------------------------------------------------------
# Workflow assembly
# ---------------------------------------------------------------------

@dataclass
class DuplicateArtifact(CompileError):
    names: List[str]

    def __str__(self) -> str:
        return (
            f"Duplicate artifact names found: {self.names}. "
            "Each artifact name must be unique across all jobs."
        )


@dataclass
class ExtensionError(CompileError):
    extension: str
    message: str

    def __str__(self) -> str:
        return f"Extension '{self.extension}': {self.message}"
