"""
Validation extensions.

    mk_workflow("ci", jobs, extensions=[validation, validate_step_refs])

validation
  every action step: required inputs present, literal values match their
  declared type. References are skipped, they only have a value at runtime.

validate_step_refs
  every step_output() reference points at a step of the same job, and no two
  action steps in a job compile to the same STEP_OUTPUT_* names. Cross-job
  values travel through job_output() and the env-outputs extension instead.

Issues are collected per job; the first job with any issue stops the whole
workflow.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional

from .errors import (
    CompileError,
    MissingRequiredInput,
    TypeMismatch,
    UnknownStepReference,
    ValidationError,
)
from .jobs import find_name_collisions
from .model import Job
from .refs import StepOutput, is_reference
from .types import has_default
from .workflow import Workflow


@dataclass(frozen=True)
class ValidationResult:
    """Either the checked workflow, or the issues of the first failing job."""
    workflow: Optional[Workflow] = None
    job: Optional[str] = None
    issues: List[CompileError] = field(default_factory=list)
    title: str = "Validation error"

    @property
    def ok(self) -> bool:
        return not self.issues

    def unwrap(self) -> Workflow:
        if not self.ok:
            raise ValidationError(title=self.title, job=self.job or "", issues=list(self.issues))
        return self.workflow


# ---------------------------------------------------------------------
# Type checks
# ---------------------------------------------------------------------

def _type_issues(job_name: str, job: Job) -> List[CompileError]:
    issues: List[CompileError] = []
    for idx, step in enumerate(job.steps):
        meta = step.action
        if meta is None:
            continue  # plain shell step

        for input_name, input_type in meta.inputs.items():
            value = meta.input_values.get(input_name)
            if value is None:
                if not has_default(input_type):
                    issues.append(MissingRequiredInput(
                        owner=meta.action_name, input=input_name, step_index=idx,
                    ))
            elif is_reference(value):
                continue
            elif not input_type.eval_validate(value):
                issues.append(TypeMismatch(
                    job=job_name,
                    step_index=idx,
                    action=meta.action_name,
                    input=input_name,
                    expected=input_type.name,
                ))
    return issues


def check_types(workflow: Workflow) -> ValidationResult:
    for job_name, job in workflow.jobs.items():
        issues = _type_issues(job_name, job)
        if issues:
            return ValidationResult(job=job_name, issues=issues, title="Validation error")
    return ValidationResult(workflow=workflow)


def validation(workflow: Workflow) -> Workflow:
    """Type-check every action step. Raises ValidationError on the first bad job."""
    return check_types(workflow).unwrap()


# ---------------------------------------------------------------------
# Reference integrity
# ---------------------------------------------------------------------

def _step_outputs(value: Any) -> Iterator[StepOutput]:
    if isinstance(value, StepOutput):
        yield value
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _step_outputs(item)


def _ref_issues(job_name: str, job: Job) -> List[CompileError]:
    issues: List[CompileError] = list(find_name_collisions(job_name, job.steps))
    step_names = {s.name for s in job.steps}

    for idx, step in enumerate(job.steps):
        meta = step.action
        if meta is None:
            continue
        for input_name, value in meta.input_values.items():
            for ref in _step_outputs(value):
                if ref.step not in step_names:
                    issues.append(UnknownStepReference(
                        job=job_name,
                        step=meta.name,
                        target=ref.step,
                        input=input_name,
                        step_index=idx,
                    ))
    return issues


def check_step_refs(workflow: Workflow) -> ValidationResult:
    for job_name, job in workflow.jobs.items():
        issues = _ref_issues(job_name, job)
        if issues:
            return ValidationResult(job=job_name, issues=issues, title="Reference error")
    return ValidationResult(workflow=workflow)


def validate_step_refs(workflow: Workflow) -> Workflow:
    return check_step_refs(workflow).unwrap()


def full_validation(workflow: Workflow) -> Workflow:
    """validation, then validate_step_refs."""
    return validate_step_refs(validation(workflow))
