from __future__ import annotations

import os
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .model import Job, Step
from .refs import EnvVar, JobOutput, Matrix, StepOutput, is_reference
from .workflow import Workflow

# -------------------- Schemas --------------------


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class StepRecord(_Record):
    name: str
    run: str
    condition: Optional[str] = None
    env: Dict[str, str] = Field(default_factory=dict)
    packages: List[Any] = Field(default_factory=list)
    meta: Optional[Dict[str, Any]] = None


class JobRecord(_Record):
    executor: Any
    steps: List[StepRecord]
    outputs: Dict[str, str] = Field(default_factory=dict)
    inputs: List[str] = Field(default_factory=list)
    needs: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)
    env_from: List[Any] = Field(default_factory=list, alias="envFrom")
    condition: Optional[str] = None
    continue_on_error: bool = Field(default=False, alias="continueOnError")
    retry: Any = None
    timeout: Any = None
    # compiler-private, the engine may ignore it
    meta: Optional[Dict[str, Any]] = None


class WorkflowRecord(_Record):
    name: str
    env: Dict[str, str] = Field(default_factory=dict)
    jobs: Dict[str, JobRecord]


# -------------------- Conversion --------------------

_REF_TAGS = {StepOutput: "stepOutput", EnvVar: "fromEnv", Matrix: "matrix", JobOutput: "jobOutput"}


def jsonable(value: Any) -> Any:
    """Turn compiler values (references, paths, tuples, dataclasses) into plain JSON data."""
    if is_reference(value):
        return {"ref": _REF_TAGS[type(value)], **asdict(value)}
    if isinstance(value, os.PathLike):
        return os.fspath(value)
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): jsonable(v) for k, v in value.items()}
    if is_dataclass(value) and not isinstance(value, type):
        return jsonable(asdict(value))
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _step_meta(step: Step) -> Optional[Dict[str, Any]]:
    meta = step.action
    if meta is None:
        return None
    return {
        "name": meta.name,
        "actionName": meta.action_name,
        "inputs": {k: t.name for k, t in meta.inputs.items()},
        "outputs": list(meta.outputs),
        "description": meta.description,
        "inputValues": jsonable(dict(meta.input_values)),
    }


def step_record(step: Step) -> StepRecord:
    return StepRecord(
        name=step.name,
        run=step.run,
        condition=step.condition,
        env=dict(step.env),
        packages=jsonable(list(step.packages)),
        meta=_step_meta(step),
    )


def job_record(job: Job) -> JobRecord:
    meta = None
    if job.meta is not None:
        meta = {
            "name": job.meta.name,
            "inputs": {k: t.name for k, t in job.meta.inputs.items()},
            "envOutputs": list(job.meta.env_outputs),
            "artifacts": dict(job.meta.artifacts),
            "description": job.meta.description,
            "inputValues": jsonable(dict(job.meta.input_values)),
        }
    return JobRecord(
        executor=jsonable(job.executor),
        steps=[step_record(s) for s in job.steps],
        outputs=dict(job.outputs),
        inputs=list(job.inputs),
        needs=list(job.needs),
        env=dict(job.env),
        env_from=jsonable(list(job.env_from)),
        condition=job.condition,
        continue_on_error=job.continue_on_error,
        retry=jsonable(job.retry),
        timeout=jsonable(job.timeout),
        meta=meta,
    )


def to_record(workflow: Workflow) -> WorkflowRecord:
    return WorkflowRecord(
        name=workflow.name,
        env=dict(workflow.env),
        jobs={name: job_record(j) for name, j in workflow.jobs.items()},
    )


def to_json(workflow: Workflow, indent: int | None = 2) -> str:
    return to_record(workflow).model_dump_json(indent=indent, by_alias=True)
