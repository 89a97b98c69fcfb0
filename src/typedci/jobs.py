"""
Typed job definitions.

    build = define_job(
        "build",
        inputs={"version": types.string},
        env_outputs=["buildId"],
        artifacts={"dist": "dist/"},
        steps=lambda ctx: [build_app(version=ctx.inputs["version"])],
    )

    jobs = {"build": build(version="1.0.0", executor="local")}

`env_outputs` are turned into hidden artifacts by the env-outputs extension.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .actions import resolve_inputs
from .errors import GeneratedNameCollision, MissingExecutor, ValidationError
from .model import Job, JobMeta, Step
from .refs import check_shell_names, sanitize
from .types import TypeDescriptor

# invocation keys that configure the job instead of feeding an input
RESERVED_KEYS = ("executor", "needs", "artifact_inputs")


@dataclass(frozen=True)
class JobContext:
    """What a step-producing function gets to see."""
    inputs: Mapping[str, Any]
    job: str


StepsArg = Union[Sequence[Step], Callable[[JobContext], Sequence[Step]]]


@dataclass(frozen=True)
class JobSpec:
    name: str
    steps: StepsArg
    inputs: Mapping[str, TypeDescriptor] = field(default_factory=dict)
    env_outputs: Tuple[str, ...] = ()
    artifacts: Mapping[str, str] = field(default_factory=dict)
    artifact_inputs: Tuple[str, ...] = ()
    needs: Tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    env_from: Tuple[Any, ...] = ()
    executor: Any = None
    condition: Optional[str] = None
    continue_on_error: bool = False
    retry: Any = None
    timeout: Any = None
    description: str = ""

    def __call__(self, values: Mapping[str, Any] | None = None, **kwargs: Any) -> Job:
        invocation = dict(values or {})
        invocation.update(kwargs)
        return compile_job(self, invocation)


def define_job(
    name: str,
    *,
    steps: StepsArg,
    inputs: Optional[Mapping[str, TypeDescriptor]] = None,
    env_outputs: Sequence[str] = (),
    artifacts: Optional[Mapping[str, str]] = None,
    artifact_inputs: Sequence[str] = (),
    needs: Sequence[str] = (),
    env: Optional[Mapping[str, str]] = None,
    env_from: Sequence[Any] = (),
    executor: Any = None,
    condition: Optional[str] = None,
    continue_on_error: bool = False,
    retry: Any = None,
    timeout: Any = None,
    description: str = "",
) -> JobSpec:
    if not name:
        raise ValueError("define_job() needs a name")
    inputs = dict(inputs or {})
    clash = [k for k in RESERVED_KEYS if k in inputs]
    if clash:
        raise ValueError(f"job {name!r}: input names {clash} are reserved")
    env_outputs = tuple(env_outputs)
    check_shell_names(name, env_outputs, "env output")

    return JobSpec(
        name=name,
        steps=steps if callable(steps) else tuple(steps),
        inputs=inputs,
        env_outputs=tuple(env_outputs),
        artifacts=dict(artifacts or {}),
        artifact_inputs=tuple(artifact_inputs),
        needs=tuple(needs),
        env=dict(env or {}),
        env_from=tuple(env_from),
        executor=executor,
        condition=condition,
        continue_on_error=continue_on_error,
        retry=retry,
        timeout=timeout,
        description=description,
    )


def find_name_collisions(job_name: str, steps: Sequence[Step]) -> List[GeneratedNameCollision]:
    """
    Action steps whose names sanitize to the same identifier would write the
    same STEP_OUTPUT_<step>_* variables. Plain shell steps are ignored.
    """
    seen: Dict[str, List[int]] = {}
    for idx, step in enumerate(steps):
        if step.action is None:
            continue
        seen.setdefault(sanitize(step.name), []).append(idx)

    return [
        GeneratedNameCollision(
            job=job_name,
            step=name,
            variable=f"STEP_OUTPUT_{name}",
            indices=tuple(indices),
        )
        for name, indices in seen.items()
        if len(indices) > 1
    ]


def compile_job(spec: JobSpec, invocation: Mapping[str, Any] | None = None) -> Job:
    invocation = dict(invocation or {})
    provided = {k: v for k, v in invocation.items() if k not in RESERVED_KEYS}
    resolved = resolve_inputs(spec.name, spec.inputs, provided, kind="job")

    # the only place where steps may depend on input values
    if callable(spec.steps):
        steps = tuple(spec.steps(JobContext(inputs=dict(resolved), job=spec.name)))
    else:
        steps = tuple(spec.steps)

    collisions = find_name_collisions(spec.name, steps)
    if collisions:
        raise ValidationError(title="Name collision", job=spec.name, issues=list(collisions))

    if invocation.get("executor") is not None:
        executor = invocation["executor"]
    elif spec.executor is not None:
        executor = spec.executor
    else:
        raise MissingExecutor(job=spec.name)

    # concatenated, duplicates are left for later stages
    needs = tuple(spec.needs) + tuple(invocation.get("needs") or ())
    artifact_inputs = tuple(spec.artifact_inputs) + tuple(invocation.get("artifact_inputs") or ())

    return Job(
        name=spec.name,
        executor=executor,
        steps=steps,
        outputs=dict(spec.artifacts),
        inputs=artifact_inputs,
        needs=needs,
        env=dict(spec.env),
        env_from=tuple(spec.env_from),
        condition=spec.condition,
        continue_on_error=spec.continue_on_error,
        retry=spec.retry,
        timeout=spec.timeout,
        meta=JobMeta(
            name=spec.name,
            inputs=dict(spec.inputs),
            env_outputs=tuple(spec.env_outputs),
            artifacts=dict(spec.artifacts),
            description=spec.description,
            input_values=resolved,
        ),
    )
