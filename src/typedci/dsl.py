# dsl.py
from __future__ import annotations

import itertools
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .model import Job, Step
from .refs import matrix_var


# ---------------------------------------------------------------------
# Step helper
# ---------------------------------------------------------------------

def sh(
    name: str,
    cmd: str,
    *,
    condition: str | None = None,
    env: Optional[Dict[str, str]] = None,
) -> Step:
    """Create a plain shell step (no typed inputs, not checked by validation)."""
    return Step(name=name, run=cmd, condition=condition, env=dict(env or {}))


# ---------------------------------------------------------------------
# Functional Job helper
# ---------------------------------------------------------------------

def job(
    name: str,
    *steps: Step,  # allow: job("x", sh(...), sh(...))
    steps_list: Optional[List[Step]] = None,  # allow: job("x", steps_list=[...])
    executor: Any = None,
    needs: Optional[List[str]] = None,
    outputs: Optional[Dict[str, str]] = None,
    inputs: Optional[List[str]] = None,
    env: Optional[Dict[str, str]] = None,
    env_from: Optional[List[Any]] = None,
    condition: str | None = None,
    continue_on_error: bool = False,
    retry: Any = None,
    timeout: Any = None,
) -> Job:
    """Untyped job: no input schema, no env outputs, no SDK metadata."""
    steps_final: List[Step] = []
    if steps_list:
        steps_final.extend(list(steps_list))
    steps_final.extend(list(steps))

    if not steps_final:
        raise ValueError(f"job({name!r}) must have at least one step")
    if executor is None:
        raise ValueError(f"job({name!r}) needs an executor")

    return Job(
        name=name,
        executor=executor,
        steps=tuple(steps_final),
        outputs=dict(outputs or {}),
        inputs=tuple(inputs or ()),
        needs=tuple(needs or ()),
        env=dict(env or {}),
        env_from=tuple(env_from or ()),
        condition=condition,
        continue_on_error=continue_on_error,
        retry=retry,
        timeout=timeout,
    )


# ---------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------

def matrix_jobs(
    name: str,
    matrix: Mapping[str, Iterable[Any]],
    template: Callable[[Dict[str, Any]], Job],
) -> Dict[str, Job]:
    """
    Expand a job over every combination of matrix values.

    Example:
        matrix_jobs("test", {"node": ["18", "20"], "os": ["ubuntu"]},
                    lambda m: test_job(node=m["node"], executor=local))
        -> {"test-node-18-os-ubuntu": ..., "test-node-20-os-ubuntu": ...}

    Each job gets MATRIX_<key> in its env so matrix() references resolve.
    """
    if not name:
        raise ValueError("Job name cannot be empty")
    if not isinstance(matrix, Mapping):
        raise ValueError("matrix must be a mapping of dimension -> values")
    if not callable(template):
        raise ValueError("template must be a function that receives matrix vars")

    keys = sorted(matrix)
    jobs: Dict[str, Job] = {}
    for combo in itertools.product(*(list(matrix[k]) for k in keys)):
        matrix_vars = dict(zip(keys, combo))
        job_name = "-".join([name] + [f"{k}-{matrix_vars[k]}" for k in keys])

        built = template(matrix_vars)
        env = dict(built.env)
        env.update({matrix_var(k): str(v) for k, v in matrix_vars.items()})
        jobs[job_name] = replace(built, name=job_name, env=env)

    return jobs


def wf(*jobs: Job) -> Dict[str, Job]:
    """Collect jobs into the name -> job mapping a Workflow is built from."""
    return {j.name: j for j in jobs}


def flatten_steps(*items: Step | Sequence[Step]) -> List[Step]:
    """Flatten steps and lists of steps, handy inside step-producing functions."""
    out: List[Step] = []
    for item in items:
        if isinstance(item, Step):
            out.append(item)
        else:
            out.extend(item)
    return out
