from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from functools import reduce
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Sequence, Tuple

from .errors import DuplicateArtifact, ExtensionError
from .model import Job
from .ui.console import get_console


@dataclass(frozen=True)
class Workflow:
    """
    Job name -> compiled Job, plus workflow-wide env.

    The job mapping is read-only. Every Job's `name` matches its key, so
    extensions can use either.
    """
    name: str
    jobs: Mapping[str, Job] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        jobs = {
            key: (j if j.name == key else replace(j, name=key))
            for key, j in dict(self.jobs).items()
        }
        object.__setattr__(self, "jobs", MappingProxyType(jobs))
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    def with_jobs(self, jobs: Mapping[str, Job]) -> "Workflow":
        """A new Workflow with the same name/env and a different job mapping."""
        return Workflow(name=self.name, jobs=jobs, env=self.env)

    def __getitem__(self, job_name: str) -> Job:
        return self.jobs[job_name]

    def __iter__(self):
        return iter(self.jobs)

    def __len__(self) -> int:
        return len(self.jobs)


Extension = Callable[[Workflow], Workflow]


def _extension_name(ext: Extension) -> str:
    return getattr(ext, "__name__", None) or type(ext).__name__


@dataclass(frozen=True)
class Pipeline:
    """Ordered extensions, applied as a left fold: the output of one is the input of the next."""
    extensions: Tuple[Extension, ...] = ()

    def then(self, ext: Extension) -> "Pipeline":
        return Pipeline(self.extensions + (ext,))

    def _step(self, wf: Workflow, ext: Extension) -> Workflow:
        name = _extension_name(ext)
        get_console().print_debug(f"applying extension {name} to workflow '{wf.name}'")
        out = ext(wf)
        if not isinstance(out, Workflow):
            raise ExtensionError(
                extension=name,
                message=f"must return a Workflow, got {type(out).__name__}",
            )
        return out

    def apply(self, wf: Workflow) -> Workflow:
        return reduce(self._step, self.extensions, wf)

    __call__ = apply


def check_unique_artifacts(jobs: Mapping[str, Job]) -> None:
    counts = Counter(name for j in jobs.values() for name in j.outputs)
    dupes = sorted(name for name, n in counts.items() if n > 1)
    if dupes:
        raise DuplicateArtifact(names=dupes)


def mk_workflow(
    name: str,
    jobs: Mapping[str, Job],
    *,
    extensions: Sequence[Extension] = (),
    env: Optional[Mapping[str, str]] = None,
) -> Workflow:
    """
    Build a Workflow and run it through `extensions` in order.

    Artifact names must be unique across jobs, since the engine stores them
    in one namespace.
    """
    if not name:
        raise ValueError("Workflow name cannot be empty")
    if not isinstance(jobs, Mapping):
        raise ValueError("jobs must be a mapping of job name -> Job")

    check_unique_artifacts(jobs)
    wf = Workflow(name=name, jobs=jobs, env=env or {})
    return Pipeline(tuple(extensions)).apply(wf)
