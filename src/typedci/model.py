# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .types import TypeDescriptor


@dataclass(frozen=True)
class ActionMeta:
    """What the action compiler knew about a step. Read by the extensions."""
    name: str                                   # step name (alias or action name)
    action_name: str
    inputs: Mapping[str, TypeDescriptor]
    outputs: Tuple[str, ...]
    description: str = ""
    input_values: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Step:
    """A single compiled step inside a CI job."""
    name: str
    run: str
    exports: Dict[str, str] = field(default_factory=dict)   # output -> STEP_OUTPUT_* var
    packages: Tuple[Any, ...] = ()
    condition: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)
    action: Optional[ActionMeta] = None


@dataclass(frozen=True)
class JobMeta:
    """Declared job schema and resolved inputs, kept for the extensions."""
    name: str
    inputs: Mapping[str, TypeDescriptor] = field(default_factory=dict)
    env_outputs: Tuple[str, ...] = ()
    artifacts: Mapping[str, str] = field(default_factory=dict)
    description: str = ""
    input_values: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Job:
    """
    A compiled CI job: steps + dependencies + execution config.

    `outputs` are artifacts this job produces (name -> path), `inputs` are the
    artifact names it pulls in. retry/timeout/condition are never looked at
    here, they go to the execution engine untouched.
    """
    name: str
    executor: Any
    steps: Tuple[Step, ...]
    outputs: Dict[str, str] = field(default_factory=dict)
    inputs: Tuple[str, ...] = ()
    needs: Tuple[str, ...] = ()
    env: Dict[str, str] = field(default_factory=dict)
    env_from: Tuple[Any, ...] = ()
    condition: Optional[str] = None
    continue_on_error: bool = False
    retry: Any = None
    timeout: Any = None
    meta: Optional[JobMeta] = None

    @property
    def env_outputs(self) -> Tuple[str, ...]:
        return self.meta.env_outputs if self.meta is not None else ()
