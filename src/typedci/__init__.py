from . import types
from .actions import ActionSpec, define_action, compile_action, simple_action
from .builtin import from_script, load_outputs, require_env
from .dsl import job, sh, matrix_jobs, wf, flatten_steps
from .env_outputs import EnvOutputsExtension, env_outputs_extension
from .jobs import JobContext, JobSpec, define_job, compile_job
from .model import Job, Step
from .refs import step_output, from_env, matrix, job_output, is_reference
from .validation import validation, validate_step_refs, full_validation
from .workflow import Pipeline, Workflow, mk_workflow

__all__ = [
    "types",
    "ActionSpec", "define_action", "compile_action", "simple_action",
    "from_script", "load_outputs", "require_env",
    "job", "sh", "matrix_jobs", "wf", "flatten_steps",
    "EnvOutputsExtension", "env_outputs_extension",
    "JobContext", "JobSpec", "define_job", "compile_job",
    "Job", "Step",
    "step_output", "from_env", "matrix", "job_output", "is_reference",
    "validation", "validate_step_refs", "full_validation",
    "Pipeline", "Workflow", "mk_workflow",
]
