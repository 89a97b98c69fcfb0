"""
Env outputs extension: move a job's env-style outputs to the jobs that need it.

A job's variables die with its environment. For every job that declares
`env_outputs` (a producer) this extension:
  1. adds a hidden artifact `__envOutputs_<job>` -> `.env-outputs-<job>`
  2. appends an export step (runs even if earlier steps failed) that writes
     `export JOB_OUTPUT_<job>_<name>=...` lines into that file

For every job whose `needs` include a producer (a consumer) it:
  3. prepends one hidden artifact input per needed producer
  4. prepends an import step that sources each file and appends it to the
     carry channel, so later steps see JOB_OUTPUT_* like any other variable

A job that is both gets the producer rewrite first, so its own export step
runs after the imported values are available.

Not idempotent: applying it twice adds the steps and artifacts twice.
"""
from __future__ import annotations

import shlex
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Mapping, Tuple

from . import settings
from .carry import CarryChannel, DEFAULT_CHANNEL
from .model import Job, Step
from .refs import job_output_var, sanitize
from .workflow import Workflow

EXPORT_STEP = "__export-env-outputs"
IMPORT_STEP = "__import-env-outputs"


def env_output_file(job_name: str) -> str:
    return f".env-outputs-{job_name}"


def env_output_artifact(job_name: str) -> str:
    return f"__envOutputs_{job_name}"


def _unique(items: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for item in items:
        seen.setdefault(item, None)
    return list(seen)


def _indent(text: str, prefix: str = "  ") -> str:
    return "\n".join(prefix + line if line else line for line in text.split("\n"))


@dataclass(frozen=True)
class EnvOutputsExtension:
    """
    `prefixes` is the fallback list of step names searched for a
    STEP_OUTPUT_<prefix>_<output> variable. It is a guess, not a guarantee;
    the job's own action steps that declare the output are searched first.
    """
    prefixes: Tuple[str, ...] = settings.ENV_OUTPUT_PREFIXES
    carry: CarryChannel = DEFAULT_CHANNEL

    # -----------------------------------------------------------------
    # Producer side
    # -----------------------------------------------------------------

    def search_order(self, job: Job, output_name: str) -> List[str]:
        declared = [
            sanitize(s.name)
            for s in reversed(job.steps)
            if s.action is not None and output_name in s.action.outputs
        ]
        return _unique(declared + [sanitize(p) for p in self.prefixes])

    def _export_block(self, job_name: str, job: Job, output_name: str, file_q: str) -> str:
        out = sanitize(output_name)
        target = job_output_var(job_name, output_name)
        prefixes = " ".join(self.search_order(job, output_name))
        return "\n".join([
            f"# {output_name}",
            '_value=""',
            f"for _prefix in {prefixes}; do",
            f'  _varname="STEP_OUTPUT_${{_prefix}}_{out}"',
            '  _val="${!_varname:-}"',
            '  if [ -n "$_val" ]; then',
            '    _value="$_val"',
            f'    echo "  {output_name}=$_value (from $_varname)"',
            "    break",
            "  fi",
            "done",
            f'if [ -z "$_value" ] && [ -n "${{OUTPUT_{out}:-}}" ]; then',
            f'  _value="$OUTPUT_{out}"',
            f'  echo "  {output_name}=$_value (from OUTPUT_{out})"',
            "fi",
            'if [ -n "$_value" ]; then',
            f"  echo \"export {target}=$(printf '%q' \"$_value\")\" >> {file_q}",
            "fi",
        ])

    def export_step(self, job_name: str, job: Job) -> Step:
        file_q = shlex.quote(env_output_file(job_name))
        blocks = [self._export_block(job_name, job, o, file_q) for o in job.env_outputs]
        script = "\n".join([
            f"echo \"Exporting env outputs for job {job_name}...\"",
            "",
            "# values set by earlier steps live in the carry channel",
            self.carry.source(),
            "",
            f": > {file_q}",
            *blocks,
            f"echo \"Env outputs exported to {env_output_file(job_name)}\"",
        ])
        return Step(name=EXPORT_STEP, run=script + "\n", condition="always()")

    def transform_producer(self, job_name: str, job: Job) -> Job:
        outputs = dict(job.outputs)
        outputs[env_output_artifact(job_name)] = env_output_file(job_name)
        return replace(
            job,
            outputs=outputs,
            steps=tuple(job.steps) + (self.export_step(job_name, job),),
        )

    # -----------------------------------------------------------------
    # Consumer side
    # -----------------------------------------------------------------

    def import_step(self, producers: List[str]) -> Step:
        blocks: List[str] = []
        for need in producers:
            file_q = shlex.quote(env_output_file(need))
            blocks.append("\n".join([
                f"if [ -f {file_q} ]; then",
                f"  echo \"  Sourcing {env_output_file(need)}\"",
                "  # shellcheck disable=SC1090",
                f"  source {file_q}",
                _indent(self.carry.append_file(file_q)),
                "fi",
            ]))
        script = "\n".join([
            "echo \"Importing env outputs from dependencies...\"",
            *blocks,
            "echo \"Env outputs imported\"",
        ])
        return Step(name=IMPORT_STEP, run=script + "\n")

    def transform_consumer(self, job: Job, producers: Mapping[str, Job]) -> Job:
        needed = _unique(n for n in job.needs if n in producers)
        if not needed:
            return job
        return replace(
            job,
            inputs=tuple(env_output_artifact(n) for n in needed) + tuple(job.inputs),
            steps=(self.import_step(needed),) + tuple(job.steps),
        )

    # -----------------------------------------------------------------

    def __call__(self, workflow: Workflow) -> Workflow:
        producers = {name: j for name, j in workflow.jobs.items() if j.env_outputs}

        jobs: Dict[str, Job] = {}
        for name, job in workflow.jobs.items():
            if name in producers:
                job = self.transform_producer(name, job)
            jobs[name] = self.transform_consumer(job, producers)
        return workflow.with_jobs(jobs)


env_outputs_extension = EnvOutputsExtension()
