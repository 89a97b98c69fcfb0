from __future__ import annotations

import runpy
from pathlib import Path
from typing import Mapping

from .model import Job
from .workflow import Workflow, mk_workflow


# ----------------------------------------------------------------------
# Workflow loading (local file/module)
# ----------------------------------------------------------------------

def load_workflow(path: str | Path) -> Workflow:
    """
    Load a workflow from a python file path.

    The file must define either:
      - workflow() -> Workflow
      - WORKFLOW = Workflow(...)
      - JOBS = {"name": Job, ...}   (optionally EXTENSIONS = [...])

    Extensions are applied by mk_workflow inside the file; the JOBS form runs
    EXTENSIONS here.

    Returns:
      Workflow
    """
    wf_path = Path(path).expanduser().resolve()
    if not wf_path.exists():
        raise FileNotFoundError(f"Workflow file not found: {wf_path}")
    if wf_path.suffix != ".py":
        raise ValueError(f"Workflow must be a .py file, got: {wf_path.name}")

    module_name = f"typedci_workflow_{wf_path.stem}"
    globals_dict = runpy.run_path(str(wf_path), run_name=module_name)

    wf = None
    if "workflow" in globals_dict and callable(globals_dict["workflow"]):
        wf = globals_dict["workflow"]()
    elif "WORKFLOW" in globals_dict:
        wf = globals_dict["WORKFLOW"]
    elif "JOBS" in globals_dict:
        jobs = globals_dict["JOBS"]
        if not isinstance(jobs, Mapping) or not all(isinstance(j, Job) for j in jobs.values()):
            raise TypeError("JOBS must be a mapping of job name -> Job.")
        wf = mk_workflow(
            globals_dict.get("NAME", wf_path.stem),
            jobs,
            extensions=globals_dict.get("EXTENSIONS", ()),
        )

    if not isinstance(wf, Workflow):
        raise TypeError(
            "Workflow file must return/define a Workflow. "
            "Define workflow() -> Workflow, WORKFLOW = mk_workflow(...) or JOBS = {...}."
        )

    return wf
