from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

import click

from typedci import settings
from typedci.errors import CompileError
from typedci.loader import load_workflow
from typedci.records import to_json
from typedci.ui.console import Console, set_console, get_console
from typedci.validation import full_validation
from typedci.workflow import Workflow

WORKFLOW_HELP = f"Workflow file (default: {settings.WORKFLOW_FILE}, or the only *_workflow.py here)"


# ----------------------------------------------------------------------
# Workflow discovery
# ----------------------------------------------------------------------

def workflow_candidates(root: Path = Path(".")) -> List[Path]:
    """The default workflow file first, then any other *_workflow.py in `root`."""
    default = root / settings.WORKFLOW_FILE
    others = sorted(p for p in root.glob("*_workflow.py") if p != default)
    return ([default] if default.exists() else []) + others


def _fail(title: str, message: str, **kw) -> None:
    get_console().print_error(title, message, **kw)
    sys.exit(1)


def discover_workflow(workflow_arg: Optional[str]) -> Path:
    """
    Resolve --workflow, or pick the single workflow file in the current directory.
    Exits with status 1 when there is none or more than one.
    """
    if workflow_arg:
        path = Path(workflow_arg)
        if not path.exists() and path.suffix != ".py":
            path = path.with_name(path.name + ".py")
        if not path.exists():
            _fail(
                "Workflow file not found",
                f"No such file: {workflow_arg}",
                suggestion="Pass an existing file:\n  typedci compile --workflow my_workflow.py",
            )
        return path

    found = workflow_candidates()
    if not found:
        _fail(
            "No workflow file found",
            "Nothing to compile in the current directory.",
            details=["Looked for:", f"  {settings.WORKFLOW_FILE}", "  *_workflow.py"],
            suggestion=f"Create {settings.WORKFLOW_FILE}, or pass --workflow FILE",
        )
    if len(found) > 1:
        _fail(
            "Multiple workflow files found",
            "Pick one with --workflow:",
            details=[str(p) for p in found],
        )
    return found[0]


def _load(ctx: click.Context, workflow_arg: Optional[str]) -> Workflow:
    console = get_console()
    path = discover_workflow(workflow_arg)
    try:
        wf = load_workflow(path)
    except CompileError as e:
        console.print_compile_error("Workflow failed to compile", str(path), e)
        sys.exit(1)
    except Exception as e:
        console.print_error("Failed to load workflow", f"Could not load {path}", details=[str(e)])
        if ctx.obj.get("debug"):
            console.print_exception(e)
        sys.exit(1)
    console.print_debug(f"Loaded workflow '{wf.name}' with {len(wf)} job(s) from {path}")
    return wf


def render_shell(wf: Workflow) -> str:
    """All generated scripts of a workflow, one block per job and step."""
    out: List[str] = []
    for job_name, job in wf.jobs.items():
        out.append(f"# ===== job: {job_name} =====")
        for idx, step in enumerate(job.steps):
            header = f"# ----- step {idx}: {step.name}"
            if step.condition:
                header += f" (if {step.condition})"
            out.append(header + " -----")
            out.append(step.run.rstrip("\n"))
        out.append("")
    return "\n".join(out)


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------

@click.group()
@click.option("--debug", is_flag=True, default=False, help="Show debug output and tracebacks")
@click.pass_context
def cli(ctx, debug):
    """typedci: typed actions and jobs compiled to shell workflows."""
    set_console(Console(debug=debug))
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command("compile")
@click.option("--workflow", default=None, help=WORKFLOW_HELP)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "sh"]),
    default="json",
    show_default=True,
    help="Engine records as JSON, or the generated scripts",
)
@click.option("--job", "job_names", multiple=True, help="Only emit these jobs (repeatable)")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), default=None, help="Write to file instead of stdout")
@click.pass_context
def compile_cmd(ctx, workflow, fmt, job_names, output):
    """Compile a workflow for the execution engine."""
    console = get_console()
    wf = _load(ctx, workflow)

    if job_names:
        missing = [n for n in job_names if n not in wf.jobs]
        if missing:
            _fail(
                "Unknown job",
                f"Job(s) not in workflow '{wf.name}': {', '.join(missing)}",
                details=[f"Known jobs: {', '.join(wf.jobs)}"],
            )
        wf = wf.with_jobs({n: wf.jobs[n] for n in job_names})

    console.print_debug(f"Compiling workflow '{wf.name}' ({len(wf)} job(s)) as {fmt}")
    text = to_json(wf) if fmt == "json" else render_shell(wf)

    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        console.print_debug(f"Wrote {output}")
    else:
        click.echo(text)


@cli.command()
@click.option("--workflow", default=None, help=WORKFLOW_HELP)
@click.pass_context
def validate(ctx, workflow):
    """Type-check a workflow and its step references."""
    console = get_console()
    wf = _load(ctx, workflow)
    try:
        full_validation(wf)
    except CompileError as e:
        console.print_compile_error("Validation failed", f"Workflow '{wf.name}'", e)
        sys.exit(1)
    console.print_validation_ok(wf.name, len(wf))


@cli.command()
@click.option("--workflow", default=None, help=WORKFLOW_HELP)
@click.pass_context
def show(ctx, workflow):
    """Print jobs, their steps and how they are wired."""
    console = get_console()
    wf = _load(ctx, workflow)
    console.print_header(f"Workflow: {wf.name}")
    for job_name, job in wf.jobs.items():
        console.print_job(job_name, job)


if __name__ == "__main__":
    cli()
