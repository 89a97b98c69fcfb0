"""Run generated step scripts under bash, the way an engine would."""

import os
import shutil
import subprocess

import pytest

from typedci import define_action, define_job, mk_workflow, sh, step_output, types
from typedci.carry import DEFAULT_CHANNEL
from typedci.env_outputs import env_output_file, env_outputs_extension

pytestmark = pytest.mark.skipif(shutil.which("bash") is None, reason="needs bash")

TRICKY = "v 1; echo pwned"


def run_step(step, cwd, carry_file, extra=""):
    """Source the carry file, then run one step in a fresh bash."""
    var = DEFAULT_CHANNEL.var
    script = f'if [ -f "${var}" ]; then source "${var}"; fi\n{step.run}\n{extra}'
    env = dict(os.environ, **{var: str(carry_file)})
    return subprocess.run(
        ["bash", "-c", script],
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
    )


def run_job(job, cwd, carry_file, extra=""):
    carry_file.touch()
    result = None
    for step in job.steps:
        result = run_step(step, cwd, carry_file, extra if step is job.steps[-1] else "")
        assert result.returncode == 0, result.stderr
    return result


@pytest.fixture
def tag_action():
    return define_action(
        "make-tag",
        inputs={"tag": types.string},
        outputs=["imageTag", "digest"],
        run='OUTPUT_imageTag="$INPUT_tag"\n',
    )


@pytest.fixture
def workflow(tag_action):
    producer = define_job(
        "A",
        env_outputs=["imageTag", "digest"],
        steps=[tag_action(tag=TRICKY)],
        executor="local",
    )
    consumer = define_job(
        "B",
        needs=["A"],
        steps=[sh("use", 'echo "GOT=$JOB_OUTPUT_A_imageTag"')],
        executor="local",
    )
    return mk_workflow("ci", {"A": producer(), "B": consumer()}, extensions=[env_outputs_extension])


class TestEnvOutputsRoundTrip:

    def test_value_reaches_consumer_unchanged(self, workflow, tmp_path):
        run_job(workflow.jobs["A"], tmp_path, tmp_path / "a.env")
        assert (tmp_path / env_output_file("A")).exists()

        result = run_job(workflow.jobs["B"], tmp_path, tmp_path / "b.env")
        assert result.stdout.splitlines()[-1] == f"GOT={TRICKY}"
        assert "pwned" not in result.stdout.replace(f"GOT={TRICKY}", "")

    def test_unset_output_is_not_exported(self, workflow, tmp_path):
        run_job(workflow.jobs["A"], tmp_path, tmp_path / "a.env")

        assert "STEP_OUTPUT_make_tag_digest" not in (tmp_path / "a.env").read_text()
        assert "JOB_OUTPUT_A_digest" not in (tmp_path / env_output_file("A")).read_text()

        result = run_job(
            workflow.jobs["B"], tmp_path, tmp_path / "b.env",
            extra='echo "DIGEST=${JOB_OUTPUT_A_digest-unset}"',
        )
        assert result.stdout.splitlines()[-1] == "DIGEST=unset"

    def test_producer_without_values_leaves_empty_file(self, tmp_path):
        quiet = define_action("quiet", outputs=["imageTag"], run="true\n")
        producer = define_job("A", env_outputs=["imageTag"], steps=[quiet()], executor="local")
        wf = mk_workflow("ci", {"A": producer()}, extensions=[env_outputs_extension])

        run_job(wf.jobs["A"], tmp_path, tmp_path / "a.env")
        assert (tmp_path / env_output_file("A")).read_text() == ""


class TestStepScripts:

    def test_step_output_feeds_next_step(self, tag_action, tmp_path):
        show = define_action("show", inputs={"value": types.string}, run='echo "VALUE=$INPUT_value"\n')
        steps = [tag_action(tag=TRICKY), show(value=step_output("make-tag", "imageTag"))]
        carry = tmp_path / "job.env"
        carry.touch()

        for step in steps:
            result = run_step(step, tmp_path, carry)
            assert result.returncode == 0, result.stderr
        assert f"VALUE={TRICKY}" in result.stdout.splitlines()

    def test_runtime_validation_stops_the_step(self, tmp_path):
        scale = define_action("scale", inputs={"replicas": types.integer}, run='echo "scaled"\n')
        carry = tmp_path / "job.env"
        carry.write_text("export STEP_OUTPUT_cfg_replicas=abc\n")

        result = run_step(scale(replicas=step_output("cfg", "replicas")), tmp_path, carry)
        assert result.returncode == 1
        assert "INPUT_replicas must be an integer, got: abc" in result.stderr
        assert "scaled" not in result.stdout
