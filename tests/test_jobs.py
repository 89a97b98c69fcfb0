"""Tests for the job compiler."""

import pytest

from typedci import define_job, sh, step_output, types
from typedci.errors import (
    GeneratedNameCollision,
    InvalidName,
    MissingExecutor,
    MissingRequiredInput,
    ValidationError,
)
from typedci.jobs import JobContext, find_name_collisions


class TestStepsFunction:

    def test_receives_resolved_inputs(self, build_image):
        seen = []

        def steps(ctx):
            seen.append(ctx)
            return [build_image(registry=ctx.inputs["registry"])]

        spec = define_job(
            "build",
            inputs={
                "registry": types.string,
                "env": types.with_default(types.enum("dev", "prod"), "dev"),
            },
            steps=steps,
        )
        job = spec(registry="ghcr.io", executor="local")

        assert seen == [JobContext(inputs={"registry": "ghcr.io", "env": "dev"}, job="build")]
        assert job.steps[0].action.input_values["registry"] == "ghcr.io"

    def test_static_steps(self):
        spec = define_job("lint", steps=[sh("lint", "ruff check .")], executor="local")
        assert [s.name for s in spec().steps] == ["lint"]

    def test_missing_job_input(self):
        spec = define_job("deploy", inputs={"env": types.string}, steps=[sh("x", "true")], executor="local")
        with pytest.raises(MissingRequiredInput) as exc:
            spec()
        assert exc.value.kind == "job"
        assert exc.value.owner == "deploy"

    def test_reserved_input_names(self):
        with pytest.raises(ValueError):
            define_job("x", inputs={"needs": types.string}, steps=[])


class TestExecutor:

    def test_invocation_wins(self):
        spec = define_job("x", steps=[sh("a", "true")], executor="nix")
        assert spec(executor="local").executor == "local"

    def test_definition_fallback(self):
        spec = define_job("x", steps=[sh("a", "true")], executor="nix")
        assert spec().executor == "nix"

    def test_missing(self):
        spec = define_job("x", steps=[sh("a", "true")])
        with pytest.raises(MissingExecutor) as exc:
            spec()
        assert exc.value.job == "x"


class TestDependencies:

    def test_needs_are_concatenated(self):
        spec = define_job("test", steps=[sh("a", "true")], needs=["build"], executor="local")
        job = spec(needs=["build", "lint"])
        assert job.needs == ("build", "build", "lint")

    def test_artifact_inputs_become_job_inputs(self):
        spec = define_job("test", steps=[sh("a", "true")], artifact_inputs=["dist"], executor="local")
        assert spec(artifact_inputs=["coverage"]).inputs == ("dist", "coverage")

    def test_artifacts_become_outputs(self):
        spec = define_job("build", steps=[sh("a", "true")], artifacts={"dist": "dist/"}, executor="local")
        assert spec().outputs == {"dist": "dist/"}


class TestMetadata:

    def test_job_meta(self):
        spec = define_job(
            "build",
            inputs={"version": types.string},
            env_outputs=["buildId"],
            artifacts={"dist": "dist/"},
            steps=[sh("a", "true")],
            executor="local",
            retry={"max_attempts": 3},
            timeout="10m",
            description="Build it",
        )
        job = spec(version="1.0")

        assert job.name == "build"
        assert job.env_outputs == ("buildId",)
        assert job.meta.input_values == {"version": "1.0"}
        assert job.meta.artifacts == {"dist": "dist/"}
        assert job.meta.description == "Build it"
        assert job.retry == {"max_attempts": 3}
        assert job.timeout == "10m"

    def test_spec_is_reusable(self):
        spec = define_job("build", inputs={"v": types.string}, steps=lambda ctx: [sh("v", f"echo {ctx.inputs['v']}")])
        a = spec(v="1", executor="local")
        b = spec(v="2", executor="local")
        assert a.steps[0].run == "echo 1"
        assert b.steps[0].run == "echo 2"


class TestNameCollisions:

    def test_repeated_action_without_alias_is_rejected(self, build_image):
        spec = define_job(
            "build",
            steps=[build_image(registry="a"), build_image(registry="b")],
            executor="local",
        )
        with pytest.raises(ValidationError) as exc:
            spec()
        [issue] = exc.value.issues
        assert isinstance(issue, GeneratedNameCollision)
        assert exc.value.job == "build"
        assert issue.step == "build_image"
        assert issue.indices == (0, 1)
        assert issue.variable == "STEP_OUTPUT_build_image"

    def test_every_collision_is_reported(self, build_image, push_image):
        spec = define_job(
            "build",
            steps=[
                build_image(registry="a"),
                push_image(imageRef="x"),
                build_image(registry="b"),
                push_image(imageRef="y"),
            ],
            executor="local",
        )
        with pytest.raises(ValidationError) as exc:
            spec()
        assert [(i.step, i.indices) for i in exc.value.issues] == [
            ("build_image", (0, 2)),
            ("push_image", (1, 3)),
        ]
        assert str(exc.value).startswith("Name collision in job 'build':")

    def test_env_output_names_must_be_shell_identifiers(self):
        with pytest.raises(InvalidName) as exc:
            define_job("build", env_outputs=["image-tag"], steps=[], executor="local")
        assert exc.value.name == "image-tag"
        assert exc.value.what == "env output"

    def test_distinct_aliases_are_fine(self, build_image, push_image):
        spec = define_job(
            "build",
            steps=[
                build_image(registry="a", as_="build-a"),
                build_image(registry="b", as_="build-b"),
                push_image(imageRef=step_output("build-a", "imageRef")),
            ],
            executor="local",
        )
        job = spec()
        assert [s.name for s in job.steps] == ["build-a", "build-b", "push-image"]

    def test_names_that_sanitize_alike_collide(self, build_image):
        steps = [build_image(registry="a", as_="build-app"), build_image(registry="b", as_="build_app")]
        collisions = find_name_collisions("build", steps)
        assert len(collisions) == 1
        assert collisions[0].step == "build_app"

    def test_plain_shell_steps_are_ignored(self):
        assert find_name_collisions("x", [sh("echo", "a"), sh("echo", "b")]) == []
