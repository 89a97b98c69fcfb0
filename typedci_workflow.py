# typedci_workflow.py
# Example workflow: build -> test -> deploy, passing a build id between jobs
from __future__ import annotations

from typedci import (
    define_action,
    define_job,
    env_outputs_extension,
    full_validation,
    job_output,
    mk_workflow,
    sh,
    types,
)

build_app = define_action(
    "build-app",
    inputs={
        "version": types.string,
        "config": types.with_default(types.string, "release"),
    },
    outputs=["buildId", "artifact"],
    run="""\
echo "Building version $INPUT_version with config $INPUT_config"
mkdir -p dist
echo "App v$INPUT_version ($INPUT_config)" > dist/app.txt
OUTPUT_buildId="build-$INPUT_version-$(date +%s)"
OUTPUT_artifact="dist/app.txt"
""",
    description="Build the app into dist/",
)

run_tests = define_action(
    "run-tests",
    inputs={"buildId": types.string, "shards": types.with_default(types.integer, 1)},
    outputs=["testsPassed"],
    run="""\
echo "Running tests for build: $INPUT_buildId on $INPUT_shards shard(s)"
OUTPUT_testsPassed="42"
""",
)

deploy_app = define_action(
    "deploy-app",
    inputs={
        "buildId": types.string,
        "environment": types.enum("staging", "production"),
        "tested": types.optional(types.string),
    },
    run="""\
echo "Deploying build $INPUT_buildId to $INPUT_environment (tests: ${INPUT_tested:-n/a})"
test -f dist/app.txt
""",
)

build = define_job(
    "build",
    inputs={"version": types.string},
    env_outputs=["buildId"],
    artifacts={"dist": "dist/"},
    steps=lambda ctx: [build_app(version=ctx.inputs["version"])],
)

test = define_job(
    "test",
    needs=["build"],
    artifact_inputs=["dist"],
    env_outputs=["testsPassed"],
    steps=[
        sh("Show artifact", "cat dist/app.txt"),
        run_tests(buildId=job_output("build", "buildId")),
    ],
)

deploy = define_job(
    "deploy",
    inputs={"environment": types.enum("staging", "production")},
    needs=["build", "test"],
    artifact_inputs=["dist"],
    steps=lambda ctx: [
        deploy_app(
            buildId=job_output("build", "buildId"),
            environment=ctx.inputs["environment"],
            tested=job_output("test", "testsPassed"),
        ),
    ],
    retry={"max_attempts": 2},
)


def workflow():
    return mk_workflow(
        "ci",
        {
            "build": build(version="1.0.0", executor="local"),
            "test": test(executor="local"),
            "deploy": deploy(environment="staging", executor="local"),
        },
        extensions=[full_validation, env_outputs_extension],
    )
