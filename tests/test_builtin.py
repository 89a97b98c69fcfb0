"""Tests for the built-in actions and steps."""

import pytest

from typedci import from_script, load_outputs, require_env, types
from typedci.errors import InvalidName


class TestRequireEnv:

    def test_checks_every_variable(self):
        step = require_env("DEPLOY_TOKEN", "REGISTRY")
        assert step.name == "require-env"
        assert 'if [ -z "${DEPLOY_TOKEN:-}" ]; then' in step.run
        assert "Required env var not set: REGISTRY" in step.run
        assert step.action is None

    def test_needs_a_name(self):
        with pytest.raises(ValueError):
            require_env()


class TestLoadOutputs:

    def test_reads_each_field(self):
        spec = load_outputs(".build-outputs.json", {"buildId": types.string, "count": types.integer})
        step = spec()

        assert step.name == "load-outputs"
        assert step.packages == ("jq",)
        assert "INPUT_file=.build-outputs.json" in step.run
        assert "jq -r '.buildId // empty' \"$_file\"" in step.run
        assert "Error: count must be an integer" in step.run
        assert "buildId must be" not in step.run
        assert 'export buildId="$_value"' in step.run

    def test_file_can_be_overridden(self):
        step = load_outputs("a.json", {"x": types.string}, name="load-a")(file="b.json")
        assert step.name == "load-a"
        assert "INPUT_file=b.json" in step.run

    def test_values_go_to_carry_channel(self):
        step = load_outputs("a.json", {"ok": types.boolean})()
        assert "echo \"export ok=$(printf '%q' \"$_value\")\"" in step.run
        assert "must be a boolean" in step.run

    def test_field_names_must_be_shell_identifiers(self):
        with pytest.raises(InvalidName) as exc:
            load_outputs("a.json", {"build-id": types.string})
        assert exc.value.what == "field"


class TestFromScript:

    def test_wraps_path(self):
        step = from_script("lint", "./scripts/lint check.sh", outputs=["report"])
        assert step.run == "'./scripts/lint check.sh'\n"
        assert step.action.outputs == ("report",)
        assert step.action.description == "Wrapped script: lint check.sh"
