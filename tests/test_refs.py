"""Tests for references and shell emission."""

from pathlib import Path

import pytest

from typedci.errors import UnknownReferenceKind, UnsupportedValueKind
from typedci.refs import (
    from_env,
    is_reference,
    job_output,
    matrix,
    sanitize,
    shell_assignment,
    step_output,
    to_execution_expression,
    to_shell,
)


class TestExpressions:

    def test_step_output(self):
        ref = step_output("build-image", "imageRef")
        assert to_execution_expression(ref) == "${STEP_OUTPUT_build_image_imageRef}"

    def test_env_var_is_read_as_is(self):
        assert to_execution_expression(from_env("REGISTRY_URL")) == "${REGISTRY_URL}"

    def test_matrix(self):
        assert to_execution_expression(matrix("node")) == "${MATRIX_node}"

    def test_job_output(self):
        assert to_execution_expression(job_output("build", "buildId")) == "${JOB_OUTPUT_build_buildId}"

    def test_unknown_kind(self):
        with pytest.raises(UnknownReferenceKind):
            to_execution_expression("STEP_OUTPUT_x")

    def test_references_are_values(self):
        assert step_output("a", "b") == step_output("a", "b")
        assert is_reference(matrix("os"))
        assert not is_reference({"type": "stepOutput", "step": "a", "output": "b"})


class TestSanitize:

    def test_replaces_unsafe_characters(self):
        assert sanitize("build-image.v2") == "build_image_v2"
        assert sanitize("a b/c") == "a_b_c"

    def test_keeps_safe_names(self):
        assert sanitize("build_app2") == "build_app2"


class TestToShell:

    def test_quoted_string_is_escaped(self):
        assert to_shell("hello world") == "'hello world'"
        assert to_shell("$(rm -rf /)") == "'$(rm -rf /)'"

    def test_unquoted_string_is_raw(self):
        assert to_shell("$HOME/bin", quoted=False) == "$HOME/bin"

    def test_reference_modes(self):
        ref = step_output("s", "o")
        assert to_shell(ref) == '"${STEP_OUTPUT_s_o}"'
        assert to_shell(ref, quoted=False) == "${STEP_OUTPUT_s_o}"

    def test_scalars(self):
        assert to_shell(None) == ""
        assert to_shell(True) == "true"
        assert to_shell(False) == "false"
        assert to_shell(42) == "42"
        assert to_shell(1.5) == "1.5"

    def test_path(self):
        assert to_shell(Path("/tmp/x y")) == "'/tmp/x y'"
        assert to_shell(Path("/tmp/x"), quoted=False) == "/tmp/x"

    def test_list_joins_elements(self):
        assert to_shell(["a", "b c"]) == "a 'b c'"
        assert to_shell(["a", from_env("X")], quoted=False) == "a ${X}"

    def test_unsupported(self):
        with pytest.raises(UnsupportedValueKind):
            to_shell({"a": 1})
        with pytest.raises(UnsupportedValueKind):
            to_shell(object())


class TestShellAssignment:

    def test_literal(self):
        assert shell_assignment("INPUT_registry", "ghcr.io") == "INPUT_registry=ghcr.io"
        assert shell_assignment("INPUT_msg", "it's here") == "INPUT_msg='it'\"'\"'s here'"

    def test_reference_is_unquoted(self):
        assert shell_assignment("INPUT_x", from_env("HOME")) == "INPUT_x=${HOME}"

    def test_scalars(self):
        assert shell_assignment("V", 3) == "V=3"
        assert shell_assignment("V", True) == "V=true"
        assert shell_assignment("V", None) == "V=''"

    def test_literal_list_is_one_word(self):
        assert shell_assignment("V", ["a", "b"]) == "V='a b'"

    def test_mixed_list_keeps_references_live(self):
        assert shell_assignment("V", ["a b", from_env("X")]) == "V='a b'' '\"${X}\""
