"""Tests for compile error types and their messages."""

import pytest

from typedci.errors import (
    CompileError,
    DuplicateArtifact,
    ExtensionError,
    GeneratedNameCollision,
    MissingExecutor,
    MissingRequiredInput,
    TypeMismatch,
    UnknownInput,
    UnknownStepReference,
    ValidationError,
)


class TestHierarchy:

    @pytest.mark.parametrize("cls", [
        MissingRequiredInput, UnknownInput, MissingExecutor, TypeMismatch,
        UnknownStepReference, GeneratedNameCollision, ValidationError,
        DuplicateArtifact, ExtensionError,
    ])
    def test_is_compile_error(self, cls):
        assert issubclass(cls, CompileError)

    def test_fields_are_kept(self):
        error = TypeMismatch(job="ci", step_index=2, action="deploy", input="env", expected="enum")
        with pytest.raises(CompileError) as exc:
            raise error
        assert exc.value.step_index == 2
        assert exc.value.expected == "enum"


class TestMessages:

    def test_missing_required_input(self):
        assert str(MissingRequiredInput(owner="build", input="registry")) == (
            "Action 'build': missing required input 'registry'"
        )

    def test_missing_executor(self):
        assert str(MissingExecutor(job="test")) == "Job 'test': executor must be provided"

    def test_unknown_step_reference(self):
        error = UnknownStepReference(job="ci", step="push", target="biuld")
        assert str(error) == "Step 'push' references unknown step 'biuld'"

    def test_validation_report(self):
        error = ValidationError(
            title="Validation error",
            job="release",
            issues=[
                TypeMismatch(job="release", step_index=0, action="deploy", input="replicas", expected="int"),
                MissingRequiredInput(owner="notify", input="channel", step_index=3),
            ],
        )
        assert str(error).splitlines() == [
            "Validation error in job 'release':",
            "  - step 0 (deploy): Input 'replicas' failed type validation (expected int)",
            "  - step 3: Action 'notify': missing required input 'channel'",
        ]
