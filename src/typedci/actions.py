"""
Typed actions compiled to shell.

    build_image = define_action(
        "build-image",
        inputs={"registry": types.string, "tag": types.with_default(types.string, "latest")},
        outputs=["imageRef"],
        run='''
            IMAGE="$INPUT_registry:$INPUT_tag"
            buildah build -t "$IMAGE" .
            OUTPUT_imageRef="$IMAGE"
        ''',
    )

    steps = [
        build_image({"registry": "ghcr.io", "as": "build-app"}),
        push_image(imageRef=step_output("build-app", "imageRef")),
    ]

Each call compiles a fresh Step. Two calls of the same action in one job
need distinct `as` aliases, otherwise their STEP_OUTPUT_* variables clash
(the job compiler refuses that).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .carry import CarryChannel, DEFAULT_CHANNEL
from .errors import MissingRequiredInput, UnknownInput
from .model import ActionMeta, Step
from .refs import check_shell_names, is_reference, shell_assignment, step_output_var
from .types import TypeDescriptor, has_default

ALIAS_KEY = "as"


def resolve_inputs(
    owner: str,
    schema: Mapping[str, TypeDescriptor],
    provided: Mapping[str, Any],
    *,
    kind: str = "action",
) -> Dict[str, Any]:
    """
    Provided value, else the type's default, else MissingRequiredInput.
    Result follows the declaration order of `schema`.
    """
    unknown = [k for k in provided if k not in schema]
    if unknown:
        raise UnknownInput(owner=owner, input=unknown[0], known=tuple(schema), kind=kind)

    resolved: Dict[str, Any] = {}
    for input_name, input_type in schema.items():
        if input_name in provided:
            resolved[input_name] = provided[input_name]
        elif has_default(input_type):
            resolved[input_name] = input_type.default
        else:
            raise MissingRequiredInput(owner=owner, input=input_name, kind=kind)
    return resolved


def _split_invocation(values: Mapping[str, Any] | None, kwargs: Mapping[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = dict(values or {})
    for key, value in kwargs.items():
        # `as` is a keyword in Python, accept `as_` from call sites
        merged[ALIAS_KEY if key == "as_" else key] = value
    return merged


# ---------------------------------------------------------------------
# Code generation
# ---------------------------------------------------------------------

def _input_setup(resolved: Mapping[str, Any]) -> str:
    lines: List[str] = []
    for input_name, value in resolved.items():
        if is_reference(value):
            lines.append("# shellcheck disable=SC2154")
        lines.append(shell_assignment(f"INPUT_{input_name}", value))
    return "\n".join(lines)


def _input_validation(schema: Mapping[str, TypeDescriptor]) -> str:
    blocks: List[str] = []
    for input_name, input_type in schema.items():
        if not input_type.runtime_validate:
            continue
        blocks.append(
            f'VALUE="$INPUT_{input_name}"\n'
            f'NAME="INPUT_{input_name}"\n'
            f"{input_type.runtime_validate.rstrip()}"
        )
    return "\n".join(blocks)


def _output_exports(step_name: str, outputs: Iterable[str], carry: CarryChannel) -> Tuple[str, Dict[str, str]]:
    blocks: List[str] = []
    exports: Dict[str, str] = {}
    for output_name in outputs:
        var = step_output_var(step_name, output_name)
        value = f"\"$OUTPUT_{output_name}\""
        exports[output_name] = var
        blocks.append("\n".join([
            f'if [ -n "${{OUTPUT_{output_name}:-}}" ]; then',
            f'  export {var}="$OUTPUT_{output_name}"',
            f"  if {carry.guard()}; then",
            f"    {carry.append_export(var, value)}",
            "  fi",
            "fi",
        ]))
    return "\n".join(blocks), exports


def _script(step_name: str, description: str, setup: str, validation: str, run: str, export: str) -> str:
    parts = [f"# === Action: {step_name} ==="]
    if description:
        parts.append(f"# {description}")
    parts.extend([
        "",
        "# Setup inputs",
        setup,
        "",
        "# Validate inputs",
        validation,
        "",
        "# Run action",
        run,
        "",
        "# Export outputs",
        export,
    ])
    return "\n".join(parts) + "\n"


# ---------------------------------------------------------------------
# ActionSpec
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ActionSpec:
    """Reusable action template. Call it with input values to get a Step."""
    name: str
    run: str
    inputs: Mapping[str, TypeDescriptor] = field(default_factory=dict)
    outputs: Tuple[str, ...] = ()
    packages: Tuple[Any, ...] = ()
    description: str = ""

    def __call__(self, values: Mapping[str, Any] | None = None, **kwargs: Any) -> Step:
        return compile_action(self, _split_invocation(values, kwargs))


def define_action(
    name: str,
    *,
    run: str,
    inputs: Optional[Mapping[str, TypeDescriptor]] = None,
    outputs: Iterable[str] | Mapping[str, Any] | None = None,
    packages: Iterable[Any] = (),
    description: str = "",
) -> ActionSpec:
    if not name:
        raise ValueError("define_action() needs a name")
    inputs = dict(inputs or {})
    if ALIAS_KEY in inputs:
        raise ValueError(f"action {name!r}: '{ALIAS_KEY}' is reserved for the step alias")
    # outputs may be given as a schema mapping; only the names matter
    outputs = tuple(outputs or ())
    check_shell_names(name, inputs, "input")
    check_shell_names(name, outputs, "output")
    return ActionSpec(
        name=name,
        run=run,
        inputs=inputs,
        outputs=outputs,
        packages=tuple(packages),
        description=description,
    )


def compile_action(
    spec: ActionSpec,
    invocation: Mapping[str, Any] | None = None,
    *,
    carry: CarryChannel = DEFAULT_CHANNEL,
) -> Step:
    """
    Compile one invocation of an action into a Step.

    Pure: the same action and invocation always give the same script text.
    """
    invocation = dict(invocation or {})
    step_name = invocation.pop(ALIAS_KEY, None) or spec.name

    resolved = resolve_inputs(spec.name, spec.inputs, invocation)
    export_code, exports = _output_exports(step_name, spec.outputs, carry)

    script = _script(
        step_name,
        spec.description,
        setup=_input_setup(resolved),
        validation=_input_validation(spec.inputs),
        run=spec.run,
        export=export_code,
    )

    return Step(
        name=step_name,
        run=script,
        exports=exports,
        packages=spec.packages,
        action=ActionMeta(
            name=step_name,
            action_name=spec.name,
            inputs=dict(spec.inputs),
            outputs=spec.outputs,
            description=spec.description,
            input_values=resolved,
        ),
    )


def simple_action(name: str, run: str, *, description: str = "") -> Step:
    """An action with no inputs or outputs, compiled right away."""
    return define_action(name, run=run, description=description)()
