from __future__ import annotations

import os
import shlex
from typing import Iterable, List, Mapping

from .actions import ActionSpec, define_action
from .carry import CarryChannel, DEFAULT_CHANNEL
from .model import ActionMeta, Step
from .refs import check_shell_names
from .types import TypeDescriptor, TypeKind, string, with_default


# ---------------------------------------------------------------------
# require_env
# ---------------------------------------------------------------------

def require_env(*names: str) -> Step:
    """Fail early when any of `names` is unset or empty."""
    if not names:
        raise ValueError("require_env() needs at least one variable name")
    blocks: List[str] = []
    for var in names:
        blocks.append("\n".join([
            f'if [ -z "${{{var}:-}}" ]; then',
            f'  echo "ERROR: Required env var not set: {var}" >&2',
            "  exit 1",
            "fi",
            f'echo "✓ {var} is set"',
        ]))
    return Step(name="require-env", run="\n".join(blocks) + "\n")


# ---------------------------------------------------------------------
# load_outputs
# ---------------------------------------------------------------------

_FIELD_CHECKS = {
    TypeKind.INT: (r"^-?[0-9]+$", "an integer"),
    TypeKind.BOOL: (r"^(true|false)$", "a boolean"),
}


def load_outputs(
    file: str,
    schema: Mapping[str, TypeDescriptor],
    name: str = "load-outputs",
    *,
    carry: CarryChannel = DEFAULT_CHANNEL,
) -> ActionSpec:
    """
    Action that reads fields from a JSON file (usually an artifact from another
    job) and exports each one, persisted through the carry channel.

        load_build = load_outputs(".build-outputs.json", {"buildId": types.string})
        steps = [load_build()]
    """
    check_shell_names(name, schema, "field")
    value_expr = '"$_value"'
    blocks: List[str] = []
    for field_name, field_type in schema.items():
        lines = [f"_value=$(jq -r {shlex.quote('.' + field_name + ' // empty')} \"$_file\")"]
        check = _FIELD_CHECKS.get(field_type.kind)
        if check is not None:
            pattern, what = check
            lines += [
                f'if [ -n "$_value" ] && ! [[ "$_value" =~ {pattern} ]]; then',
                f'  echo "Error: {field_name} must be {what}, got: $_value" >&2',
                "  exit 1",
                "fi",
            ]
        lines += [
            f'export {field_name}="$_value"',
            f'echo "  {field_name}=$_value"',
            f"if {carry.guard()}; then",
            f"  {carry.append_export(field_name, value_expr)}",
            "fi",
        ]
        blocks.append("\n".join(lines))

    run = "\n".join([
        '_file="$INPUT_file"',
        'if [ ! -f "$_file" ]; then',
        '  echo "Error: Output file not found: $_file" >&2',
        "  exit 1",
        "fi",
        'echo "Loading outputs from $_file"',
        'if ! jq empty "$_file" 2>/dev/null; then',
        '  echo "Error: Invalid JSON in $_file" >&2',
        "  exit 1",
        "fi",
        *blocks,
        'echo "Outputs loaded successfully"',
    ]) + "\n"

    return define_action(
        name,
        run=run,
        inputs={"file": with_default(string, file)},
        packages=["jq"],
        description=f"Load and validate outputs from {file}",
    )


# ---------------------------------------------------------------------
# from_script
# ---------------------------------------------------------------------

def from_script(name: str, script: str | os.PathLike, outputs: Iterable[str] = ()) -> Step:
    """Wrap an existing executable as a step. It gets no typed inputs."""
    path = os.fspath(script)
    outputs = tuple(outputs)
    return Step(
        name=name,
        run=shlex.quote(path) + "\n",
        action=ActionMeta(
            name=name,
            action_name=name,
            inputs={},
            outputs=outputs,
            description=f"Wrapped script: {os.path.basename(path) or name}",
            input_values={},
        ),
    )
