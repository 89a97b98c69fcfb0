"""
Type descriptors for action and job inputs.

Every descriptor validates twice:
  - eval_validate(value): Python-side check run while compiling. References
    always pass, their value only exists once the script runs.
  - runtime_validate: a shell fragment run inside the generated script. It
    reads the value from $VALUE and names the variable as $NAME in messages.

Defaults are tri-state: NO_DEFAULT (required), None (optional, empty) or a
real value (optional with a default).
"""
from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from .errors import TypeDefinitionError
from .refs import is_reference


class _NoDefault:
    """Sentinel for "this input is required". Distinct from a default of None."""

    _instance: Optional["_NoDefault"] = None

    def __new__(cls) -> "_NoDefault":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_DEFAULT"

    def __bool__(self) -> bool:
        return False


NO_DEFAULT = _NoDefault()


class TypeKind(str, Enum):
    STRING = "string"
    INT = "int"
    BOOL = "bool"
    PATH = "path"
    ENUM = "enum"
    OPTIONAL = "optional"
    ARRAY = "array"
    CUSTOM = "custom"


@dataclass(frozen=True)
class TypeDescriptor:
    name: str
    kind: TypeKind
    check: Callable[[Any], bool] = field(compare=False, repr=False)
    runtime_validate: str = ""
    default: Any = NO_DEFAULT
    inner: Optional["TypeDescriptor"] = None
    allowed: Tuple[Any, ...] = ()

    def eval_validate(self, value: Any) -> bool:
        if is_reference(value):
            return True
        return bool(self.check(value))

    def __str__(self) -> str:
        return self.name


def has_default(t: TypeDescriptor) -> bool:
    """True for optional inputs, including ones whose default is None or ""."""
    return t.default is not NO_DEFAULT


def _require_descriptor(value: Any, where: str) -> TypeDescriptor:
    if not isinstance(value, TypeDescriptor):
        raise TypeDefinitionError(f"{where} expects a TypeDescriptor, got {type(value).__name__}")
    return value


# ---------------------------------------------------------------------
# Generic constructor
# ---------------------------------------------------------------------

def mk_type(
    name: str,
    eval_validate: Callable[[Any], bool] | None = None,
    runtime_validate: str = "",
    default: Any = NO_DEFAULT,
    *,
    kind: TypeKind = TypeKind.CUSTOM,
) -> TypeDescriptor:
    """Create a custom type. `eval_validate` defaults to accepting anything."""
    if not name:
        raise TypeDefinitionError("type name cannot be empty")
    if eval_validate is not None and not callable(eval_validate):
        raise TypeDefinitionError(f"type '{name}': eval_validate must be callable")
    return TypeDescriptor(
        name=name,
        kind=kind,
        check=eval_validate or (lambda _v: True),
        runtime_validate=runtime_validate or "",
        default=default,
    )


# ---------------------------------------------------------------------
# Built-in types
# ---------------------------------------------------------------------

# everything is a string in the shell, nothing to check at runtime
string = mk_type("string", lambda v: isinstance(v, str), kind=TypeKind.STRING)

integer = mk_type(
    "int",
    lambda v: isinstance(v, int) and not isinstance(v, bool),
    runtime_validate="""\
if [ -n "$VALUE" ] && ! [[ "$VALUE" =~ ^-?[0-9]+$ ]]; then
  echo "Error: $NAME must be an integer, got: $VALUE" >&2
  exit 1
fi
""",
    kind=TypeKind.INT,
)

boolean = mk_type(
    "bool",
    lambda v: isinstance(v, bool),
    runtime_validate="""\
if [ -n "$VALUE" ] && ! [[ "$VALUE" =~ ^(true|false|0|1)$ ]]; then
  echo "Error: $NAME must be a boolean (true/false), got: $VALUE" >&2
  exit 1
fi
""",
    kind=TypeKind.BOOL,
)

path = mk_type(
    "path",
    lambda v: isinstance(v, (str, os.PathLike)),
    runtime_validate="""\
if [ -n "$VALUE" ] && [ ! -e "$VALUE" ]; then
  echo "Error: $NAME path does not exist: $VALUE" >&2
  exit 1
fi
""",
    kind=TypeKind.PATH,
)


def enum(*allowed: str) -> TypeDescriptor:
    """enum("dev", "staging", "prod")"""
    if len(allowed) == 1 and isinstance(allowed[0], (list, tuple)):
        allowed = tuple(allowed[0])
    if not allowed:
        raise TypeDefinitionError("enum() needs at least one allowed value")
    if not all(isinstance(a, str) for a in allowed):
        raise TypeDefinitionError(f"enum() values must be strings, got {list(allowed)!r}")

    values = tuple(allowed)
    pattern = "|".join(shlex.quote(v) for v in values)
    runtime = f"""\
if [ -n "$VALUE" ]; then
  case "$VALUE" in
    {pattern}) ;;
    *)
      echo "Error: $NAME must be one of: {', '.join(values)}. Got: $VALUE" >&2
      exit 1
      ;;
  esac
fi
"""
    t = mk_type("enum", lambda v: v in values, runtime, kind=TypeKind.ENUM)
    return replace(t, allowed=values)


def optional(inner: TypeDescriptor) -> TypeDescriptor:
    """Accepts None or "" on top of whatever `inner` accepts. Defaults to None."""
    inner = _require_descriptor(inner, "optional()")

    runtime = ""
    if inner.runtime_validate:
        body = "\n".join(
            f"  {line}" if line else line for line in inner.runtime_validate.rstrip("\n").split("\n")
        )
        runtime = f'if [ -n "$VALUE" ]; then\n{body}\nfi\n'

    return TypeDescriptor(
        name=f"optional<{inner.name}>",
        kind=TypeKind.OPTIONAL,
        check=lambda v: v is None or v == "" or inner.eval_validate(v),
        runtime_validate=runtime,
        default=None,
        inner=inner,
    )


def array(inner: TypeDescriptor) -> TypeDescriptor:
    """A list of `inner` values. Arrays reach the script space-separated."""
    inner = _require_descriptor(inner, "array()")

    def check(v: Any) -> bool:
        return isinstance(v, (list, tuple)) and all(inner.eval_validate(item) for item in v)

    return TypeDescriptor(
        name=f"array<{inner.name}>",
        kind=TypeKind.ARRAY,
        check=check,
        runtime_validate="",
        inner=inner,
    )


def with_default(t: TypeDescriptor, value: Any) -> TypeDescriptor:
    """Same type, but optional: `value` is used when the input is not provided."""
    t = _require_descriptor(t, "with_default()")
    if value is not None and not t.eval_validate(value):
        raise TypeDefinitionError(f"default {value!r} is not a valid {t.name}")
    return replace(t, default=value)
