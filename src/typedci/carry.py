from __future__ import annotations

from dataclasses import dataclass

from . import settings


@dataclass(frozen=True)
class CarryChannel:
    """
    Handle for the environment-carry channel.

    The execution engine owns the channel: it points `var` at an append-only
    file of `export NAME=value` lines and sources that file before each step.
    This class only emits shell text that refers to it; nothing here ever
    opens the file.
    """
    var: str = settings.CARRY_VAR

    @property
    def ref(self) -> str:
        return f'"${self.var}"'

    def guard(self) -> str:
        """Shell condition that is true while the channel is active."""
        return f'[ -n "${{{self.var}:-}}" ]'

    def append_export(self, name: str, value_expr: str) -> str:
        """Persist `name` with a printf %q escaped value."""
        return f"echo \"export {name}=$(printf '%q' {value_expr})\" >> {self.ref}"

    def source(self) -> str:
        return "\n".join([
            f'if {self.guard()} && [ -f {self.ref} ]; then',
            "  # shellcheck disable=SC1090",
            f"  source {self.ref}",
            "fi",
        ])

    def append_file(self, path: str) -> str:
        return "\n".join([
            f"if {self.guard()}; then",
            f"  cat {path} >> {self.ref}",
            "fi",
        ])


DEFAULT_CHANNEL = CarryChannel()
