"""
fish emitter.
"""

from __future__ import annotations

from apogee.core.emit.base import Emitter
from apogee.core.emit.quoting import quote_fish
from apogee.core.models.action import (
    AliasAction,
    CdStatement,
    EchoStatement,
    EnvVarAction,
    PathEntryAction,
    RunStatement,
    SetEnvStatement,
)

INDENT = "    "


class FishEmitter(Emitter):
    """Output for fish 3.x. PATH is a list variable there."""

    def quote(self, value: str) -> str:
        return quote_fish(value)

    def render_env(self, action: EnvVarAction) -> list[str]:
        return [f"set -gx {action.name} {self.quote(action.value)}"]

    def render_path(self, action: PathEntryAction) -> list[str]:
        d = self.quote(action.directory)
        if action.position == "prepend":
            assign = f"set -gx PATH {d} $PATH"
        else:
            assign = f"set -gx PATH $PATH {d}"

        line = f"contains -- {d} $PATH; or {assign}" if action.dedupe else assign
        if action.if_exists:
            return [f"if test -d {d}", INDENT + line, "end"]
        return [line]

    def render_alias(self, action: AliasAction) -> list[str]:
        return [f"alias {action.name} {self.quote(action.expansion)}"]

    def render_function(self, name: str, statements: list[str]) -> list[str]:
        return [f"function {name}", *(INDENT + s for s in statements), "end"]

    def render_include(self, path: str) -> list[str]:
        p = self.quote(path)
        return [f"if test -r {p}", f"{INDENT}source {p}", "end"]

    def render_run(self, stmt: RunStatement) -> str:
        line = self.words(stmt.argv)
        return f"{line} $argv" if stmt.forward_args else line

    def render_set_env(self, stmt: SetEnvStatement) -> str:
        return f"set -gx {stmt.name} {self.quote(stmt.value)}"

    def render_cd(self, stmt: CdStatement) -> str:
        return f"cd {self.quote(stmt.path)}"

    def render_echo(self, stmt: EchoStatement) -> str:
        return f"printf '%s\\n' {self.quote(stmt.text)}"
