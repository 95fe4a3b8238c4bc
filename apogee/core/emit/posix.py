"""
POSIX emitter — zsh and bash.

Both shells share the same syntax for everything apogee emits, so one
class serves both targets; only the header differs.
"""

from __future__ import annotations

from apogee.core.emit.base import Emitter
from apogee.core.emit.quoting import quote_posix
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


class PosixEmitter(Emitter):
    """sh-compatible output for zsh and bash."""

    def quote(self, value: str) -> str:
        return quote_posix(value)

    def render_env(self, action: EnvVarAction) -> list[str]:
        return [f"export {action.name}={self.quote(action.value)}"]

    def render_path(self, action: PathEntryAction) -> list[str]:
        d = self.quote(action.directory)
        if action.position == "prepend":
            assign = f'export PATH={d}"${{PATH:+:${{PATH}}}}"'
        else:
            assign = f'export PATH="${{PATH:+${{PATH}}:}}"{d}'

        if action.dedupe:
            lines = [
                f'case ":${{PATH}}:" in',
                f"{INDENT}*:{d}:*) ;;",
                f"{INDENT}*) {assign} ;;",
                "esac",
            ]
        else:
            lines = [assign]

        if action.if_exists:
            return [f"if [ -d {d} ]; then", *(INDENT + line for line in lines), "fi"]
        return lines

    def render_alias(self, action: AliasAction) -> list[str]:
        # The expansion is shell code by definition, but quoted as one word here.
        return [f"alias {action.name}={self.quote(action.expansion)}"]

    def render_function(self, name: str, statements: list[str]) -> list[str]:
        body = statements or [":"]
        return [f"{name}() {{", *(INDENT + s for s in body), "}"]

    def render_include(self, path: str) -> list[str]:
        p = self.quote(path)
        return [f"if [ -r {p} ]; then . {p}; fi"]

    def render_run(self, stmt: RunStatement) -> str:
        line = self.words(stmt.argv)
        return f'{line} "$@"' if stmt.forward_args else line

    def render_set_env(self, stmt: SetEnvStatement) -> str:
        return f"export {stmt.name}={self.quote(stmt.value)}"

    def render_cd(self, stmt: CdStatement) -> str:
        return f"cd -- {self.quote(stmt.path)}"

    def render_echo(self, stmt: EchoStatement) -> str:
        return f"printf '%s\\n' {self.quote(stmt.text)}"
