"""
PowerShell emitter (pwsh 7+, Windows PowerShell 5.1 compatible output).

PowerShell aliases cannot carry arguments, so an alias becomes a
function that invokes the split expansion with ``@args``. Expansions
that rely on POSIX shell syntax (pipes, redirections, substitutions)
have no faithful translation and are rejected.
"""

from __future__ import annotations

import re
import shlex

from apogee.core.emit.base import Emitter
from apogee.core.emit.quoting import quote_pwsh
from apogee.core.errors import EmissionError
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
_SEP = "[IO.Path]::PathSeparator"
_SHELL_SYNTAX = re.compile(r"[|;&<>`$]")


def split_alias(name: str, expansion: str) -> list[str]:
    """Split an alias expansion into literal words.

    Raises:
        EmissionError: the expansion uses shell syntax or has
            unbalanced quotes.
    """
    try:
        words = shlex.split(expansion)
    except ValueError as e:
        raise EmissionError(f"Alias '{name}': cannot parse expansion {expansion!r}: {e}") from e
    if not words:
        raise EmissionError(f"Alias '{name}': empty expansion")
    for word in words:
        if _SHELL_SYNTAX.search(word):
            raise EmissionError(
                f"Alias '{name}': expansion {expansion!r} uses shell syntax "
                f"that cannot be expressed in pwsh"
            )
    return words


class PwshEmitter(Emitter):
    """Output for PowerShell."""

    # Windows paths are case-insensitive; the runtime guard is too.
    path_case_sensitive = False

    def quote(self, value: str) -> str:
        return quote_pwsh(value)

    def render_env(self, action: EnvVarAction) -> list[str]:
        return [f"$env:{action.name} = {self.quote(action.value)}"]

    def render_path(self, action: PathEntryAction) -> list[str]:
        d = self.quote(action.directory)
        if action.position == "prepend":
            parts = f"@({d}, $env:PATH)"
        else:
            parts = f"@($env:PATH, {d})"
        assign = f"$env:PATH = ({parts} | Where-Object {{ $_ }}) -join {_SEP}"

        if action.dedupe:
            lines = [
                f"if (($env:PATH -split {_SEP}) -notcontains {d}) {{",
                INDENT + assign,
                "}",
            ]
        else:
            lines = [assign]

        if action.if_exists:
            return [
                f"if (Test-Path -LiteralPath {d} -PathType Container) {{",
                *(INDENT + line for line in lines),
                "}",
            ]
        return lines

    def render_alias(self, action: AliasAction) -> list[str]:
        words = split_alias(action.name, action.expansion)
        name = action.name
        return [
            # Built-in aliases (gc, gp, ...) shadow functions of the same name.
            f"Remove-Item -Path {self.quote('Alias:' + name)} -Force -ErrorAction SilentlyContinue",
            f"function {name} {{ & {self.words(words)} @args }}",
        ]

    def render_function(self, name: str, statements: list[str]) -> list[str]:
        return [f"function {name} {{", *(INDENT + s for s in statements), "}"]

    def render_include(self, path: str) -> list[str]:
        p = self.quote(path)
        return [f"if (Test-Path -LiteralPath {p} -PathType Leaf) {{ . {p} }}"]

    def render_run(self, stmt: RunStatement) -> str:
        line = f"& {self.words(stmt.argv)}"
        return f"{line} @args" if stmt.forward_args else line

    def render_set_env(self, stmt: SetEnvStatement) -> str:
        return f"$env:{stmt.name} = {self.quote(stmt.value)}"

    def render_cd(self, stmt: CdStatement) -> str:
        return f"Set-Location -LiteralPath {self.quote(stmt.path)}"

    def render_echo(self, stmt: EchoStatement) -> str:
        return f"Write-Output {self.quote(stmt.text)}"
