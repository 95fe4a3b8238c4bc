"""
Action model — what an active module wants emitted.

Actions are shell-agnostic. Each variant is a tagged pydantic model
(discriminated on ``type``) and every emitter implements one render
method per variant. Values carried here are plain data: emitters
always quote them. The only field that ever runs as shell code is an
alias expansion, and only when the alias is called.
"""

from __future__ import annotations

import re
from typing import Annotated, Literal, Union

from pydantic import AfterValidator, BaseModel, Field, model_validator

from apogee.core.models.shell import Shell

# Variable names are emitted unquoted, so they are restricted up front.
ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
COMMAND_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.+-]*$")


def _check_env_name(value: str) -> str:
    if not ENV_NAME_RE.match(value):
        raise ValueError(f"invalid environment variable name: {value!r}")
    return value


def _check_command_name(value: str) -> str:
    if not COMMAND_NAME_RE.match(value):
        raise ValueError(f"invalid alias/function name: {value!r}")
    return value


EnvName = Annotated[str, AfterValidator(_check_env_name)]
CommandName = Annotated[str, AfterValidator(_check_command_name)]


def host_listed(hosts: list[str], host: str) -> bool:
    """Empty list matches every host; names compare case-insensitively."""
    if not hosts:
        return True
    wanted = host.casefold()
    return any(h.split(".")[0].casefold() == wanted for h in hosts)


# ── Function body statements ────────────────────────────────────


class RunStatement(BaseModel):
    """Invoke a command with literal arguments."""

    op: Literal["run"] = "run"
    argv: list[str] = Field(min_length=1)
    forward_args: bool = True  # append the function's own arguments


class SetEnvStatement(BaseModel):
    op: Literal["set_env"] = "set_env"
    name: EnvName
    value: str


class CdStatement(BaseModel):
    op: Literal["cd"] = "cd"
    path: str


class EchoStatement(BaseModel):
    op: Literal["echo"] = "echo"
    text: str


Statement = Annotated[
    Union[RunStatement, SetEnvStatement, CdStatement, EchoStatement],
    Field(discriminator="op"),
]


class TemplateRef(BaseModel):
    """External file whose content is emitted verbatim.

    ``shell`` is the explicit target marking: a concrete shell, the
    ``posix`` family (zsh + bash) or None (unmarked, any target).
    """

    path: str
    shell: Literal["zsh", "bash", "fish", "pwsh", "posix"] | None = None

    def allows(self, target: Shell) -> bool:
        if self.shell is None:
            return True
        if self.shell == "posix":
            return target.family == "posix"
        return Shell(self.shell) == target


# ── Actions ─────────────────────────────────────────────────────


class EnvVarAction(BaseModel):
    """Export a variable. Later modules override earlier ones."""

    type: Literal["env"] = "env"
    name: EnvName
    value: str


class PathEntryAction(BaseModel):
    """Insert a directory into PATH."""

    type: Literal["path"] = "path"
    directory: str = Field(min_length=1)
    position: Literal["prepend", "append"] = "prepend"
    dedupe: bool = True
    if_exists: bool = False  # only touch PATH when the directory exists


class AliasAction(BaseModel):
    type: Literal["alias"] = "alias"
    name: CommandName
    expansion: str = Field(min_length=1)


class FunctionAction(BaseModel):
    """A named shell procedure.

    Exactly one of ``body`` (pseudo statements, translated per shell)
    or ``template`` (a file passed through verbatim) must be given.
    """

    type: Literal["function"] = "function"
    name: CommandName
    body: list[Statement] | None = None
    template: TemplateRef | None = None

    @model_validator(mode="after")
    def _body_or_template(self) -> FunctionAction:
        if (self.body is None) == (self.template is None):
            raise ValueError(
                f"function '{self.name}' needs exactly one of 'body' or 'template'"
            )
        return self


class HookAction(BaseModel):
    """External script spliced into the pre or post phase."""

    type: Literal["hook"] = "hook"
    phase: Literal["pre", "post"] = "post"
    script: str = Field(min_length=1)
    inline: bool = False  # splice content instead of emitting an include
    shells: list[Shell] = Field(default_factory=list)
    hosts: list[str] = Field(default_factory=list)

    def applies_to(self, target: Shell, host: str | None = None) -> bool:
        """Whether the hook runs for ``target``; ``host=None`` skips the host filter."""
        if self.shells and target not in self.shells:
            return False
        return host is None or host_listed(self.hosts, host)


Action = Annotated[
    Union[EnvVarAction, PathEntryAction, AliasAction, FunctionAction, HookAction],
    Field(discriminator="type"),
]
