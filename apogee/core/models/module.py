"""
Module model — a named unit of detect rules, requirements and actions.

Modules are declared in the configuration file. Detection decides
whether each one is locally eligible; the activation resolver then
combines that with the ``requires`` graph.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator

from apogee.core.models.action import Action, HookAction, host_listed
from apogee.core.models.shell import Platform, Shell

DEFAULT_VERSION_PATTERN = r"(\d+\.\d+(?:\.\d+)?)"


# ── Detect rules ────────────────────────────────────────────────


class PathExists(BaseModel):
    type: Literal["path_exists"] = "path_exists"
    path: str

    def describe(self) -> str:
        return f"path_exists({self.path})"


class CommandExists(BaseModel):
    type: Literal["command_exists"] = "command_exists"
    name: str = Field(min_length=1)

    def describe(self) -> str:
        return f"command_exists({self.name})"


class FileExists(BaseModel):
    """Regular file only. Directories do not count."""

    type: Literal["file_exists"] = "file_exists"
    path: str

    def describe(self) -> str:
        return f"file_exists({self.path})"


class EnvVarSet(BaseModel):
    type: Literal["env_var_set"] = "env_var_set"
    name: str

    def describe(self) -> str:
        return f"env_var_set({self.name})"


class EnvVarEquals(BaseModel):
    type: Literal["env_var_equals"] = "env_var_equals"
    name: str
    value: str

    def describe(self) -> str:
        return f"env_var_equals({self.name}={self.value!r})"


class VersionSatisfies(BaseModel):
    """Run ``command args...``, extract a version, test a constraint.

    The constraint is a PEP 440 specifier set (``>=3.9``, ``>=1,<2``).
    ``regex`` extracts the version: the ``version`` named group if
    present, else group 1.
    """

    type: Literal["version_satisfies"] = "version_satisfies"
    command: str = Field(min_length=1)
    args: list[str] = Field(default_factory=lambda: ["--version"])
    regex: str = DEFAULT_VERSION_PATTERN
    constraint: str

    def describe(self) -> str:
        return f"version_satisfies({self.command} {self.constraint})"


DetectRule = Annotated[
    Union[PathExists, CommandExists, FileExists, EnvVarSet, EnvVarEquals, VersionSatisfies],
    Field(discriminator="type"),
]


# ── Module ──────────────────────────────────────────────────────


class Module(BaseModel):
    """A configuration module.

    Declaration order (position in the config file) is the tie-break
    for emission order, so the list holding modules is significant.
    """

    id: str = Field(min_length=1)
    description: str = ""
    enabled: bool = True
    platforms: list[Platform] = Field(default_factory=list)  # empty = all
    shells: list[Shell] = Field(default_factory=list)  # empty = every target
    hosts: list[str] = Field(default_factory=list)  # empty = any host
    detect: list[DetectRule] = Field(default_factory=list)
    requires: list[str] = Field(default_factory=list)
    actions: list[Action] = Field(default_factory=list)

    @field_validator("requires")
    @classmethod
    def _dedupe_requires(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(r.strip() for r in v))

    def supports_platform(self, platform: Platform) -> bool:
        return not self.platforms or platform in self.platforms

    def supports_shell(self, shell: Shell) -> bool:
        return not self.shells or shell in self.shells

    def supports_host(self, host: str) -> bool:
        return host_listed(self.hosts, host)

    @property
    def hooks(self) -> list[HookAction]:
        return [a for a in self.actions if isinstance(a, HookAction)]

    @property
    def body_actions(self) -> list:
        """Actions emitted inside the module block (everything but hooks)."""
        return [a for a in self.actions if not isinstance(a, HookAction)]
