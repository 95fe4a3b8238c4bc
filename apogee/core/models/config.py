"""
Config model — the whole configuration document.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from apogee.core.models.action import EnvName
from apogee.core.models.module import Module
from apogee.core.models.shell import Shell


class ApogeeMeta(BaseModel):
    """The ``[apogee]`` table."""

    schema_version: int = 1
    default_shell: Shell = Shell.ZSH
    max_workers: int = Field(default=8, ge=1)
    version_timeout: float = Field(default=5.0, gt=0)

    # Runtime variables merged into the snapshot before detection.
    env_file: str = "{config_dir}/.env"
    secrets_file: str | None = None
    env_strategy: Literal["fill_missing", "override"] = "fill_missing"
    env_defaults: dict[EnvName, str] = Field(default_factory=dict)
    export_env: bool = False  # emit the merged variables at the top of the script


class Config(BaseModel):
    """A validated configuration.

    Validation enforces the structural invariants: module ids are
    unique and every ``requires`` entry names a declared module.
    Cycles are left to the activation resolver, which can report the
    full path.
    """

    apogee: ApogeeMeta = Field(default_factory=ApogeeMeta)
    modules: list[Module] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_graph(self) -> Config:
        seen: set[str] = set()
        for m in self.modules:
            if m.id in seen:
                raise ValueError(f"duplicate module id: '{m.id}'")
            seen.add(m.id)

        dangling = [
            f"'{m.id}' requires unknown module '{r}'"
            for m in self.modules
            for r in m.requires
            if r not in seen
        ]
        if dangling:
            raise ValueError("; ".join(dangling))
        return self

    def get_module(self, module_id: str) -> Module | None:
        for m in self.modules:
            if m.id == module_id:
                return m
        return None
