"""
Config check use case — validate the configuration without probing.

Runs parsing, token expansion, schema validation and the dependency
graph checks (duplicate ids, unknown requirements, cycles). No detect rule is
evaluated and nothing is rendered. Referenced template and hook files
that do not exist are reported as warnings: they only become errors
when the owning module is active.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from apogee.core.context import ShellContext
from apogee.core.errors import ApogeeError, DependencyCycleError
from apogee.core.models.action import FunctionAction, HookAction
from apogee.core.models.config import Config
from apogee.core.models.shell import Shell
from apogee.core.services.resolver import build_graph, find_cycle
from apogee.core.use_cases.emit import prepare

logger = logging.getLogger(__name__)


@dataclass
class ConfigCheckResult:
    """Result of the config check use case."""

    config_path: Path | None = None
    shell: Shell | None = None
    module_ids: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def valid(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result: dict = {"valid": self.valid}
        if self.error:
            result["error"] = self.error
            return result

        result["config_path"] = str(self.config_path) if self.config_path else None
        result["shell"] = self.shell.value if self.shell else None
        result["modules"] = list(self.module_ids)
        result["warnings"] = list(self.warnings)
        return result


def _missing_files(config: Config, ctx: ShellContext) -> list[str]:
    warnings: list[str] = []
    for module in config.modules:
        for action in module.actions:
            if isinstance(action, FunctionAction) and action.template is not None:
                path, kind = action.template.path, "template"
            elif isinstance(action, HookAction):
                path, kind = action.script, "hook"
            else:
                continue
            if "{detect." in path:
                continue  # only known once the module is detected
            if not ctx.expand_user(path).is_file():
                warnings.append(f"Module '{module.id}': {kind} not found: {path}")
    return warnings


def run_config_check(
    ctx: ShellContext,
    config_path: Path | None = None,
    shell: str | None = None,
) -> ConfigCheckResult:
    """Validate the configuration end to end, short of detection."""
    result = ConfigCheckResult()

    try:
        prepared = prepare(ctx, config_path, shell)
        config, target, ctx = prepared.config, prepared.shell, prepared.ctx
        result.config_path = ctx.config_path
        result.shell = target

        cycle = find_cycle(build_graph(config.modules))
        if cycle is not None:
            raise DependencyCycleError(cycle)
    except ApogeeError as e:
        result.error = str(e)
        return result

    result.module_ids = [m.id for m in config.modules]
    result.warnings = _missing_files(config, ctx)
    for warning in result.warnings:
        logger.info(warning)
    return result
