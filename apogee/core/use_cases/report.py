"""
Report use case — explain why each module is (in)active.

Runs the same detection as emit, but resolves non-strictly and never
renders. Intended for humans debugging their configuration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from apogee.core.context import ShellContext
from apogee.core.errors import ApogeeError
from apogee.core.models.shell import Shell
from apogee.core.services.detection import explain_all
from apogee.core.services.resolver import resolve
from apogee.core.use_cases.emit import prepare

logger = logging.getLogger(__name__)


@dataclass
class ModuleReport:
    """One row of the report."""

    id: str
    eligible: bool
    active: bool
    reason: str
    requires: list[str] = field(default_factory=list)
    captured: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "eligible": self.eligible,
            "active": self.active,
            "reason": self.reason,
            "requires": list(self.requires),
            "captured": dict(self.captured),
        }


@dataclass
class ReportResult:
    """Result of the report use case."""

    shell: Shell | None = None
    config_path: Path | None = None
    modules: list[ModuleReport] = field(default_factory=list)
    order: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["shell"] = self.shell.value if self.shell else None
        result["config_path"] = str(self.config_path) if self.config_path else None
        result["order"] = list(self.order)
        result["modules"] = [m.to_dict() for m in self.modules]
        return result


def run_report(
    ctx: ShellContext,
    config_path: Path | None = None,
    shell: str | None = None,
) -> ReportResult:
    """Detect and resolve every module without emitting anything."""
    result = ReportResult()

    try:
        prepared = prepare(ctx, config_path, shell)
        config, target, ctx = prepared.config, prepared.shell, prepared.ctx
        result.shell = target
        result.config_path = ctx.config_path

        outcomes = explain_all(
            config.modules,
            ctx,
            max_workers=config.apogee.max_workers,
            timeout=config.apogee.version_timeout,
            shell=target,
        )
        activation = resolve(
            config.modules,
            {mid: o.eligible for mid, o in outcomes.items()},
            strict=False,
        )
    except ApogeeError as e:
        result.error = str(e)
        return result

    for module in config.modules:
        outcome = outcomes[module.id]
        status = activation.statuses[module.id]
        # Eligible but inactive is the only case decided by the resolver.
        reason = status.reason if outcome.eligible and not status.active else outcome.reason
        result.modules.append(
            ModuleReport(
                id=module.id,
                eligible=outcome.eligible,
                active=status.active,
                reason=reason,
                requires=list(module.requires),
                captured=dict(outcome.captured),
            )
        )
    result.order = list(activation.order)
    return result
