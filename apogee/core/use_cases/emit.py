"""
Emit use case — the full pipeline from config file to script text.

    1. locate and parse the config document
    2. merge env files into the snapshot
    3. select the target shell
    4. expand tokens and validate (needs the shell for {shell*} tokens)
    5. detect local eligibility (concurrently)
    6. resolve activation and emission order
    7. bind {detect.*} tokens of the active modules, render

All-or-nothing: the script is only set on the result when every step
succeeded, so a caller printing ``result.script`` never prints a
partial script.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from apogee.core.config.env_files import load_runtime_env
from apogee.core.config.loader import build_config, locate_config, parse_document, parse_meta
from apogee.core.context import ShellContext
from apogee.core.emit import emit
from apogee.core.errors import ApogeeError, UnknownShellError
from apogee.core.models.action import EnvVarAction
from apogee.core.models.activation import ActivationResult
from apogee.core.models.config import Config
from apogee.core.models.module import Module
from apogee.core.models.shell import Shell
from apogee.core.services.detection import DetectionOutcome, explain_all
from apogee.core.services.resolver import resolve

logger = logging.getLogger(__name__)

# Block holding the variables merged from env files when ``export_env`` is on.
ENV_MODULE_ID = "apogee.env"


@dataclass
class EmitResult:
    """Result of the emit use case."""

    script: str | None = None
    shell: Shell | None = None
    config_path: Path | None = None
    activation: ActivationResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.script is not None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["shell"] = self.shell.value if self.shell else None
        result["config_path"] = str(self.config_path) if self.config_path else None
        if self.activation:
            result["activation"] = self.activation.to_dict()
        result["script"] = self.script
        return result


def select_shell(
    requested: str | None,
    ctx: ShellContext,
    default: str | None = None,
) -> Shell:
    """Pick the target shell.

    Precedence: explicit request (``--shell``) > ``APOGEE_SHELL`` >
    inferred parent shell > config ``default_shell`` > zsh.

    Raises:
        UnknownShellError: an explicitly named shell is not supported.
    """
    for source, value in (
        ("--shell", requested),
        ("APOGEE_SHELL", ctx.get("APOGEE_SHELL")),
    ):
        if value:
            shell = Shell.parse(value)
            if shell is None:
                raise UnknownShellError(value)
            logger.debug("Target shell %s (from %s)", shell.value, source)
            return shell

    if ctx.parent_shell is not None:
        logger.debug("Target shell %s (inferred from parent process)", ctx.parent_shell.value)
        return ctx.parent_shell

    if default:
        shell = Shell.parse(str(default))
        if shell is None:
            raise UnknownShellError(str(default))
        logger.debug("Target shell %s (config default_shell)", shell.value)
        return shell

    return Shell.ZSH


@dataclass
class Prepared:
    """A loaded configuration plus what is needed to bind it again."""

    config: Config
    shell: Shell
    ctx: ShellContext
    document: dict
    source: str
    env_delta: dict[str, str] = field(default_factory=dict)

    def bind(self, outcomes: dict[str, DetectionOutcome], active: list[str]) -> Config:
        """Rebuild the config with ``{detect.*}`` bound for the active modules."""
        detected = {mid: outcomes[mid].captured for mid in active}
        return build_config(
            self.document, self.ctx, shell=self.shell, source=self.source, detected=detected
        )


def prepare(
    ctx: ShellContext,
    config_path: Path | None = None,
    shell: str | None = None,
) -> Prepared:
    """Steps 1-3: locate, parse, merge env files, pick the shell, validate.

    Shared by emit, report and config check.
    """
    path = locate_config(ctx, config_path)
    data = parse_document(path)
    source = str(path)
    meta = parse_meta(data, source)

    runtime = load_runtime_env(ctx.with_config_path(path), meta)
    ctx = runtime.ctx
    target = select_shell(shell, ctx, meta.default_shell.value)

    config = build_config(data, ctx, shell=target, source=source)
    logger.info("Loaded %d modules from %s (target %s)", len(config.modules), path, target.value)
    return Prepared(config, target, ctx, data, source, runtime.delta)


def _env_module(delta: dict[str, str]) -> Module:
    return Module(
        id=ENV_MODULE_ID,
        actions=[EnvVarAction(name=k, value=v) for k, v in delta.items()],
    )


def run_emit(
    ctx: ShellContext,
    config_path: Path | None = None,
    shell: str | None = None,
) -> EmitResult:
    """Produce the initialization script for the target shell.

    Args:
        ctx: Environment snapshot captured at startup.
        config_path: Explicit config path (``--config``).
        shell: Explicit target shell (``--shell``).

    Returns:
        EmitResult with ``script`` set on success, ``error`` otherwise.
    """
    result = EmitResult()

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
        eligibility = {mid: o.eligible for mid, o in outcomes.items()}

        activation = resolve(config.modules, eligibility, strict=True)
        result.activation = activation

        bound = prepared.bind(outcomes, activation.order)
        modules = activation.active_modules(bound.modules)
        if config.apogee.export_env and prepared.env_delta:
            modules.insert(0, _env_module(prepared.env_delta))

        script = emit(modules, target, host=ctx.host)
    except ApogeeError as e:
        logger.debug("Emit failed: %s", e)
        result.error = str(e)
        return result

    result.script = script
    return result
