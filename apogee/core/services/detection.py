"""
Detection service — decide which modules are locally eligible.

Evaluates each module's detect rules against the context snapshot.
Rules are ANDed and evaluated in order, stopping at the first failure
so that expensive version checks only run when cheaper rules pass.

Pure logic apart from read-only filesystem checks and version-check
subprocesses. Problems while probing (missing command, timeout, bad
regex, bad constraint) never raise: the rule is simply not satisfied.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from apogee.core.context import ShellContext
from apogee.core.models.module import (
    CommandExists,
    EnvVarEquals,
    EnvVarSet,
    FileExists,
    Module,
    PathExists,
    VersionSatisfies,
)
from apogee.core.models.shell import Platform, Shell
from apogee.core.services.version_check import extract_version, run_version_command

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_WORKERS = 8
_DEFAULT_PATHEXT = ".COM;.EXE;.BAT;.CMD"


@dataclass
class DetectionOutcome:
    """Eligibility of one module, with the reason when it is not.

    ``captured`` holds what the passing rules matched (paths, command
    location, version); it is empty unless the module is eligible.
    """

    module_id: str
    eligible: bool
    reason: str = ""
    captured: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "module": self.module_id,
            "eligible": self.eligible,
            "reason": self.reason,
            "captured": dict(self.captured),
        }


# ── Command resolution ───────────────────────────────────────────


def _pathext(ctx: ShellContext) -> list[str]:
    raw = ctx.get("PATHEXT") or _DEFAULT_PATHEXT
    exts = []
    for part in raw.split(";"):
        part = part.strip().lower()
        if part:
            exts.append(part if part.startswith(".") else f".{part}")
    return exts or [e.lower() for e in _DEFAULT_PATHEXT.split(";")]


def _executable_in(directory: Path, name: str, ctx: ShellContext) -> Path | None:
    if ctx.platform == Platform.WINDOWS:
        if Path(name).suffix:
            candidate = directory / name
            return candidate if candidate.is_file() else None
        for ext in _pathext(ctx):
            candidate = directory / f"{name}{ext}"
            if candidate.is_file():
                return candidate
        return None

    candidate = directory / name
    if candidate.is_file() and os.access(candidate, os.X_OK):
        return candidate
    return None


def resolve_command(name: str, ctx: ShellContext) -> Path | None:
    """Find ``name`` the way the target platform would.

    Searches every PATH directory of the snapshot, in order. On POSIX
    the file must match exactly and be executable; on Windows the
    PATHEXT extensions are tried. A name containing a path separator
    is checked directly instead of searched.
    """
    if "/" in name or "\\" in name:
        path = ctx.expand_user(name)
        return _executable_in(path.parent, path.name, ctx)

    for entry in ctx.path_entries():
        directory = Path(entry)
        if not directory.is_dir():
            continue
        found = _executable_in(directory, name, ctx)
        if found is not None:
            return found
    return None


# ── Rule checks ──────────────────────────────────────────────────
#
# Each check gets a ``found`` dict and records what it matched there;
# those values become the module's ``{detect.*}`` tokens.


def _check_path_exists(rule: PathExists, ctx: ShellContext, owner: str, timeout: float,
                       found: dict[str, str]) -> bool:
    path = ctx.expand_user(rule.path)
    if not path.exists():
        return False
    found["path"] = str(path)
    return True


def _check_file_exists(rule: FileExists, ctx: ShellContext, owner: str, timeout: float,
                       found: dict[str, str]) -> bool:
    path = ctx.expand_user(rule.path)
    if not path.is_file():
        return False
    found["file"] = str(path)
    return True


def _record_command(name: str, executable: Path, found: dict[str, str]) -> None:
    found["command"] = name
    found["command_path"] = str(executable)
    found["command_dir"] = str(executable.parent)


def _check_command_exists(rule: CommandExists, ctx: ShellContext, owner: str, timeout: float,
                          found: dict[str, str]) -> bool:
    executable = resolve_command(rule.name, ctx)
    if executable is None:
        return False
    _record_command(rule.name, executable, found)
    return True


def _check_env_var_set(rule: EnvVarSet, ctx: ShellContext, owner: str, timeout: float,
                       found: dict[str, str]) -> bool:
    value = ctx.get(rule.name)
    if value is None:
        return False
    found["env"] = rule.name
    found["env_value"] = value
    found.setdefault("path", value)  # such variables usually hold a directory
    return True


def _check_env_var_equals(rule: EnvVarEquals, ctx: ShellContext, owner: str, timeout: float,
                          found: dict[str, str]) -> bool:
    if ctx.lookup(rule.name) != rule.value:
        return False
    found["env"] = rule.name
    found["env_value"] = rule.value
    return True


def _check_version(rule: VersionSatisfies, ctx: ShellContext, owner: str, timeout: float,
                   found: dict[str, str]) -> bool:
    # Validate the rule itself before spawning anything.
    try:
        pattern = re.compile(rule.regex)
    except re.error as e:
        logger.warning("Module '%s': invalid version regex %r (%s); rule not satisfied",
                       owner, rule.regex, e)
        return False
    try:
        spec = SpecifierSet(rule.constraint)
    except InvalidSpecifier:
        logger.warning("Module '%s': invalid version constraint %r; rule not satisfied",
                       owner, rule.constraint)
        return False

    executable = resolve_command(rule.command, ctx)
    if executable is None:
        logger.debug("Module '%s': %s not found on PATH", owner, rule.command)
        return False

    output = run_version_command(str(executable), rule.args, ctx, timeout)
    if output is None:
        return False

    raw = extract_version(output, pattern)
    if raw is None:
        logger.debug("Module '%s': no version in output of %s", owner, rule.command)
        return False

    try:
        version = Version(raw)
    except InvalidVersion:
        logger.debug("Module '%s': unparseable version %r from %s", owner, raw, rule.command)
        return False

    ok = spec.contains(version, prereleases=True)
    logger.debug("Module '%s': %s %s %s -> %s", owner, rule.command, version, spec, ok)
    if ok:
        _record_command(rule.command, executable, found)
        found["version"] = str(version)
    return ok


_RULE_CHECKS: dict[type, Callable[..., bool]] = {
    PathExists: _check_path_exists,
    FileExists: _check_file_exists,
    CommandExists: _check_command_exists,
    EnvVarSet: _check_env_var_set,
    EnvVarEquals: _check_env_var_equals,
    VersionSatisfies: _check_version,
}


# ── Module detection ─────────────────────────────────────────────


def explain(
    module: Module,
    ctx: ShellContext,
    timeout: float = DEFAULT_TIMEOUT,
    shell: Shell | None = None,
) -> DetectionOutcome:
    """Evaluate a module and say why it is (not) eligible.

    When ``shell`` is given, modules restricted to other targets are
    not eligible.
    """
    if not module.enabled:
        return DetectionOutcome(module.id, False, "disabled")
    if not module.supports_platform(ctx.platform):
        return DetectionOutcome(module.id, False, f"platform {ctx.platform.value} not listed")
    if not module.supports_host(ctx.host):
        return DetectionOutcome(module.id, False, f"host {ctx.host} not listed")
    if shell is not None and not module.supports_shell(shell):
        return DetectionOutcome(module.id, False, f"shell {shell.value} not listed")
    if not module.detect:
        return DetectionOutcome(module.id, True, "no detect rules (always eligible)")

    found: dict[str, str] = {}
    for rule in module.detect:
        check = _RULE_CHECKS[type(rule)]
        if not check(rule, ctx, module.id, timeout, found):
            return DetectionOutcome(module.id, False, f"{rule.describe()} not satisfied")

    return DetectionOutcome(module.id, True, "all detect rules passed", captured=found)


def detect(
    module: Module,
    ctx: ShellContext,
    timeout: float = DEFAULT_TIMEOUT,
    shell: Shell | None = None,
) -> bool:
    """Return True when every detect rule of ``module`` passes."""
    return explain(module, ctx, timeout, shell).eligible


def explain_all(
    modules: list[Module],
    ctx: ShellContext,
    max_workers: int = DEFAULT_MAX_WORKERS,
    timeout: float = DEFAULT_TIMEOUT,
    shell: Shell | None = None,
) -> dict[str, DetectionOutcome]:
    """Evaluate all modules, concurrently, returning declaration order.

    The pool only overlaps wall-clock time of version-check
    subprocesses; the returned mapping is complete and ordered exactly
    like ``modules`` regardless of completion order.
    """
    if not modules:
        return {}

    workers = max(1, min(max_workers, len(modules)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="apogee-detect") as pool:
        outcomes = list(pool.map(lambda m: explain(m, ctx, timeout, shell), modules))

    result = {o.module_id: o for o in outcomes}
    logger.info(
        "Detection: %d/%d modules eligible",
        sum(1 for o in outcomes if o.eligible),
        len(outcomes),
    )
    return result


def detect_all(
    modules: list[Module],
    ctx: ShellContext,
    max_workers: int = DEFAULT_MAX_WORKERS,
    timeout: float = DEFAULT_TIMEOUT,
    shell: Shell | None = None,
) -> dict[str, bool]:
    """Local eligibility map for all modules, in declaration order."""
    outcomes = explain_all(modules, ctx, max_workers=max_workers, timeout=timeout, shell=shell)
    return {mid: o.eligible for mid, o in outcomes.items()}
