"""
Shell context — the snapshot of "where are we running".

Captured ONCE at invocation start by whichever entry point runs the
pipeline and then passed explicitly to everything that inspects the
environment:

    - CLI:    main.py  → capture_context()
    - Tests:  build a ShellContext directly with fixture values

Design notes:
    - An explicit frozen value, not a module-level singleton. Detection
      reads only from here (plus read-only filesystem checks), which
      keeps it pure and lets tests inject any environment.
    - ``vars`` is a read-only mapping; nothing downstream may mutate it.
"""

from __future__ import annotations

import logging
import os
import socket
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType

import psutil

from apogee.core.models.shell import Platform, Shell

logger = logging.getLogger(__name__)

# How many ancestors to inspect when inferring the parent shell.
_MAX_PARENT_DEPTH = 6


@dataclass(frozen=True)
class ShellContext:
    """Immutable environment snapshot for one invocation."""

    vars: Mapping[str, str] = field(default_factory=dict)
    home: Path = field(default_factory=Path.home)
    platform: Platform = Platform.LINUX
    host: str = "unknown"
    parent_shell: Shell | None = None
    config_path: Path | None = None

    @property
    def config_dir(self) -> Path | None:
        return self.config_path.parent if self.config_path else None

    @property
    def path_separator(self) -> str:
        return ";" if self.platform == Platform.WINDOWS else ":"

    def lookup(self, name: str) -> str | None:
        """Raw variable value (empty strings included)."""
        value = self.vars.get(name)
        if value is None and self.platform == Platform.WINDOWS:
            # Windows variable names are case-insensitive.
            lowered = name.lower()
            for key, val in self.vars.items():
                if key.lower() == lowered:
                    return val
        return value

    def get(self, name: str) -> str | None:
        """Look up a variable; empty values count as unset."""
        value = self.lookup(name)
        if value is None or not value.strip():
            return None
        return value

    def path_entries(self) -> list[str]:
        """PATH split into non-empty directories, in order."""
        raw = self.get("PATH") or ""
        return [p.strip() for p in raw.split(self.path_separator) if p.strip()]

    def expand_user(self, path: str) -> Path:
        """Expand a leading ``~`` against the snapshot home."""
        return expand_user(path, self.home)

    def with_config_path(self, path: Path | None) -> ShellContext:
        return replace(self, config_path=path)

    def with_vars(self, vars_: Mapping[str, str]) -> ShellContext:
        """Same snapshot with a different (read-only) variable set."""
        return replace(self, vars=MappingProxyType(dict(vars_)))


def expand_user(path: str, home: Path) -> Path:
    """Expand a leading ``~`` (alone or before a separator) against ``home``.

    ``~user`` forms are left untouched.
    """
    if path == "~":
        return home
    if path.startswith("~/") or path.startswith("~\\"):
        return home / path[2:]
    return Path(path)


def capture_context(
    environ: Mapping[str, str] | None = None,
    config_path: Path | None = None,
    inspect_parents: bool = True,
) -> ShellContext:
    """Take the environment snapshot.

    Args:
        environ: Variables to snapshot (default: ``os.environ``).
        config_path: Config file in use, if already known.
        inspect_parents: Walk the parent process chain to infer the
            invoking shell. Disable in tests for determinism.
    """
    vars_ = dict(os.environ if environ is None else environ)
    home = _detect_home(vars_)
    platform = detect_platform(vars_)

    parent = infer_parent_shell() if inspect_parents else None
    if parent is None:
        parent = shell_from_env_hints(vars_)

    ctx = ShellContext(
        vars=MappingProxyType(vars_),
        home=home,
        platform=platform,
        host=_detect_hostname(vars_),
        parent_shell=parent,
        config_path=config_path,
    )
    logger.debug(
        "Captured context: platform=%s host=%s parent_shell=%s",
        ctx.platform.value,
        ctx.host,
        ctx.parent_shell.value if ctx.parent_shell else None,
    )
    return ctx


# ── helpers ──────────────────────────────────────────────────────


def _detect_home(vars_: Mapping[str, str]) -> Path:
    for key in ("HOME", "USERPROFILE"):
        value = vars_.get(key, "").strip()
        if value:
            return Path(value)
    return Path.home()


def detect_platform(vars_: Mapping[str, str]) -> Platform:
    """Platform of the running process (WSL counts as its own platform)."""
    if "WSL_DISTRO_NAME" in vars_ or "WSL_INTEROP" in vars_:
        return Platform.WSL
    if sys.platform == "darwin":
        return Platform.MAC
    if sys.platform.startswith("win"):
        return Platform.WINDOWS
    if sys.platform.startswith("linux"):
        return Platform.LINUX
    return Platform.OTHER


def _detect_hostname(vars_: Mapping[str, str]) -> str:
    for key in ("HOSTNAME", "COMPUTERNAME"):
        value = vars_.get(key, "").strip()
        if value:
            return value.split(".")[0]
    name = socket.gethostname()
    return name.split(".")[0] if name else "unknown"


def infer_parent_shell() -> Shell | None:
    """Walk up the process tree and return the first recognised shell."""
    try:
        proc = psutil.Process(os.getppid())
    except psutil.Error as e:
        logger.debug("Cannot inspect parent process: %s", e)
        return None

    for _ in range(_MAX_PARENT_DEPTH):
        try:
            shell = Shell.parse(proc.name())
            if shell is not None:
                logger.debug("Parent shell inferred from pid %d: %s", proc.pid, shell.value)
                return shell
            proc = proc.parent()
        except psutil.Error as e:
            logger.debug("Stopped parent walk: %s", e)
            return None
        if proc is None:
            return None
    return None


def shell_from_env_hints(vars_: Mapping[str, str]) -> Shell | None:
    """Best-effort shell guess from well-known variables."""
    # PowerShell first: on mac/linux SHELL may still say zsh inside pwsh.
    if "PSModulePath" in vars_ or "POWERSHELL_DISTRIBUTION_CHANNEL" in vars_:
        return Shell.PWSH
    return Shell.parse(vars_.get("SHELL"))
