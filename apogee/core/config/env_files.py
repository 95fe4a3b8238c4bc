"""
Runtime env files — layer ``.env`` style files over the snapshot.

Before detection the pipeline merges extra variables into the captured
environment, in this order:

    1. ``[apogee].env_defaults``  (only fills unset variables)
    2. ``[apogee].env_file``      (default ``{config_dir}/.env``)
    3. ``[apogee].secrets_file``  (optional)

Files 2 and 3 follow ``env_strategy``: ``fill_missing`` only sets
variables that are unset or empty, ``override`` replaces them. A file
that does not exist is skipped. Values may contain ``{tokens}``,
resolved against the variables merged so far.

The result is a new ShellContext; the captured one is never mutated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from apogee.core.config.tokens import TokenResolver
from apogee.core.context import ShellContext
from apogee.core.errors import ConfigError
from apogee.core.models.action import ENV_NAME_RE
from apogee.core.models.config import ApogeeMeta

logger = logging.getLogger(__name__)


@dataclass
class RuntimeEnv:
    """The snapshot after merging, plus what the merge changed."""

    ctx: ShellContext
    delta: dict[str, str] = field(default_factory=dict)  # merge order
    sources: list[Path] = field(default_factory=list)


def read_env_file(path: Path) -> dict[str, str]:
    """Read ``KEY=VALUE`` pairs from a .env file.

    Blank lines and ``#`` comments are skipped, an ``export`` prefix is
    allowed and one layer of matching quotes is stripped from values.
    Any other line is a ConfigError.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read env file {path}: {e}") from e

    values: dict[str, str] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not ENV_NAME_RE.match(key):
            raise ConfigError(f"{path}:{lineno}: expected KEY=VALUE, got {line!r}")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]
        values[key] = value
    return values


def _unset(vars_: dict[str, str], key: str) -> bool:
    value = vars_.get(key)
    return value is None or not value.strip()


def _resolve(raw: str, ctx: ShellContext, where: str) -> str:
    try:
        return TokenResolver(ctx).resolve(raw)
    except ConfigError as e:
        raise ConfigError(f"{where}: {e}") from e


def load_runtime_env(ctx: ShellContext, meta: ApogeeMeta) -> RuntimeEnv:
    """Merge defaults and env files into ``ctx`` (needs ``config_path`` set)."""
    vars_ = dict(ctx.vars)
    result = RuntimeEnv(ctx=ctx)

    def current() -> ShellContext:
        return ctx.with_vars(vars_)

    def put(key: str, value: str) -> None:
        if vars_.get(key) != value:
            vars_[key] = value
            result.delta[key] = value

    for key, raw in meta.env_defaults.items():
        if _unset(vars_, key):
            put(key, _resolve(raw, current(), f"apogee.env_defaults.{key}"))

    override = meta.env_strategy == "override"
    for setting, raw_path in (("env_file", meta.env_file), ("secrets_file", meta.secrets_file)):
        if not raw_path:
            continue
        path = ctx.expand_user(_resolve(raw_path, current(), f"apogee.{setting}"))
        if not path.is_file():
            logger.debug("No %s at %s", setting, path)
            continue

        incoming = read_env_file(path)
        for key, raw in incoming.items():
            if override or _unset(vars_, key):
                put(key, _resolve(raw, current(), f"{path}: {key}"))
        result.sources.append(path)
        logger.info("Merged %s %s (%d keys, %s)", setting, path, len(incoming), meta.env_strategy)

    if result.delta:
        result.ctx = current()
    return result
