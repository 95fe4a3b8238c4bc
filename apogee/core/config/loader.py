"""
Configuration loader — reads config.toml (or config.yml) into domain models.

This is the primary entry point for loading configuration. It parses
the document, expands ``{tokens}`` in each module's detect and action
sections, validates against the pydantic schema, and returns a typed
Config.
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError

from apogee.core.config.tokens import TokenResolver
from apogee.core.context import ShellContext, expand_user
from apogee.core.errors import ConfigError
from apogee.core.models.config import ApogeeMeta, Config
from apogee.core.models.shell import Shell

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = "apogee"
CONFIG_FILE_NAMES = ("config.toml", "config.yml", "config.yaml")


def find_config_file(vars_: Mapping[str, str], home: Path) -> Path | None:
    """Locate the configuration file.

    Precedence:
        1. ``APOGEE_CONFIG`` (returned even when missing, so the error
           names the path the user asked for)
        2. ``$XDG_CONFIG_HOME/apogee/config.{toml,yml,yaml}``
        3. ``~/.config/apogee/config.{toml,yml,yaml}``
    """
    explicit = vars_.get("APOGEE_CONFIG", "").strip()
    if explicit:
        return expand_user(explicit, home)

    roots: list[Path] = []
    xdg = vars_.get("XDG_CONFIG_HOME", "").strip()
    if xdg:
        roots.append(Path(xdg))
    roots.append(home / ".config")

    for root in roots:
        for name in CONFIG_FILE_NAMES:
            candidate = root / CONFIG_DIR_NAME / name
            if candidate.is_file():
                return candidate
    return None


def parse_document(path: Path) -> dict:
    """Read a TOML or YAML document into a plain dict."""
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    if path.suffix in (".yml", ".yaml"):
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    else:
        try:
            data = tomllib.loads(raw)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}, got {type(data).__name__}")
    return data


def parse_meta(data: dict, source: str = "<config>") -> ApogeeMeta:
    """Validate only the ``[apogee]`` table.

    Shell selection and the runtime env files are settled from it
    before the modules are expanded.
    """
    try:
        return ApogeeMeta.model_validate(data.get("apogee") or {})
    except ValidationError as e:
        raise ConfigError(f"Invalid [apogee] table in {source}: {e}") from e


def _expand_home(actions: list, ctx: ShellContext) -> None:
    """Expand a leading ``~`` in every filesystem path an action carries.

    Emitted paths are quoted, so the shell never expands them itself.
    """

    def expand(table: dict, key: str) -> None:
        value = table.get(key)
        if isinstance(value, str) and value.startswith("~"):
            table[key] = str(ctx.expand_user(value))

    for action in actions:
        if not isinstance(action, dict):
            continue
        kind = action.get("type")
        if kind == "path":
            expand(action, "directory")
        elif kind == "hook":
            expand(action, "script")
        elif kind == "function":
            if isinstance(action.get("template"), dict):
                expand(action["template"], "path")
            for stmt in action.get("body") or []:
                if isinstance(stmt, dict) and stmt.get("op") == "cd":
                    expand(stmt, "path")


def _expand_module(
    entry: dict,
    ctx: ShellContext,
    shell: Shell | None,
    detected: Mapping[str, str] | None,
) -> dict:
    mod = dict(entry)
    rules = TokenResolver(ctx, shell)
    actions = TokenResolver(ctx, shell, detect=detected, defer_detect=True)
    try:
        if "detect" in mod:
            mod["detect"] = rules.resolve_tree(mod["detect"])
        if "actions" in mod:
            mod["actions"] = actions.resolve_tree(mod["actions"])
    except ConfigError as e:
        raise ConfigError(f"Module '{mod.get('id', '?')}': {e}") from e
    if isinstance(mod.get("actions"), list):
        _expand_home(mod["actions"], ctx)
    return mod


def build_config(
    data: dict,
    ctx: ShellContext,
    shell: Shell | None = None,
    source: str = "<config>",
    detected: Mapping[str, Mapping[str, str]] | None = None,
) -> Config:
    """Expand tokens and validate a parsed document.

    Args:
        detected: Per-module values captured by detection. Modules
            listed here get their ``{detect.*}`` tokens bound; in every
            other module those tokens are left as written.
    """
    detected = detected or {}

    modules = data.get("modules", [])
    if not isinstance(modules, list):
        raise ConfigError(f"'modules' must be a list of tables in {source}")

    expanded: list = []
    for entry in modules:
        if not isinstance(entry, dict):
            expanded.append(entry)  # let validation report it
            continue
        expanded.append(_expand_module(entry, ctx, shell, detected.get(entry.get("id"))))

    try:
        config = Config.model_validate({**data, "modules": expanded})
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {source}: {e}") from e

    return config


def locate_config(ctx: ShellContext, path: Path | None = None) -> Path:
    """Resolve the config path: explicit, then context, then discovery.

    Raises:
        ConfigError: no file found, or the named file does not exist.
    """
    if path is None:
        path = ctx.config_path or find_config_file(ctx.vars, ctx.home)

    if path is None:
        raise ConfigError(
            "No config.toml found. Create $XDG_CONFIG_HOME/apogee/config.toml, "
            "set APOGEE_CONFIG, or pass --config."
        )

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    return path


def load_config(
    ctx: ShellContext,
    path: Path | None = None,
    shell: Shell | None = None,
) -> Config:
    """Load and validate the configuration.

    Args:
        ctx: Environment snapshot (used for discovery and tokens).
        path: Explicit config path. If None, searched via find_config_file().
        shell: Target shell, used by the ``{shell*}`` tokens.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    path = locate_config(ctx, path)
    logger.debug("Loading config from %s", path)
    data = parse_document(path)

    if ctx.config_path != path:
        ctx = ctx.with_config_path(path)

    config = build_config(data, ctx, shell=shell, source=str(path))
    logger.info("Loaded config with %d modules from %s", len(config.modules), path)
    return config
