"""
Token expansion for configuration strings.

Supports ``{name}`` placeholders resolved from the context snapshot:

    {home} {config_dir} {host} {platform} {shell} {shell_ext}
    {shell_family} {xdg_config_home} {xdg_cache_home} {xdg_data_home}
    {xdg_state_home} {env.NAME} {detect.KEY}

``{{`` and ``}}`` produce literal braces, ``${...}`` is copied through
untouched (it is shell syntax, not a token), a lone ``}`` is literal.
Expansion happens in Python, so emitted values stay quoted literals.

``{detect.KEY}`` names a value captured while the owning module was
detected (``path``, ``command_path``, ``version``...). Those values only
exist after detection, so the loader first runs with ``defer_detect``
(the token is copied through untouched) and binds them once the
module is known to be active.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from apogee.core.context import ShellContext
from apogee.core.errors import ConfigError
from apogee.core.models.shell import Shell


class TokenResolver:
    """Resolve ``{token}`` placeholders against a ShellContext."""

    def __init__(
        self,
        ctx: ShellContext,
        shell: Shell | None = None,
        detect: Mapping[str, str] | None = None,
        defer_detect: bool = False,
    ):
        self.ctx = ctx
        self.shell = shell
        self.detect = detect
        self.defer_detect = defer_detect

    def resolve(self, text: str) -> str:
        if "{" not in text and "}" not in text:
            return text

        out: list[str] = []
        i = 0
        n = len(text)
        while i < n:
            ch = text[i]
            if ch == "{":
                if text.startswith("{{", i):
                    out.append("{")
                    i += 2
                    continue
                end = text.find("}", i + 1)
                if i > 0 and text[i - 1] == "$":
                    # ${VAR} is shell syntax; copy through the closing brace
                    if end == -1:
                        out.append("{")
                        i += 1
                    else:
                        out.append(text[i : end + 1])
                        i = end + 1
                    continue
                if end == -1:
                    raise ConfigError(f"Unclosed token in: {text!r}")
                token = text[i + 1 : end]
                if not token:
                    raise ConfigError(f"Empty token in: {text!r}")
                value = self.token_value(token)
                if value is None:
                    if token.startswith("detect."):
                        raise ConfigError(f"Nothing detected for {{{token}}} in: {text!r}")
                    raise ConfigError(f"Unknown token {{{token}}} in: {text!r}")
                out.append(value)
                i = end + 1
            elif ch == "}":
                out.append("}")
                i += 2 if text.startswith("}}", i) else 1
            else:
                out.append(ch)
                i += 1
        return "".join(out)

    def resolve_tree(self, data: Any) -> Any:
        """Resolve every string leaf of a nested dict/list structure."""
        if isinstance(data, str):
            return self.resolve(data)
        if isinstance(data, list):
            return [self.resolve_tree(v) for v in data]
        if isinstance(data, dict):
            return {k: self.resolve_tree(v) for k, v in data.items()}
        return data

    def token_value(self, token: str) -> str | None:
        ctx = self.ctx
        if token.startswith("env."):
            return ctx.get(token[4:]) or ""
        if token.startswith("detect."):
            if self.detect is not None:
                return self.detect.get(token[7:])
            return f"{{{token}}}" if self.defer_detect else None

        shell = self.shell or ctx.parent_shell
        home = ctx.home

        if token == "home":
            return str(home)
        if token == "config_dir":
            return str(ctx.config_dir) if ctx.config_dir else None
        if token == "host":
            return ctx.host
        if token == "platform":
            return ctx.platform.value
        if token == "shell":
            return shell.value if shell else "unknown"
        if token == "shell_ext":
            return shell.extension if shell else "sh"
        if token == "shell_family":
            return shell.family if shell else "posix"
        if token == "xdg_config_home":
            return ctx.get("XDG_CONFIG_HOME") or str(home / ".config")
        if token == "xdg_cache_home":
            return ctx.get("XDG_CACHE_HOME") or str(home / ".cache")
        if token == "xdg_data_home":
            return ctx.get("XDG_DATA_HOME") or str(home / ".local" / "share")
        if token == "xdg_state_home":
            return ctx.get("XDG_STATE_HOME") or str(home / ".local" / "state")
        return None
