"""
Emitter base — the contract between the action model and a dialect.

The base class owns the layout of the generated script (header, pre
hooks, one block per active module, post hooks), PATH dedupe
bookkeeping and template handling. Subclasses only translate single
actions into lines of their dialect.

To add a shell:
    1. Subclass Emitter
    2. Implement the render_* methods and the quoting hook
    3. Register it in emit/registry.py
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from apogee.core.emit.quoting import one_line
from apogee.core.errors import EmissionError, TemplateTargetError
from apogee.core.models.action import (
    AliasAction,
    CdStatement,
    EchoStatement,
    EnvVarAction,
    FunctionAction,
    HookAction,
    PathEntryAction,
    RunStatement,
    SetEnvStatement,
)
from apogee.core.models.module import Module
from apogee.core.models.shell import Shell

logger = logging.getLogger(__name__)


@dataclass
class EmissionState:
    """Mutable bookkeeping for ONE emission run."""

    path_dirs: set[str] = field(default_factory=set)


def read_external(path: str, owner: str, kind: str) -> str:
    """Read a template or hook file verbatim.

    ``~`` was already expanded against the snapshot home at load time.
    """
    file = Path(path)
    try:
        return file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise EmissionError(f"Module '{owner}': cannot read {kind} {file}: {e}") from e


class Emitter(ABC):
    """Render ordered active modules into one shell dialect."""

    #: whether PATH entries differing only in case are distinct
    path_case_sensitive: bool = True

    def __init__(self, shell: Shell):
        self.shell = shell

    # ── Dialect hooks ────────────────────────────────────────────

    @abstractmethod
    def quote(self, value: str) -> str:
        """Quote a literal as a single shell word."""

    @abstractmethod
    def render_env(self, action: EnvVarAction) -> list[str]:
        """Export a variable."""

    @abstractmethod
    def render_path(self, action: PathEntryAction) -> list[str]:
        """Insert a directory into PATH (with inline guard if dedupe)."""

    @abstractmethod
    def render_alias(self, action: AliasAction) -> list[str]:
        """Define a word-level alias."""

    @abstractmethod
    def render_function(self, name: str, statements: list[str]) -> list[str]:
        """Wrap already-translated statements into a function definition."""

    @abstractmethod
    def render_include(self, path: str) -> list[str]:
        """Source a file if it is readable."""

    @abstractmethod
    def render_run(self, stmt: RunStatement) -> str: ...

    @abstractmethod
    def render_set_env(self, stmt: SetEnvStatement) -> str: ...

    @abstractmethod
    def render_cd(self, stmt: CdStatement) -> str: ...

    @abstractmethod
    def render_echo(self, stmt: EchoStatement) -> str: ...

    def comment(self, text: str) -> str:
        return f"# {one_line(text)}"

    # ── Layout ───────────────────────────────────────────────────

    def emit(self, modules: list[Module], host: str | None = None) -> str:
        """Render modules (already in emission order) to script text.

        The whole text is built in memory; any error raises before the
        caller has anything to print. ``host`` enables the hooks' host
        filter.
        """
        state = EmissionState()
        lines: list[str] = [self.comment(f"apogee generated for {self.shell.value}")]

        pre = self._collect_hooks(modules, "pre", host)
        if pre:
            lines.append("")
            lines.append(self.comment("--- hooks: pre ---"))
            for owner, hook in pre:
                lines.extend(self.render_hook(hook, owner))

        for module in modules:
            lines.append("")
            lines.append(self.comment(f"--- module: {module.id} ---"))
            for action in module.body_actions:
                lines.extend(self.render_action(action, module.id, state))

        post = self._collect_hooks(modules, "post", host)
        if post:
            lines.append("")
            lines.append(self.comment("--- hooks: post ---"))
            for owner, hook in post:
                lines.extend(self.render_hook(hook, owner))

        text = "\n".join(lines).rstrip("\n") + "\n"
        logger.debug("Emitted %d lines for %s", text.count("\n"), self.shell.value)
        return text

    def _collect_hooks(
        self, modules: list[Module], phase: str, host: str | None
    ) -> list[tuple[str, HookAction]]:
        return [
            (m.id, h)
            for m in modules
            for h in m.hooks
            if h.phase == phase and h.applies_to(self.shell, host)
        ]

    # ── Dispatch ─────────────────────────────────────────────────

    def render_action(self, action, owner: str, state: EmissionState) -> list[str]:
        if isinstance(action, EnvVarAction):
            return self.render_env(action)
        if isinstance(action, PathEntryAction):
            key = action.directory if self.path_case_sensitive else action.directory.casefold()
            if action.dedupe and key in state.path_dirs:
                logger.debug("Module '%s': PATH entry %s already emitted", owner, action.directory)
                return []
            state.path_dirs.add(key)
            return self.render_path(action)
        if isinstance(action, AliasAction):
            return self.render_alias(action)
        if isinstance(action, FunctionAction):
            return self.render_function_action(action, owner)
        raise EmissionError(
            f"Module '{owner}': {self.shell.value} cannot emit action {type(action).__name__}"
        )

    def render_function_action(self, action: FunctionAction, owner: str) -> list[str]:
        if action.template is not None:
            template = action.template
            if not template.allows(self.shell):
                raise TemplateTargetError(owner, template.path, template.shell, self.shell.value)
            content = read_external(template.path, owner, "template")
            return content.rstrip("\n").split("\n")

        statements = [self.render_statement(stmt) for stmt in action.body or []]
        return self.render_function(action.name, statements)

    def render_statement(self, stmt) -> str:
        if isinstance(stmt, RunStatement):
            return self.render_run(stmt)
        if isinstance(stmt, SetEnvStatement):
            return self.render_set_env(stmt)
        if isinstance(stmt, CdStatement):
            return self.render_cd(stmt)
        if isinstance(stmt, EchoStatement):
            return self.render_echo(stmt)
        raise EmissionError(f"{self.shell.value} cannot emit statement {type(stmt).__name__}")

    def render_hook(self, hook: HookAction, owner: str) -> list[str]:
        if hook.inline:
            content = read_external(hook.script, owner, "hook")
            return content.rstrip("\n").split("\n")
        return self.render_include(hook.script)

    def words(self, argv: list[str]) -> str:
        return " ".join(self.quote(a) for a in argv)
