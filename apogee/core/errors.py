"""
Error taxonomy — everything that can abort an emission run.

Configuration errors and emission errors are fatal: the run stops
before anything reaches stdout. Detection problems never show up
here; the detection engine downgrades them to "rule not satisfied".
"""

from __future__ import annotations


class ApogeeError(Exception):
    """Base class for all fatal apogee errors."""


class ConfigError(ApogeeError):
    """Raised when the configuration is invalid, missing or inconsistent."""


class UnknownShellError(ConfigError):
    """Raised when the requested target shell is not supported."""

    def __init__(self, shell: str):
        self.shell = shell
        super().__init__(
            f"Unknown target shell: {shell!r} (expected one of: zsh, bash, fish, pwsh)"
        )


class MissingDependencyError(ConfigError):
    """Raised when a module requires an identifier that is not declared."""

    def __init__(self, missing: list[tuple[str, str]]):
        # (dependent, missing requirement) pairs, in declaration order
        self.missing = missing
        details = ", ".join(f"'{dep}' requires unknown module '{req}'" for dep, req in missing)
        super().__init__(f"Unresolvable requirement(s): {details}")


class DependencyCycleError(ConfigError):
    """Raised when the requires graph contains a cycle.

    ``cycle`` holds the full path, first node repeated at the end
    (e.g. ``["a", "b", "a"]``).
    """

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")


class TemplateTargetError(ConfigError):
    """Raised when a template marked for one shell is emitted for another."""

    def __init__(self, owner: str, template: str, marked: str, target: str):
        self.owner = owner
        self.template = template
        self.marked = marked
        self.target = target
        super().__init__(
            f"Module '{owner}': template {template} is marked for '{marked}' "
            f"and cannot be emitted for '{target}'"
        )


class EmissionError(ApogeeError):
    """Raised when a renderer cannot express an action in its dialect."""
