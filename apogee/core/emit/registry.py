"""
Emitter registry — map a target shell to its renderer.

Callers never construct emitters directly; they ask the registry,
which also turns an unknown shell name into a config error.
"""

from __future__ import annotations

import logging

from apogee.core.emit.base import Emitter
from apogee.core.emit.fish import FishEmitter
from apogee.core.emit.posix import PosixEmitter
from apogee.core.emit.pwsh import PwshEmitter
from apogee.core.errors import UnknownShellError
from apogee.core.models.module import Module
from apogee.core.models.shell import Shell

logger = logging.getLogger(__name__)

EMITTERS: dict[Shell, type[Emitter]] = {
    Shell.ZSH: PosixEmitter,
    Shell.BASH: PosixEmitter,
    Shell.FISH: FishEmitter,
    Shell.PWSH: PwshEmitter,
}


def get_emitter(shell: Shell | str) -> Emitter:
    """Return a fresh emitter for ``shell``.

    Raises:
        UnknownShellError: ``shell`` is not a supported target.
    """
    target = shell if isinstance(shell, Shell) else Shell.parse(shell)
    if target is None or target not in EMITTERS:
        raise UnknownShellError(str(shell))
    return EMITTERS[target](target)


def emit(modules: list[Module], shell: Shell | str, host: str | None = None) -> str:
    """Render active modules, already in emission order, for ``shell``.

    ``host`` filters hooks that list specific hosts.

    Raises:
        UnknownShellError, TemplateTargetError, EmissionError.
    """
    emitter = get_emitter(shell)
    logger.debug("Emitting %d modules with %s", len(modules), type(emitter).__name__)
    return emitter.emit(modules, host=host)
