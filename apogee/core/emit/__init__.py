"""Shell emitters — render active modules into zsh, bash, fish or pwsh."""

from apogee.core.emit.registry import emit, get_emitter

__all__ = ["emit", "get_emitter"]
