"""
Quoting helpers — turn arbitrary strings into literal shell words.

Every value that reaches the output goes through one of these. The
result is always a single-quoted word, so whitespace, quotes, ``$``,
backticks and ``$(...)`` are inert when the script is eval'd.
"""

from __future__ import annotations

import re

from apogee.core.errors import EmissionError

# PowerShell treats typographic single quotes as quote characters too.
_PWSH_SINGLE_QUOTES = re.compile("['‘’‚‛]")


def check_expressible(value: str, what: str = "value") -> str:
    """Reject characters no shell can carry inside a literal."""
    if "\x00" in value:
        raise EmissionError(f"{what} contains a NUL character and cannot be emitted: {value!r}")
    return value


def quote_posix(value: str) -> str:
    """Single-quote for sh/bash/zsh: ``'`` becomes ``'\\''``."""
    check_expressible(value)
    return "'" + value.replace("'", "'\\''") + "'"


def quote_fish(value: str) -> str:
    """Single-quote for fish: only ``\\`` and ``'`` are special inside."""
    check_expressible(value)
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def quote_pwsh(value: str) -> str:
    """Single-quote for PowerShell: quote characters are doubled."""
    check_expressible(value)
    return "'" + _PWSH_SINGLE_QUOTES.sub(lambda m: m.group(0) * 2, value) + "'"


def one_line(text: str) -> str:
    """Collapse line breaks so text is safe inside a ``#`` comment."""
    return re.sub(r"[\r\n\x00]+", " ", text)
