"""
Logging configuration — installed once by main.py.

stdout is reserved for the generated script (the calling shell
evaluates it), so the console sink is always stderr. A file sink can be
added through the environment:

    APOGEE_LOG_LEVEL       console level when no flag is given
    APOGEE_LOG_FILE        append records to this file
    APOGEE_LOG_FILE_LEVEL  file level (defaults to the console level)

Console level precedence: --debug > --verbose > --quiet >
APOGEE_LOG_LEVEL > WARNING.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

# Console layouts by verbosity; the first row whose ceiling is >= the level wins.
_CONSOLE_LAYOUTS: tuple[tuple[int, str], ...] = (
    (logging.DEBUG, "%(relativeCreated)6dms %(levelname).1s %(name)s [%(threadName)s] %(message)s"),
    (logging.INFO, "apogee[%(name)s] %(message)s"),
    (logging.CRITICAL, "apogee: %(message)s"),
)
_FILE_LAYOUT = "%(asctime)s pid=%(process)d %(levelname)s %(name)s: %(message)s"

_OWNED = "_apogee_owned"


def level_from_name(name: str | None, default: int = logging.WARNING) -> int:
    """``"info"`` -> ``logging.INFO``; unknown or empty names give ``default``."""
    if not name:
        return default
    value = logging.getLevelName(name.strip().upper())
    return value if isinstance(value, int) else default


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Console level name from the CLI flags, then APOGEE_LOG_LEVEL."""
    for flag, name in ((debug, "DEBUG"), (verbose, "INFO"), (quiet, "ERROR")):
        if flag:
            return name
    env = os.environ if environ is None else environ
    return env.get("APOGEE_LOG_LEVEL", "").strip().upper() or "WARNING"


def _console_handler(level: int) -> logging.Handler:
    layout = next(fmt for ceiling, fmt in _CONSOLE_LAYOUTS if level <= ceiling)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(layout))
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_LAYOUT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _drop_owned(root: logging.Logger) -> None:
    for handler in [h for h in root.handlers if getattr(h, _OWNED, False)]:
        root.removeHandler(handler)
        handler.close()


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> list[logging.Handler]:
    """Install apogee's handlers on the root logger and return them.

    Calling it again replaces the handlers a previous call installed;
    handlers added by anyone else are left alone. A log file that cannot
    be opened is reported on the console and skipped.
    """
    console_level = level_from_name(level)
    root = logging.getLogger()
    _drop_owned(root)

    installed = [_console_handler(console_level)]
    if log_file:
        file_level = level_from_name(log_file_level, default=console_level)
        try:
            installed.append(_file_handler(Path(log_file).expanduser(), file_level))
        except OSError as e:
            sys.stderr.write(f"apogee: cannot open log file {log_file}: {e}\n")

    for handler in installed:
        setattr(handler, _OWNED, True)
        root.addHandler(handler)
    root.setLevel(min(h.level for h in installed))

    # A closed or broken stderr must not abort emission.
    logging.raiseExceptions = False
    return installed
