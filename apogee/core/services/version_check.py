"""
Version check — run a ``--version`` style command and parse the output.

Read-only: spawns the command with the snapshot environment, waits a
bounded time and extracts a version string. Every failure mode (not
found, non-zero exit, timeout, no match) yields None, never raises.
"""

from __future__ import annotations

import logging
import re
import subprocess

from apogee.core.context import ShellContext

logger = logging.getLogger(__name__)


def extract_version(output: str, pattern: re.Pattern[str]) -> str | None:
    """Pull a version out of command output.

    Uses the ``version`` named group when the pattern defines one,
    otherwise group 1, otherwise the whole match.
    """
    match = pattern.search(output)
    if not match:
        return None
    if "version" in pattern.groupindex:
        return match.group("version")
    if pattern.groups >= 1:
        return match.group(1)
    return match.group(0)


def run_version_command(
    executable: str,
    args: list[str],
    ctx: ShellContext,
    timeout: float,
) -> str | None:
    """Run ``executable args...`` and return combined stdout + stderr.

    Returns None when the command cannot be run, exits non-zero or
    exceeds ``timeout`` seconds.
    """
    cmd = [executable, *args]
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=dict(ctx.vars),
            stdin=subprocess.DEVNULL,
        )
    except subprocess.TimeoutExpired:
        logger.warning("Version check timed out after %ss: %s", timeout, " ".join(cmd))
        return None
    except OSError as e:
        logger.debug("Version check failed to start %s: %s", executable, e)
        return None

    if result.returncode != 0:
        logger.debug("Version check %s exited with %d", " ".join(cmd), result.returncode)
        return None

    # Some tools print their version on stderr (java, older python).
    return (result.stdout or "") + (result.stderr or "")
