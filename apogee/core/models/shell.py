"""
Shell and platform enums.
"""

from __future__ import annotations

from enum import Enum


class Shell(str, Enum):
    """The four supported target dialects."""

    ZSH = "zsh"
    BASH = "bash"
    FISH = "fish"
    PWSH = "pwsh"

    @classmethod
    def parse(cls, value: str | None) -> Shell | None:
        """Parse a shell name (case-insensitive).

        Accepts ``zsh``, ``bash``, ``fish``, ``pwsh`` and ``powershell``,
        as well as full paths / executable names such as ``/bin/zsh`` or
        ``pwsh.exe``. Returns None for anything else.
        """
        if not value:
            return None
        name = value.strip().replace("\\", "/").rsplit("/", 1)[-1].lower()
        if name.endswith(".exe"):
            name = name[:-4]
        name = name.lstrip("-")  # login shells show up as "-zsh"
        if name in ("pwsh", "powershell"):
            return cls.PWSH
        for shell in cls:
            if shell.value == name:
                return shell
        return None

    @property
    def family(self) -> str:
        """Dialect family: posix, fish or pwsh."""
        if self in (Shell.ZSH, Shell.BASH):
            return "posix"
        return self.value

    @property
    def extension(self) -> str:
        return {"zsh": "zsh", "bash": "bash", "fish": "fish", "pwsh": "ps1"}[self.value]


class Platform(str, Enum):
    MAC = "mac"
    LINUX = "linux"
    WINDOWS = "windows"
    WSL = "wsl"
    OTHER = "other"
