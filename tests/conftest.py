"""
Shared test fixtures and configuration.
"""

import os
import stat
import textwrap
from pathlib import Path

import pytest

from apogee.core.context import ShellContext
from apogee.core.models.shell import Platform


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    """An empty directory to put fake executables in."""
    d = tmp_path / "bin"
    d.mkdir()
    return d


@pytest.fixture
def make_executable(bin_dir: Path):
    """Create an executable shell script in ``bin_dir``."""

    def _make(name: str, body: str = "exit 0") -> Path:
        path = bin_dir / name
        path.write_text("#!/bin/sh\n" + textwrap.dedent(body).strip() + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make


@pytest.fixture
def make_ctx(tmp_path: Path, bin_dir: Path):
    """Factory for ShellContext snapshots rooted in tmp_path."""

    def _make(**overrides) -> ShellContext:
        env = {
            "HOME": str(tmp_path),
            "PATH": os.pathsep.join([str(bin_dir), "/usr/bin", "/bin"]),
        }
        env.update(overrides.pop("env", {}))
        defaults = dict(
            vars=env,
            home=tmp_path,
            platform=Platform.LINUX,
            host="testhost",
            parent_shell=None,
        )
        defaults.update(overrides)
        return ShellContext(**defaults)

    return _make


@pytest.fixture
def shell_ctx(make_ctx) -> ShellContext:
    return make_ctx()


@pytest.fixture
def write_config(tmp_path: Path):
    """Write a config document into tmp_path and return its path."""

    def _write(content: str, name: str = "config.toml") -> Path:
        path = tmp_path / name
        path.write_text(textwrap.dedent(content))
        return path

    return _write
