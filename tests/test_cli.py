"""
Tests for CLI commands — emit, report, config check, and global options.
"""

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from apogee.main import cli

CONFIG = """\
    [apogee]
    default_shell = "zsh"

    [[modules]]
    id = "base"
    actions = [
        { type = "env", name = "EDITOR", value = "nvim" },
        { type = "path", directory = "{home}/.local/bin" },
    ]

    [[modules]]
    id = "dropbox"
    requires = ["base"]
    detect = [{ type = "env_var_set", name = "DROPBOX" }]
    actions = [{ type = "alias", name = "dbx", expansion = "cd ~/Dropbox" }]
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(textwrap.dedent(CONFIG))
    return path


def _invoke(args, ctx):
    runner = CliRunner()
    return runner.invoke(cli, args, obj={"shell_ctx": ctx})


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "shell initialization scripts" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestEmitCommand:
    def test_default_command_emits(self, shell_ctx, config_file):
        result = _invoke(["--config", str(config_file), "--shell", "bash"], shell_ctx)
        assert result.exit_code == 0, result.stderr
        assert result.stdout.startswith("# apogee generated for bash\n")
        assert "export EDITOR='nvim'" in result.stdout

    def test_emit_subcommand(self, shell_ctx, config_file):
        result = _invoke(["--config", str(config_file), "emit", "--shell", "fish"], shell_ctx)
        assert result.exit_code == 0
        assert "set -gx EDITOR 'nvim'" in result.stdout

    def test_config_default_shell_used(self, shell_ctx, config_file):
        result = _invoke(["--config", str(config_file)], shell_ctx)
        assert result.exit_code == 0
        assert result.stdout.startswith("# apogee generated for zsh")

    def test_apogee_shell_env(self, make_ctx, config_file):
        ctx = make_ctx(env={"APOGEE_SHELL": "pwsh"})
        result = _invoke(["--config", str(config_file)], ctx)
        assert "$env:EDITOR = 'nvim'" in result.stdout

    def test_inactive_dependent_not_emitted(self, shell_ctx, config_file):
        result = _invoke(["--config", str(config_file), "--shell", "zsh"], shell_ctx)
        assert "dbx" not in result.stdout

    def test_active_dependent_emitted_after_requirement(self, make_ctx, config_file):
        ctx = make_ctx(env={"DROPBOX": "/d"})
        out = _invoke(["--config", str(config_file), "--shell", "zsh"], ctx).stdout
        assert out.index("EDITOR") < out.index("alias dbx=")

    def test_unknown_shell_fails_cleanly(self, shell_ctx, config_file):
        result = _invoke(["--config", str(config_file), "--shell", "tcsh"], shell_ctx)
        assert result.exit_code == 1
        assert result.stdout == ""
        assert "Unknown target shell" in result.stderr

    def test_cycle_produces_no_output(self, shell_ctx, tmp_path: Path):
        path = tmp_path / "cycle.toml"
        path.write_text('[[modules]]\nid = "a"\nrequires = ["a"]\n')
        result = _invoke(["--config", str(path), "--shell", "bash"], shell_ctx)
        assert result.exit_code == 1
        assert result.stdout == ""
        assert "Dependency cycle detected: a -> a" in result.stderr

    def test_missing_config(self, shell_ctx, tmp_path: Path):
        result = _invoke(["--config", str(tmp_path / "nope.toml")], shell_ctx)
        assert result.exit_code == 1
        assert result.stdout == ""


class TestReportCommand:
    def test_human(self, shell_ctx, config_file):
        result = _invoke(["--config", str(config_file), "report", "--shell", "zsh"], shell_ctx)
        assert result.exit_code == 0
        assert "1/2 active" in result.stdout
        assert "env_var_set(DROPBOX) not satisfied" in result.stdout

    def test_json(self, make_ctx, config_file):
        ctx = make_ctx(env={"DROPBOX": "/d"})
        result = _invoke(["--config", str(config_file), "report", "--json"], ctx)
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["order"] == ["base", "dropbox"]
        assert data["modules"][1]["active"] is True

    def test_json_error(self, shell_ctx, tmp_path: Path):
        result = _invoke(["--config", str(tmp_path / "nope.toml"), "report", "--json"], shell_ctx)
        assert result.exit_code == 1
        assert "error" in json.loads(result.stdout)


class TestConfigCheckCommand:
    def test_valid(self, shell_ctx, config_file):
        result = _invoke(["--config", str(config_file), "config", "check"], shell_ctx)
        assert result.exit_code == 0
        assert "Configuration is valid" in result.stdout
        assert "Modules: 2" in result.stdout

    def test_valid_json(self, shell_ctx, config_file):
        result = _invoke(["--config", str(config_file), "config", "check", "--json"], shell_ctx)
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["valid"] is True
        assert data["modules"] == ["base", "dropbox"]

    def test_invalid(self, shell_ctx, tmp_path: Path):
        path = tmp_path / "bad.toml"
        path.write_text('[[modules]]\nid = "a"\nrequires = ["ghost"]\n')
        result = _invoke(["--config", str(path), "config", "check"], shell_ctx)
        assert result.exit_code == 1
        assert "ghost" in result.stderr
