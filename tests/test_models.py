"""
Tests for domain models — shells, actions, modules and the config document.
"""

import pytest
from pydantic import ValidationError

from apogee.core.models import (
    AliasAction,
    Config,
    EnvVarAction,
    FunctionAction,
    HookAction,
    Module,
    PathEntryAction,
    Platform,
    Shell,
    TemplateRef,
)


class TestShell:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("zsh", Shell.ZSH),
            ("BASH", Shell.BASH),
            ("/usr/bin/fish", Shell.FISH),
            ("-zsh", Shell.ZSH),
            ("pwsh.exe", Shell.PWSH),
            ("powershell", Shell.PWSH),
            ("C:\\Program Files\\PowerShell\\7\\pwsh.exe", Shell.PWSH),
        ],
    )
    def test_parse(self, raw, expected):
        assert Shell.parse(raw) == expected

    def test_parse_unknown(self):
        assert Shell.parse("tcsh") is None
        assert Shell.parse("") is None
        assert Shell.parse(None) is None

    def test_family(self):
        assert Shell.ZSH.family == "posix"
        assert Shell.BASH.family == "posix"
        assert Shell.FISH.family == "fish"
        assert Shell.PWSH.family == "pwsh"

    def test_extension(self):
        assert Shell.PWSH.extension == "ps1"
        assert Shell.BASH.extension == "bash"


class TestActions:
    def test_env_name_validated(self):
        with pytest.raises(ValidationError):
            EnvVarAction(name="BAD-NAME", value="x")
        with pytest.raises(ValidationError):
            EnvVarAction(name="1ABC", value="x")

    def test_env_value_is_free_text(self):
        a = EnvVarAction(name="X", value="it's $(whoami)")
        assert a.value == "it's $(whoami)"

    def test_alias_name_validated(self):
        AliasAction(name="g.s", expansion="git status")
        with pytest.raises(ValidationError):
            AliasAction(name="g s", expansion="git status")
        with pytest.raises(ValidationError):
            AliasAction(name="x;rm", expansion="ls")

    def test_path_defaults(self):
        a = PathEntryAction(directory="/opt/bin")
        assert a.position == "prepend"
        assert a.dedupe is True
        assert a.if_exists is False

    def test_function_needs_body_or_template(self):
        with pytest.raises(ValidationError):
            FunctionAction(name="f")
        with pytest.raises(ValidationError):
            FunctionAction(
                name="f",
                body=[{"op": "echo", "text": "hi"}],
                template={"path": "f.fish"},
            )

    def test_function_body_statements(self):
        f = FunctionAction.model_validate(
            {
                "name": "mkcd",
                "body": [
                    {"op": "run", "argv": ["mkdir", "-p"]},
                    {"op": "cd", "path": "/tmp"},
                ],
            }
        )
        assert [s.op for s in f.body] == ["run", "cd"]
        assert f.body[0].forward_args is True

    def test_template_allows(self):
        assert TemplateRef(path="x").allows(Shell.PWSH)
        assert TemplateRef(path="x", shell="fish").allows(Shell.FISH)
        assert not TemplateRef(path="x", shell="fish").allows(Shell.PWSH)
        assert TemplateRef(path="x", shell="posix").allows(Shell.BASH)
        assert not TemplateRef(path="x", shell="posix").allows(Shell.FISH)

    def test_hook_applies_to(self):
        assert HookAction(script="a").applies_to(Shell.FISH)
        h = HookAction(script="a", shells=["zsh"])
        assert h.applies_to(Shell.ZSH)
        assert not h.applies_to(Shell.BASH)


class TestModule:
    def test_discriminated_parse(self):
        m = Module.model_validate(
            {
                "id": "git",
                "detect": [{"type": "command_exists", "name": "git"}],
                "actions": [
                    {"type": "alias", "name": "gs", "expansion": "git status"},
                    {"type": "hook", "script": "~/.gitrc"},
                ],
            }
        )
        assert m.detect[0].describe() == "command_exists(git)"
        assert isinstance(m.actions[0], AliasAction)
        assert len(m.hooks) == 1
        assert len(m.body_actions) == 1

    def test_unknown_rule_type(self):
        with pytest.raises(ValidationError):
            Module.model_validate({"id": "x", "detect": [{"type": "moon_phase"}]})

    def test_requires_deduped(self):
        m = Module(id="a", requires=["b", " b", "c"])
        assert m.requires == ["b", "c"]

    def test_version_rule_defaults(self):
        m = Module.model_validate(
            {"id": "py", "detect": [{"type": "version_satisfies", "command": "python3",
                                      "constraint": ">=3.9"}]}
        )
        rule = m.detect[0]
        assert rule.args == ["--version"]
        assert rule.regex

    def test_platform_and_shell_filters(self):
        m = Module(id="a", platforms=["mac"], shells=["fish"])
        assert m.supports_platform(Platform.MAC)
        assert not m.supports_platform(Platform.LINUX)
        assert m.supports_shell(Shell.FISH)
        assert not m.supports_shell(Shell.ZSH)
        assert Module(id="b").supports_shell(Shell.PWSH)


class TestConfig:
    def test_defaults(self):
        c = Config()
        assert c.apogee.default_shell == Shell.ZSH
        assert c.apogee.max_workers == 8
        assert c.modules == []

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValidationError, match="duplicate module id"):
            Config(modules=[Module(id="a"), Module(id="a")])

    def test_unknown_requirement_rejected(self):
        with pytest.raises(ValidationError, match="requires unknown module 'ghost'"):
            Config(modules=[Module(id="a", requires=["ghost"])])

    def test_get_module(self):
        c = Config(modules=[Module(id="a"), Module(id="b")])
        assert c.get_module("b").id == "b"
        assert c.get_module("z") is None

    def test_invalid_workers(self):
        with pytest.raises(ValidationError):
            Config.model_validate({"apogee": {"max_workers": 0}})
