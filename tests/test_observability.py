"""
Tests for observability — logging level resolution and setup.
"""

import logging
from pathlib import Path

import pytest

from apogee.core.observability.logging_config import (
    level_from_name,
    resolve_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLevel:
    def test_flag_precedence(self):
        assert resolve_level(debug=True, verbose=True, quiet=True, environ={}) == "DEBUG"
        assert resolve_level(verbose=True, quiet=True, environ={}) == "INFO"
        assert resolve_level(quiet=True, environ={"APOGEE_LOG_LEVEL": "debug"}) == "ERROR"

    def test_env_var(self):
        assert resolve_level(environ={"APOGEE_LOG_LEVEL": "info"}) == "INFO"

    def test_default(self):
        assert resolve_level(environ={}) == "WARNING"


class TestLevelFromName:
    def test_names(self):
        assert level_from_name("debug") == logging.DEBUG
        assert level_from_name(" Error ") == logging.ERROR

    def test_unknown_or_empty(self):
        assert level_from_name("LOUD") == logging.WARNING
        assert level_from_name(None, default=logging.INFO) == logging.INFO


class TestSetupLogging:
    def test_console_handler_on_stderr(self):
        (handler,) = setup_logging("INFO")
        assert isinstance(handler, logging.StreamHandler)
        assert handler.level == logging.INFO
        assert handler in logging.getLogger().handlers
        assert logging.getLogger().level == logging.INFO

    def test_unknown_level_falls_back_to_warning(self):
        setup_logging("LOUD")
        assert logging.getLogger().level == logging.WARNING

    def test_file_handler(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "apogee.log"
        installed = setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG
        assert any(isinstance(h, logging.FileHandler) for h in installed)

        logging.getLogger("apogee.test").debug("hello file")
        for h in installed:
            h.flush()
        assert "hello file" in log_file.read_text()

    def test_unopenable_file_is_skipped(self, tmp_path: Path, capsys):
        blocker = tmp_path / "file"
        blocker.write_text("")
        installed = setup_logging("WARNING", log_file=str(blocker / "apogee.log"))
        assert len(installed) == 1
        assert "cannot open log file" in capsys.readouterr().err

    def test_repeat_setup_replaces_only_own_handlers(self):
        foreign = logging.NullHandler()
        logging.getLogger().addHandler(foreign)
        first = setup_logging("INFO")
        second = setup_logging("DEBUG")
        handlers = logging.getLogger().handlers
        assert foreign in handlers
        assert second[0] in handlers
        assert first[0] not in handlers
