"""
Tests for observability — logging setup.
"""

import logging

import pytest

from nodecore.core.observability.logging_config import (
    _parse_level,
    resolve_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParseLevel:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("debug", logging.DEBUG),
            ("INFO", logging.INFO),
            ("Error", logging.ERROR),
            (None, logging.WARNING),
            ("", logging.WARNING),
            ("chatty", logging.WARNING),
            ("Formatter", logging.WARNING),
        ],
    )
    def test_parse(self, name, expected):
        assert _parse_level(name) == expected


class TestResolveLevel:
    def test_flags_beat_env(self):
        env = {"NODECORE_LOG_LEVEL": "ERROR"}
        assert resolve_level(debug=True, quiet=True, environ=env) == "DEBUG"
        assert resolve_level(verbose=True, environ=env) == "INFO"

    def test_quiet(self):
        assert resolve_level(quiet=True) == "ERROR"

    def test_env(self):
        assert resolve_level(environ={"NODECORE_LOG_LEVEL": "info"}) == "info"

    def test_default(self):
        assert resolve_level(environ={"NODECORE_LOG_LEVEL": ""}) == "WARNING"
        assert resolve_level() == "WARNING"


class TestSetupLogging:
    def test_console_only(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)

    def test_replaces_previous_handlers(self):
        setup_logging("INFO")
        setup_logging("DEBUG")
        assert len(logging.getLogger().handlers) == 1

    def test_minimal_format_at_warning(self):
        setup_logging("WARNING")
        fmt = logging.getLogger().handlers[0].formatter
        assert fmt._fmt == "%(message)s"

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "nodecore.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2

        logging.getLogger("nodecore.test").debug("fetched manifest")
        for h in root.handlers:
            h.flush()
        text = log_file.read_text()
        assert "fetched manifest" in text
        assert "nodecore.test" in text

    def test_file_level_defaults_to_console(self, tmp_path):
        setup_logging("ERROR", log_file=str(tmp_path / "x.log"))
        root = logging.getLogger()
        assert root.level == logging.ERROR
        assert root.handlers[1].level == logging.ERROR
