"""
Tests for logging setup — level resolution, console tiers, daemon log.
"""

import logging
import logging.handlers
from pathlib import Path

import pytest

from alloy.core.config.settings import Settings
from alloy.core.errors import ConfigError
from alloy.core.observability.logging_config import (
    _parse_level,
    resolve_level,
    setup_daemon_logging,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    asyncio_level = logging.getLogger("asyncio").level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("asyncio").setLevel(asyncio_level)


def _settings(data_root: Path) -> Settings:
    return Settings(
        data_root=data_root,
        runtime_root=data_root / "runtime",
        recipe_root=data_root / "recipes",
        socket_path=data_root / "daemon.sock",
    )


def _file_handlers() -> list[logging.handlers.TimedRotatingFileHandler]:
    return [
        h
        for h in logging.getLogger().handlers
        if isinstance(h, logging.handlers.TimedRotatingFileHandler)
    ]


class TestParseLevel:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("debug", logging.DEBUG),
            ("INFO", logging.INFO),
            ("", logging.WARNING),
            (None, logging.WARNING),
            ("chatty", logging.WARNING),
        ],
    )
    def test_names(self, name, expected):
        assert _parse_level(name) == expected


class TestResolveLevel:
    def test_flags_beat_environment(self):
        env = {"SILICON_ALLOY_LOG": "info"}
        assert resolve_level(debug=True, verbose=True, environ=env) == "DEBUG"
        assert resolve_level(verbose=True, quiet=True, environ=env) == "INFO"
        assert resolve_level(quiet=True, environ=env) == "ERROR"

    def test_environment(self):
        assert resolve_level(environ={"SILICON_ALLOY_LOG": "debug"}) == "DEBUG"

    def test_default_and_unknown(self):
        assert resolve_level(environ={}) == "WARNING"
        assert resolve_level(environ={"SILICON_ALLOY_LOG": "chatty"}) == "WARNING"


class TestSetupLogging:
    def test_console_only(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert _file_handlers() == []

    def test_repeat_calls_replace_handlers(self):
        setup_logging("INFO")
        setup_logging("DEBUG")
        assert len(logging.getLogger().handlers) == 1

    @pytest.mark.parametrize(
        "level, asyncio_level",
        [
            ("DEBUG", logging.INFO),
            ("INFO", logging.WARNING),
            ("ERROR", logging.WARNING),
        ],
    )
    def test_asyncio_kept_one_tier_behind(self, level, asyncio_level):
        setup_logging(level)
        assert logging.getLogger("asyncio").level == asyncio_level


class TestDaemonLogging:
    def test_log_file_under_data_dir(self, tmp_path: Path):
        settings = _settings(tmp_path / "data")
        log_path = setup_daemon_logging(settings, "WARNING")

        assert log_path == tmp_path / "data" / "logs" / "daemon.log"
        handlers = _file_handlers()
        assert len(handlers) == 1
        assert handlers[0].when == "MIDNIGHT"
        assert handlers[0].backupCount == 7

    def test_file_records_info_when_console_quiet(self, tmp_path: Path):
        log_path = setup_daemon_logging(_settings(tmp_path), "ERROR")
        logger = logging.getLogger("alloy.daemon.test")
        logger.info("bottle created")
        logger.debug("not recorded")
        _file_handlers()[0].flush()

        content = log_path.read_text()
        assert "bottle created" in content
        assert "not recorded" not in content

    def test_debug_console_lowers_file_level(self, tmp_path: Path):
        log_path = setup_daemon_logging(_settings(tmp_path), "DEBUG")
        logging.getLogger("alloy.daemon.test").debug("step detail")
        _file_handlers()[0].flush()
        assert "step detail" in log_path.read_text()

    def test_unwritable_log_dir(self, tmp_path: Path):
        blocker = tmp_path / "data"
        blocker.write_text("")
        with pytest.raises(ConfigError, match="daemon log"):
            setup_daemon_logging(_settings(blocker))
