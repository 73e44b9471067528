import json
import logging
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from shared.logging import bind_session_context, clear_session_context, serialize_enums, setup_logging


@pytest.fixture(autouse=True)
def _cleanup_root_logger():
    """Close and remove all handlers from the root logger after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)


@pytest.fixture(autouse=True)
def _allow_file_logging():
    """Disable the _is_test guard so logging tests can create real file handlers."""
    with patch("shared.logging._is_test", return_value=False):
        yield


class TestSetupLogging:
    def test_configures_stdout_handler(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging()
        root = logging.getLogger()

        assert root.level == logging.INFO
        assert len(root.handlers) == 1

        handler = root.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)

    def test_configures_file_handler_in_log_dir(self, tmp_path):
        log_dir = tmp_path / "puzzles"
        setup_logging(log_dir=log_dir)
        root = logging.getLogger()

        assert len(root.handlers) == 2
        file_handler = root.handlers[1]
        assert isinstance(file_handler, logging.FileHandler)
        assert Path(file_handler.baseFilename).parent == log_dir

    def test_log_file_has_datetime_in_name(self, tmp_path):
        fixed_time = datetime(2026, 3, 15, 10, 30, 45, tzinfo=UTC)
        with patch("shared.logging.datetime") as mock_dt:
            mock_dt.now.return_value = fixed_time
            log_path = setup_logging(log_dir=tmp_path / "puzzles")

        assert log_path is not None
        assert log_path.name == "2026-03-15_10-30-45.log"

    def test_returns_none_without_log_dir(self):
        assert setup_logging() is None

    def test_skips_file_output_under_pytest(self, tmp_path):
        with patch("shared.logging._is_test", return_value=True):
            log_path = setup_logging(log_dir=tmp_path / "puzzles")

        assert log_path is None
        assert not (tmp_path / "puzzles").exists()

    def test_writes_to_file(self, tmp_path):
        log_path = setup_logging(log_dir=tmp_path / "puzzles")

        structlog.get_logger("test.writes_to_file").info("hello from test")

        assert log_path is not None
        assert "hello from test" in log_path.read_text()

    def test_clears_existing_handlers_on_repeated_calls(self):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        setup_logging()

        assert logging.getLogger().level == logging.DEBUG

    def test_invalid_log_level_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "bogus")
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            setup_logging()

    def test_invalid_log_format_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            setup_logging()

    def test_json_mode_includes_session_context(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log_path = setup_logging(log_dir=tmp_path / "puzzles")

        bind_session_context(puzzle_id="p-1", game_mode="the_chain", attempt_id="a-1")
        structlog.get_logger("test.json").info("link accepted", steps=2)
        clear_session_context()

        assert log_path is not None
        parsed = json.loads(log_path.read_text().strip().splitlines()[0])
        assert parsed["event"] == "link accepted"
        assert parsed["puzzle_id"] == "p-1"
        assert parsed["game_mode"] == "the_chain"
        assert parsed["attempt_id"] == "a-1"
        assert parsed["steps"] == 2


class TestSessionContext:
    def test_binds_without_attempt_id(self):
        bind_session_context(puzzle_id="p-1", game_mode="starting_xi")

        context = structlog.contextvars.get_contextvars()
        assert context == {"puzzle_id": "p-1", "game_mode": "starting_xi"}

    def test_clear_removes_only_session_keys(self):
        structlog.contextvars.bind_contextvars(request_id="r-9")
        bind_session_context(puzzle_id="p-1", game_mode="starting_xi", attempt_id="a-1")

        clear_session_context()

        assert structlog.contextvars.get_contextvars() == {"request_id": "r-9"}


class TestSerializeEnums:
    class _Mode(Enum):
        RECALL = "goalscorer_recall"
        CHAIN = "the_chain"

    def test_replaces_enum_with_value(self):
        result = serialize_enums(None, "", {"mode": self._Mode.RECALL, "msg": "hello"})
        assert result == {"mode": "goalscorer_recall", "msg": "hello"}

    def test_replaces_enum_inside_dict_value(self):
        result = serialize_enums(None, "", {"data": {"mode": self._Mode.CHAIN, "count": 3}})
        assert result["data"] == {"mode": "the_chain", "count": 3}

    def test_replaces_enum_inside_list_value(self):
        result = serialize_enums(None, "", {"modes": [self._Mode.CHAIN, "x"]})
        assert result["modes"] == ["the_chain", "x"]
