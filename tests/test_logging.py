"""
Tests for chipstack/utils/logging.py

Run with: pytest tests/test_logging.py -v
"""

import logging

import pytest

from chipstack.utils.logging import (
    ProcessingTimer,
    format_duration,
    get_logger,
    log_parameters,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


class TestLogging:

    def test_get_logger_is_cached(self):
        assert get_logger("chipstack.x") is get_logger("chipstack.x")

    def test_log_file(self, temp_dir, restore_root_logger):
        log_path = temp_dir / "logs" / "run.log"
        setup_logging(level="DEBUG", log_file=log_path, console=False)
        get_logger("chipstack.test").info("hello from test")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "hello from test" in log_path.read_text()

    def test_log_dir_names_file(self, temp_dir, restore_root_logger):
        setup_logging(level="INFO", log_dir=temp_dir, console=False)
        assert len(list(temp_dir.glob("chipstack_*.log"))) == 1

    def test_log_parameters_nested(self, caplog):
        logger = get_logger("chipstack.params")
        with caplog.at_level(logging.DEBUG, logger="chipstack.params"):
            log_parameters(logger, {"counting": {"lag_min": 8}, "profile": list(range(10))})
        assert "lag_min: 8" in caplog.text
        assert "[10 items]" in caplog.text


class TestProcessingTimer:

    def test_records_duration(self):
        with ProcessingTimer(get_logger("chipstack.timer"), "work") as timer:
            pass
        assert timer.duration is not None and timer.duration >= 0

    def test_logs_failure_and_propagates(self, caplog):
        with caplog.at_level(logging.ERROR, logger="chipstack.timer"):
            with pytest.raises(RuntimeError):
                with ProcessingTimer(get_logger("chipstack.timer"), "work"):
                    raise RuntimeError("boom")
        assert "Failed: work" in caplog.text

    @pytest.mark.parametrize("seconds,expected", [
        (0.25, "250 ms"),
        (2.5, "2.50 seconds"),
        (90, "1.5 minutes"),
    ])
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected
