"""Tests for the logger module."""

import asyncio
import logging
from unittest.mock import patch

import pytest

from honeypot.util import logger as logger_module
from honeypot.util.logger import (
    ColorFormatter,
    DATE_FORMAT,
    LOG_FORMAT,
    PromptToolkitHandler,
    get_logger,
    handle_exception,
    handle_loop_exception,
    should_use_color,
)


def make_record(level=logging.INFO, msg="hello"):
    return logging.LogRecord("test", level, "test.py", 1, msg, (), None, func="func")


@patch("sys.stderr.isatty")
def test_should_use_color_follows_tty(mock_isatty):
    mock_isatty.return_value = True
    assert should_use_color() is True
    mock_isatty.return_value = False
    assert should_use_color() is False


@patch("sys.stderr.isatty", side_effect=Exception("closed"))
def test_should_use_color_handles_errors(mock_isatty):
    assert should_use_color() is False


def test_color_formatter_wraps_level_color():
    formatted = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT).format(make_record(logging.ERROR))
    assert formatted.startswith("\033[31m")
    assert formatted.endswith("\033[0m")
    assert "hello" in formatted


def test_get_logger_is_configured_once():
    first = get_logger("honeypot-test")
    second = get_logger("honeypot-test")

    assert first is second
    assert len(first.handlers) == 2
    assert any(isinstance(handler, PromptToolkitHandler) for handler in first.handlers)
    assert first.propagate is False


def test_noisy_libraries_are_quieted():
    assert logging.getLogger("discord").level == logging.ERROR


def test_handle_exception_logs_errors():
    with patch.object(logger_module, "get_logger") as mock_get_logger:
        error = ValueError("boom")
        handle_exception(ValueError, error, None)
    mock_get_logger.return_value.error.assert_called_once()


def test_handle_exception_defers_keyboard_interrupt():
    with patch("sys.__excepthook__") as default_hook:
        handle_exception(KeyboardInterrupt, KeyboardInterrupt(), None)
    default_hook.assert_called_once()


@pytest.mark.asyncio
async def test_loop_exception_handler_logs_and_returns():
    with patch.object(logger_module, "get_logger") as mock_get_logger:
        handle_loop_exception(asyncio.get_running_loop(), {"message": "task died", "exception": RuntimeError("x")})
    mock_get_logger.return_value.error.assert_called_once()
