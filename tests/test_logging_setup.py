"""Tests for the package logging helpers."""

from __future__ import annotations

import io
import logging

import pytest

from config.settings import EngineSettings
from core.logging_setup import ROOT_LOGGER, configure_logging, get_logger
from core.models import parse_user_settings


@pytest.fixture()
def reset_logging():
    root = logging.getLogger(ROOT_LOGGER)
    saved_handlers, saved_level = list(root.handlers), root.level
    yield root
    root.handlers = saved_handlers
    root.setLevel(saved_level)


def test_get_logger_is_silent_until_configured():
    logger = get_logger("ledgerwise.test")

    assert logger.name == "ledgerwise.test"
    assert logging.getLogger(ROOT_LOGGER).handlers


def test_configure_logging_defaults_to_settings_level(reset_logging, monkeypatch):
    monkeypatch.setenv("LEDGERWISE_LOG_LEVEL", "debug")
    stream = io.StringIO()

    assert EngineSettings().log_level == "debug"
    configure_logging(stream=stream, fmt="%(levelname)s %(message)s")
    get_logger("ledgerwise.test").debug("hello")

    assert reset_logging.level == logging.DEBUG
    assert "DEBUG hello" in stream.getvalue()
    assert not any(isinstance(handler, logging.NullHandler) for handler in reset_logging.handlers)


def test_configure_logging_replaces_its_handler(reset_logging):
    first, second = io.StringIO(), io.StringIO()

    configure_logging("WARNING", stream=first)
    configure_logging(logging.ERROR, stream=second)
    get_logger("ledgerwise.test").error("boom")

    assert reset_logging.level == logging.ERROR
    assert len(reset_logging.handlers) == 1
    assert first.getvalue() == ""
    assert "boom" in second.getvalue()


def test_malformed_user_settings_are_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="ledgerwise.models"):
        assert parse_user_settings({"monthly_income": "lots"}) is None

    assert "Ignoring malformed user settings" in caplog.text
