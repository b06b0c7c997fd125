"""Tests for logger construction."""

import logging

from experiment_value.logging_utils import get_logger


def test_level_from_environment(monkeypatch):
    """Test LOG_LEVEL sets the level of a new logger."""
    monkeypatch.setenv("LOG_LEVEL", "debug")
    logger = get_logger("experiment_value.tests.env_level")
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1


def test_unknown_level_falls_back_to_warning(monkeypatch):
    """Test an unknown LOG_LEVEL name gives WARNING."""
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    assert get_logger("experiment_value.tests.bad_level").level == logging.WARNING


def test_handlers_not_duplicated():
    """Test repeated calls reuse the configured logger."""
    first = get_logger("experiment_value.tests.repeat")
    second = get_logger("experiment_value.tests.repeat")
    assert first is second
    assert len(second.handlers) == 1
