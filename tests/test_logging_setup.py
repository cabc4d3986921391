import io
import logging

import pytest

from spend_analytics import logging_setup
from spend_analytics.logging_setup import (
    LOG_LEVEL_ENV,
    PACKAGE_LOGGER,
    configure_logging,
    get_logger,
    resolve_level,
)


@pytest.fixture
def fresh_logger(monkeypatch):
    logger = logging.getLogger(PACKAGE_LOGGER)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    monkeypatch.setattr(logging_setup, "_handler", None)
    monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
    logger.handlers = []
    yield logger
    logger.handlers, logger.level, logger.propagate = saved[0], saved[1], saved[2]


def test_resolve_level_precedence(monkeypatch):
    monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
    assert resolve_level() == logging.WARNING
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level("15") == 15
    assert resolve_level(logging.ERROR) == logging.ERROR

    monkeypatch.setenv(LOG_LEVEL_ENV, "info")
    assert resolve_level() == logging.INFO
    assert resolve_level("loud") == logging.INFO
    assert resolve_level("ERROR") == logging.ERROR


def test_get_logger_is_silent_until_configured(fresh_logger):
    get_logger("spend_analytics.dataset")
    assert [type(h) for h in fresh_logger.handlers] == [logging.NullHandler]


def test_configure_logging_once(fresh_logger):
    get_logger("spend_analytics.dataset")
    stream = io.StringIO()
    configure_logging("info", stream=stream)
    # Later calls keep the first configuration
    configure_logging("debug", stream=io.StringIO())

    assert len(fresh_logger.handlers) == 1
    assert fresh_logger.propagate is False
    get_logger("spend_analytics.dataset").info("saved 3 records")
    get_logger("spend_analytics.dataset").debug("hidden")
    assert stream.getvalue() == "INFO spend_analytics.dataset: saved 3 records\n"


def test_configure_logging_force_replaces_handler(fresh_logger):
    configure_logging("info", stream=io.StringIO())
    stream = io.StringIO()
    configure_logging("error", stream=stream, fmt="%(message)s", force=True)

    assert len(fresh_logger.handlers) == 1
    get_logger("spend_analytics.persistence").warning("dropped")
    get_logger("spend_analytics.persistence").error("kv write failed")
    assert stream.getvalue() == "kv write failed\n"
