"""Tests for structlog setup and context helpers."""

import logging
from collections.abc import Iterator

import pytest
import structlog

from peer_rating.config import logging_config


@pytest.fixture
def restore_logging() -> Iterator[None]:
    levels = {name: logging.getLogger(name).level for name in logging_config.NOISY_LOGGERS}
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)


def test_setup_logging_quiets_slack_libraries(restore_logging: None) -> None:
    logging_config.setup_logging(log_level="debug", json_logs=True)

    for name in logging_config.NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING
    assert structlog.is_configured()


def test_app_name_is_added_to_every_event() -> None:
    event = logging_config._add_app_name(None, "info", {"event": "rating_completed"})

    assert event == {"event": "rating_completed", "app": "peer_rating"}


def test_bind_and_unbind_context(restore_logging: None) -> None:
    logging_config.bind_context(trigger="rate_command", user_id="U1")
    assert structlog.contextvars.get_contextvars() == {
        "trigger": "rate_command",
        "user_id": "U1",
    }

    logging_config.unbind_context("trigger", "user_id")
    assert structlog.contextvars.get_contextvars() == {}
