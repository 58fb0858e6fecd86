"""
Unit Tests for Logging Module

Tests processors, session context, and logging utilities.
"""

from unittest.mock import MagicMock

import pytest

from enhance_stream.core.config.constants import Stage
from enhance_stream.core.logging.logger import (
    add_log_level_name,
    add_session_id,
    clear_session_id,
    get_logger,
    get_session_id,
    log_stage,
    redact_pii,
    set_session_id,
    setup_logging,
    stringify_stage,
)


@pytest.fixture(autouse=True)
def _clear_session():
    clear_session_id()
    yield
    clear_session_id()


@pytest.mark.unit
class TestSessionContext:
    def test_set_and_clear(self):
        set_session_id("s-1")
        assert get_session_id() == "s-1"

        clear_session_id()
        assert get_session_id() is None

    def test_processor_adds_session_id(self):
        set_session_id("s-1")

        event = add_session_id(None, "info", {"event": "hello"})

        assert event["session_id"] == "s-1"

    def test_explicit_session_id_wins(self):
        set_session_id("s-1")

        event = add_session_id(None, "info", {"event": "hello", "session_id": "s-2"})

        assert event["session_id"] == "s-2"

    def test_no_session_id_without_context(self):
        assert "session_id" not in add_session_id(None, "info", {"event": "hello"})


@pytest.mark.unit
class TestProcessors:
    def test_redacts_email_and_keys(self):
        event = redact_pii(
            None,
            "info",
            {"event": "mail jane@example.com", "error": "bad key sk-abc123 and AIzaXYZ"},
        )

        assert event["event"] == "mail [EMAIL]"
        assert "sk-abc123" not in event["error"]
        assert "AIzaXYZ" not in event["error"]

    def test_redacts_phone_numbers(self):
        event = redact_pii(None, "info", {"event": "call 555-123-4567"})

        assert event["event"] == "call [PHONE]"

    def test_level_upper_cased(self):
        assert add_log_level_name(None, "info", {"level": "info"})["level"] == "INFO"

    def test_stage_rendered_as_value(self):
        event = stringify_stage(None, "info", {"stage": Stage.GENERATION})

        assert event["stage"] == "5.0_GENERATION"


@pytest.mark.unit
class TestLogStage:
    def test_log_stage_uses_requested_level(self):
        logger = MagicMock()

        log_stage(logger, Stage.CANCELLATION, "Cancelled", level="warning", session_id="s-1")

        logger.warning.assert_called_once_with(
            "Cancelled", stage=Stage.CANCELLATION, session_id="s-1"
        )

    def test_setup_logging_accepts_both_formats(self):
        setup_logging(log_level="DEBUG", log_format="json")
        setup_logging(log_level="INFO", log_format="console")

        get_logger(__name__).info("configured", stage=Stage.INITIALIZATION)
