"""Tests for structured log formatting."""

import logging
from unittest.mock import MagicMock

from quote_context.core.logging import StructuredFormatter, log_with_context


def make_record(msg: str = "Summarized conversation context", **attrs) -> logging.LogRecord:
    record = logging.makeLogRecord({"msg": msg, "levelname": "INFO", "levelno": logging.INFO})
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_conversation_id_from_extra_is_rendered(self):
        output = StructuredFormatter().format(make_record("Saved spec", conversation_id=7))

        assert "conversation_id=7" in output
        assert output.index("conversation_id=7") < output.index("message=Saved spec")

    def test_budget_fields_follow_message_in_fixed_order(self):
        record = make_record(
            user_id="U1",
            extra_data={"message_count": 40, "token_count": 9010, "stage": "truncated"},
        )

        output = StructuredFormatter().format(record)

        assert output.index("user_id=U1") < output.index("message=")
        assert (
            output.index("stage=truncated")
            < output.index("token_count=9010")
            < output.index("message_count=40")
        )

    def test_extra_data_is_not_mutated(self):
        extra_data = {"token_count": 10}
        StructuredFormatter().format(make_record(extra_data=extra_data))

        assert extra_data == {"token_count": 10}


def test_log_with_context_lifts_identity_fields():
    logger = MagicMock()

    log_with_context(
        logger, logging.INFO, "Context exceeds token limit", user_id="U1", conversation_id=7, token_count=9010
    )

    logger.log.assert_called_once_with(
        logging.INFO,
        "Context exceeds token limit",
        extra={"user_id": "U1", "conversation_id": 7, "extra_data": {"token_count": 9010}},
    )
