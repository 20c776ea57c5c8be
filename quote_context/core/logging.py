"""Structured logging configuration for the Quote Context engine."""

import logging
import sys
from typing import Any


# Record attributes identifying whose context a line is about, in output order
CONTEXT_FIELDS = ("user_id", "conversation_id")

# Budget fields shown right after the message when present
BUDGET_FIELDS = ("stage", "token_count", "token_limit", "estimated_tokens")


class StructuredFormatter(logging.Formatter):
    """Key=value formatter for context-engine logs.

    Identity fields (user and conversation) come first, then the budget
    fields summarization logs, then any remaining extras.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured output."""
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        log_data["message"] = record.getMessage()

        extra_data = dict(getattr(record, "extra_data", {}))
        for field in BUDGET_FIELDS:
            if field in extra_data:
                log_data[field] = extra_data.pop(field)
        log_data.update(extra_data)

        # Format as key=value pairs for readability
        parts = [f"{k}={v}" for k, v in log_data.items()]
        return " ".join(parts)


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

        # Set level based on environment
        try:
            from quote_context.core.config import get_settings

            settings = get_settings()
            if settings.QUOTE_CONTEXT_ENV == "dev":
                logger.setLevel(logging.DEBUG)
            else:
                logger.setLevel(logging.INFO)
        except Exception:
            # Default to INFO if settings not available
            logger.setLevel(logging.INFO)

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields (e.g., user_id, token_count)
    """
    extra: dict[str, Any] = {field: kwargs.pop(field) for field in CONTEXT_FIELDS if field in kwargs}
    extra["extra_data"] = kwargs

    logger.log(level, msg, extra=extra)
