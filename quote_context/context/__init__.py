"""Conversation context management for window quote conversations.

This module provides:
- Approximate token estimation for messages and conversations
- Importance-aware context optimization under a token budget
- The conversation context engine that assembles bounded context per user

The engine and summarizer live in ``quote_context.context.engine`` and
``quote_context.context.summarizer``.
"""

from quote_context.context.models import (
    ChatMessage,
    ContextBudget,
    Conversation,
    MessageLike,
    MessageRole,
    OptimizationResult,
    OptimizationStage,
    StoredMessage,
    normalize_messages,
    to_api_messages,
)
from quote_context.context.token_estimator import (
    CHARS_PER_TOKEN,
    CONVERSATION_OVERHEAD_TOKENS,
    MESSAGE_OVERHEAD_TOKENS,
    estimate_conversation_tokens,
    estimate_message_tokens,
    estimate_tokens,
)

__all__ = [
    # Models
    "ChatMessage",
    "ContextBudget",
    "Conversation",
    "MessageLike",
    "MessageRole",
    "OptimizationResult",
    "OptimizationStage",
    "StoredMessage",
    "normalize_messages",
    "to_api_messages",
    # Token estimation
    "CHARS_PER_TOKEN",
    "CONVERSATION_OVERHEAD_TOKENS",
    "MESSAGE_OVERHEAD_TOKENS",
    "estimate_conversation_tokens",
    "estimate_message_tokens",
    "estimate_tokens",
]
