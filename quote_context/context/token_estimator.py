"""Approximate token counting for conversation context.

The estimates use a character ratio, not a real subword tokenizer: roughly
four characters of English text per token. They are good enough to keep a
context under a generative API's budget, not to bill against.
"""

import math

from quote_context.context.models import MessageLike, message_content

CHARS_PER_TOKEN = 4
# Role markers and framing around each message
MESSAGE_OVERHEAD_TOKENS = 3
# Framing around the messages array itself
CONVERSATION_OVERHEAD_TOKENS = 10


def estimate_tokens(text: str | None) -> int:
    """Estimate tokens in text as ceil(len / 4). Empty or missing text is 0."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_message_tokens(message: MessageLike | None) -> int:
    """
    Estimate tokens for a single message.

    Args:
        message: ChatMessage or {role, content} dict

    Returns:
        0 when the message or its content is missing, otherwise content
        tokens plus the per-message overhead (so empty content costs 3)
    """
    content = message_content(message)
    if content is None:
        return 0
    return estimate_tokens(content) + MESSAGE_OVERHEAD_TOKENS


def estimate_conversation_tokens(messages: list[MessageLike] | None) -> int:
    """
    Estimate tokens for an ordered sequence of messages.

    Args:
        messages: Messages in chronological order

    Returns:
        0 for None, otherwise the sum of message estimates plus the
        conversation framing overhead (an empty list costs 10)
    """
    if messages is None:
        return 0
    return sum(estimate_message_tokens(m) for m in messages) + CONVERSATION_OVERHEAD_TOKENS
