"""Conversation context optimization under a token budget.

Fits a conversation into a budget while keeping what matters for a quote.
Strategy, stopping at the first that fits:

0. The whole conversation, untouched
1. The most recent messages (the "recent window")
2. Important older messages plus the recent window
3. One system summary of the older messages plus the recent window
4. As many of the most recent messages as fit, with the summary in front
   only if there is still room for it

The optimizer never raises. Retained messages are the caller's own
objects, in their original order.
"""

import math
from typing import Any

from quote_context.context.models import (
    ChatMessage,
    MessageLike,
    MessageRole,
    OptimizationResult,
    OptimizationStage,
    message_content,
    message_role,
)
from quote_context.context.token_estimator import (
    estimate_conversation_tokens,
    estimate_message_tokens,
)
from quote_context.core.logging import get_logger
from quote_context.extraction.parser import parse_window_specifications

logger = get_logger(__name__)

DEFAULT_MAX_TOKENS = 7000
RECENT_WINDOW = 10

# Topic -> keywords. A message mentioning any of them survives step 2.
IMPORTANT_KEYWORDS: dict[str, list[str]] = {
    "specification": [
        "window", "dimension", "size", "measurement", "width", "height",
        "inches", "type", "glass", "pane", "low-e", "argon", "grille",
        "bay", "standard", "shaped",
    ],
    "location": ["kitchen", "bedroom", "living room"],
    "pricing": ["quote", "price", "cost", "estimate"],
}


def is_important_message(message: MessageLike | None) -> bool:
    """True if the message has content mentioning any important keyword."""
    content = message_content(message)
    if not content:
        return False
    lowered = content.lower()
    return any(
        keyword in lowered
        for keywords in IMPORTANT_KEYWORDS.values()
        for keyword in keywords
    )


def extract_user_information(messages: list[MessageLike]) -> dict[str, Any]:
    """
    Specification facts recoverable from a block of messages.

    Returns:
        Dict with mentioned_window_specs (the specification is complete),
        location, dimensions ("36×48"), window_type, glass_type, features
    """
    spec = parse_window_specifications(messages)
    return {
        "mentioned_window_specs": spec.is_complete,
        "location": spec.location,
        "dimensions": spec.dimensions_label,
        "window_type": spec.window_type.value if spec.window_type else None,
        "glass_type": spec.glass_type.value if spec.glass_type else None,
        "features": spec.features,
    }


def _summary_text(messages: list[MessageLike]) -> str:
    info = extract_user_information(messages)
    user_count = sum(1 for m in messages if message_role(m) == MessageRole.USER.value)
    assistant_count = sum(1 for m in messages if message_role(m) == MessageRole.ASSISTANT.value)

    summary = (
        f"Conversation summary ({user_count} user messages, "
        f"{assistant_count} assistant responses): "
    )
    if not info["mentioned_window_specs"]:
        return summary + "General discussion about window options."

    details = []
    if info["dimensions"]:
        details.append(f"with dimensions {info['dimensions']} inches")
    if info["window_type"]:
        details.append(f"{info['window_type']} type")
    if info["glass_type"]:
        details.append(info["glass_type"])
    if info["features"]:
        details.append("with " + " and ".join(info["features"]))

    summary += f"User provided window specifications for a {info['location'] or 'window'}"
    if details:
        summary += " " + ", ".join(details)
    return summary + "."


def summarize_message_block(
    messages: list[MessageLike] | None, as_dict: bool = False
) -> MessageLike | None:
    """
    Collapse a block of messages into one system message.

    Args:
        messages: Block to summarize
        as_dict: Return a {role, content} dict instead of a ChatMessage

    Returns:
        Summary message, or None for an empty block
    """
    if not messages:
        return None

    content = _summary_text(messages)
    logger.debug(f"Summarized {len(messages)} messages into {len(content)} chars")

    if as_dict:
        return {"role": MessageRole.SYSTEM.value, "content": content}
    return ChatMessage(role=MessageRole.SYSTEM, content=content)


def _fits(messages: list[MessageLike], max_tokens: int) -> bool:
    return estimate_conversation_tokens(messages) <= max_tokens


def _truncate_to_budget(recent: list[MessageLike], max_tokens: int) -> list[MessageLike]:
    """Most recent messages that fit, never fewer than one."""
    recent_cost = sum(estimate_message_tokens(m) for m in recent)
    if recent_cost > 0:
        keep = max(1, math.floor(max_tokens / (recent_cost / len(recent))))
    else:
        keep = len(recent)

    tail = recent[-keep:]
    while len(tail) > 1 and not _fits(tail, max_tokens):
        tail = tail[1:]
    return tail


def _optimize(
    messages: list[MessageLike], max_tokens: int, recent_window: int
) -> OptimizationResult:
    original_tokens = estimate_conversation_tokens(messages)

    def result(
        kept: list[MessageLike], stage: OptimizationStage, retained: int, summarized: int = 0
    ) -> OptimizationResult:
        return OptimizationResult(
            messages=kept,
            stage=stage,
            original_tokens=original_tokens,
            final_tokens=estimate_conversation_tokens(kept),
            summarized_count=summarized,
            dropped_count=len(messages) - retained,
        )

    if original_tokens <= max_tokens:
        return result(messages, OptimizationStage.UNCHANGED, len(messages))

    recent_count = min(recent_window, len(messages))
    recent = messages[-recent_count:]
    older = messages[:-recent_count]

    if _fits(recent, max_tokens):
        return result(recent, OptimizationStage.RECENT_WINDOW, len(recent))

    important = [m for m in older if is_important_message(m)]
    if important and _fits([*important, *recent], max_tokens):
        return result(
            [*important, *recent],
            OptimizationStage.IMPORTANT_MESSAGES,
            len(important) + len(recent),
        )

    # Synthetic messages take the shape of the caller's messages
    as_dict = isinstance(messages[-1], dict)
    summary = summarize_message_block(older, as_dict=as_dict)
    if summary is not None and _fits([summary, *recent], max_tokens):
        return result(
            [summary, *recent], OptimizationStage.SUMMARY, len(recent), summarized=len(older)
        )

    tail = _truncate_to_budget(recent, max_tokens)
    skipped = messages[: len(messages) - len(tail)]
    summary = summarize_message_block(skipped, as_dict=as_dict)
    if summary is not None and _fits([summary, *tail], max_tokens):
        return result(
            [summary, *tail], OptimizationStage.TRUNCATED, len(tail), summarized=len(skipped)
        )
    return result(tail, OptimizationStage.TRUNCATED, len(tail))


def optimize_context_detailed(
    messages: list[MessageLike] | None,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    recent_window: int = RECENT_WINDOW,
) -> OptimizationResult:
    """
    Fit a conversation into ``max_tokens`` and report how it was done.

    Args:
        messages: Conversation in chronological order
        max_tokens: Estimated-token budget for the result
        recent_window: Most recent messages kept verbatim when trimming

    Returns:
        OptimizationResult. Its estimated cost is within budget unless the
        single most recent message alone exceeds it. On an internal error
        the stage is ``fallback`` and the last ``recent_window`` messages
        are returned.
    """
    if not messages:
        return OptimizationResult(messages=[], stage=OptimizationStage.UNCHANGED)

    messages = list(messages)
    try:
        return _optimize(messages, max_tokens, recent_window)
    except Exception as e:
        logger.error(f"Error optimizing context, keeping recent messages: {e}")
        fallback = messages[-recent_window:]
        return OptimizationResult(
            messages=fallback,
            stage=OptimizationStage.FALLBACK,
            dropped_count=len(messages) - len(fallback),
        )


def optimize_context(
    messages: list[MessageLike] | None,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    recent_window: int = RECENT_WINDOW,
) -> list[MessageLike]:
    """Fit a conversation into ``max_tokens``; see ``optimize_context_detailed``."""
    return optimize_context_detailed(messages, max_tokens, recent_window).messages
