"""Conversation context engine.

Decides what a downstream generative consumer sees as "the conversation so
far" for a user: stored history, prefixed with a recap of the window
specifications on file, trimmed to a token budget.

Per request:
    storage -> raw history -> advisory spec persistence -> enhancement
    -> token check -> optional summarization -> bounded context
"""

import logging
from typing import Any

from pydantic import ValidationError

from quote_context.context.models import (
    ChatMessage,
    ContextBudget,
    Conversation,
    MessageLike,
    MessageRole,
    StoredMessage,
    normalize_messages,
)
from quote_context.context.summarizer import optimize_context_detailed
from quote_context.context.token_estimator import estimate_conversation_tokens
from quote_context.core.config import Settings, get_settings
from quote_context.core.logging import get_logger, log_with_context
from quote_context.db.storage import ConversationStore
from quote_context.extraction.models import StoredSpecification, WindowSpecification
from quote_context.extraction.parser import parse_window_specifications

logger = get_logger(__name__)

SPECIFICATIONS_PREFIX = "Previous window specifications: "


def format_specification_summary(spec: WindowSpecification) -> str:
    """One-line recap, e.g. ``Kitchen: 36×48 inches, standard type, double pane``."""
    width = f"{spec.width:g}" if spec.width is not None else "?"
    height = f"{spec.height:g}" if spec.height is not None else "?"
    summary = f"{spec.location or 'Window'}: {width}×{height} inches"
    if spec.window_type:
        summary += f", {spec.window_type.value} type"
    if spec.glass_type:
        summary += f", {spec.glass_type.value}"
    if spec.features:
        summary += f", with {' and '.join(spec.features)}"
    return summary


def _valid_messages(messages: list[MessageLike] | None) -> list[ChatMessage]:
    """Normalize messages one by one, skipping any that don't validate."""
    valid = []
    for msg in messages or []:
        try:
            valid.extend(normalize_messages([msg]))
        except ValidationError as e:
            logger.warning(f"Skipping invalid message in context: {e.error_count()} errors")
    return valid


class ConversationContextEngine:
    """
    Assembles bounded conversation context for a user.

    Construct once at startup with the storage collaborator and settings;
    the instance holds no per-user state.
    """

    def __init__(self, store: ConversationStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()

    # =========================================================================
    # Conversation lifecycle
    # =========================================================================

    async def get_or_create_conversation(
        self, user_id: str, display_name: str | None = None
    ) -> Conversation:
        return await self.store.get_or_create_conversation(user_id, display_name)

    async def add_message(
        self,
        user_id: str,
        role: MessageRole | str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> StoredMessage:
        """
        Append a turn to the user's conversation, creating it if needed.

        ``system`` is reserved for context the engine injects itself and is
        rejected here.

        Raises:
            ValueError: If the role is unknown or ``system``
            StorageError: If the store fails
        """
        role = MessageRole(role)
        if role == MessageRole.SYSTEM:
            raise ValueError("system messages are injected by the engine and cannot be stored")

        conversation = await self.store.get_or_create_conversation(user_id)
        message = await self.store.append_message(conversation.id, role, content, metadata)
        logger.debug(f"Added {message.role.value} message to conversation {conversation.id}")
        return message

    async def delete_conversation(self, user_id: str) -> bool:
        return await self.store.delete_conversation(user_id)

    async def list_active_conversations(self) -> list[dict[str, Any]]:
        return await self.store.list_active_conversations()

    # =========================================================================
    # Context assembly
    # =========================================================================

    async def get_conversation_context(
        self,
        user_id: str,
        limit: int | None = None,
        max_tokens: int | None = None,
    ) -> list[ChatMessage]:
        """
        Build the context to send downstream for a user.

        Fetches more history than ``limit`` so the summarizer has older
        turns to work with, persists any newly complete specification,
        prefixes the specifications on file, and trims to ``max_tokens``.

        Args:
            user_id: Messaging-platform user identifier
            limit: Recent messages wanted (CONTEXT_DEFAULT_LIMIT by default)
            max_tokens: Token budget (CONTEXT_MAX_TOKENS by default)

        Returns:
            Messages oldest first, optionally led by system messages

        Raises:
            ValueError: If ``limit`` or ``max_tokens`` is not positive
            StorageError: If the conversation or its messages cannot be read
        """
        if limit is None:
            limit = self.settings.CONTEXT_DEFAULT_LIMIT
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        if max_tokens is None:
            max_tokens = self.settings.CONTEXT_MAX_TOKENS
        budget = ContextBudget(max_tokens=max_tokens)
        max_tokens = budget.max_tokens

        conversation = await self.store.get_or_create_conversation(user_id)
        fetch_limit = max(
            limit * self.settings.CONTEXT_FETCH_MULTIPLIER, self.settings.CONTEXT_MIN_FETCH
        )
        stored = await self.store.list_recent_messages(conversation.id, fetch_limit)
        history = [msg.to_chat_message() for msg in reversed(stored)]
        logger.debug(f"Retrieved {len(history)} messages for conversation {conversation.id}")

        await self._check_for_specifications(conversation, history)
        enhanced = await self._enhance_with_specifications(conversation, history)

        token_count = estimate_conversation_tokens(enhanced)
        if token_count <= max_tokens:
            logger.debug(f"Context within token limits ({token_count} <= {max_tokens})")
            return enhanced

        log_with_context(
            logger,
            logging.INFO,
            f"Context exceeds token limit ({token_count} > {max_tokens}), applying summarization",
            user_id=user_id,
            message_count=len(enhanced),
            token_count=token_count,
            token_limit=max_tokens,
        )
        return self.summarize_conversation_context(enhanced, max_tokens, limit=limit)

    def summarize_conversation_context(
        self,
        context: list[MessageLike],
        max_tokens: int | None = None,
        limit: int | None = None,
    ) -> list[ChatMessage]:
        """
        Trim a context to ``max_tokens``, keeping system messages verbatim.

        System messages lead the result untouched; the rest is optimized
        with whatever budget the system messages leave.

        Returns:
            Optimized context. On failure, the last ``limit`` messages.
        """
        if max_tokens is None:
            max_tokens = self.settings.CONTEXT_MAX_TOKENS
        if limit is None:
            limit = self.settings.CONTEXT_DEFAULT_LIMIT

        try:
            messages = _valid_messages(context)
            system_messages = [m for m in messages if m.role == MessageRole.SYSTEM]
            conversation = [m for m in messages if m.role != MessageRole.SYSTEM]
            remaining = max_tokens - estimate_conversation_tokens(system_messages)

            result = optimize_context_detailed(
                conversation,
                max_tokens=remaining,
                recent_window=self.settings.SUMMARIZER_RECENT_WINDOW,
            )
            optimized = [*system_messages, *result.messages]

            log_with_context(
                logger,
                logging.INFO,
                "Summarized conversation context",
                original_length=len(messages),
                summarized_length=len(optimized),
                system_messages=len(system_messages),
                stage=result.stage.value,
                estimated_tokens=estimate_conversation_tokens(optimized),
            )
            return optimized

        except Exception as e:
            logger.error(f"Error summarizing conversation context: {e}")
            return _valid_messages(context)[-limit:]

    # =========================================================================
    # Window specifications
    # =========================================================================

    async def get_window_specifications(self, user_id: str) -> list[StoredSpecification]:
        """Specifications on file for the user, newest first."""
        conversation = await self.store.get_or_create_conversation(user_id)
        return await self.store.list_specifications(conversation.id)

    async def save_window_specification(
        self, user_id: str, spec: WindowSpecification
    ) -> StoredSpecification:
        conversation = await self.store.get_or_create_conversation(user_id)
        stored = await self.store.save_specification(conversation.id, spec)
        logger.info(f"Saved window specification for {user_id} ({spec.location})")
        return stored

    async def check_for_window_specifications(
        self, user_id: str, messages: list[MessageLike]
    ) -> StoredSpecification | None:
        """
        Persist the conversation's specification if complete and new.

        Advisory: failures are logged, never raised.

        Returns:
            The saved specification, or None if nothing was saved
        """
        try:
            conversation = await self.store.get_or_create_conversation(user_id)
        except Exception as e:
            logger.error(f"Error checking for window specifications: {e}")
            return None
        return await self._check_for_specifications(conversation, messages)

    async def enhance_context_with_specifications(
        self, user_id: str, messages: list[MessageLike]
    ) -> list[ChatMessage]:
        """
        Prefix a recap of the user's stored specifications.

        Falls back to the messages as given if specifications can't be read.
        """
        try:
            conversation = await self.store.get_or_create_conversation(user_id)
        except Exception as e:
            logger.error(f"Error enhancing context with specifications: {e}")
            return _valid_messages(messages)
        return await self._enhance_with_specifications(conversation, messages)

    async def _check_for_specifications(
        self, conversation: Conversation, messages: list[MessageLike]
    ) -> StoredSpecification | None:
        try:
            spec = parse_window_specifications(messages)
            if not spec.is_complete:
                return None

            existing = await self.store.list_specifications(conversation.id)
            if any(spec.matches(other) for other in existing):
                return None

            stored = await self.store.save_specification(conversation.id, spec)
            log_with_context(
                logger,
                logging.INFO,
                "Saved new window specifications",
                user_id=conversation.user_id,
                location=spec.location,
                dimensions=spec.dimensions_label,
            )
            return stored

        except Exception as e:
            logger.error(f"Error checking for window specifications: {e}")
            return None

    async def _enhance_with_specifications(
        self, conversation: Conversation, messages: list[MessageLike]
    ) -> list[ChatMessage]:
        history = _valid_messages(messages)
        try:
            specs = await self.store.list_specifications(conversation.id)
        except Exception as e:
            logger.error(f"Error enhancing context with specifications: {e}")
            return history

        if not specs:
            return history

        recap = "; ".join(format_specification_summary(spec) for spec in specs)
        logger.debug(
            f"Enhanced context with {len(specs)} window specifications",
            extra={"user_id": conversation.user_id},
        )
        preamble = ChatMessage(role=MessageRole.SYSTEM, content=SPECIFICATIONS_PREFIX + recap)
        return [preamble, *history]
