"""Pydantic models for conversation context management."""

import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class MessageRole(str, Enum):
    """Conversation roles.

    ``system`` is reserved for content injected by the context engine
    (specification preambles, conversation summaries).
    """

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    """A message in conversation history."""

    role: MessageRole = Field(..., description="user, assistant, or system")
    content: str | None = Field(default=None, description="Message content")

    def to_dict(self) -> dict[str, Any]:
        """Plain ``{role, content}`` dict ready to submit as API history."""
        return {"role": self.role.value, "content": self.content or ""}


# Messages arrive either as ChatMessage objects or raw {role, content} dicts
MessageLike = ChatMessage | dict


def message_role(message: MessageLike | None) -> str | None:
    """Role of a message as a plain string."""
    if message is None:
        return None
    if isinstance(message, ChatMessage):
        return message.role.value
    role = message.get("role")
    return role.value if isinstance(role, MessageRole) else role


def message_content(message: MessageLike | None) -> str | None:
    """Content of a message, or None when absent."""
    if message is None:
        return None
    if isinstance(message, ChatMessage):
        return message.content
    return message.get("content")


def normalize_messages(messages: list[MessageLike] | None) -> list[ChatMessage]:
    """Convert message dicts to ChatMessage objects, preserving order."""
    if not messages:
        return []
    result = []
    for msg in messages:
        if isinstance(msg, ChatMessage):
            result.append(msg)
        elif isinstance(msg, dict):
            result.append(ChatMessage(role=msg.get("role", "user"), content=msg.get("content")))
    return result


def to_api_messages(messages: list[MessageLike]) -> list[dict[str, Any]]:
    """Convert a context to the list of dicts submitted to the generative API."""
    return [msg.to_dict() for msg in normalize_messages(messages)]


class ContextBudget(BaseModel):
    """Token budget for an assembled context."""

    max_tokens: int = Field(..., gt=0, description="Maximum estimated tokens")


class OptimizationStage(str, Enum):
    """Which step of the context optimizer produced the result."""

    UNCHANGED = "unchanged"
    RECENT_WINDOW = "recent_window"
    IMPORTANT_MESSAGES = "important_messages"
    SUMMARY = "summary"
    TRUNCATED = "truncated"
    FALLBACK = "fallback"


class OptimizationResult(BaseModel):
    """Result of fitting a conversation into a token budget."""

    messages: list[Any] = Field(default_factory=list, description="Optimized context")
    stage: OptimizationStage = Field(..., description="Optimizer step that produced it")
    original_tokens: int = Field(default=0, description="Estimated tokens before")
    final_tokens: int = Field(default=0, description="Estimated tokens after")
    summarized_count: int = Field(
        default=0, description="Older messages folded into a summary message"
    )
    dropped_count: int = Field(
        default=0, description="Input messages absent from the output"
    )

    @property
    def has_summary(self) -> bool:
        """Whether a synthetic summary message was injected."""
        return self.summarized_count > 0


class Conversation(BaseModel):
    """A customer's conversation, one per user id."""

    id: int | str = Field(..., description="Conversation ID")
    user_id: str = Field(..., description="Messaging-platform user identifier")
    user_name: str | None = Field(default=None, description="Display name if known")
    last_active: datetime = Field(..., description="Last message or lookup")
    created_at: datetime = Field(..., description="When the conversation started")
    expire_at: datetime = Field(..., description="When the conversation is purged")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def _parse_metadata(cls, value: Any) -> dict[str, Any]:
        return _load_metadata(value)


class StoredMessage(BaseModel):
    """A persisted conversation turn."""

    id: int | str | None = Field(default=None)
    conversation_id: int | str = Field(...)
    role: MessageRole = Field(...)
    content: str = Field(...)
    created_at: datetime | None = Field(default=None)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def _parse_metadata(cls, value: Any) -> dict[str, Any]:
        return _load_metadata(value)

    def to_chat_message(self) -> ChatMessage:
        return ChatMessage(role=self.role, content=self.content)


def _load_metadata(value: Any) -> dict[str, Any]:
    """Metadata arrives as a dict (jsonb) or a JSON string (text columns)."""
    if value is None or value == "":
        return {}
    if isinstance(value, str):
        return json.loads(value)
    return value
