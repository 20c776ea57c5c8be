"""Storage collaborators for the conversation context engine.

``ConversationStore`` is the async interface the engine depends on. Two
implementations ship here: ``SupabaseConversationStore`` over the tables in
``migrations/`` and ``InMemoryConversationStore`` for tests and local runs.
Every failure surfaces as ``StorageError``.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from functools import partial
from itertools import count
from typing import Any, Protocol, TypeVar

from quote_context.context.models import Conversation, MessageRole, StoredMessage
from quote_context.core.config import Settings, get_settings
from quote_context.core.errors import StorageError
from quote_context.core.logging import get_logger
from quote_context.db import conversations as conversations_db
from quote_context.extraction.models import StoredSpecification, WindowSpecification

logger = get_logger(__name__)

T = TypeVar("T")


class ConversationStore(Protocol):
    """Async persistence the context engine depends on."""

    async def get_or_create_conversation(
        self, user_id: str, display_name: str | None = None
    ) -> Conversation: ...

    async def append_message(
        self,
        conversation_id: int | str,
        role: MessageRole | str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> StoredMessage: ...

    async def list_recent_messages(
        self, conversation_id: int | str, limit: int
    ) -> list[StoredMessage]: ...

    async def list_specifications(self, conversation_id: int | str) -> list[StoredSpecification]: ...

    async def save_specification(
        self, conversation_id: int | str, spec: WindowSpecification
    ) -> StoredSpecification: ...

    async def delete_conversation(self, user_id: str) -> bool: ...

    async def list_active_conversations(self) -> list[dict[str, Any]]: ...

    async def expire_old_conversations(self) -> int: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _role_value(role: MessageRole | str) -> str:
    return MessageRole(role).value


class SupabaseConversationStore:
    """
    Store backed by the Supabase tables conversations, messages and
    window_specifications.

    The Supabase client is synchronous, so each operation runs in a worker
    thread.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    async def _run(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(partial(func, *args))
        except Exception as e:
            raise StorageError(operation, str(e)) from e

    def _get_or_create(self, user_id: str, display_name: str) -> dict[str, Any]:
        expiry_days = self.settings.CONVERSATION_EXPIRY_DAYS
        row = conversations_db.get_conversation_by_user(user_id)

        if row and Conversation.model_validate(row).expire_at <= _utcnow():
            logger.info(f"Conversation for user {user_id} expired, starting a new one")
            conversations_db.delete_conversation_by_user(user_id)
            row = None

        if row:
            return conversations_db.touch_conversation(row["id"], display_name, expiry_days)
        return conversations_db.create_conversation(user_id, display_name, expiry_days)

    async def get_or_create_conversation(
        self, user_id: str, display_name: str | None = None
    ) -> Conversation:
        name = display_name or self.settings.DEFAULT_DISPLAY_NAME
        row = await self._run("get_or_create_conversation", self._get_or_create, user_id, name)
        return Conversation.model_validate(row)

    async def append_message(
        self,
        conversation_id: int | str,
        role: MessageRole | str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> StoredMessage:
        row = await self._run(
            "append_message",
            conversations_db.insert_message,
            conversation_id,
            _role_value(role),
            content,
            metadata,
        )
        return StoredMessage.model_validate(row)

    async def list_recent_messages(
        self, conversation_id: int | str, limit: int
    ) -> list[StoredMessage]:
        rows = await self._run(
            "list_recent_messages", conversations_db.list_recent_messages, conversation_id, limit
        )
        return [StoredMessage.model_validate(row) for row in rows]

    async def list_specifications(self, conversation_id: int | str) -> list[StoredSpecification]:
        rows = await self._run(
            "list_specifications", conversations_db.list_window_specifications, conversation_id
        )
        return [StoredSpecification.model_validate(row) for row in rows]

    async def save_specification(
        self, conversation_id: int | str, spec: WindowSpecification
    ) -> StoredSpecification:
        row = await self._run(
            "save_specification",
            conversations_db.insert_window_specification,
            conversation_id,
            spec,
        )
        return StoredSpecification.model_validate(row)

    async def delete_conversation(self, user_id: str) -> bool:
        return await self._run(
            "delete_conversation", conversations_db.delete_conversation_by_user, user_id
        )

    async def list_active_conversations(self) -> list[dict[str, Any]]:
        return await self._run(
            "list_active_conversations", conversations_db.list_active_conversations
        )

    async def expire_old_conversations(self) -> int:
        return await self._run(
            "expire_old_conversations", conversations_db.delete_expired_conversations
        )


class InMemoryConversationStore:
    """Process-local store with the same semantics as the Supabase store."""

    def __init__(
        self,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings or get_settings()
        self.clock = clock
        self.conversations: dict[str, Conversation] = {}
        self.messages: dict[int | str, list[StoredMessage]] = {}
        self.specifications: dict[int | str, list[StoredSpecification]] = {}
        self._ids = count(1)

    def _expiry(self, now: datetime) -> datetime:
        return now + timedelta(days=self.settings.CONVERSATION_EXPIRY_DAYS)

    def _drop(self, user_id: str) -> bool:
        conversation = self.conversations.pop(user_id, None)
        if conversation is None:
            return False
        self.messages.pop(conversation.id, None)
        self.specifications.pop(conversation.id, None)
        return True

    def _require(self, conversation_id: int | str) -> None:
        if conversation_id not in self.messages:
            raise StorageError("lookup", f"conversation {conversation_id} not found")

    async def get_or_create_conversation(
        self, user_id: str, display_name: str | None = None
    ) -> Conversation:
        now = self.clock()
        name = display_name or self.settings.DEFAULT_DISPLAY_NAME

        existing = self.conversations.get(user_id)
        if existing and existing.expire_at <= now:
            self._drop(user_id)
            existing = None

        if existing:
            updated = existing.model_copy(
                update={"last_active": now, "expire_at": self._expiry(now), "user_name": name}
            )
        else:
            updated = Conversation(
                id=next(self._ids),
                user_id=user_id,
                user_name=name,
                last_active=now,
                created_at=now,
                expire_at=self._expiry(now),
            )
            self.messages[updated.id] = []
            self.specifications[updated.id] = []

        self.conversations[user_id] = updated
        return updated

    async def append_message(
        self,
        conversation_id: int | str,
        role: MessageRole | str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> StoredMessage:
        self._require(conversation_id)
        message = StoredMessage(
            id=next(self._ids),
            conversation_id=conversation_id,
            role=MessageRole(role),
            content=content,
            created_at=self.clock(),
            metadata=metadata or {},
        )
        self.messages[conversation_id].append(message)
        return message

    async def list_recent_messages(
        self, conversation_id: int | str, limit: int
    ) -> list[StoredMessage]:
        self._require(conversation_id)
        return list(reversed(self.messages[conversation_id]))[:limit]

    async def list_specifications(self, conversation_id: int | str) -> list[StoredSpecification]:
        self._require(conversation_id)
        return list(reversed(self.specifications[conversation_id]))

    async def save_specification(
        self, conversation_id: int | str, spec: WindowSpecification
    ) -> StoredSpecification:
        self._require(conversation_id)
        stored = StoredSpecification(
            **spec.model_dump(exclude={"is_complete", "id", "conversation_id", "created_at"}),
            id=next(self._ids),
            conversation_id=conversation_id,
            created_at=self.clock(),
        )
        self.specifications[conversation_id].append(stored)
        return stored

    async def delete_conversation(self, user_id: str) -> bool:
        return self._drop(user_id)

    async def list_active_conversations(self) -> list[dict[str, Any]]:
        now = self.clock()
        active = [c for c in self.conversations.values() if c.expire_at > now]
        active.sort(key=lambda c: c.last_active, reverse=True)
        return [
            {**c.model_dump(), "message_count": len(self.messages.get(c.id, []))}
            for c in active
        ]

    async def expire_old_conversations(self) -> int:
        now = self.clock()
        expired = [user_id for user_id, c in self.conversations.items() if c.expire_at < now]
        for user_id in expired:
            self._drop(user_id)
        return len(expired)
