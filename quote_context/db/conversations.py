"""Conversation, message and window specification database operations."""

from datetime import datetime, timedelta, timezone
from typing import Any

from quote_context.core.logging import get_logger
from quote_context.db.supabase_client import get_supabase
from quote_context.extraction.models import WindowSpecification, features_to_json

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_conversation_by_user(user_id: str) -> dict[str, Any] | None:
    """
    Get the conversation row for a user.

    Args:
        user_id: Messaging-platform user identifier

    Returns:
        Conversation dict or None if the user has none

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("conversations")
            .select("*")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to get conversation for user {user_id}: {e}")
        raise


def create_conversation(user_id: str, user_name: str, expiry_days: int) -> dict[str, Any]:
    """
    Create the conversation for a user, or reuse one created concurrently.

    Args:
        user_id: Messaging-platform user identifier
        user_name: Display name
        expiry_days: Days of inactivity before the conversation expires

    Returns:
        Created conversation dict

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()
    now = _now()

    try:
        row = {
            "user_id": user_id,
            "user_name": user_name,
            "last_active": now.isoformat(),
            "created_at": now.isoformat(),
            "expire_at": (now + timedelta(days=expiry_days)).isoformat(),
            "metadata": {},
        }
        # Concurrent first messages from one user resolve to the same row
        response = (
            supabase.table("conversations").upsert(row, on_conflict="user_id").execute()
        )

        if not response.data:
            raise ValueError("No data returned from create_conversation")

        conversation = response.data[0]
        logger.info(f"Created conversation {conversation['id']} for user {user_id}")
        return conversation

    except Exception as e:
        logger.error(f"Failed to create conversation for user {user_id}: {e}")
        raise


def touch_conversation(
    conversation_id: int | str, user_name: str, expiry_days: int
) -> dict[str, Any]:
    """
    Record activity: bump last_active, push expire_at out, refresh user_name.

    Returns:
        Updated conversation dict

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()
    now = _now()

    try:
        response = (
            supabase.table("conversations")
            .update(
                {
                    "last_active": now.isoformat(),
                    "expire_at": (now + timedelta(days=expiry_days)).isoformat(),
                    "user_name": user_name,
                }
            )
            .eq("id", conversation_id)
            .execute()
        )

        if not response.data:
            raise ValueError(f"Conversation {conversation_id} not found")

        return response.data[0]

    except Exception as e:
        logger.error(f"Failed to update conversation {conversation_id}: {e}")
        raise


def insert_message(
    conversation_id: int | str,
    role: str,
    content: str,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Append a message to a conversation.

    Returns:
        Inserted message dict

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        row = {
            "conversation_id": conversation_id,
            "role": role,
            "content": content,
            "created_at": _now().isoformat(),
            "metadata": metadata or {},
        }
        response = supabase.table("messages").insert(row).execute()

        if not response.data:
            raise ValueError("No data returned from insert_message")

        return response.data[0]

    except Exception as e:
        logger.error(f"Failed to insert message for conversation {conversation_id}: {e}")
        raise


def list_recent_messages(conversation_id: int | str, limit: int) -> list[dict[str, Any]]:
    """
    List the most recent messages of a conversation.

    Returns:
        Message dicts, newest first

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("messages")
            .select("*")
            .eq("conversation_id", conversation_id)
            .order("created_at", desc=True)
            .order("id", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list messages for conversation {conversation_id}: {e}")
        raise


def list_window_specifications(conversation_id: int | str) -> list[dict[str, Any]]:
    """
    List stored window specifications, newest first.

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("window_specifications")
            .select("*")
            .eq("conversation_id", conversation_id)
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list window specifications for {conversation_id}: {e}")
        raise


def insert_window_specification(
    conversation_id: int | str, spec: WindowSpecification
) -> dict[str, Any]:
    """
    Persist a window specification. Features are stored as a JSON array.

    Returns:
        Inserted specification dict

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        row = {
            "conversation_id": conversation_id,
            "location": spec.location,
            "width": spec.width,
            "height": spec.height,
            "original_units": spec.original_units,
            "window_type": spec.window_type.value if spec.window_type else None,
            "operation_type": spec.operation_type.value,
            "glass_type": spec.glass_type.value if spec.glass_type else None,
            "features": features_to_json(spec.features),
            "quantity": spec.quantity,
            "has_interior_color": spec.has_interior_color,
            "has_exterior_color": spec.has_exterior_color,
            "shaped_details": spec.shaped_details.model_dump() if spec.shaped_details else None,
            "bay_details": spec.bay_details.model_dump() if spec.bay_details else None,
            "window_number": spec.window_number,
            "created_at": _now().isoformat(),
        }
        response = supabase.table("window_specifications").insert(row).execute()

        if not response.data:
            raise ValueError("No data returned from insert_window_specification")

        stored = response.data[0]
        logger.info(
            f"Saved window specification {stored['id']} for conversation {conversation_id}",
            extra={"conversation_id": conversation_id},
        )
        return stored

    except Exception as e:
        logger.error(f"Failed to save window specification for {conversation_id}: {e}")
        raise


def delete_conversation_by_user(user_id: str) -> bool:
    """
    Delete a user's conversation; messages and specifications cascade.

    Returns:
        True if a conversation was deleted

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.table("conversations").delete().eq("user_id", user_id).execute()
        deleted = bool(response.data)
        if deleted:
            logger.info(f"Deleted conversation for user {user_id}")
        else:
            logger.debug(f"No conversation found to delete for user {user_id}")
        return deleted

    except Exception as e:
        logger.error(f"Failed to delete conversation for user {user_id}: {e}")
        raise


def list_active_conversations() -> list[dict[str, Any]]:
    """
    List unexpired conversations with their message counts.

    Returns:
        Conversation dicts with ``message_count``, most recently active first

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("conversations")
            .select("*, messages(count)")
            .gt("expire_at", _now().isoformat())
            .order("last_active", desc=True)
            .execute()
        )

        conversations = []
        for row in response.data or []:
            counts = row.pop("messages", None) or [{}]
            conversations.append({**row, "message_count": counts[0].get("count", 0)})

        logger.debug(f"Retrieved {len(conversations)} active conversations")
        return conversations

    except Exception as e:
        logger.error(f"Failed to list active conversations: {e}")
        raise


def delete_expired_conversations() -> int:
    """
    Delete every conversation past its expire_at.

    Returns:
        Number of conversations deleted

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("conversations")
            .delete()
            .lt("expire_at", _now().isoformat())
            .execute()
        )
        deleted = len(response.data or [])
        if deleted:
            logger.info(f"Expired {deleted} old conversations")
        return deleted

    except Exception as e:
        logger.error(f"Failed to expire old conversations: {e}")
        raise
