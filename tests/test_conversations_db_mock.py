"""Tests for conversation database operations with mocked Supabase."""

from unittest.mock import MagicMock, patch

import pytest

from quote_context.db.conversations import (
    create_conversation,
    delete_conversation_by_user,
    delete_expired_conversations,
    get_conversation_by_user,
    insert_message,
    insert_window_specification,
    list_active_conversations,
    list_recent_messages,
    list_window_specifications,
    touch_conversation,
)
from quote_context.extraction.models import (
    GlassType,
    OperationType,
    StoredSpecification,
    WindowSpecification,
    WindowType,
)
from quote_context.extraction.parser import parse_window_specifications


@pytest.fixture
def mock_supabase():
    """Mock Supabase client."""
    with patch("quote_context.db.conversations.get_supabase") as mock:
        yield mock.return_value


def response(data):
    mock_response = MagicMock()
    mock_response.data = data
    return mock_response


class TestGetConversationByUser:
    def test_found(self, mock_supabase):
        row = {"id": 1, "user_id": "U1"}
        mock_supabase.table.return_value.select.return_value.eq.return_value.limit.return_value.execute.return_value = response([row])

        assert get_conversation_by_user("U1") == row
        mock_supabase.table.assert_called_once_with("conversations")
        mock_supabase.table.return_value.select.return_value.eq.assert_called_once_with("user_id", "U1")

    def test_not_found(self, mock_supabase):
        mock_supabase.table.return_value.select.return_value.eq.return_value.limit.return_value.execute.return_value = response([])

        assert get_conversation_by_user("U1") is None

    def test_error_propagates(self, mock_supabase):
        mock_supabase.table.side_effect = Exception("Database error")

        with pytest.raises(Exception, match="Database error"):
            get_conversation_by_user("U1")


class TestCreateConversation:
    def test_create(self, mock_supabase):
        created = {"id": 7, "user_id": "U1", "user_name": "Sam"}
        mock_supabase.table.return_value.upsert.return_value.execute.return_value = response([created])

        result = create_conversation("U1", "Sam", expiry_days=30)

        assert result == created
        row = mock_supabase.table.return_value.upsert.call_args[0][0]
        assert row["user_id"] == "U1"
        assert row["user_name"] == "Sam"
        assert row["expire_at"] > row["last_active"]

    def test_concurrent_create_resolves_on_user_id(self, mock_supabase):
        """A second create for the same user returns the existing row instead of failing."""
        existing = {"id": 7, "user_id": "U1", "user_name": "Sam"}
        mock_supabase.table.return_value.upsert.return_value.execute.return_value = response([existing])

        first = create_conversation("U1", "Sam", expiry_days=30)
        second = create_conversation("U1", "Sam", expiry_days=30)

        assert first["id"] == second["id"] == 7
        for call in mock_supabase.table.return_value.upsert.call_args_list:
            assert call.kwargs["on_conflict"] == "user_id"
        mock_supabase.table.return_value.insert.assert_not_called()

    def test_no_data_raises(self, mock_supabase):
        mock_supabase.table.return_value.upsert.return_value.execute.return_value = response([])

        with pytest.raises(ValueError, match="No data returned"):
            create_conversation("U1", "Sam", expiry_days=30)


class TestTouchConversation:
    def test_touch(self, mock_supabase):
        updated = {"id": 7, "user_name": "Sam"}
        mock_supabase.table.return_value.update.return_value.eq.return_value.execute.return_value = response([updated])

        assert touch_conversation(7, "Sam", expiry_days=30) == updated
        payload = mock_supabase.table.return_value.update.call_args[0][0]
        assert set(payload) == {"last_active", "expire_at", "user_name"}
        mock_supabase.table.return_value.update.return_value.eq.assert_called_once_with("id", 7)

    def test_missing_conversation(self, mock_supabase):
        mock_supabase.table.return_value.update.return_value.eq.return_value.execute.return_value = response([])

        with pytest.raises(ValueError, match="not found"):
            touch_conversation(7, "Sam", expiry_days=30)


class TestMessages:
    def test_insert_message(self, mock_supabase):
        stored = {"id": 3, "conversation_id": 7, "role": "user", "content": "hi"}
        mock_supabase.table.return_value.insert.return_value.execute.return_value = response([stored])

        assert insert_message(7, "user", "hi") == stored
        mock_supabase.table.assert_called_once_with("messages")
        row = mock_supabase.table.return_value.insert.call_args[0][0]
        assert row["metadata"] == {}

    def test_list_recent_messages_newest_first(self, mock_supabase):
        rows = [{"id": 2}, {"id": 1}]
        chain = mock_supabase.table.return_value.select.return_value.eq.return_value
        chain.order.return_value.order.return_value.limit.return_value.execute.return_value = response(rows)

        assert list_recent_messages(7, 30) == rows
        chain.order.assert_called_once_with("created_at", desc=True)
        chain.order.return_value.order.assert_called_once_with("id", desc=True)
        chain.order.return_value.order.return_value.limit.assert_called_once_with(30)

    def test_list_recent_messages_empty(self, mock_supabase):
        chain = mock_supabase.table.return_value.select.return_value.eq.return_value
        chain.order.return_value.order.return_value.limit.return_value.execute.return_value = response(None)

        assert list_recent_messages(7, 30) == []


class TestWindowSpecifications:
    def test_insert_stores_features_as_json(self, mock_supabase):
        spec = WindowSpecification(
            location="Kitchen",
            width=36,
            height=48,
            window_type=WindowType.STANDARD,
            operation_type=OperationType.CASEMENT,
            glass_type=GlassType.DOUBLE_PANE,
            features=["Low-E glass", "Grilles"],
        )
        mock_supabase.table.return_value.insert.return_value.execute.return_value = response(
            [{"id": 11}]
        )

        insert_window_specification(7, spec)

        row = mock_supabase.table.return_value.insert.call_args[0][0]
        assert row["features"] == '["Low-E glass", "Grilles"]'
        assert row["window_type"] == "standard"
        assert row["operation_type"] == "Casement"
        assert row["glass_type"] == "double pane"
        assert "is_complete" not in row

    def test_stored_row_round_trips(self, mock_supabase):
        row = {
            "id": 11,
            "conversation_id": 7,
            "location": "Kitchen",
            "width": 36,
            "height": 48,
            "original_units": "inches",
            "window_type": "standard",
            "operation_type": "Hung",
            "glass_type": "double pane",
            "features": '["Low-E glass", "Grilles"]',
            "quantity": 1,
            "has_interior_color": False,
            "has_exterior_color": False,
            "window_number": None,
            "created_at": "2024-05-01T12:00:00+00:00",
        }
        mock_supabase.table.return_value.select.return_value.eq.return_value.order.return_value.execute.return_value = response([row])

        rows = list_window_specifications(7)
        spec = StoredSpecification.model_validate(rows[0])

        assert spec.features == ["Low-E glass", "Grilles"]
        assert spec.glass_type == GlassType.DOUBLE_PANE
        assert spec.is_complete is True

    @pytest.mark.parametrize(
        "text",
        [
            "an arched window 36x48 double pane",
            "a bay window 72x48 triple pane with siding of 20",
        ],
    )
    def test_shaped_and_bay_details_round_trip(self, mock_supabase, text):
        spec = parse_window_specifications([{"role": "user", "content": text}])
        assert spec.shaped_details is not None or spec.bay_details is not None

        def echo_insert(row):
            insert = MagicMock()
            insert.execute.return_value = response([{**row, "id": 11}])
            return insert

        mock_supabase.table.return_value.insert.side_effect = echo_insert

        stored = StoredSpecification.model_validate(insert_window_specification(7, spec))

        assert stored.shaped_details == spec.shaped_details
        assert stored.bay_details == spec.bay_details
        assert stored.window_type == spec.window_type

    def test_specs_without_details_store_null(self, mock_supabase):
        mock_supabase.table.return_value.insert.return_value.execute.return_value = response(
            [{"id": 11}]
        )

        insert_window_specification(7, WindowSpecification(width=36, height=48))

        row = mock_supabase.table.return_value.insert.call_args[0][0]
        assert row["shaped_details"] is None
        assert row["bay_details"] is None

    def test_insert_error_propagates(self, mock_supabase):
        mock_supabase.table.return_value.insert.return_value.execute.side_effect = Exception(
            "Database error"
        )

        with pytest.raises(Exception, match="Database error"):
            insert_window_specification(7, WindowSpecification(width=36, height=48))


class TestConversationHousekeeping:
    def test_delete_by_user(self, mock_supabase):
        mock_supabase.table.return_value.delete.return_value.eq.return_value.execute.return_value = response([{"id": 7}])

        assert delete_conversation_by_user("U1") is True

    def test_delete_by_user_nothing_found(self, mock_supabase):
        mock_supabase.table.return_value.delete.return_value.eq.return_value.execute.return_value = response([])

        assert delete_conversation_by_user("U1") is False

    def test_list_active_flattens_message_count(self, mock_supabase):
        rows = [
            {"id": 7, "user_id": "U1", "messages": [{"count": 4}]},
            {"id": 8, "user_id": "U2", "messages": []},
        ]
        chain = mock_supabase.table.return_value.select.return_value
        chain.gt.return_value.order.return_value.execute.return_value = response(rows)

        result = list_active_conversations()

        assert result == [
            {"id": 7, "user_id": "U1", "message_count": 4},
            {"id": 8, "user_id": "U2", "message_count": 0},
        ]
        mock_supabase.table.return_value.select.assert_called_once_with("*, messages(count)")
        chain.gt.return_value.order.assert_called_once_with("last_active", desc=True)

    def test_delete_expired(self, mock_supabase):
        chain = mock_supabase.table.return_value.delete.return_value
        chain.lt.return_value.execute.return_value = response([{"id": 1}, {"id": 2}])

        assert delete_expired_conversations() == 2
        assert chain.lt.call_args[0][0] == "expire_at"
