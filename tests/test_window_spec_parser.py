"""Tests for single- and multi-window specification parsing."""

from unittest.mock import patch

from quote_context.context.models import ChatMessage, MessageRole
from quote_context.extraction.models import (
    ExtractionKind,
    ExtractionStrategy,
    GlassType,
    OperationType,
    WindowType,
)
from quote_context.extraction.parser import (
    extract_numbered_windows,
    group_messages_by_location,
    parse_multiple_window_specifications,
    parse_window_specifications,
)


def user(content: str) -> dict:
    return {"role": "user", "content": content}


def assistant(content: str) -> dict:
    return {"role": "assistant", "content": content}


class TestParseWindowSpecifications:
    def test_kitchen_low_e_request(self):
        spec = parse_window_specifications(
            [user("I need a 36x48 hung window for my kitchen with Low-E glass")]
        )

        assert spec.width == 36
        assert spec.height == 48
        assert spec.operation_type == OperationType.HUNG
        assert spec.location == "Kitchen"
        assert "Low-E glass" in spec.features
        assert spec.glass_type is None
        assert spec.is_complete is False

    def test_complete_once_glass_is_named(self):
        spec = parse_window_specifications(
            [
                user("I need a 36x48 hung window for my kitchen with Low-E glass"),
                assistant("Which glass would you like?"),
                user("Double pane please"),
            ]
        )

        assert spec.glass_type == GlassType.DOUBLE_PANE
        assert spec.window_type == WindowType.STANDARD
        assert spec.is_complete is True

    def test_metric_dimensions(self):
        spec = parse_window_specifications([user("The window is 100cm x 120cm")])

        assert spec.width == 39.4
        assert spec.height == 47.2
        assert spec.original_units == "cm"

    def test_defaults(self):
        spec = parse_window_specifications([user("hello")])

        assert spec.operation_type == OperationType.HUNG
        assert spec.window_type == WindowType.STANDARD
        assert spec.quantity == 1
        assert spec.features == []
        assert spec.error is None

    def test_only_user_messages_are_read(self):
        spec = parse_window_specifications(
            [user("hi"), assistant("A typical size is 36x48 in the kitchen")]
        )

        assert spec.width is None
        assert spec.location is None

    def test_idempotent(self):
        messages = [user("two 30x40 casement windows for the bedroom, triple pane, black frame")]

        assert parse_window_specifications(messages) == parse_window_specifications(messages)

    def test_dicts_and_chat_messages_agree(self):
        text = "a 24x36 slider for the office with grilles"
        from_dict = parse_window_specifications([user(text)])
        from_model = parse_window_specifications([ChatMessage(role=MessageRole.USER, content=text)])

        assert from_dict == from_model

    def test_empty_input(self):
        spec = parse_window_specifications([])

        assert spec.width is None
        assert spec.is_complete is False

    def test_internal_error_yields_degraded_result(self):
        with patch(
            "quote_context.extraction.parser.parse_specification_text",
            side_effect=RuntimeError("boom"),
        ):
            spec = parse_window_specifications([user("36x48")])

        assert spec.error == "boom"
        assert spec.width is None
        assert spec.is_complete is False


class TestExtractNumberedWindows:
    def test_numbered_in_one_message(self):
        windows = extract_numbered_windows(
            [
                user(
                    "Window 1: 36x48 double pane in the kitchen. "
                    "Window 2: 24x36 triple pane for the bathroom"
                )
            ]
        )

        assert [w.window_number for w in windows] == [1, 2]
        assert (windows[0].width, windows[0].height) == (36, 48)
        assert windows[0].location == "Kitchen"
        assert windows[0].glass_type == GlassType.DOUBLE_PANE
        assert (windows[1].width, windows[1].height) == (24, 36)
        assert windows[1].location == "Bathroom"
        assert windows[1].glass_type == GlassType.TRIPLE_PANE

    def test_same_number_across_messages_is_merged(self):
        windows = extract_numbered_windows(
            [
                user("Window 1 is 30x40"),
                assistant("Got it."),
                user("window 1 should have triple pane glass"),
            ]
        )

        assert len(windows) == 1
        assert (windows[0].width, windows[0].height) == (30, 40)
        assert windows[0].glass_type == GlassType.TRIPLE_PANE

    def test_ordinal_words(self):
        windows = extract_numbered_windows(
            [user("The first window is 20x30 and the second window is 40x50")]
        )

        assert [(w.window_number, w.width, w.height) for w in windows] == [
            (1, 20, 30),
            (2, 40, 50),
        ]

    def test_sorted_by_number(self):
        windows = extract_numbered_windows(
            [user("window 3: 20x20"), user("window #1: 30x30")]
        )

        assert [w.window_number for w in windows] == [1, 3]

    def test_windows_without_size_are_skipped(self):
        windows = extract_numbered_windows([user("Window 1: 36x48. Window 2 is for the den")])

        assert [w.window_number for w in windows] == [1]

    def test_no_markers(self):
        assert extract_numbered_windows([user("I need a 36x48 window")]) == []


class TestGroupMessagesByLocation:
    MESSAGES = [
        user("The kitchen window is 36x48"),
        user("The bedroom one is 24x36"),
        user("Use double pane glass"),
        user("Thanks!"),
    ]

    def test_groups_by_location_and_fills_gaps(self):
        groups = group_messages_by_location(self.MESSAGES, attach_orphans_to_last_group=True)

        assert list(groups) == ["Kitchen", "Bedroom"]
        assert [m.content for m in groups["Kitchen"]] == [
            "The kitchen window is 36x48",
            "Use double pane glass",
        ]
        assert [m.content for m in groups["Bedroom"]] == [
            "The bedroom one is 24x36",
            "Thanks!",
        ]

    def test_orphans_start_their_own_group_when_not_attaching(self):
        groups = group_messages_by_location(self.MESSAGES, attach_orphans_to_last_group=False)

        assert list(groups) == ["Kitchen", "Bedroom", "unspecified_3"]
        assert [m.content for m in groups["unspecified_3"]] == ["Thanks!"]

    def test_partial_spec_without_location_starts_new_group(self):
        groups = group_messages_by_location(
            [
                user("The kitchen window is 36x48"),
                user("Another one is 30x30"),
            ],
            attach_orphans_to_last_group=True,
        )

        assert list(groups) == ["Kitchen", "unspecified_2"]

    def test_first_orphan_without_groups(self):
        groups = group_messages_by_location([user("hello")], attach_orphans_to_last_group=True)

        assert list(groups) == ["unspecified_1"]

    def test_uses_setting_by_default(self):
        with patch("quote_context.extraction.parser.get_settings") as mock_settings:
            mock_settings.return_value.ATTACH_ORPHAN_MESSAGES_TO_LAST_GROUP = False
            groups = group_messages_by_location(self.MESSAGES)

        assert "unspecified_3" in groups


class TestParseMultipleWindowSpecifications:
    def test_numbered_strategy_wins(self):
        result = parse_multiple_window_specifications(
            [
                user(
                    "Window 1: 36x48 double pane in the kitchen. "
                    "Window 2: 24x36 triple pane for the bathroom"
                )
            ]
        )

        assert result.kind == ExtractionKind.MULTIPLE
        assert result.strategy == ExtractionStrategy.NUMBERED
        assert result.count == 2
        assert result.has_multiple_windows is True
        assert result.is_complete is True
        assert result.degraded is False

    def test_location_strategy(self):
        result = parse_multiple_window_specifications(TestGroupMessagesByLocation.MESSAGES)

        assert result.strategy == ExtractionStrategy.LOCATION
        assert [w.location for w in result.windows] == ["Kitchen", "Bedroom"]
        assert result.windows[0].is_complete is True
        assert result.is_complete is False

    def test_whole_conversation_fallback(self):
        messages = [user("I need a 36x48 window")]
        with patch(
            "quote_context.extraction.parser.group_messages_by_location", return_value={}
        ):
            result = parse_multiple_window_specifications(messages)

        assert result.kind == ExtractionKind.SINGLE
        assert result.strategy == ExtractionStrategy.WHOLE_CONVERSATION
        assert result.count == 1
        assert result.has_multiple_windows is False

    def test_nothing_found(self):
        result = parse_multiple_window_specifications([user("hi"), assistant("Hello!")])

        assert result.kind == ExtractionKind.NONE
        assert result.count == 0
        assert result.is_complete is False
        assert result.error is None

    def test_internal_error_is_reported_not_raised(self):
        with patch(
            "quote_context.extraction.parser.normalize_messages",
            side_effect=RuntimeError("boom"),
        ):
            result = parse_multiple_window_specifications([user("36x48")])

        assert result.kind == ExtractionKind.NONE
        assert result.error == "boom"
        assert result.degraded is True
