"""Window specification parsing from conversation history.

Single-window parsing reads the space-joined text of every user message.
Multi-window parsing tries ordered segmentation strategies and returns the
first that finds at least one sized window:

1. explicit numbering ("window 1: ...", "the second window ...")
2. grouping messages by the room they mention
3. the whole conversation as one window
"""

from collections.abc import Callable

from quote_context.context.models import ChatMessage, MessageLike, MessageRole, normalize_messages
from quote_context.core.config import get_settings
from quote_context.core.logging import get_logger
from quote_context.extraction import patterns
from quote_context.extraction.extractors import (
    extract_bay_details,
    extract_color_flags,
    extract_dimensions,
    extract_features,
    extract_glass_type,
    extract_location,
    extract_operation_type,
    extract_quantity,
    extract_shaped_details,
    extract_window_type,
)
from quote_context.extraction.models import (
    ExtractionKind,
    ExtractionStrategy,
    MultiWindowResult,
    OperationType,
    WindowSpecification,
    WindowType,
)

logger = get_logger(__name__)


def user_text(messages: list[MessageLike] | None) -> str:
    """Space-joined content of the user messages, in order."""
    return " ".join(
        msg.content
        for msg in normalize_messages(messages)
        if msg.role == MessageRole.USER and msg.content
    )


def parse_specification_text(text: str) -> WindowSpecification:
    """Build a specification from already-joined user text."""
    dimensions = extract_dimensions(text)
    window_type = extract_window_type(text) or WindowType.STANDARD
    colors = extract_color_flags(text)

    return WindowSpecification(
        location=extract_location(text),
        width=dimensions.width if dimensions else None,
        height=dimensions.height if dimensions else None,
        original_units=dimensions.original_units if dimensions else "inches",
        window_type=window_type,
        operation_type=extract_operation_type(text) or OperationType.HUNG,
        glass_type=extract_glass_type(text),
        features=extract_features(text),
        quantity=extract_quantity(text),
        has_interior_color=colors.has_interior_color,
        has_exterior_color=colors.has_exterior_color,
        shaped_details=extract_shaped_details(text, window_type),
        bay_details=extract_bay_details(text, window_type),
    )


def parse_window_specifications(messages: list[MessageLike] | None) -> WindowSpecification:
    """
    Extract the current window specification from a conversation.

    Only user messages are read. Operation type defaults to Hung and
    window type to standard; glass type stays None until the customer
    names one, so ``is_complete`` waits for it.

    Args:
        messages: Conversation history, ChatMessage objects or dicts

    Returns:
        WindowSpecification. Never raises: on an internal failure the
        result is empty with ``error`` set.
    """
    try:
        return parse_specification_text(user_text(messages))
    except Exception as e:
        logger.error(f"Error parsing window specifications: {e}")
        return WindowSpecification(error=str(e))


# =============================================================================
# Strategy 1: explicit numbering
# =============================================================================


def _window_number(raw: str) -> int | None:
    if raw.isdigit():
        return int(raw)
    return patterns.ORDINAL_WORDS.get(raw)


def _find_markers(text: str) -> list[tuple[int, int]]:
    """(offset, window number) of every numbering marker, in text order."""
    markers: dict[int, int] = {}
    for pattern in patterns.WINDOW_NUMBER_PATTERNS:
        for match in pattern.finditer(text):
            number = _window_number(match.group(1))
            if number and match.start() not in markers:
                markers[match.start()] = number
    return sorted(markers.items())


def extract_numbered_windows(messages: list[MessageLike] | None) -> list[WindowSpecification]:
    """
    Windows the customer numbered explicitly.

    Each user message is cut at its numbering markers; a segment runs to
    the next marker or the end of the message. Segments for the same
    number, across messages, are joined and parsed together. Only windows
    with both dimensions are returned, ordered by number.
    """
    segments: dict[int, list[str]] = {}

    for msg in normalize_messages(messages):
        if msg.role != MessageRole.USER or not msg.content:
            continue
        lowered = msg.content.lower()
        markers = _find_markers(lowered)
        for i, (start, number) in enumerate(markers):
            end = markers[i + 1][0] if i + 1 < len(markers) else len(lowered)
            segments.setdefault(number, []).append(lowered[start:end])

    windows = []
    for number in sorted(segments):
        spec = parse_specification_text(" ".join(segments[number]))
        if spec.has_dimensions:
            windows.append(spec.model_copy(update={"window_number": number}))

    if windows:
        logger.debug(f"Found {len(windows)} numbered windows")
    return windows


# =============================================================================
# Strategy 2: location grouping
# =============================================================================


def _explicit_fields(messages: list[ChatMessage]) -> tuple:
    """Fields a message can newly fill in for a group: width, height, type, glass."""
    text = user_text(messages)
    dimensions = extract_dimensions(text)
    return (
        dimensions.width if dimensions else None,
        dimensions.height if dimensions else None,
        extract_window_type(text),
        extract_glass_type(text),
    )


def _adds_information(group: list[ChatMessage], message: ChatMessage) -> bool:
    before = _explicit_fields(group)
    after = _explicit_fields([*group, message])
    return any(old is None and new is not None for old, new in zip(before, after))


def group_messages_by_location(
    messages: list[MessageLike] | None,
    attach_orphans_to_last_group: bool | None = None,
) -> dict[str, list[ChatMessage]]:
    """
    Group user messages by the room they are about.

    Messages naming a location are grouped under it first. Each remaining
    message joins the first group it fills in a missing width, height,
    window type or glass type for. Failing that, a message with any of
    those fields starts an ``unspecified_N`` group. A message with none is
    attached to the most recently created group when
    ``attach_orphans_to_last_group`` is set, else it starts its own group.

    Args:
        messages: Conversation history
        attach_orphans_to_last_group: Override for the
            ATTACH_ORPHAN_MESSAGES_TO_LAST_GROUP setting

    Returns:
        Ordered mapping of group label to its messages
    """
    if attach_orphans_to_last_group is None:
        attach_orphans_to_last_group = get_settings().ATTACH_ORPHAN_MESSAGES_TO_LAST_GROUP

    user_messages = [
        msg
        for msg in normalize_messages(messages)
        if msg.role == MessageRole.USER and msg.content
    ]

    groups: dict[str, list[ChatMessage]] = {}
    unassigned: list[ChatMessage] = []

    for msg in user_messages:
        location = extract_location(msg.content)
        if location:
            groups.setdefault(location, []).append(msg)
        else:
            unassigned.append(msg)

    for msg in unassigned:
        target = next(
            (label for label, group in groups.items() if _adds_information(group, msg)),
            None,
        )
        if target is not None:
            groups[target].append(msg)
            continue

        has_partial_spec = any(value is not None for value in _explicit_fields([msg]))
        if has_partial_spec or not groups or not attach_orphans_to_last_group:
            groups[f"unspecified_{len(groups) + 1}"] = [msg]
        else:
            last_label = list(groups)[-1]
            groups[last_label].append(msg)

    return groups


def _location_windows(messages: list[MessageLike] | None) -> list[WindowSpecification]:
    windows = []
    for group in group_messages_by_location(messages).values():
        spec = parse_window_specifications(group)
        if spec.has_dimensions:
            windows.append(spec)
    return windows


# =============================================================================
# Strategy 3: whole conversation
# =============================================================================


def _whole_conversation_window(messages: list[MessageLike] | None) -> list[WindowSpecification]:
    spec = parse_window_specifications(messages)
    return [spec] if spec.has_dimensions else []


STRATEGIES: list[tuple[ExtractionStrategy, Callable[[list[MessageLike] | None], list[WindowSpecification]]]] = [
    (ExtractionStrategy.NUMBERED, extract_numbered_windows),
    (ExtractionStrategy.LOCATION, _location_windows),
    (ExtractionStrategy.WHOLE_CONVERSATION, _whole_conversation_window),
]


def parse_multiple_window_specifications(messages: list[MessageLike] | None) -> MultiWindowResult:
    """
    Extract every window described in a conversation.

    Strategies are tried in order; the first returning any sized window
    wins and is recorded on the result.

    Returns:
        MultiWindowResult with kind none/single/multiple. On an internal
        failure, kind is none and ``error`` is set.
    """
    try:
        for strategy, extract in STRATEGIES:
            windows = extract(messages)
            if windows:
                logger.debug(f"Extracted {len(windows)} window(s) via {strategy.value}")
                return MultiWindowResult.from_windows(windows, strategy)
        return MultiWindowResult.from_windows([], None)
    except Exception as e:
        logger.error(f"Error extracting multiple windows from conversation: {e}")
        return MultiWindowResult(kind=ExtractionKind.NONE, error=str(e))
