"""Single-field extractors for window specifications.

Each extractor takes free text (any case) and returns one field, or None
when the text says nothing about it. They are pure functions over the
tables in ``quote_context.extraction.patterns``.
"""

import math
import re

from quote_context.extraction import patterns
from quote_context.extraction.models import (
    BayDetails,
    ColorFlags,
    Dimensions,
    GlassType,
    OperationType,
    ShapedDetails,
    WindowType,
)

# Longest room names first so "master bedroom" wins over "bedroom"
_ROOM_PATTERNS = [
    (room, re.compile(r"\b" + re.escape(room) + r"\b"))
    for room in sorted(patterns.ROOM_VOCABULARY, key=len, reverse=True)
]


def round_half_up(value: float, digits: int = 1) -> float:
    """Round to ``digits`` decimals with halves going up (39.35 -> 39.4)."""
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def resolve_unit(unit_text: str | None) -> tuple[str, float]:
    """
    Map a unit as written to its canonical name and factor to inches.

    Args:
        unit_text: Unit suffix captured next to a number, e.g. "cm" or '"'

    Returns:
        (canonical name, factor). Missing or unknown units are inches.
    """
    if unit_text:
        unit_text = unit_text.strip().lower()
        for pattern, name, factor in patterns.UNIT_CONVERSIONS:
            if pattern.fullmatch(unit_text):
                return name, factor
    return "inches", 1.0


def extract_dimensions(text: str | None) -> Dimensions | None:
    """
    Extract width and height, converted to inches.

    Recognises "36x48", "36 by 48", "36 wide and 48 high" and
    "width is 36 ... height is 48", each with optional unit suffixes.
    The unit written after the height wins, then the one after the width.

    Returns:
        Dimensions rounded half-up to one decimal, or None
    """
    if not text:
        return None

    lowered = text.lower()
    for pattern in patterns.DIMENSION_PATTERNS:
        match = pattern.search(lowered)
        if not match:
            continue

        units, factor = resolve_unit(match.group("hu") or match.group("wu"))
        width = round_half_up(float(match.group("w")) * factor)
        height = round_half_up(float(match.group("h")) * factor)
        if width <= 0 or height <= 0:
            continue
        return Dimensions(width=width, height=height, original_units=units)

    return None


def extract_operation_type(text: str | None) -> OperationType | None:
    """Operation type from keyword synonyms, then secondary phrasings."""
    if not text:
        return None

    lowered = text.lower()
    for operation, keywords in patterns.OPERATION_KEYWORDS.items():
        if any(keyword in lowered for keyword in keywords):
            return operation

    for pattern, operation in patterns.OPERATION_PHRASES:
        if pattern.search(lowered):
            return operation

    return None


def extract_window_type(text: str | None) -> WindowType | None:
    """Window type only when the text states one; callers pick the default."""
    if not text:
        return None

    lowered = text.lower()
    for window_type, type_patterns in patterns.WINDOW_TYPE_PATTERNS.items():
        if any(p.search(lowered) for p in type_patterns):
            return window_type

    match = patterns.WINDOW_TYPE_STATEMENT.search(lowered)
    if match:
        return patterns.WINDOW_TYPE_WORDS.get(match.group(1))

    return None


def extract_glass_type(text: str | None) -> GlassType | None:
    """Glass type, pane count before surface treatment. None when unspecified."""
    if not text:
        return None

    lowered = text.lower()
    for glass_type, glass_patterns in patterns.GLASS_TYPE_PATTERNS.items():
        if any(p.search(lowered) for p in glass_patterns):
            return glass_type

    match = patterns.GLASS_TYPE_STATEMENT.search(lowered)
    if match:
        return patterns.GLASS_TYPE_WORDS.get(match.group(1))

    return None


def extract_features(text: str | None) -> list[str]:
    """
    Feature tags mentioned in the text, in table order.

    Low-E and argon collapse into one tag: argon gas is only ever sold as
    a Low-E option, so argon alone also yields "Low-E glass with argon".
    """
    if not text:
        return []

    lowered = text.lower()
    features: list[str] = []

    if patterns.ARGON_PATTERN.search(lowered):
        features.append(patterns.FEATURE_LOW_E_ARGON)
    elif any(p.search(lowered) for p in patterns.LOW_E_PATTERNS):
        features.append(patterns.FEATURE_LOW_E)

    for tag, feature_patterns in patterns.FEATURE_PATTERNS.items():
        if any(p.search(lowered) for p in feature_patterns):
            features.append(tag)

    return features


def extract_location(text: str | None) -> str | None:
    """
    Room or area the window is for, title-cased.

    Known rooms are matched on word boundaries first; otherwise phrasings
    like "for the sun room" or "location is garage" are tried.
    """
    if not text:
        return None

    lowered = text.lower()
    for room, pattern in _ROOM_PATTERNS:
        if pattern.search(lowered):
            return room.title()

    for pattern in patterns.LOCATION_PHRASES:
        for match in pattern.finditer(lowered):
            candidate = " ".join(match.group(1).split())
            if candidate.split()[0] in patterns.LOCATION_STOPWORDS:
                continue
            return candidate.title()

    return None


def extract_quantity(text: str | None) -> int:
    """
    Number of identical windows requested; 1 unless stated.

    "W x H" spans are removed first so a size is never read as a count.
    Counts outside 1..99 are ignored.
    """
    if not text:
        return 1

    lowered = patterns.DIMENSION_PATTERNS[0].sub(" ", text.lower())

    for pattern in patterns.QUANTITY_PATTERNS:
        for match in pattern.finditer(lowered):
            value = int(match.group(1))
            if patterns.MIN_QUANTITY <= value <= patterns.MAX_QUANTITY:
                return value

    match = patterns.WRITTEN_QUANTITY_PATTERN.search(lowered)
    if match:
        return patterns.WRITTEN_NUMBERS[match.group(1)]

    return 1


def extract_color_flags(text: str | None) -> ColorFlags:
    """Non-white interior/exterior finish flags."""
    if not text:
        return ColorFlags()

    lowered = text.lower()
    interior = any(p.search(lowered) for p in patterns.INTERIOR_COLOR_PATTERNS)
    exterior = any(p.search(lowered) for p in patterns.EXTERIOR_COLOR_PATTERNS)

    # "black frame" without a side applies to both
    if any(p.search(lowered) for p in patterns.NON_WHITE_FRAME_PATTERNS):
        interior = exterior = True

    return ColorFlags(has_interior_color=interior, has_exterior_color=exterior)


def extract_shaped_details(text: str | None, window_type: WindowType | None) -> ShapedDetails | None:
    """Arched-top detail for shaped windows; None for other types."""
    if window_type != WindowType.SHAPED:
        return None
    lowered = (text or "").lower()
    return ShapedDetails(is_arched=bool(patterns.ARCHED_PATTERN.search(lowered)))


def extract_bay_details(text: str | None, window_type: WindowType | None) -> BayDetails | None:
    """Siding area for bay windows; None for other types."""
    if window_type != WindowType.BAY:
        return None

    lowered = (text or "").lower()
    for pattern in patterns.SIDING_AREA_PATTERNS:
        match = pattern.search(lowered)
        if match:
            return BayDetails(siding_area=float(match.group(1)))
    return BayDetails()
