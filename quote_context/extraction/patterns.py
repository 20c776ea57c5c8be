"""Keyword and pattern tables for window specification extraction.

Everything here is data: ordered mappings from a canonical value to the
phrases or regular expressions that indicate it. Extractors walk these
tables first-match-wins, so order within and across entries is precedence.
All patterns are applied to lower-cased text.
"""

import re

from quote_context.extraction.models import GlassType, OperationType, WindowType

# =============================================================================
# Dimensions
# =============================================================================

_UNIT = (
    r"(?:inches|inch|in|centimeters|centimetres|cm|millimeters|millimetres|mm"
    r"|meters|metres|m|feet|foot|ft|\"|')"
)


def _number(name: str) -> str:
    return r"(?P<" + name + r">\d+(?:\.\d+)?)"


def _unit(name: str) -> str:
    return r"(?:\s*(?P<" + name + r">" + _UNIT + r")(?![a-wyz]))?"


# Ordered "W x H" phrasings. Named groups: w/h are the numbers, wu/hu the
# units written next to them (either may be absent).
DIMENSION_PATTERNS: list[re.Pattern] = [
    re.compile(_number("w") + _unit("wu") + r"\s*(?:[x×]|by)\s*" + _number("h") + _unit("hu")),
    re.compile(
        _number("w") + _unit("wu") + r"\s*(?:wide|width).*?"
        + _number("h") + _unit("hu") + r"\s*(?:high|height|tall)"
    ),
    re.compile(
        r"width\s*(?:is|:|of)?\s*" + _number("w") + _unit("wu")
        + r".+?height\s*(?:is|:|of)?\s*" + _number("h") + _unit("hu")
    ),
]

# Unit as written -> (canonical name, factor to inches). Checked in order.
UNIT_CONVERSIONS: list[tuple[re.Pattern, str, float]] = [
    (re.compile(r"cm|centimet(?:er|re)s?"), "cm", 0.3937),
    (re.compile(r"mm|millimet(?:er|re)s?"), "mm", 0.03937),
    (re.compile(r"m|met(?:er|re)s?"), "m", 39.37),
    (re.compile(r"ft|feet|foot|'"), "feet", 12.0),
    (re.compile(r"in|inch|inches|\""), "inches", 1.0),
]

# =============================================================================
# Operation type
# =============================================================================

OPERATION_KEYWORDS: dict[OperationType, list[str]] = {
    OperationType.HUNG: [
        "hung window", "hung type", "double hung", "single hung",
        "double-hung", "single-hung", "hung style", "dh window",
        "hung operation", "up and down window", "vertical sliding",
    ],
    OperationType.SLIDER: [
        "slider", "sliding window", "horizontal sliding", "gliding window",
        "slide window", "side sliding", "side to side window", "sliding operation",
    ],
    OperationType.FIXED: [
        "fixed window", "fixed pane", "non-opening", "picture window",
        "stationary window", "fixed operation", "does not open", "non-operational",
        "non-operable", "inoperable", "static window",
    ],
    OperationType.CASEMENT: [
        "casement", "crank out", "cranking window", "swing out",
        "hinged window", "casement operation", "outward opening",
        "side hinged", "crank-out", "cranking operation", "crank handle",
    ],
    OperationType.AWNING: [
        "awning", "top hinged", "top-hinged", "hinged at top",
        "projects outward", "awning style", "awning type",
        "outward from top", "top-hung", "top hung",
    ],
}

# Secondary phrasings tried when no keyword matched
OPERATION_PHRASES: list[tuple[re.Pattern, OperationType]] = [
    (re.compile(r"opens?\s+(?:from|on)\s+(?:the\s+)?side"), OperationType.CASEMENT),
    (re.compile(r"opens?\s+(?:from|at)\s+(?:the\s+)?top"), OperationType.AWNING),
    (re.compile(r"slides?\s+(?:up|up\s+and\s+down|vertically)"), OperationType.HUNG),
    (re.compile(r"slides?\s+(?:side\s+to\s+side|horizontally|left|right)"), OperationType.SLIDER),
    (re.compile(r"(?:doesn't|doesn’t|does\s+not|won't|cannot|can't)\s+open"), OperationType.FIXED),
    (re.compile(r"(?:with|has)\s+(?:a\s+)?crank"), OperationType.CASEMENT),
]

# =============================================================================
# Window type
# =============================================================================

WINDOW_TYPE_PATTERNS: dict[WindowType, list[re.Pattern]] = {
    WindowType.BAY: [
        re.compile(p)
        for p in [
            r"bay window",
            r"bow window",
            r"bay style",
            r"bay shaped",
            r"window that protrudes",
            r"extends? (?:out|from) (?:the|from) (?:wall|house|building)",
        ]
    ],
    WindowType.SHAPED: [
        re.compile(p)
        for p in [
            r"shaped window",
            r"arch(?:ed)? (?:window|top)",
            r"half(?:\s+|-)?round",
            r"quarter(?:\s+|-)?round",
            r"circle(?:\s+|-)?top",
            r"eyebrow window",
            r"oval window",
            r"round (?:window|top)",
            r"custom shape",
            r"geometric window",
            r"specialty (?:window|shape)",
            r"triangle|triangular",
            r"trapezoid",
            r"hexagon",
            r"octagon",
        ]
    ],
    WindowType.STANDARD: [
        re.compile(p)
        for p in [
            r"standard window",
            r"regular window",
            r"normal window",
            r"rectangular window",
            r"square window",
        ]
    ],
}

# "the window is a bay", "it should be custom"
WINDOW_TYPE_STATEMENT = re.compile(
    r"\b(?:window|it)\s+(?:is|should\s+be|will\s+be)\s+(?:a\s+)?(\w+)"
)
WINDOW_TYPE_WORDS: dict[str, WindowType] = {
    "standard": WindowType.STANDARD,
    "regular": WindowType.STANDARD,
    "normal": WindowType.STANDARD,
    "bay": WindowType.BAY,
    "bow": WindowType.BAY,
    "shaped": WindowType.SHAPED,
    "custom": WindowType.SHAPED,
}

# =============================================================================
# Glass type and features
# =============================================================================

# Pane counts take precedence over surface treatments
GLASS_TYPE_PATTERNS: dict[GlassType, list[re.Pattern]] = {
    GlassType.TRIPLE_PANE: [
        re.compile(p)
        for p in [
            r"triple[- ]?pane",
            r"triple[- ]glazed",
            r"three panes?",
            r"3 panes?",
            r"triple[- ]insulated",
        ]
    ],
    GlassType.DOUBLE_PANE: [
        re.compile(p)
        for p in [
            r"double[- ]?pane",
            r"double[- ]glazed",
            r"dual[- ]pane",
            r"two panes?",
            r"2 panes?",
            r"insulated glass",
        ]
    ],
    GlassType.FROSTED: [
        re.compile(p)
        for p in [
            r"frosted",
            r"privacy glass",
            r"obscured? glass",
            r"satin glass",
            r"acid[- ]etched",
            r"sandblasted",
        ]
    ],
    GlassType.TINTED: [
        re.compile(p)
        for p in [
            r"tinted",
            r"gr[ae]y glass",
            r"bronze glass",
            r"blue glass",
            r"green glass",
        ]
    ],
    GlassType.CLEAR: [
        re.compile(p)
        for p in [
            r"clear glass",
            r"plain glass",
        ]
    ],
}

# "the glass should be triple"
GLASS_TYPE_STATEMENT = re.compile(
    r"(?:glass|pane|panes|glazing)\s+(?:is|should\s+be|will\s+be)\s+(?:a\s+)?(\w+)"
)
GLASS_TYPE_WORDS: dict[str, GlassType] = {
    "double": GlassType.DOUBLE_PANE,
    "dual": GlassType.DOUBLE_PANE,
    "triple": GlassType.TRIPLE_PANE,
    "clear": GlassType.CLEAR,
    "frosted": GlassType.FROSTED,
    "tinted": GlassType.TINTED,
}

LOW_E_PATTERNS: list[re.Pattern] = [
    re.compile(p)
    for p in [
        r"low[- ]?e\b",
        r"low emissivity",
        r"energy efficient glass",
        r"energy[- ]saving glass",
        r"energy star",
        r"energy rated",
    ]
]
ARGON_PATTERN = re.compile(r"\bargon\b")

FEATURE_LOW_E = "Low-E glass"
FEATURE_LOW_E_ARGON = "Low-E glass with argon"
FEATURE_GRILLES = "Grilles"

# Independent feature scans, tag -> patterns. Low-E is handled separately
# because it collapses with argon into one tag.
FEATURE_PATTERNS: dict[str, list[re.Pattern]] = {
    FEATURE_GRILLES: [
        re.compile(p)
        for p in [
            r"grilles?",
            r"\bgrids?\b",
            r"divided lights?",
            r"muntins?",
            r"mullions?",
            r"window dividers",
        ]
    ],
    "Frosted glass": GLASS_TYPE_PATTERNS[GlassType.FROSTED],
    "Tinted glass": GLASS_TYPE_PATTERNS[GlassType.TINTED],
}

# =============================================================================
# Location
# =============================================================================

ROOM_VOCABULARY: list[str] = [
    "kitchen", "bedroom", "master bedroom", "living room", "family room",
    "dining room", "bathroom", "basement", "attic", "garage", "laundry room",
    "office", "study", "den", "guest room", "hallway", "entryway", "foyer",
    "sunroom", "porch", "patio", "front door", "back door", "side door",
]

LOCATION_PHRASES: list[re.Pattern] = [
    re.compile(p)
    for p in [
        r"\bin\s+(?:the\s+|my\s+|our\s+)?([a-z]+(?:\s+[a-z]+)?\s+room)\b",
        r"\bfor\s+(?:the\s+|my\s+|our\s+)?([a-z]+(?:\s+[a-z]+)?\s+room)\b",
        r"\bfor\s+(?:the\s+|my\s+|our\s+)?([a-z]+\s+door)\b",
        r"\bfor\s+(?:the\s+|my\s+|our\s+)?([a-z]+\s+area)\b",
        r"\bin\s+(?:the\s+|my\s+|our\s+)?([a-z]+\s+area)\b",
        r"\b(?:room|location)\s+(?:is|will\s+be)\s+(?:the\s+|my\s+|our\s+)?([a-z]+(?:\s+(?:room|area))?)",
    ]
]

# Words a location phrase must not capture
LOCATION_STOPWORDS = {"a", "an", "the", "my", "our", "this", "that", "it", "same", "which"}

# =============================================================================
# Quantity
# =============================================================================

# A number that is really part of a measurement ("need 36 inches")
_NOT_A_MEASUREMENT = r"(?!\s*(?:[x×.]\d|[x×]|\d|by\b|cm|mm|ft\b|feet|foot|inch|in\b|\"|'))"

# Applied after "W x H" spans have been blanked out of the text
QUANTITY_PATTERNS: list[re.Pattern] = [
    re.compile(r"\b(\d+)" + _NOT_A_MEASUREMENT + r"\s+(?:[a-z-]+\s+)?windows?\b"),
    re.compile(r"\bneed\s+(\d+)" + _NOT_A_MEASUREMENT),
    re.compile(r"\bwant\s+(\d+)" + _NOT_A_MEASUREMENT),
    re.compile(r"\blooking\s+for\s+(\d+)" + _NOT_A_MEASUREMENT),
    re.compile(r"\bquantity\s+(?:of\s+)?(\d+)"),
    re.compile(r"\b(\d+)\s+(?:of\s+)?(?:these|them)\b"),
]

WRITTEN_NUMBERS: dict[str, int] = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "fifteen": 15, "twenty": 20,
}
WRITTEN_QUANTITY_PATTERN = re.compile(
    r"\b(" + "|".join(WRITTEN_NUMBERS) + r")\s+(?:\w+\s+)?windows\b"
)

MIN_QUANTITY = 1
MAX_QUANTITY = 99

# =============================================================================
# Color
# =============================================================================

# A following word that is not "white" (nor a filler word)
_NON_WHITE_WORD = r"\b(?!(?:white|colou?r|finish|in|is|should|be|the|a|an|to|and|or|same|any|no)\b)[a-z]+"
_CONNECTOR = r"(?:in\s+|is\s+|should\s+be\s+)?"

INTERIOR_COLOR_PATTERNS: list[re.Pattern] = [
    re.compile(r"\binterior(?:\s+color|\s+finish)?\s+" + _CONNECTOR + _NON_WHITE_WORD),
    re.compile(r"\binside\s+(?:color|finish)\s+" + _CONNECTOR + _NON_WHITE_WORD),
    re.compile(_NON_WHITE_WORD + r"\s+(?:color|finish)\s+(?:on\s+the\s+)?(?:interior|inside)\b"),
]

EXTERIOR_COLOR_PATTERNS: list[re.Pattern] = [
    re.compile(r"\bexterior(?:\s+color|\s+finish)?\s+" + _CONNECTOR + _NON_WHITE_WORD),
    re.compile(r"\boutside\s+(?:color|finish)\s+" + _CONNECTOR + _NON_WHITE_WORD),
    re.compile(_NON_WHITE_WORD + r"\s+(?:color|finish)\s+(?:on\s+the\s+)?(?:exterior|outside)\b"),
]

# Colored frame without saying which side: treated as both
NON_WHITE_FRAME_PATTERNS: list[re.Pattern] = [
    re.compile(r"\b" + p)
    for p in [
        r"black\s+(?:frame|window)",
        r"dark\s+(?:frame|finish)",
        r"bronze\s+(?:frame|finish)",
        r"tan\s+(?:frame|window)",
        r"beige\s+(?:frame|window)",
        r"brown\s+(?:frame|window)",
        r"colou?red\s+(?:frame|window)",
        r"painted\s+(?:frame|window)",
    ]
]

# =============================================================================
# Shaped / bay details
# =============================================================================

ARCHED_PATTERN = re.compile(r"arch(?:ed)?|half(?:\s*|-)?round|circle(?:\s*|-)?top")

SIDING_AREA_PATTERNS: list[re.Pattern] = [
    re.compile(r"siding(?:\s+area)?\s+(?:of\s+)?(\d+(?:\.\d+)?)"),
    re.compile(r"(\d+(?:\.\d+)?)\s+(?:sq\.?|square)\s*(?:ft\.?|feet|foot)"),
]

# =============================================================================
# Numbered windows
# =============================================================================

ORDINAL_WORDS: dict[str, int] = {
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
    "fifth": 5,
}

# Group 1 holds the number (digits or ordinal word)
WINDOW_NUMBER_PATTERNS: list[re.Pattern] = [
    re.compile(r"\b(?:window|item)\s*(?:#|no\.?|number)?\s*:?\s*(\d{1,2})" + _NOT_A_MEASUREMENT),
    re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)\s*window\b"),
    re.compile(r"\b(" + "|".join(ORDINAL_WORDS) + r")\s*window\b"),
]
