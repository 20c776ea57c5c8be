"""Window specification extraction from free-text conversation turns.

This module provides:
- Field extractors (dimensions, operation, window and glass type, features,
  location, quantity, colors) driven by the tables in ``patterns``
- Single-window parsing of a conversation
- Multi-window parsing by numbering, location grouping or whole conversation
- Plausibility validation of extracted specifications
"""

from quote_context.extraction.models import (
    BayDetails,
    ColorFlags,
    Dimensions,
    ExtractionKind,
    ExtractionStrategy,
    GlassType,
    MultiWindowResult,
    OperationType,
    ShapedDetails,
    StoredSpecification,
    WindowSpecification,
    WindowType,
    features_from_json,
    features_to_json,
)
from quote_context.extraction.parser import (
    extract_numbered_windows,
    group_messages_by_location,
    parse_multiple_window_specifications,
    parse_window_specifications,
)
from quote_context.extraction.validator import (
    ValidationResult,
    format_validation_message,
    validate_window_specification,
)

__all__ = [
    # Models
    "BayDetails",
    "ColorFlags",
    "Dimensions",
    "ExtractionKind",
    "ExtractionStrategy",
    "GlassType",
    "MultiWindowResult",
    "OperationType",
    "ShapedDetails",
    "StoredSpecification",
    "WindowSpecification",
    "WindowType",
    "features_from_json",
    "features_to_json",
    # Parsing
    "extract_numbered_windows",
    "group_messages_by_location",
    "parse_multiple_window_specifications",
    "parse_window_specifications",
    # Validation
    "ValidationResult",
    "format_validation_message",
    "validate_window_specification",
]
