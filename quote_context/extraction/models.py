"""Pydantic models for window specifications extracted from conversation text."""

import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, computed_field, field_validator


class OperationType(str, Enum):
    """How the window sash opens."""

    HUNG = "Hung"
    SLIDER = "Slider"
    FIXED = "Fixed"
    CASEMENT = "Casement"
    AWNING = "Awning"


class WindowType(str, Enum):
    """Window construction style."""

    STANDARD = "standard"
    BAY = "bay"
    SHAPED = "shaped"

    @property
    def display_name(self) -> str:
        """Human-readable window type."""
        return self.value.capitalize()


class GlassType(str, Enum):
    """Glazing choices recognised in conversation text."""

    CLEAR = "clear"
    FROSTED = "frosted"
    TINTED = "tinted"
    DOUBLE_PANE = "double pane"
    TRIPLE_PANE = "triple pane"

    @property
    def display_name(self) -> str:
        """Human-readable glass type."""
        return self.value.capitalize()


class Dimensions(BaseModel):
    """Width and height in inches, with the units the user wrote them in."""

    width: float = Field(..., description="Width in inches")
    height: float = Field(..., description="Height in inches")
    original_units: str = Field(default="inches", description="Units as written")


class ColorFlags(BaseModel):
    """Whether a non-white interior or exterior finish was requested."""

    has_interior_color: bool = False
    has_exterior_color: bool = False


class ShapedDetails(BaseModel):
    """Extra detail for shaped windows."""

    is_arched: bool = Field(default=False, description="Arched, half-round or circle top")


class BayDetails(BaseModel):
    """Extra detail for bay windows."""

    siding_area: float | None = Field(
        default=None, description="Square feet of siding mentioned, if any"
    )


class WindowSpecification(BaseModel):
    """
    Best current summary of one window extractable from a set of messages.

    Derived and recomputable: the same messages always yield the same
    specification. ``is_complete`` is the single gate consumed by
    persistence logic.
    """

    location: str | None = Field(default=None, description="Room or area")
    width: float | None = Field(default=None, gt=0, description="Width in inches")
    height: float | None = Field(default=None, gt=0, description="Height in inches")
    original_units: str = Field(default="inches", description="Units as written")
    window_type: WindowType | None = Field(default=None)
    operation_type: OperationType = Field(default=OperationType.HUNG)
    glass_type: GlassType | None = Field(default=None)
    features: list[str] = Field(default_factory=list, description="Feature tags")
    quantity: int = Field(default=1, ge=1, le=99)
    has_interior_color: bool = Field(default=False)
    has_exterior_color: bool = Field(default=False)
    shaped_details: ShapedDetails | None = Field(default=None)
    bay_details: BayDetails | None = Field(default=None)
    window_number: int | None = Field(
        default=None, description="Position when the user numbered their windows"
    )
    error: str | None = Field(
        default=None, description="Set when extraction failed and this result is degraded"
    )

    @field_validator("features", mode="before")
    @classmethod
    def _dedupe_features(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = features_from_json(value)
        # Set semantics, first occurrence order
        return list(dict.fromkeys(value))

    @computed_field
    @property
    def is_complete(self) -> bool:
        """True iff width, height, window type and glass type are all known."""
        return (
            self.width is not None
            and self.height is not None
            and self.window_type is not None
            and self.glass_type is not None
        )

    @property
    def has_dimensions(self) -> bool:
        return self.width is not None and self.height is not None

    @property
    def dimensions_label(self) -> str | None:
        """``36×48`` style label, or None without both dimensions."""
        if not self.has_dimensions:
            return None
        return f"{_format_number(self.width)}×{_format_number(self.height)}"

    def matches(self, other: "WindowSpecification") -> bool:
        """Duplicate check used before persisting: same location and size."""
        return (
            self.location == other.location
            and self.width == other.width
            and self.height == other.height
        )


class StoredSpecification(WindowSpecification):
    """A specification as persisted by the storage collaborator."""

    id: str | int | None = Field(default=None)
    conversation_id: str | int | None = Field(default=None)
    created_at: datetime | None = Field(default=None)


class ExtractionKind(str, Enum):
    """Shape of a multi-window extraction result."""

    NONE = "none"
    SINGLE = "single"
    MULTIPLE = "multiple"


class ExtractionStrategy(str, Enum):
    """Segmentation strategy that produced the windows."""

    NUMBERED = "numbered"
    LOCATION = "location"
    WHOLE_CONVERSATION = "whole_conversation"


class MultiWindowResult(BaseModel):
    """Windows extracted from a conversation that may describe several."""

    kind: ExtractionKind = Field(default=ExtractionKind.NONE)
    strategy: ExtractionStrategy | None = Field(default=None)
    windows: list[WindowSpecification] = Field(default_factory=list)
    error: str | None = Field(default=None, description="Set when extraction failed")

    @computed_field
    @property
    def count(self) -> int:
        return len(self.windows)

    @computed_field
    @property
    def has_multiple_windows(self) -> bool:
        return self.count > 1

    @computed_field
    @property
    def is_complete(self) -> bool:
        """True iff at least one window was found and every window is complete."""
        return self.count > 0 and all(w.is_complete for w in self.windows)

    @property
    def degraded(self) -> bool:
        """Extraction failed internally; an empty result is not "nothing said yet"."""
        return self.error is not None

    @classmethod
    def from_windows(
        cls,
        windows: list[WindowSpecification],
        strategy: ExtractionStrategy | None,
    ) -> "MultiWindowResult":
        if not windows:
            return cls(kind=ExtractionKind.NONE, strategy=None, windows=[])
        kind = ExtractionKind.MULTIPLE if len(windows) > 1 else ExtractionKind.SINGLE
        return cls(kind=kind, strategy=strategy, windows=windows)


def features_to_json(features: list[str] | None) -> str:
    """Serialize feature tags for storage as a JSON array."""
    return json.dumps(list(features or []))


def features_from_json(raw: str | list | None) -> list[str]:
    """Parse stored feature tags back into a list."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, list):
        return [str(f) for f in raw]
    parsed = json.loads(raw)
    if not isinstance(parsed, list):
        raise ValueError(f"features must be a JSON array, got {type(parsed).__name__}")
    return [str(f) for f in parsed]


def _format_number(value: float) -> str:
    """Render 36.0 as 36 and 39.4 as 39.4."""
    return f"{value:g}"
