"""Plausibility checks for extracted window specifications.

Extraction never applies these; callers run them before quoting and use
``format_validation_message`` to tell the customer what looks wrong.
"""

from pydantic import BaseModel, Field

from quote_context.core.logging import get_logger
from quote_context.extraction.models import WindowSpecification

logger = get_logger(__name__)

MIN_DIMENSION = 12  # 1 ft
MAX_DIMENSION = 120  # 10 ft
MIN_ASPECT_RATIO = 0.25
MAX_ASPECT_RATIO = 4.0
# Converted metric/imperial values outside this range mean a unit mix-up
MIN_CONVERTED_DIMENSION = 1
MAX_CONVERTED_DIMENSION = 500


class ValidationResult(BaseModel):
    """Outcome of validating a specification."""

    is_valid: bool = Field(..., description="No errors were found")
    errors: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


def _fmt(value: float) -> str:
    return f"{value:g}"


def validate_dimensions(width: float | None, height: float | None) -> ValidationResult:
    """Check presence, range and proportions of width and height (inches)."""
    errors: list[str] = []
    suggestions: list[str] = []

    if width is None or height is None:
        return ValidationResult(
            is_valid=False,
            errors=["Both width and height measurements are required to provide a quote"],
            suggestions=[
                'Please provide window dimensions in inches (e.g., "36x48" or '
                '"36 inches by 48 inches")'
            ],
        )

    if width < MIN_DIMENSION:
        errors.append(f"Width must be at least {MIN_DIMENSION} inches (1 foot)")
        suggestions.append("Standard windows start at 12 inches wide. Did you mean a larger size?")
    elif width > MAX_DIMENSION:
        errors.append(f"Width cannot exceed {MAX_DIMENSION} inches (10 feet)")
        suggestions.append("For windows wider than 10 feet, please contact us for a custom quote")

    if height < MIN_DIMENSION:
        errors.append(f"Height must be at least {MIN_DIMENSION} inches (1 foot)")
        suggestions.append("Standard windows start at 12 inches tall. Did you mean a larger size?")
    elif height > MAX_DIMENSION:
        errors.append(f"Height cannot exceed {MAX_DIMENSION} inches (10 feet)")
        suggestions.append("For windows taller than 10 feet, please contact us for a custom quote")

    aspect_ratio = width / height
    swap_hint = f"Did you mean {_fmt(height)}x{_fmt(width)} (width x height) instead?"
    if aspect_ratio < MIN_ASPECT_RATIO:
        errors.append("This window appears unusually narrow for its height")
        suggestions.append(swap_hint)
    elif aspect_ratio > MAX_ASPECT_RATIO:
        errors.append("This window appears unusually wide for its height")
        suggestions.append(swap_hint)

    # Only worth a reminder when nothing else is wrong
    if not errors and width > height * 2 and height < 36:
        suggestions.append(
            "Note: Width is typically listed first (width x height). "
            "Please verify your measurements."
        )

    return ValidationResult(is_valid=not errors, errors=errors, suggestions=suggestions)


def validate_unit_conversion(
    width: float | None, height: float | None, original_units: str | None
) -> ValidationResult:
    """Flag converted values that are implausibly small or large."""
    errors: list[str] = []
    suggestions: list[str] = []

    if width is None or height is None or not original_units or original_units == "inches":
        return ValidationResult(is_valid=True)

    if width < MIN_CONVERTED_DIMENSION or height < MIN_CONVERTED_DIMENSION:
        errors.append("Unit conversion resulted in dimensions that are too small")
        suggestions.append("Please verify your measurements and units")

    if width > MAX_CONVERTED_DIMENSION or height > MAX_CONVERTED_DIMENSION:
        errors.append("Unit conversion resulted in dimensions that are too large")
        suggestions.append("Please verify your measurements and units")

    return ValidationResult(is_valid=not errors, errors=errors, suggestions=suggestions)


def validate_window_specification(spec: WindowSpecification) -> ValidationResult:
    """
    Validate a specification before quoting it.

    Args:
        spec: Specification as extracted from the conversation

    Returns:
        ValidationResult. Dimension suggestions are included even when
        the dimensions are valid.
    """
    dimension_result = validate_dimensions(spec.width, spec.height)
    unit_result = validate_unit_conversion(spec.width, spec.height, spec.original_units)

    errors = [*dimension_result.errors, *unit_result.errors]
    suggestions = [*dimension_result.suggestions, *unit_result.suggestions]
    warnings: list[str] = []
    if spec.error:
        warnings.append("Some details could not be read from the conversation")

    if errors:
        logger.warning(
            f"Window specification validation failed: {errors} "
            f"(width={spec.width}, height={spec.height}, units={spec.original_units})"
        )

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        suggestions=suggestions,
        warnings=warnings,
    )


def format_validation_message(result: ValidationResult) -> str:
    """Render a validation result as a customer-facing message."""
    sections = []
    for title, items in (
        ("**Issues with your specifications:**", result.errors),
        ("**Suggestions:**", result.suggestions),
        ("**Please note:**", result.warnings),
    ):
        if items:
            sections.append("\n".join([title, *(f"• {item}" for item in items)]))
    return "\n\n".join(sections)


def dimension_requirements() -> str:
    """One-line description of the accepted size range."""
    return (
        f'Window dimensions must be between {MIN_DIMENSION}" and {MAX_DIMENSION}" '
        "(1 to 10 feet) for both width and height."
    )
