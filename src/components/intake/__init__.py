"""Intake component - MIME type and size gate for uploads."""

from src.components.intake.component import (
    DEFAULT_CONFIG,
    normalize_mime_type,
    run,
    validate,
    validate_mime_type,
    validate_size,
)
from src.components.intake.models import IntakeConfig, ValidateInput, ValidationOutput

__all__ = [
    # Entry point
    "run",
    "validate",
    # Functions
    "normalize_mime_type",
    "validate_mime_type",
    "validate_size",
    "DEFAULT_CONFIG",
    # Models
    "IntakeConfig",
    "ValidateInput",
    "ValidationOutput",
]
