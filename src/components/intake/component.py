"""
Intake component - gate uploads on type and size before any bytes move.

Invariants:
- I1: MIME type must be in the allow-list
- I2: Size must be positive and not exceed the ceiling
- I3: Checks are pure; no storage or network call is made

The MIME check runs first, so a file that is both the wrong type and too
large reports invalid_type only.
"""

from __future__ import annotations

from src.domain.errors import LifecycleError, invalid_type, too_large

from .models import IntakeConfig, ValidateInput, ValidationOutput

DEFAULT_CONFIG = IntakeConfig()


def normalize_mime_type(mime_type: str | None) -> str:
    """Lowercase and strip parameters: 'Video/MP4; codecs=avc1' -> 'video/mp4'."""
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


def validate_mime_type(mime_type: str | None, config: IntakeConfig) -> list[LifecycleError]:
    """
    Validate MIME type against allowlist.

    Returns list of errors (empty if valid).
    """
    normalized = normalize_mime_type(mime_type)
    if normalized not in config.allowed_mime_types:
        return [invalid_type(mime_type or "", list(config.allowed_mime_types))]
    return []


def validate_size(size_bytes: int, config: IntakeConfig) -> list[LifecycleError]:
    """
    Validate declared size against the ceiling.

    Returns list of errors (empty if valid).
    """
    if size_bytes <= 0:
        return [
            LifecycleError(
                code="empty_file",
                message="File is empty",
                field="file",
            )
        ]
    if size_bytes > config.max_upload_bytes:
        return [too_large(size_bytes, config.max_upload_bytes)]
    return []


def validate(
    mime_type: str | None,
    size_bytes: int,
    config: IntakeConfig = DEFAULT_CONFIG,
) -> ValidationOutput:
    """Run the intake rules in order and stop at the first failure."""
    errors = validate_mime_type(mime_type, config)
    if errors:
        return ValidationOutput(errors=errors)
    return ValidationOutput(errors=validate_size(size_bytes, config))


def run(inp: ValidateInput, *, config: IntakeConfig = DEFAULT_CONFIG) -> ValidationOutput:
    """Component entry point."""
    return validate(inp.mime_type, inp.size_bytes, config)
