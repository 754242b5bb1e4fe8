"""
Intake component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.domain.errors import LifecycleError
from src.rules.models import DEFAULT_ALLOWED_MIME_TYPES, DEFAULT_MAX_UPLOAD_BYTES, IntakeRules


@dataclass(frozen=True)
class IntakeConfig:
    """Allow-list and size ceiling the validator enforces."""

    allowed_mime_types: tuple[str, ...] = tuple(DEFAULT_ALLOWED_MIME_TYPES)
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES

    @classmethod
    def from_rules(cls, rules: IntakeRules) -> IntakeConfig:
        return cls(
            allowed_mime_types=tuple(rules.allowlist_mime_types),
            max_upload_bytes=rules.max_upload_bytes,
        )


@dataclass(frozen=True)
class ValidateInput:
    """Declared properties of a file about to be uploaded."""

    mime_type: str
    size_bytes: int


@dataclass(frozen=True)
class ValidationOutput:
    """Output from validation. ok is True only when errors is empty."""

    errors: list[LifecycleError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def success(self) -> bool:
        return self.ok
