"""
Lifecycle error taxonomy shared by every component output.

Components report expected failures as LifecycleError values inside their
output models instead of raising; the HTTP layer maps codes to status codes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ErrorCode = Literal[
    "invalid_type",
    "too_large",
    "empty_file",
    "auth_error",
    "transport_error",
    "conflict",
    "not_found",
    "cancelled",
]

VALIDATION_CODES: frozenset[str] = frozenset({"invalid_type", "too_large", "empty_file"})


@dataclass(frozen=True)
class LifecycleError:
    """Lifecycle error with actionable message."""

    code: ErrorCode
    message: str
    field: str = ""
    retryable: bool = False

    @property
    def is_validation(self) -> bool:
        return self.code in VALIDATION_CODES


def invalid_type(mime_type: str, allowed: list[str]) -> LifecycleError:
    return LifecycleError(
        code="invalid_type",
        message=(
            f"MIME type '{mime_type}' is not allowed. "
            f"Allowed types: {', '.join(sorted(set(allowed)))}"
        ),
        field="content_type",
    )


def too_large(size_bytes: int, max_bytes: int) -> LifecycleError:
    return LifecycleError(
        code="too_large",
        message=f"File size {size_bytes} bytes exceeds maximum of {max_bytes} bytes",
        field="file",
    )


def auth_error(message: str = "Missing or invalid credential") -> LifecycleError:
    return LifecycleError(code="auth_error", message=message, field="credential")


def transport_error(message: str, *, retryable: bool = True) -> LifecycleError:
    return LifecycleError(code="transport_error", message=message, field="storage", retryable=retryable)


def conflict(message: str, field: str = "asset_id") -> LifecycleError:
    return LifecycleError(code="conflict", message=message, field=field)


def not_found(message: str, field: str = "asset_id") -> LifecycleError:
    return LifecycleError(code="not_found", message=message, field=field)
