"""
Upload component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, BinaryIO
from uuid import UUID

from src.domain.errors import LifecycleError

if TYPE_CHECKING:
    from .component import UploadHandle


@dataclass(frozen=True)
class BeginUploadInput:
    """
    Input for starting an upload.

    size_bytes is the size the client declared; the registry records the
    number of bytes actually streamed.
    """

    file: BinaryIO
    filename: str
    content_type: str
    size_bytes: int
    credential: str | None
    dedup_token: str | None = None
    display_name: str | None = None
    expected_sha256: str | None = None


@dataclass(frozen=True)
class UploadResult:
    """Terminal outcome of an upload."""

    asset_id: UUID | None = None
    storage_key: str | None = None
    size_bytes: int = 0
    sha256: str | None = None
    is_duplicate: bool = False
    errors: list[LifecycleError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class BeginUploadOutput:
    """
    Output from begin_upload.

    Rejections that happen before any byte moves (auth, validation, token
    conflict) come back here with handle=None.
    """

    handle: UploadHandle | None = None
    errors: list[LifecycleError] = field(default_factory=list)
    success: bool = True
