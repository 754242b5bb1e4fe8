from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel

from src.domain.entities import PlaybackTarget, VideoAsset
from src.domain.errors import LifecycleError
from src.domain.slugs import format_bytes

# --- Shared Enums/Types ---
AssetStatus = Literal["staged", "published", "removing"]


# --- Errors ---
class ErrorModel(BaseModel):
    code: str
    message: str
    field: str = ""
    retryable: bool = False

    @classmethod
    def from_error(cls, error: LifecycleError) -> "ErrorModel":
        return cls(
            code=error.code,
            message=error.message,
            field=error.field,
            retryable=error.retryable,
        )


class ErrorResponse(BaseModel):
    success: bool = False
    errors: list[ErrorModel]
    published_slugs: list[str] | None = None


# --- Intake ---
class UploadResponse(BaseModel):
    """Gateway-compatible upload reply: {success, key, url} plus the asset id."""

    success: bool = True
    key: str
    url: str | None = None
    asset_id: UUID
    is_duplicate: bool = False
    size_bytes: int
    sha256: str | None = None


# --- Assets ---
class VideoAssetResponse(BaseModel):
    id: UUID
    slug: str
    display_name: str
    original_filename: str
    content_type: str
    size_bytes: int
    size_display: str
    sha256: str
    status: AssetStatus
    storage_key: str
    created_at: datetime
    published_at: datetime | None = None
    duration_seconds: float | None = None
    resolution: str | None = None
    uploaded_by: str | None = None

    @classmethod
    def from_asset(cls, asset: VideoAsset) -> "VideoAssetResponse":
        return cls(
            id=asset.id,
            slug=asset.slug,
            display_name=asset.display_name,
            original_filename=asset.original_filename,
            content_type=asset.content_type,
            size_bytes=asset.size_bytes,
            size_display=format_bytes(asset.size_bytes),
            sha256=asset.sha256,
            status=asset.status,
            storage_key=asset.storage_key,
            created_at=asset.created_at,
            published_at=asset.published_at,
            duration_seconds=asset.duration_seconds,
            resolution=asset.resolution,
            uploaded_by=asset.uploaded_by,
        )


class AssetListResponse(BaseModel):
    items: list[VideoAssetResponse]
    total: int


class StatsResponse(BaseModel):
    total: int
    staged: int
    published: int
    removing: int
    total_bytes: int
    published_bytes: int
    total_size_display: str


class RemoveResponse(BaseModel):
    success: bool = True
    removed: bool


class ReconcileResponse(BaseModel):
    success: bool
    purged: list[UUID]
    rolled_back: list[UUID]
    missing_objects: list[UUID]
    orphans_deleted: list[str]
    errors: list[ErrorModel] = []


class ProbeRequest(BaseModel):
    duration_seconds: float | None = None
    resolution: str | None = None


# --- Playback ---
class PlaybackResponse(BaseModel):
    asset_id: UUID
    slug: str
    url: str
    content_type: str
    display_name: str
    duration_seconds: float | None = None
    resolution: str | None = None
    autoplay: bool = True
    loop: bool = True
    muted: bool = True
    overlay_hide_seconds: float = 3.0

    @classmethod
    def from_target(cls, target: PlaybackTarget, overlay_hide_seconds: float) -> "PlaybackResponse":
        data: dict[str, Any] = target.model_dump()
        return cls(**data, overlay_hide_seconds=overlay_hide_seconds)
