from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from src.domain.slugs import derive_slug

# --- Enums / Literals ---
AssetStatus = Literal["staged", "published", "removing"]
AuthMode = Literal["static", "jwt"]


def utc_now() -> datetime:
    return datetime.now(UTC)


# --- Auth ---

class Principal(BaseModel):
    """Caller identity resolved from an opaque credential."""

    model_config = ConfigDict(frozen=True)

    subject: str
    auth_mode: AuthMode = "static"


# --- Video Assets ---

class VideoAsset(BaseModel):
    """
    One uploaded media object tracked through its lifecycle.

    Frozen: every state change produces a new copy via model_copy(update=...),
    so readers never observe a status without its matching storage_key.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    display_name: str
    original_filename: str
    content_type: str
    size_bytes: int = Field(gt=0)
    sha256: str
    status: AssetStatus = "staged"
    storage_key: str
    created_at: datetime = Field(default_factory=utc_now)
    published_at: datetime | None = None
    duration_seconds: float | None = None
    resolution: str | None = None
    dedup_token: str | None = None
    uploaded_by: str | None = None

    @property
    def slug(self) -> str:
        return derive_slug(self.display_name, self.original_filename)


# --- Playback ---

class PlaybackTarget(BaseModel):
    """What a playback consumer needs to render a published asset."""

    model_config = ConfigDict(frozen=True)

    asset_id: UUID
    slug: str
    url: str
    content_type: str
    display_name: str
    duration_seconds: float | None = None
    resolution: str | None = None
    # Media element semantics; unmuting is a client-side action.
    autoplay: bool = True
    loop: bool = True
    muted: bool = True
