"""
Registry component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from src.domain.entities import AssetStatus, VideoAsset
from src.domain.errors import LifecycleError

# --- Input Models ---


@dataclass(frozen=True)
class RegisterAssetInput:
    """Input for cataloguing a freshly staged upload."""

    storage_key: str
    original_filename: str
    content_type: str
    size_bytes: int
    sha256: str
    display_name: str | None = None
    dedup_token: str | None = None
    uploaded_by: str | None = None


@dataclass(frozen=True)
class GetAssetInput:
    """Input for retrieving an asset."""

    asset_id: UUID


@dataclass(frozen=True)
class ListAssetsInput:
    """Input for listing assets."""

    status: AssetStatus | None = None
    query: str | None = None  # Case-insensitive substring of name or filename


@dataclass(frozen=True)
class PublishInput:
    """Input for promoting a staged asset to the public namespace."""

    asset_id: UUID


@dataclass(frozen=True)
class RemoveInput:
    """Input for removing an asset and its object."""

    asset_id: UUID


@dataclass(frozen=True)
class RecordProbeInput:
    """Input for recording metadata learned by the first playback probe."""

    asset_id: UUID
    duration_seconds: float | None = None
    resolution: str | None = None


@dataclass(frozen=True)
class StatsInput:
    """Input for dashboard counters."""


@dataclass(frozen=True)
class ReconcileInput:
    """
    Input for the crash-repair pass.

    active_keys: storage keys of uploads still streaming; never treated as orphans.
    """

    active_keys: frozenset[str] = frozenset()
    delete_orphans: bool = True


# --- Output Models ---


@dataclass(frozen=True)
class RegisterOutput:
    """Output from registering a staged upload."""

    asset: VideoAsset | None = None
    is_duplicate: bool = False
    errors: list[LifecycleError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class AssetOutput:
    """Output containing a single asset."""

    asset: VideoAsset | None = None
    errors: list[LifecycleError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class AssetListOutput:
    """Output containing assets ordered newest first."""

    items: list[VideoAsset]
    total: int
    errors: list[LifecycleError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class PublishOutput:
    """Output from publish operation."""

    asset: VideoAsset | None = None
    errors: list[LifecycleError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class RemoveOutput:
    """Output from remove operation. removed is False when the id was already gone."""

    removed: bool = False
    errors: list[LifecycleError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class StatsOutput:
    """Dashboard counters."""

    total: int = 0
    staged: int = 0
    published: int = 0
    removing: int = 0
    total_bytes: int = 0
    published_bytes: int = 0
    errors: list[LifecycleError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ReconcileOutput:
    """What the crash-repair pass changed."""

    purged: list[UUID] = field(default_factory=list)
    rolled_back: list[UUID] = field(default_factory=list)
    missing_objects: list[UUID] = field(default_factory=list)
    orphans_deleted: list[str] = field(default_factory=list)
    errors: list[LifecycleError] = field(default_factory=list)
    success: bool = True
