"""Registry component port definitions - protocols for dependencies."""

from __future__ import annotations

import builtins
from datetime import datetime
from typing import Protocol
from uuid import UUID

from src.core.ports.storage import ObjectStorePort
from src.domain.entities import AssetStatus, VideoAsset

__all__ = ["ClockPort", "ObjectStorePort", "VideoAssetRepoPort"]


class VideoAssetRepoPort(Protocol):
    """
    Backing store for the registry catalog.

    Records are whole, frozen VideoAsset values: save() replaces a record
    atomically so readers never see a torn status/storage_key pair.
    """

    def get_by_id(self, asset_id: UUID) -> VideoAsset | None:
        """Retrieve an asset by ID."""
        ...

    def get_by_dedup_token(self, token: str) -> VideoAsset | None:
        """Retrieve the asset registered with a client deduplication token."""
        ...

    def get_by_storage_key(self, storage_key: str) -> VideoAsset | None:
        """Retrieve the asset whose object lives at storage_key."""
        ...

    def save(self, asset: VideoAsset) -> VideoAsset:
        """Insert or replace an asset."""
        ...

    def delete(self, asset_id: UUID) -> bool:
        """Delete an asset. Returns False if it didn't exist."""
        ...

    def list(self, *, status: AssetStatus | None = None) -> builtins.list[VideoAsset]:
        """List assets, newest first."""
        ...


class ClockPort(Protocol):
    """Protocol for time operations."""

    def now_utc(self) -> datetime:
        """Return current UTC time."""
        ...
