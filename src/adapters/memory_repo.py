"""In-memory registry catalog for tests and the `memory` storage backend."""

from __future__ import annotations

import builtins
from threading import Lock
from uuid import UUID

from src.domain.entities import AssetStatus, VideoAsset


class InMemoryVideoAssetRepo:
    def __init__(self) -> None:
        self._lock = Lock()
        self._assets: dict[UUID, VideoAsset] = {}

    def get_by_id(self, asset_id: UUID) -> VideoAsset | None:
        with self._lock:
            return self._assets.get(asset_id)

    def get_by_dedup_token(self, token: str) -> VideoAsset | None:
        with self._lock:
            for asset in self._assets.values():
                if asset.dedup_token == token:
                    return asset
        return None

    def get_by_storage_key(self, storage_key: str) -> VideoAsset | None:
        with self._lock:
            for asset in self._assets.values():
                if asset.storage_key == storage_key:
                    return asset
        return None

    def save(self, asset: VideoAsset) -> VideoAsset:
        with self._lock:
            if asset.dedup_token:
                for other in self._assets.values():
                    if other.id != asset.id and other.dedup_token == asset.dedup_token:
                        raise ValueError(f"Dedup token already registered to {other.id}")
            self._assets[asset.id] = asset
        return asset

    def delete(self, asset_id: UUID) -> bool:
        with self._lock:
            return self._assets.pop(asset_id, None) is not None

    def list(self, *, status: AssetStatus | None = None) -> builtins.list[VideoAsset]:
        with self._lock:
            items = [a for a in self._assets.values() if status is None or a.status == status]
        items.sort(key=lambda a: a.created_at, reverse=True)
        return items
