"""
Playback component - resolve a public slug to something a media element can play.

Invariants:
- I1: only published assets resolve
- I2: lookups are case-insensitive and deterministic
- I3: resolve is a pure read with no cache; it reflects publish/remove at once
- I4: the returned URL always points under the public namespace
"""

from __future__ import annotations

import logging

from src.components.registry.models import ListAssetsInput
from src.domain.entities import PlaybackTarget, VideoAsset
from src.domain.errors import not_found
from src.domain.slugs import normalize_slug
from src.domain.state import DEFAULT_NAMESPACES, Namespaces, key_matches_status

from .models import ResolveInput, ResolveOutput
from .ports import AssetCatalogPort

logger = logging.getLogger(__name__)


def build_public_url(base_url: str, storage_key: str) -> str:
    return f"{base_url.rstrip('/')}/{storage_key.lstrip('/')}"


def to_target(asset: VideoAsset, base_url: str) -> PlaybackTarget:
    return PlaybackTarget(
        asset_id=asset.id,
        slug=asset.slug,
        url=build_public_url(base_url, asset.storage_key),
        content_type=asset.content_type,
        display_name=asset.display_name,
        duration_seconds=asset.duration_seconds,
        resolution=asset.resolution,
    )


class PlaybackResolver:
    """Maps slugs to PlaybackTargets using the registry as the only source."""

    def __init__(
        self,
        catalog: AssetCatalogPort,
        public_base_url: str,
        *,
        namespaces: Namespaces = DEFAULT_NAMESPACES,
        include_slug_hint: bool = True,
    ) -> None:
        self._catalog = catalog
        self._base_url = public_base_url
        self._ns = namespaces
        self._include_hint = include_slug_hint

    def run(self, input_data: ResolveInput) -> ResolveOutput:
        return self.resolve(input_data)

    def resolve(self, input_data: ResolveInput) -> ResolveOutput:
        wanted = normalize_slug(input_data.slug)
        published = self._catalog.list(ListAssetsInput(status="published")).items

        for asset in published:
            if asset.slug != wanted:
                continue
            if not key_matches_status("published", asset.storage_key, self._ns):
                logger.error("Published asset %s has non-public key %s", asset.id, asset.storage_key)
                continue
            return ResolveOutput(target=to_target(asset, self._base_url))

        hint = sorted({a.slug for a in published}) if self._include_hint else []
        return ResolveOutput(
            published_slugs=hint,
            errors=[not_found(f"No published video for slug '{input_data.slug}'", field="slug")],
            success=False,
        )

    def published_targets(self) -> list[PlaybackTarget]:
        """Everything currently playable, newest first."""
        published = self._catalog.list(ListAssetsInput(status="published")).items
        return [to_target(a, self._base_url) for a in published]


def run(
    inp: ResolveInput,
    *,
    catalog: AssetCatalogPort,
    public_base_url: str,
    namespaces: Namespaces = DEFAULT_NAMESPACES,
) -> ResolveOutput:
    """Functional entry point."""
    return PlaybackResolver(catalog, public_base_url, namespaces=namespaces).resolve(inp)
