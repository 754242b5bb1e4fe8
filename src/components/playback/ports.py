"""Playback component port definitions - protocols for dependencies."""

from __future__ import annotations

from typing import Protocol

from src.components.registry.models import (
    AssetListOutput,
    AssetOutput,
    ListAssetsInput,
    RecordProbeInput,
)


class AssetCatalogPort(Protocol):
    """Read side of the Asset Registry."""

    def list(self, input_data: ListAssetsInput) -> AssetListOutput:
        ...


class ProbeRecorderPort(Protocol):
    """Where the first playable signal reports duration and resolution."""

    def record_probe(self, input_data: RecordProbeInput) -> AssetOutput:
        ...
