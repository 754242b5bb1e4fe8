"""Playback component - slug resolution and client playback state."""

from src.components.playback.component import (
    PlaybackResolver,
    build_public_url,
    run,
    to_target,
)
from src.components.playback.models import PlaybackState, ResolveInput, ResolveOutput
from src.components.playback.ports import AssetCatalogPort, ProbeRecorderPort
from src.components.playback.session import OverlayTimer, PlaybackSession, can_transition

__all__ = [
    # Entry point
    "run",
    # Component
    "PlaybackResolver",
    "PlaybackSession",
    "OverlayTimer",
    "build_public_url",
    "to_target",
    "can_transition",
    # Models
    "PlaybackState",
    "ResolveInput",
    "ResolveOutput",
    # Ports
    "AssetCatalogPort",
    "ProbeRecorderPort",
]
