"""
Playback component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from src.domain.entities import PlaybackTarget
from src.domain.errors import LifecycleError

PlaybackState = Literal["idle", "loading", "playing", "paused", "errored"]


@dataclass(frozen=True)
class ResolveInput:
    """Input for resolving a public slug."""

    slug: str


@dataclass(frozen=True)
class ResolveOutput:
    """
    Output from resolve.

    On not_found, published_slugs lists what is currently playable.
    """

    target: PlaybackTarget | None = None
    published_slugs: list[str] = field(default_factory=list)
    errors: list[LifecycleError] = field(default_factory=list)
    success: bool = True
