"""
Client-side playback state machine and control-overlay timer.

    idle -> loading -> playing <-> paused
    any  -> errored  (stream or network fault)
    errored -> loading only through retry(), which resolves the slug again

The overlay timer is independent of playback state and never changes it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from src.components.registry.models import RecordProbeInput
from src.domain.entities import PlaybackTarget
from src.domain.errors import LifecycleError

from .component import PlaybackResolver
from .models import PlaybackState, ResolveInput
from .ports import ProbeRecorderPort

logger = logging.getLogger(__name__)

_ALLOWED: dict[PlaybackState, set[PlaybackState]] = {
    "idle": {"loading", "errored"},
    "loading": {"playing", "errored"},
    "playing": {"paused", "errored"},
    "paused": {"playing", "errored"},
    "errored": {"loading", "errored"},
}


def can_transition(current: PlaybackState, new: PlaybackState) -> bool:
    return new in _ALLOWED[current]


class PlaybackSession:
    """One viewer's playback of one slug."""

    def __init__(
        self,
        resolver: PlaybackResolver,
        probe_recorder: ProbeRecorderPort | None = None,
    ) -> None:
        self._resolver = resolver
        self._probe = probe_recorder
        self._probed = False
        self.state: PlaybackState = "idle"
        self.slug: str | None = None
        self.target: PlaybackTarget | None = None
        self.error: LifecycleError | str | None = None
        self.published_slugs: list[str] = []

    def _move(self, new: PlaybackState) -> None:
        if not can_transition(self.state, new):
            raise ValueError(f"Invalid playback transition from {self.state} to {new}")
        logger.debug("Playback %s: %s -> %s", self.slug, self.state, new)
        self.state = new

    def load(self, slug: str) -> PlaybackState:
        """Resolve slug and start loading, or land in errored on not-found."""
        if self.state != "idle":
            raise ValueError(f"load() needs an idle session, not {self.state}")
        self.slug = slug
        return self._resolve_and_load()

    def retry(self) -> PlaybackState:
        """Leave errored through a fresh resolve."""
        if self.state != "errored" or self.slug is None:
            raise ValueError(f"retry() needs an errored session, not {self.state}")
        return self._resolve_and_load()

    def _resolve_and_load(self) -> PlaybackState:
        assert self.slug is not None
        out = self._resolver.resolve(ResolveInput(slug=self.slug))
        if not out.success or out.target is None:
            self.target = None
            self.published_slugs = out.published_slugs
            self.error = out.errors[0] if out.errors else None
            self._move("errored")
            return self.state

        self.target = out.target
        self.error = None
        self.published_slugs = []
        self._move("loading")
        return self.state

    def on_playable(
        self,
        duration_seconds: float | None = None,
        resolution: str | None = None,
    ) -> PlaybackState:
        """The stream confirmed playable data."""
        self._move("playing")
        if self._probe is not None and self.target is not None and not self._probed:
            self._probed = True
            self._probe.record_probe(
                RecordProbeInput(
                    asset_id=self.target.asset_id,
                    duration_seconds=duration_seconds,
                    resolution=resolution,
                )
            )
        return self.state

    def pause(self) -> PlaybackState:
        self._move("paused")
        return self.state

    def play(self) -> PlaybackState:
        self._move("playing")
        return self.state

    def fault(self, message: str) -> PlaybackState:
        """Stream or network fault; allowed from every state."""
        logger.warning("Playback %s faulted: %s", self.slug, message)
        self.error = message
        self._move("errored")
        return self.state


class OverlayTimer:
    """Hides the control overlay after hide_after seconds without interaction."""

    def __init__(
        self,
        hide_after: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.hide_after = hide_after
        self._clock = clock
        self._last_touch = clock()

    def touch(self) -> None:
        """Any interaction resets the timer."""
        self._last_touch = self._clock()

    def remaining(self) -> float:
        return max(0.0, self.hide_after - (self._clock() - self._last_touch))

    def is_visible(self) -> bool:
        return self.remaining() > 0
