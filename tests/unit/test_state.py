"""
Lifecycle state rules: transitions and the status/key-prefix pairing.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from src.domain.entities import VideoAsset
from src.domain.state import (
    DEFAULT_NAMESPACES,
    Namespaces,
    can_transition,
    key_matches_status,
    transition,
)

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)


def _staged() -> VideoAsset:
    return VideoAsset(
        display_name="Lobby Loop",
        original_filename="lobby.mp4",
        content_type="video/mp4",
        size_bytes=10,
        sha256="ab" * 32,
        storage_key="private/uploads-temp/1234-lobby.mp4",
    )


class TestTransitions:
    @pytest.mark.parametrize(
        ("current", "new", "allowed"),
        [
            ("staged", "published", True),
            ("staged", "removing", True),
            ("published", "removing", True),
            ("removing", "removing", True),
            ("published", "staged", False),
            ("published", "published", False),
            ("removing", "published", False),
            ("removing", "staged", False),
        ],
    )
    def test_can_transition(self, current: str, new: str, allowed: bool) -> None:
        assert can_transition(current, new) is allowed  # type: ignore[arg-type]

    def test_publish_rewrites_key_and_stamps_time(self) -> None:
        asset = _staged()

        published = transition(
            asset, "published", NOW, storage_key="public/1234-lobby.mp4"
        )

        assert published.status == "published"
        assert published.storage_key == "public/1234-lobby.mp4"
        assert published.published_at == NOW
        assert asset.status == "staged"  # original untouched

    def test_publish_without_public_key_refused(self) -> None:
        with pytest.raises(ValueError):
            transition(_staged(), "published", NOW)

    def test_removing_keeps_current_key(self) -> None:
        removing = transition(_staged(), "removing", NOW)

        assert removing.storage_key == "private/uploads-temp/1234-lobby.mp4"


class TestNamespaces:
    def test_public_key_keeps_object_name(self) -> None:
        key = DEFAULT_NAMESPACES.public_key_for("private/uploads-temp/abc-clip.mp4")

        assert key == "public/abc-clip.mp4"
        assert DEFAULT_NAMESPACES.staging_key_for(key) == "private/uploads-temp/abc-clip.mp4"

    def test_public_key_requires_staging_prefix(self) -> None:
        with pytest.raises(ValueError):
            DEFAULT_NAMESPACES.public_key_for("public/abc-clip.mp4")

    def test_pairing(self) -> None:
        assert key_matches_status("staged", "private/uploads-temp/a.mp4")
        assert not key_matches_status("staged", "public/a.mp4")
        assert key_matches_status("published", "public/a.mp4")
        assert not key_matches_status("published", "private/uploads-temp/a.mp4")
        assert key_matches_status("removing", "public/a.mp4")
        assert not key_matches_status("removing", "elsewhere/a.mp4")

    def test_custom_prefixes(self) -> None:
        ns = Namespaces(staging_prefix="tmp/", public_prefix="live/")

        assert ns.public_key_for("tmp/x.mp4") == "live/x.mp4"
        assert key_matches_status("published", "live/x.mp4", ns)
