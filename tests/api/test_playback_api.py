"""
Public playback and media route tests.
"""

from __future__ import annotations

import pytest

from src.core.ports.storage import StorageError


@pytest.fixture
def published(client, auth_headers, upload) -> dict:
    asset_id = upload(filename="lobby.mp4", display_name="Lobby Loop").json()["asset_id"]
    response = client.post(f"/api/admin/assets/{asset_id}/publish", headers=auth_headers)
    assert response.status_code == 200
    return response.json()


class TestResolve:
    def test_resolve_published_slug(self, client, published) -> None:
        response = client.get("/api/play/Lobby-Loop")

        assert response.status_code == 200
        body = response.json()
        assert body["asset_id"] == published["id"]
        assert body["url"] == f"http://testserver/media/{published['storage_key']}"
        assert body["autoplay"] is True
        assert body["loop"] is True
        assert body["muted"] is True
        assert body["overlay_hide_seconds"] == 3.0

    def test_unknown_slug_is_404_with_hint(self, client, published) -> None:
        response = client.get("/api/play/nothing-here")

        assert response.status_code == 404
        body = response.json()
        assert body["errors"][0]["code"] == "not_found"
        assert body["published_slugs"] == ["lobby-loop"]

    def test_staged_asset_is_not_playable(self, client, upload) -> None:
        upload(filename="draft.mp4", display_name="Draft")

        assert client.get("/api/play/draft").status_code == 404
        assert client.get("/api/play").json() == []

    def test_list_playable(self, client, published) -> None:
        items = client.get("/api/play").json()

        assert [i["slug"] for i in items] == ["lobby-loop"]

    def test_probe_fills_metadata_once(self, client, published) -> None:
        url = f"/api/play/{published['id']}/probe"

        first = client.post(url, json={"duration_seconds": 12.0, "resolution": "1920x1080"})
        second = client.post(url, json={"duration_seconds": 1.0, "resolution": "10x10"})

        assert first.status_code == 200
        assert second.json()["duration_seconds"] == 12.0
        assert second.json()["resolution"] == "1920x1080"


class TestMedia:
    def test_serves_public_object(self, client, published) -> None:
        response = client.get(f"/media/{published['storage_key']}")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("video/mp4")
        assert response.content.startswith(b"\x00\x00\x00\x18ftypmp42")
        assert "etag" in response.headers

    def test_etag_revalidation(self, client, published) -> None:
        etag = client.get(f"/media/{published['storage_key']}").headers["etag"]

        response = client.get(
            f"/media/{published['storage_key']}", headers={"If-None-Match": etag}
        )

        assert response.status_code == 304

    def test_staging_keys_are_never_served(self, client, upload) -> None:
        key = upload().json()["key"]

        assert client.get(f"/media/{key}").status_code == 404

    def test_missing_object_is_404(self, client) -> None:
        assert client.get("/media/public/missing.mp4").status_code == 404

    def test_cache_control_forces_revalidation(self, client, published) -> None:
        response = client.get(f"/media/{published['storage_key']}")

        assert response.headers["cache-control"] == "no-cache"

    def test_unregistered_public_object_is_404(self, client, ctx) -> None:
        ctx.store.put("public/stray.mp4", b"stray", "video/mp4")

        assert client.get("/media/public/stray.mp4").status_code == 404

    def test_removing_asset_is_not_served_when_delete_fails(
        self, client, auth_headers, ctx, published, monkeypatch
    ) -> None:
        def failing_delete(key: str) -> bool:
            raise StorageError("delete timed out")

        monkeypatch.setattr(ctx.store, "delete", failing_delete)

        removed = client.delete(f"/api/admin/assets/{published['id']}", headers=auth_headers)

        assert removed.status_code == 503
        assert ctx.store.exists(published["storage_key"])
        assert client.get(f"/media/{published['storage_key']}").status_code == 404
        assert client.get("/api/play/lobby-loop").status_code == 404
