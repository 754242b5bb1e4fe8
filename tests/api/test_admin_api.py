"""
Admin asset route tests: dashboard listing, publish, remove and reconcile.
"""

from __future__ import annotations

from uuid import uuid4

import pytest


@pytest.fixture
def staged(upload):
    def _staged(filename: str = "clip.mp4", **form: str) -> str:
        response = upload(filename=filename, **form)
        assert response.status_code == 201
        return response.json()["asset_id"]

    return _staged


class TestAdminAuth:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/api/admin/assets"),
            ("get", "/api/admin/assets/stats"),
            ("post", "/api/admin/assets/reconcile"),
            ("post", f"/api/admin/assets/{uuid4()}/publish"),
            ("delete", f"/api/admin/assets/{uuid4()}"),
        ],
    )
    def test_requires_credential(self, client, method, path) -> None:
        response = getattr(client, method)(path)

        assert response.status_code == 401


class TestDashboard:
    def test_list_and_search(self, client, auth_headers, staged) -> None:
        lobby = staged("lobby.mp4", display_name="Lobby Loop")
        staged("window.mp4", display_name="Window Display")

        everything = client.get("/api/admin/assets", headers=auth_headers).json()
        found = client.get("/api/admin/assets?q=LOBBY", headers=auth_headers).json()

        assert everything["total"] == 2
        assert [item["id"] for item in found["items"]] == [lobby]
        assert found["items"][0]["status"] == "staged"
        assert found["items"][0]["slug"] == "lobby-loop"

    def test_status_filter_rejects_unknown_value(self, client, auth_headers) -> None:
        response = client.get("/api/admin/assets?status=archived", headers=auth_headers)

        assert response.status_code == 422

    def test_stats(self, client, auth_headers, staged) -> None:
        asset_id = staged()
        staged("other.mp4", display_name="Other")
        client.post(f"/api/admin/assets/{asset_id}/publish", headers=auth_headers)

        stats = client.get("/api/admin/assets/stats", headers=auth_headers).json()

        assert stats["total"] == 2
        assert stats["published"] == 1
        assert stats["staged"] == 1
        assert stats["total_size_display"].endswith("KB")

    def test_get_unknown_is_404(self, client, auth_headers) -> None:
        response = client.get(f"/api/admin/assets/{uuid4()}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["errors"][0]["code"] == "not_found"


class TestPublishRemove:
    def test_publish_then_conflict(self, client, auth_headers, staged) -> None:
        asset_id = staged()

        first = client.post(f"/api/admin/assets/{asset_id}/publish", headers=auth_headers)
        second = client.post(f"/api/admin/assets/{asset_id}/publish", headers=auth_headers)

        assert first.status_code == 200
        assert first.json()["status"] == "published"
        assert first.json()["storage_key"].startswith("public/")
        assert second.status_code == 409

    def test_remove_is_idempotent(self, client, auth_headers, staged, ctx) -> None:
        asset_id = staged()

        first = client.delete(f"/api/admin/assets/{asset_id}", headers=auth_headers)
        second = client.delete(f"/api/admin/assets/{asset_id}", headers=auth_headers)

        assert first.json() == {"success": True, "removed": True}
        assert second.status_code == 200
        assert second.json()["removed"] is False
        assert ctx.store.list("") == []

    def test_reconcile_deletes_orphans(self, client, auth_headers, ctx) -> None:
        ctx.store.put("public/orphan.mp4", b"orphan", "video/mp4")

        response = client.post("/api/admin/assets/reconcile", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["orphans_deleted"] == ["public/orphan.mp4"]
        assert not ctx.store.exists("public/orphan.mp4")
