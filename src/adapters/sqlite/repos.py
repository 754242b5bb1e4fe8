import builtins
import sqlite3
from datetime import datetime
from typing import Any
from uuid import UUID

from src.domain.entities import AssetStatus, VideoAsset


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SQLiteVideoAssetRepo:
    """
    Registry catalog backed by a single SQLite file.

    Every save is an upsert of the whole row inside one transaction, so a
    status change and its storage_key land together or not at all.
    The schema comes from migrations/ (see SQLiteMigrator).
    """

    def __init__(self, db_path: str, timeout_seconds: float = 5.0):
        self.db_path = db_path
        self.timeout_seconds = timeout_seconds

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout_seconds)
        conn.row_factory = dict_factory
        return conn

    def _row_to_asset(self, row: dict[str, Any]) -> VideoAsset:
        created_at = _parse_dt(row["created_at"])
        assert created_at is not None
        return VideoAsset(
            id=UUID(row["id"]),
            display_name=row["display_name"],
            original_filename=row["original_filename"],
            content_type=row["content_type"],
            size_bytes=row["size_bytes"],
            sha256=row["sha256"],
            status=row["status"],
            storage_key=row["storage_key"],
            created_at=created_at,
            published_at=_parse_dt(row["published_at"]),
            duration_seconds=row["duration_seconds"],
            resolution=row["resolution"],
            dedup_token=row["dedup_token"],
            uploaded_by=row["uploaded_by"],
        )

    def save(self, asset: VideoAsset) -> VideoAsset:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO video_assets (
                    id, display_name, original_filename, content_type, size_bytes,
                    sha256, status, storage_key, created_at, published_at,
                    duration_seconds, resolution, dedup_token, uploaded_by
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    display_name=excluded.display_name,
                    original_filename=excluded.original_filename,
                    content_type=excluded.content_type,
                    size_bytes=excluded.size_bytes,
                    sha256=excluded.sha256,
                    status=excluded.status,
                    storage_key=excluded.storage_key,
                    published_at=excluded.published_at,
                    duration_seconds=excluded.duration_seconds,
                    resolution=excluded.resolution,
                    dedup_token=excluded.dedup_token,
                    uploaded_by=excluded.uploaded_by
            """,
                (
                    str(asset.id),
                    asset.display_name,
                    asset.original_filename,
                    asset.content_type,
                    asset.size_bytes,
                    asset.sha256,
                    asset.status,
                    asset.storage_key,
                    asset.created_at.isoformat(),
                    asset.published_at.isoformat() if asset.published_at else None,
                    asset.duration_seconds,
                    asset.resolution,
                    asset.dedup_token,
                    asset.uploaded_by,
                ),
            )
            conn.commit()
            return asset
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_by_id(self, asset_id: UUID) -> VideoAsset | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM video_assets WHERE id = ?", (str(asset_id),)
            ).fetchone()
            return self._row_to_asset(row) if row else None
        finally:
            conn.close()

    def get_by_dedup_token(self, token: str) -> VideoAsset | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM video_assets WHERE dedup_token = ?", (token,)
            ).fetchone()
            return self._row_to_asset(row) if row else None
        finally:
            conn.close()

    def get_by_storage_key(self, storage_key: str) -> VideoAsset | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM video_assets WHERE storage_key = ?", (storage_key,)
            ).fetchone()
            return self._row_to_asset(row) if row else None
        finally:
            conn.close()

    def delete(self, asset_id: UUID) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute("DELETE FROM video_assets WHERE id = ?", (str(asset_id),))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def list(self, *, status: AssetStatus | None = None) -> builtins.list[VideoAsset]:
        conn = self._get_conn()
        try:
            query = "SELECT * FROM video_assets"
            params: builtins.list[Any] = []
            if status:
                query += " WHERE status = ?"
                params.append(status)
            query += " ORDER BY created_at DESC"
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_asset(r) for r in rows]
        finally:
            conn.close()
