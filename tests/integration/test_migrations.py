import sqlite3
from pathlib import Path

import pytest

from src.adapters.sqlite.migrator import SQLiteMigrator

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


def _tables(db_path: Path) -> set[str]:
    conn = sqlite3.connect(db_path)
    try:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    finally:
        conn.close()
    return {r[0] for r in rows}


def test_migrations_create_schema(tmp_path: Path) -> None:
    db_path = tmp_path / "videos.db"
    migrator = SQLiteMigrator(str(db_path), str(MIGRATIONS_DIR))

    assert migrator.pending() == ["0001_video_assets.sql"]
    applied = migrator.run_migrations()

    assert applied == ["0001_video_assets.sql"]
    assert {"video_assets", "_migrations"} <= _tables(db_path)
    assert migrator.pending() == []


def test_migrations_are_idempotent(tmp_path: Path) -> None:
    db_path = tmp_path / "videos.db"
    migrator = SQLiteMigrator(str(db_path), str(MIGRATIONS_DIR))

    migrator.run_migrations()

    assert migrator.run_migrations() == []


def test_status_check_constraint(tmp_path: Path) -> None:
    db_path = tmp_path / "videos.db"
    SQLiteMigrator(str(db_path), str(MIGRATIONS_DIR)).run_migrations()

    conn = sqlite3.connect(db_path)
    try:
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO video_assets (id, display_name, original_filename, content_type,"
                " size_bytes, sha256, status, storage_key, created_at)"
                " VALUES ('x', 'n', 'n.mp4', 'video/mp4', 1, 'h', 'archived', 'k', 't')"
            )
    finally:
        conn.close()


def test_down_half_is_not_applied(tmp_path: Path) -> None:
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_t.sql").write_text(
        "-- Up\nCREATE TABLE t (id INTEGER);\n\n-- Down\nDROP TABLE t;\n"
    )
    db_path = tmp_path / "t.db"

    SQLiteMigrator(str(db_path), str(migrations)).run_migrations()

    assert "t" in _tables(db_path)


def test_broken_migration_raises(tmp_path: Path) -> None:
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_bad.sql").write_text("CREATE TABLE (;")

    with pytest.raises(RuntimeError, match="0001_bad.sql"):
        SQLiteMigrator(str(tmp_path / "t.db"), str(migrations)).run_migrations()


def test_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        SQLiteMigrator(str(tmp_path / "t.db"), str(tmp_path / "nope")).run_migrations()
