"""
Local Filesystem Storage Adapter.

Implements ObjectStorePort using the local filesystem.
Used for development and single-server deployments.

Directory structure: {base_path}/{key}.bin + {base_path}/{key}.meta.json

Invariants:
- put() writes to a hidden temp file and renames it into place, so a failed or
  cancelled upload never leaves a visible object
- move() uses os.replace (atomic within one filesystem)
"""

from __future__ import annotations

import builtins
import hashlib
import json
import logging
import os
from pathlib import Path
from typing import BinaryIO
from uuid import uuid4

from src.core.ports.storage import (
    DEFAULT_CHUNK_SIZE,
    IntegrityError,
    KeyExistsError,
    KeyNotFoundError,
    StorageError,
    StoredObject,
    compute_etag,
    iter_chunks,
)

logger = logging.getLogger(__name__)

DATA_SUFFIX = ".bin"
META_SUFFIX = ".meta.json"


class LocalFileStorage:
    """
    Local filesystem implementation of ObjectStorePort.

    Example key: "public/abc-clip.mp4" -> {base_path}/public/abc-clip.mp4.bin + .meta.json
    """

    def __init__(
        self,
        base_path: str | Path,
        *,
        create_dirs: bool = True,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        public_base_url: str | None = None,
    ) -> None:
        """
        Initialize local file storage.

        Args:
            base_path: Root directory for storage
            create_dirs: Whether to create the root if it doesn't exist
            chunk_size: Read size used when streaming uploads
            public_base_url: Base URL a static file server exposes base_path under
        """
        self.base_path = Path(base_path).resolve()
        self.chunk_size = chunk_size
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

        if create_dirs:
            self.base_path.mkdir(parents=True, exist_ok=True)

    def _key_to_paths(self, key: str) -> tuple[Path, Path]:
        """Convert storage key to file paths (data and metadata)."""
        safe_key = key.lstrip("/")
        data_path = (self.base_path / f"{safe_key}{DATA_SUFFIX}").resolve()
        if not data_path.is_relative_to(self.base_path):
            raise StorageError(f"Key escapes storage root: {key}")
        meta_path = data_path.with_name(data_path.name[: -len(DATA_SUFFIX)] + META_SUFFIX)
        return data_path, meta_path

    def put(
        self,
        key: str,
        stream: bytes | BinaryIO,
        content_type: str,
        *,
        expected_sha256: str | None = None,
    ) -> StoredObject:
        """
        Stream object bytes under the given key.

        Raises KeyExistsError if key already exists.
        """
        data_path, meta_path = self._key_to_paths(key)

        if data_path.exists():
            raise KeyExistsError(key)

        data_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = data_path.with_name(f".{data_path.name}.{uuid4().hex}.part")

        hasher = hashlib.sha256()
        size = 0
        try:
            with open(tmp_path, "wb") as f:
                for chunk in iter_chunks(stream, self.chunk_size):
                    f.write(chunk)
                    hasher.update(chunk)
                    size += len(chunk)

            sha256_hex = hasher.hexdigest()
            if expected_sha256 and sha256_hex != expected_sha256:
                raise IntegrityError(expected_sha256, sha256_hex)

            metadata = StoredObject(
                key=key,
                size_bytes=size,
                content_type=content_type,
                sha256=sha256_hex,
                etag=compute_etag(sha256_hex),
            )
            self._write_metadata(meta_path, metadata)
            os.replace(tmp_path, data_path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            if not data_path.exists():
                meta_path.unlink(missing_ok=True)
            raise

        return metadata

    def get(self, key: str) -> tuple[bytes, StoredObject]:
        """Retrieve object bytes by key, verifying integrity on read."""
        data_path, meta_path = self._key_to_paths(key)

        if not data_path.exists():
            raise KeyNotFoundError(key)

        with open(data_path, "rb") as f:
            data = f.read()

        metadata = self._load_metadata(meta_path, key)

        actual_sha256 = hashlib.sha256(data).hexdigest()
        if actual_sha256 != metadata.sha256:
            raise IntegrityError(metadata.sha256, actual_sha256)

        return data, metadata

    def get_stream(self, key: str) -> tuple[BinaryIO, StoredObject]:
        """Get a streaming handle to object bytes."""
        data_path, meta_path = self._key_to_paths(key)

        if not data_path.exists():
            raise KeyNotFoundError(key)

        metadata = self._load_metadata(meta_path, key)

        # Caller is responsible for closing
        return open(data_path, "rb"), metadata

    def exists(self, key: str) -> bool:
        """Check if key exists in storage."""
        data_path, _ = self._key_to_paths(key)
        return data_path.exists()

    def delete(self, key: str) -> bool:
        """Delete object by key."""
        data_path, meta_path = self._key_to_paths(key)

        if not data_path.exists():
            return False

        data_path.unlink()
        meta_path.unlink(missing_ok=True)
        return True

    def move(self, src_key: str, dst_key: str) -> StoredObject:
        """Move an object within the storage root."""
        src_data, src_meta = self._key_to_paths(src_key)
        dst_data, dst_meta = self._key_to_paths(dst_key)

        if not src_data.exists():
            raise KeyNotFoundError(src_key)
        if dst_data.exists():
            raise KeyExistsError(dst_key)

        metadata = self._load_metadata(src_meta, src_key)
        moved = StoredObject(
            key=dst_key,
            size_bytes=metadata.size_bytes,
            content_type=metadata.content_type,
            sha256=metadata.sha256,
            etag=metadata.etag,
        )

        dst_data.parent.mkdir(parents=True, exist_ok=True)
        self._write_metadata(dst_meta, moved)
        try:
            os.replace(src_data, dst_data)
        except OSError as e:
            dst_meta.unlink(missing_ok=True)
            raise StorageError(f"Move {src_key} -> {dst_key} failed: {e}") from e

        src_meta.unlink(missing_ok=True)
        return moved

    def list(self, prefix: str) -> builtins.list[StoredObject]:
        """List objects whose key starts with prefix."""
        results: builtins.list[StoredObject] = []
        for data_path in self.base_path.rglob(f"*{DATA_SUFFIX}"):
            if data_path.name.startswith("."):
                continue
            rel = data_path.relative_to(self.base_path).as_posix()
            key = rel[: -len(DATA_SUFFIX)]
            if not key.startswith(prefix):
                continue
            meta_path = data_path.with_name(data_path.name[: -len(DATA_SUFFIX)] + META_SUFFIX)
            results.append(self._load_metadata(meta_path, key))
        results.sort(key=lambda o: o.key)
        return results

    def get_metadata(self, key: str) -> StoredObject | None:
        """Get object metadata without fetching bytes."""
        data_path, meta_path = self._key_to_paths(key)

        if not data_path.exists():
            return None

        return self._load_metadata(meta_path, key)

    def get_public_url(self, key: str) -> str | None:
        """Public URL when a static file server fronts base_path."""
        if self.public_base_url is None:
            return None
        return f"{self.public_base_url}/{key}"

    def _write_metadata(self, meta_path: Path, metadata: StoredObject) -> None:
        with open(meta_path, "w") as f:
            json.dump(
                {
                    "key": metadata.key,
                    "size_bytes": metadata.size_bytes,
                    "content_type": metadata.content_type,
                    "sha256": metadata.sha256,
                    "etag": metadata.etag,
                },
                f,
            )

    def _load_metadata(self, meta_path: Path, key: str) -> StoredObject:
        """Load metadata from JSON file, rebuilding it from the bytes if missing."""
        if not meta_path.exists():
            data_path = meta_path.with_name(meta_path.name[: -len(META_SUFFIX)] + DATA_SUFFIX)
            hasher = hashlib.sha256()
            size = 0
            with open(data_path, "rb") as f:
                for chunk in iter_chunks(f, self.chunk_size):
                    hasher.update(chunk)
                    size += len(chunk)
            logger.warning("Metadata missing for %s; rebuilt from object bytes", key)
            sha256_hex = hasher.hexdigest()
            return StoredObject(
                key=key,
                size_bytes=size,
                content_type="application/octet-stream",
                sha256=sha256_hex,
                etag=compute_etag(sha256_hex),
            )

        with open(meta_path) as f:
            meta = json.load(f)

        return StoredObject(
            key=key,
            size_bytes=meta["size_bytes"],
            content_type=meta["content_type"],
            sha256=meta["sha256"],
            etag=meta["etag"],
        )


def create_local_storage(
    base_path: str | Path | None = None,
    *,
    env_var: str = "ODC_STORAGE_PATH",
    default_path: str = "./data/objects",
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    public_base_url: str | None = None,
) -> LocalFileStorage:
    """
    Factory function to create LocalFileStorage from config.

    Args:
        base_path: Explicit base path (overrides env var)
        env_var: Environment variable name for storage path
        default_path: Default path if not configured
        chunk_size: Streaming read size
        public_base_url: Base URL for get_public_url()

    Returns:
        Configured LocalFileStorage instance
    """
    if base_path is None:
        base_path = os.environ.get(env_var, default_path)

    return LocalFileStorage(base_path, chunk_size=chunk_size, public_base_url=public_base_url)
