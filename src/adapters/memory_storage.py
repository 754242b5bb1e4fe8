"""
In-memory object store.

Implements ObjectStorePort with a dict guarded by a lock. Used by tests and
the ``memory`` storage backend; objects vanish with the process.
"""

from __future__ import annotations

import builtins
import hashlib
from io import BytesIO
from threading import Lock
from typing import BinaryIO

from src.core.ports.storage import (
    DEFAULT_CHUNK_SIZE,
    IntegrityError,
    KeyExistsError,
    KeyNotFoundError,
    StoredObject,
    compute_etag,
    iter_chunks,
)


class InMemoryObjectStore:
    """Dict-backed object store; put() only publishes the key once fully read."""

    def __init__(
        self,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        public_base_url: str | None = None,
    ) -> None:
        self._objects: dict[str, tuple[bytes, StoredObject]] = {}
        self._lock = Lock()
        self.chunk_size = chunk_size
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    def put(
        self,
        key: str,
        stream: bytes | BinaryIO,
        content_type: str,
        *,
        expected_sha256: str | None = None,
    ) -> StoredObject:
        with self._lock:
            if key in self._objects:
                raise KeyExistsError(key)

        buffer = BytesIO()
        hasher = hashlib.sha256()
        for chunk in iter_chunks(stream, self.chunk_size):
            buffer.write(chunk)
            hasher.update(chunk)

        sha256_hex = hasher.hexdigest()
        if expected_sha256 and sha256_hex != expected_sha256:
            raise IntegrityError(expected_sha256, sha256_hex)

        data = buffer.getvalue()
        metadata = StoredObject(
            key=key,
            size_bytes=len(data),
            content_type=content_type,
            sha256=sha256_hex,
            etag=compute_etag(sha256_hex),
        )
        with self._lock:
            if key in self._objects:
                raise KeyExistsError(key)
            self._objects[key] = (data, metadata)
        return metadata

    def get(self, key: str) -> tuple[bytes, StoredObject]:
        with self._lock:
            if key not in self._objects:
                raise KeyNotFoundError(key)
            return self._objects[key]

    def get_stream(self, key: str) -> tuple[BinaryIO, StoredObject]:
        data, metadata = self.get(key)
        return BytesIO(data), metadata

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._objects

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._objects.pop(key, None) is not None

    def move(self, src_key: str, dst_key: str) -> StoredObject:
        with self._lock:
            if src_key not in self._objects:
                raise KeyNotFoundError(src_key)
            if dst_key in self._objects:
                raise KeyExistsError(dst_key)
            data, metadata = self._objects.pop(src_key)
            moved = StoredObject(
                key=dst_key,
                size_bytes=metadata.size_bytes,
                content_type=metadata.content_type,
                sha256=metadata.sha256,
                etag=metadata.etag,
            )
            self._objects[dst_key] = (data, moved)
            return moved

    def list(self, prefix: str) -> builtins.list[StoredObject]:
        with self._lock:
            return [meta for key, (_, meta) in sorted(self._objects.items()) if key.startswith(prefix)]

    def get_metadata(self, key: str) -> StoredObject | None:
        with self._lock:
            entry = self._objects.get(key)
        return entry[1] if entry else None

    def get_public_url(self, key: str) -> str | None:
        if self.public_base_url is None:
            return None
        return f"{self.public_base_url}/{key}"

    def keys(self) -> builtins.list[str]:
        """All stored keys - useful for testing."""
        with self._lock:
            return sorted(self._objects)

    def clear(self) -> None:
        """Drop every object - useful for testing."""
        with self._lock:
            self._objects.clear()
