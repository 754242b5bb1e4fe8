"""
Object Storage Port.

Protocol-based interface for the key-addressed blob store that holds video
bytes. Implementations: in-memory (tests), local filesystem (single server),
S3-compatible (production).

Invariants:
- put() streams from a file-like object; a failed put leaves no object behind
- move() is presented as atomic: after it returns, the object exists only at
  the destination key; after it raises, the object exists only at the source
- Keys once written cannot be overwritten by put()
"""

from __future__ import annotations

import builtins
from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO, Protocol

DEFAULT_CHUNK_SIZE = 1024 * 1024


@dataclass
class StoredObject:
    """Metadata for a stored object."""

    key: str
    size_bytes: int
    content_type: str
    sha256: str
    etag: str


class ObjectStorePort(Protocol):
    """
    Object storage port interface.

    Every call is treated as blocking I/O. Callers bound them with timeouts
    (see ``src.adapters.timebound_storage.TimeBoundStore``).
    """

    def put(
        self,
        key: str,
        stream: bytes | BinaryIO,
        content_type: str,
        *,
        expected_sha256: str | None = None,
    ) -> StoredObject:
        """
        Store object bytes under the given key.

        Reads ``stream`` in chunks until exhausted; the whole payload is never
        held in memory by the port contract.

        Raises:
            KeyExistsError: If key already exists
            IntegrityError: If expected_sha256 doesn't match actual hash
            StorageError: On any backend failure (no partial object remains)
        """
        ...

    def get(self, key: str) -> tuple[bytes, StoredObject]:
        """
        Retrieve object bytes by key.

        Raises:
            KeyNotFoundError: If key doesn't exist
        """
        ...

    def get_stream(self, key: str) -> tuple[BinaryIO, StoredObject]:
        """
        Get a streaming handle to object bytes. Caller closes the handle.

        Raises:
            KeyNotFoundError: If key doesn't exist
        """
        ...

    def exists(self, key: str) -> bool:
        """Check if key exists in storage."""
        ...

    def delete(self, key: str) -> bool:
        """
        Delete object by key.

        Returns:
            True if deleted, False if key didn't exist
        """
        ...

    def move(self, src_key: str, dst_key: str) -> StoredObject:
        """
        Move an object to a new key.

        Raises:
            KeyNotFoundError: If src_key doesn't exist
            KeyExistsError: If dst_key already exists
            StorageError: If the move failed (source left intact)
        """
        ...

    def list(self, prefix: str) -> builtins.list[StoredObject]:
        """List objects whose key starts with prefix, sorted by key."""
        ...

    def get_metadata(self, key: str) -> StoredObject | None:
        """Get object metadata without fetching bytes."""
        ...

    def get_public_url(self, key: str) -> str | None:
        """
        Get public URL for the object if the backend serves one.

        Returns:
            Public URL or None if not applicable
        """
        ...


def iter_chunks(stream: bytes | BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """Yield successive chunks from bytes or a file-like object."""
    if isinstance(stream, bytes | bytearray):
        for start in range(0, len(stream), chunk_size):
            yield bytes(stream[start : start + chunk_size])
        return

    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        yield chunk


def compute_etag(sha256_hex: str) -> str:
    """Compute ETag from sha256 hash."""
    return f'"{sha256_hex[:32]}"'


class StorageError(Exception):
    """Base class for storage errors."""


class KeyExistsError(StorageError):
    """Raised when attempting to write to an existing key."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Key already exists: {key}")


class KeyNotFoundError(StorageError):
    """Raised when key doesn't exist."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Key not found: {key}")


class IntegrityError(StorageError):
    """Raised when data integrity check fails."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Integrity check failed: expected {expected}, got {actual}")


class StorageTimeoutError(StorageError):
    """Raised when a store call exceeds its time bound."""

    def __init__(self, operation: str, timeout_seconds: float) -> None:
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Storage {operation} timed out after {timeout_seconds:.1f}s")
