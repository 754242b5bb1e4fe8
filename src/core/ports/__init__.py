# odc-video-service - Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.storage import (
    DEFAULT_CHUNK_SIZE,
    IntegrityError,
    KeyExistsError,
    KeyNotFoundError,
    ObjectStorePort,
    StorageError,
    StorageTimeoutError,
    StoredObject,
    compute_etag,
    iter_chunks,
)

__all__ = [
    # Object storage
    "DEFAULT_CHUNK_SIZE",
    "ObjectStorePort",
    "StoredObject",
    "StorageError",
    "KeyExistsError",
    "KeyNotFoundError",
    "IntegrityError",
    "StorageTimeoutError",
    "compute_etag",
    "iter_chunks",
]
