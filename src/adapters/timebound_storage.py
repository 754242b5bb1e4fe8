"""
Time-bounded object store wrapper.

Runs every metadata/mutation call of an ObjectStorePort on a worker pool and
waits at most ``call_timeout_seconds``; a call that overruns raises
StorageTimeoutError so callers never advance state the store hasn't
confirmed. put() is not wrapped: uploads are bounded by cancellation and the
backend's own socket timeouts instead.

A call that timed out may still complete in the background; the registry's
reconcile pass repairs any object it left at an unexpected key.
"""

from __future__ import annotations

import builtins
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, BinaryIO, TypeVar

from src.core.ports.storage import ObjectStorePort, StorageTimeoutError, StoredObject

T = TypeVar("T")


class TimeBoundStore:
    """ObjectStorePort decorator that bounds each call with a timeout."""

    def __init__(
        self,
        inner: ObjectStorePort,
        *,
        call_timeout_seconds: float = 30.0,
        max_workers: int = 8,
    ) -> None:
        self.inner = inner
        self.call_timeout_seconds = call_timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="store-call"
        )

    def _call(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        future = self._executor.submit(fn, *args)
        try:
            return future.result(timeout=self.call_timeout_seconds)
        except FutureTimeoutError as e:
            future.cancel()
            raise StorageTimeoutError(operation, self.call_timeout_seconds) from e

    def put(
        self,
        key: str,
        stream: bytes | BinaryIO,
        content_type: str,
        *,
        expected_sha256: str | None = None,
    ) -> StoredObject:
        return self.inner.put(key, stream, content_type, expected_sha256=expected_sha256)

    def get(self, key: str) -> tuple[bytes, StoredObject]:
        return self._call("get", self.inner.get, key)

    def get_stream(self, key: str) -> tuple[BinaryIO, StoredObject]:
        return self._call("get_stream", self.inner.get_stream, key)

    def exists(self, key: str) -> bool:
        return self._call("exists", self.inner.exists, key)

    def delete(self, key: str) -> bool:
        return self._call("delete", self.inner.delete, key)

    def move(self, src_key: str, dst_key: str) -> StoredObject:
        return self._call("move", self.inner.move, src_key, dst_key)

    def list(self, prefix: str) -> builtins.list[StoredObject]:
        return self._call("list", self.inner.list, prefix)

    def get_metadata(self, key: str) -> StoredObject | None:
        return self._call("get_metadata", self.inner.get_metadata, key)

    def get_public_url(self, key: str) -> str | None:
        return self.inner.get_public_url(key)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
