"""
Upload component - stream an authenticated upload into the staging namespace.

Flow: authenticate -> validate -> dedup check -> stream to the object store
under a fresh staging key -> register a staged asset.

Invariants:
- I1: nothing is written for a rejected credential or a failed validation
- I2: progress is an integer percent that never regresses; it counts chunks
  the store has taken and reaches 100 only once the asset exists
- I3: a failed or cancelled upload deletes its partial object before the
  result is surfaced
- I4: uploads of distinct files run in parallel and cancel independently
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Condition, Event, Lock
from typing import BinaryIO
from uuid import UUID, uuid4

from src.components.intake import DEFAULT_CONFIG, IntakeConfig, normalize_mime_type, validate
from src.components.registry.models import RegisterAssetInput
from src.core.ports.storage import IntegrityError, StorageError
from src.domain.entities import Principal, VideoAsset
from src.domain.errors import LifecycleError, auth_error, conflict, too_large, transport_error
from src.domain.slugs import sanitize_filename
from src.domain.state import DEFAULT_NAMESPACES, Namespaces

from .models import BeginUploadInput, BeginUploadOutput, UploadResult
from .ports import CredentialVerifierPort, ObjectStorePort, RegistryPort

logger = logging.getLogger(__name__)


class UploadCancelledError(Exception):
    """Raised from inside the byte stream when the caller cancelled."""


class UploadTooLargeError(Exception):
    """Raised from inside the byte stream when more bytes arrive than allowed."""

    def __init__(self, max_bytes: int) -> None:
        self.max_bytes = max_bytes
        super().__init__(f"Upload exceeded {max_bytes} bytes")


def generate_staging_key(
    filename: str,
    namespaces: Namespaces = DEFAULT_NAMESPACES,
    id_factory: Callable[[], UUID] = uuid4,
) -> str:
    """<staging-prefix><random-id>-<sanitized-filename>"""
    return f"{namespaces.staging_prefix}{id_factory()}-{sanitize_filename(filename)}"


def percent_for(bytes_sent: int, total_bytes: int) -> int:
    """Integer progress, held at 99 until the upload is registered."""
    if total_bytes <= 0:
        return 0
    return min(99, (bytes_sent * 100) // total_bytes)


class UploadHandle:
    """
    Caller's view of one in-flight upload.

    Exposes the progress stream, cancellation and the final UploadResult.
    """

    def __init__(self, upload_id: UUID, storage_key: str | None) -> None:
        self.upload_id = upload_id
        self.storage_key = storage_key
        self._cancel = Event()
        self._cond = Condition()
        self._percent = 0
        self._finished = False
        self._future: Future[UploadResult] | None = None

    @classmethod
    def completed(cls, result: UploadResult) -> UploadHandle:
        """A handle whose outcome was known before any byte moved."""
        handle = cls(uuid4(), result.storage_key)
        future: Future[UploadResult] = Future()
        future.set_result(result)
        handle._future = future
        handle._finish(100 if result.success else 0)
        return handle

    @property
    def percent(self) -> int:
        with self._cond:
            return self._percent

    @property
    def done(self) -> bool:
        with self._cond:
            return self._finished

    @property
    def cancel_requested(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> bool:
        """Request cancellation. Returns False if the upload already finished."""
        if self.done:
            return False
        self._cancel.set()
        logger.info("Cancellation requested for upload %s", self.upload_id)
        return True

    def result(self, timeout: float | None = None) -> UploadResult:
        """Block until the upload finishes and return its outcome."""
        assert self._future is not None
        return self._future.result(timeout=timeout)

    def iter_progress(self, timeout: float | None = None) -> Iterator[int]:
        """
        Yield each new percent value until the upload finishes.

        Values strictly increase. The stream ends when the upload finishes,
        or after timeout seconds without a new value.
        """
        last = 0
        while True:
            with self._cond:
                if self._percent == last and not self._finished:
                    self._cond.wait(timeout)
                current = self._percent
                finished = self._finished
            if current > last:
                last = current
                yield current
            elif not finished:
                return  # timed out
            if finished:
                return

    def _advance(self, percent: int) -> None:
        with self._cond:
            if percent > self._percent:
                self._percent = percent
                self._cond.notify_all()

    def _finish(self, percent: int | None = None) -> None:
        with self._cond:
            if percent is not None and percent > self._percent:
                self._percent = percent
            self._finished = True
            self._cond.notify_all()


class _ProgressReader:
    """File-like wrapper the store reads from: counts, hashes, enforces limits."""

    def __init__(
        self,
        stream: BinaryIO,
        handle: UploadHandle,
        declared_size: int,
        max_bytes: int,
    ) -> None:
        self._stream = stream
        self._handle = handle
        self._declared = declared_size
        self._max = max_bytes
        self._hasher = hashlib.sha256()
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        if self._handle.cancel_requested:
            raise UploadCancelledError()
        # The store asks for more only once it has taken the previous chunk.
        self._handle._advance(percent_for(self.bytes_read, self._declared))
        chunk = self._stream.read(size)
        if chunk:
            self.bytes_read += len(chunk)
            if self.bytes_read > self._max:
                raise UploadTooLargeError(self._max)
            self._hasher.update(chunk)
        return chunk

    @property
    def sha256(self) -> str:
        return self._hasher.hexdigest()


class UploadTransport:
    """Runs uploads on a bounded worker pool against one store and registry."""

    def __init__(
        self,
        store: ObjectStorePort,
        registry: RegistryPort,
        verifier: CredentialVerifierPort,
        *,
        intake_config: IntakeConfig = DEFAULT_CONFIG,
        namespaces: Namespaces = DEFAULT_NAMESPACES,
        max_workers: int = 4,
        id_factory: Callable[[], UUID] = uuid4,
    ) -> None:
        self._store = store
        self._registry = registry
        self._verifier = verifier
        self._config = intake_config
        self._ns = namespaces
        self._id_factory = id_factory
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="upload")
        self._lock = Lock()
        self._pending_tokens: set[str] = set()
        self._active: dict[UUID, UploadHandle] = {}

    def begin_upload(self, inp: BeginUploadInput) -> BeginUploadOutput:
        principal = self._verifier.verify(inp.credential)
        if principal is None:
            return BeginUploadOutput(errors=[auth_error()], success=False)

        validation = validate(inp.content_type, inp.size_bytes, self._config)
        if not validation.ok:
            return BeginUploadOutput(errors=validation.errors, success=False)

        token = (inp.dedup_token or "").strip() or None
        if token:
            existing = self._registry.find_by_dedup_token(token)
            if existing is not None:
                return self._duplicate_or_conflict(existing, inp.size_bytes, inp.expected_sha256)
            with self._lock:
                if token in self._pending_tokens:
                    return BeginUploadOutput(
                        errors=[conflict("An upload with this dedup token is in flight", field="dedup_token")],
                        success=False,
                    )
                self._pending_tokens.add(token)

        key = generate_staging_key(inp.filename, self._ns, self._id_factory)
        handle = UploadHandle(uuid4(), key)
        with self._lock:
            self._active[handle.upload_id] = handle
        try:
            handle._future = self._executor.submit(self._run, handle, inp, principal, token)
        except RuntimeError:
            self._forget(handle, token)
            raise
        logger.info("Upload %s started: %s (%s bytes declared)", handle.upload_id, key, inp.size_bytes)
        return BeginUploadOutput(handle=handle)

    def upload(self, inp: BeginUploadInput, timeout: float | None = None) -> UploadResult:
        """begin_upload and wait for the result."""
        out = self.begin_upload(inp)
        if out.handle is None:
            return UploadResult(errors=out.errors, success=False)
        return out.handle.result(timeout)

    def active_keys(self) -> frozenset[str]:
        """Storage keys of uploads still streaming."""
        with self._lock:
            return frozenset(h.storage_key for h in self._active.values() if h.storage_key)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            handles = list(self._active.values())
        if not wait:
            for handle in handles:
                handle.cancel()
        self._executor.shutdown(wait=wait)

    def _duplicate_or_conflict(
        self, existing: VideoAsset, size_bytes: int, sha256: str | None
    ) -> BeginUploadOutput:
        if existing.size_bytes != size_bytes or (sha256 and sha256 != existing.sha256):
            return BeginUploadOutput(
                errors=[conflict("Dedup token was used for a different file", field="dedup_token")],
                success=False,
            )
        logger.info("Duplicate upload for asset %s ignored", existing.id)
        result = UploadResult(
            asset_id=existing.id,
            storage_key=existing.storage_key,
            size_bytes=existing.size_bytes,
            sha256=existing.sha256,
            is_duplicate=True,
        )
        return BeginUploadOutput(handle=UploadHandle.completed(result))

    def _run(
        self,
        handle: UploadHandle,
        inp: BeginUploadInput,
        principal: Principal,
        token: str | None,
    ) -> UploadResult:
        try:
            result = self._stream_and_register(handle, inp, principal, token)
        except BaseException:
            handle._finish()
            raise
        finally:
            self._forget(handle, token)
        handle._finish(100 if result.success else None)
        return result

    def _stream_and_register(
        self,
        handle: UploadHandle,
        inp: BeginUploadInput,
        principal: Principal,
        token: str | None,
    ) -> UploadResult:
        key = handle.storage_key
        assert key is not None
        with self._registry.hold_key(key) as held:
            if not held:
                return self._failed(conflict(f"Storage key {key} is in use", field="storage_key"))
            return self._write_and_register(handle, inp, principal, token, key)

    def _write_and_register(
        self,
        handle: UploadHandle,
        inp: BeginUploadInput,
        principal: Principal,
        token: str | None,
        key: str,
    ) -> UploadResult:
        content_type = normalize_mime_type(inp.content_type)
        reader = _ProgressReader(inp.file, handle, inp.size_bytes, self._config.max_upload_bytes)

        try:
            stored = self._store.put(
                key, reader, content_type, expected_sha256=inp.expected_sha256  # type: ignore[arg-type]
            )
        except UploadCancelledError:
            self._discard(key)
            logger.info("Upload %s cancelled after %s bytes", handle.upload_id, reader.bytes_read)
            return self._failed(LifecycleError(code="cancelled", message="Upload cancelled", field="file"))
        except UploadTooLargeError as e:
            self._discard(key)
            return self._failed(too_large(reader.bytes_read, e.max_bytes))
        except IntegrityError as e:
            self._discard(key)
            return self._failed(transport_error(str(e), retryable=False))
        except StorageError as e:
            self._discard(key)
            logger.warning("Upload %s failed: %s", handle.upload_id, e)
            return self._failed(transport_error(f"Upload failed: {e}"))
        except BaseException:
            self._discard(key)
            raise

        if stored.size_bytes <= 0:
            self._discard(key)
            return self._failed(LifecycleError(code="empty_file", message="File is empty", field="file"))

        handle._advance(percent_for(stored.size_bytes, inp.size_bytes))

        try:
            registered = self._registry.register(
                RegisterAssetInput(
                    storage_key=key,
                    original_filename=inp.filename,
                    content_type=content_type,
                    size_bytes=stored.size_bytes,
                    sha256=stored.sha256 or reader.sha256,
                    display_name=inp.display_name,
                    dedup_token=token,
                    uploaded_by=principal.subject,
                )
            )
        except Exception as e:
            logger.exception("Upload %s: registering %s failed", handle.upload_id, key)
            self._discard(key)
            return self._failed(transport_error(f"Registry save failed: {e}"))

        if not registered.success or registered.asset is None:
            self._discard(key)
            return UploadResult(errors=registered.errors, success=False)

        asset = registered.asset
        if registered.is_duplicate:
            # Another submission with this token registered first.
            self._discard(key)
            out = self._duplicate_or_conflict(asset, stored.size_bytes, stored.sha256)
            if out.handle is None:
                return UploadResult(errors=out.errors, success=False)
            return out.handle.result()

        logger.info("Upload %s registered as asset %s", handle.upload_id, asset.id)
        return UploadResult(
            asset_id=asset.id,
            storage_key=asset.storage_key,
            size_bytes=asset.size_bytes,
            sha256=asset.sha256,
        )

    def _failed(self, error: LifecycleError) -> UploadResult:
        return UploadResult(errors=[error], success=False)

    def _discard(self, key: str) -> None:
        """Delete a partial or unwanted staging object."""
        try:
            self._store.delete(key)
        except StorageError:
            logger.warning("Could not delete partial object %s; reconcile will remove it", key, exc_info=True)

    def _forget(self, handle: UploadHandle, token: str | None) -> None:
        with self._lock:
            self._active.pop(handle.upload_id, None)
            if token:
                self._pending_tokens.discard(token)
