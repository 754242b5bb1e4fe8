from collections.abc import Callable, Iterator
from uuid import uuid4

import pytest

from src.adapters.auth.crypto import StaticTokenVerifier
from src.adapters.clock import FixedClock
from src.adapters.memory_repo import InMemoryVideoAssetRepo
from src.adapters.memory_storage import InMemoryObjectStore
from src.components.registry import AssetRegistry, RegisterAssetInput
from src.components.upload import UploadTransport
from src.domain.entities import VideoAsset
from src.domain.state import STAGING_PREFIX

UPLOAD_SECRET = "test-upload-secret"
VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 4096


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore(public_base_url="https://media.example.test")


@pytest.fixture
def repo() -> InMemoryVideoAssetRepo:
    return InMemoryVideoAssetRepo()


@pytest.fixture
def registry(repo, store, clock) -> AssetRegistry:
    return AssetRegistry(repo, store, clock)


@pytest.fixture
def verifier() -> StaticTokenVerifier:
    return StaticTokenVerifier(UPLOAD_SECRET)


@pytest.fixture
def transport(store, registry, verifier) -> Iterator[UploadTransport]:
    t = UploadTransport(store, registry, verifier, max_workers=4)
    yield t
    t.shutdown()


@pytest.fixture
def make_staged(registry, store, clock) -> Callable[..., VideoAsset]:
    """
    Put bytes under a fresh staging key and register them, bypassing transport.

    Each call advances the clock one second so list ordering is deterministic.
    """

    def _make(
        display_name: str = "Intro Reel",
        filename: str = "intro.mp4",
        data: bytes = VIDEO_BYTES,
        content_type: str = "video/mp4",
    ) -> VideoAsset:
        key = f"{STAGING_PREFIX}{uuid4()}-{filename}"
        stored = store.put(key, data, content_type)
        out = registry.register(
            RegisterAssetInput(
                storage_key=key,
                original_filename=filename,
                content_type=content_type,
                size_bytes=stored.size_bytes,
                sha256=stored.sha256,
                display_name=display_name,
            )
        )
        assert out.success and out.asset is not None
        clock.advance(1)
        return out.asset

    return _make
