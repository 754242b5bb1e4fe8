"""
TimeBoundStore tests: slow store calls surface as StorageTimeoutError.
"""

from __future__ import annotations

import threading

import pytest

from src.adapters.memory_storage import InMemoryObjectStore
from src.adapters.timebound_storage import TimeBoundStore
from src.core.ports.storage import StorageTimeoutError, StoredObject


class HangingMoveStore(InMemoryObjectStore):
    """Memory store whose move() blocks until released."""

    def __init__(self) -> None:
        super().__init__()
        self.release = threading.Event()

    def move(self, src_key: str, dst_key: str) -> StoredObject:
        self.release.wait(5)
        return super().move(src_key, dst_key)


@pytest.fixture
def inner() -> HangingMoveStore:
    return HangingMoveStore()


@pytest.fixture
def bounded(inner: HangingMoveStore):
    store = TimeBoundStore(inner, call_timeout_seconds=0.05)
    yield store
    inner.release.set()
    store.shutdown()


def test_fast_calls_pass_through(bounded: TimeBoundStore) -> None:
    bounded.put("public/a.mp4", b"abc", "video/mp4")

    assert bounded.exists("public/a.mp4")
    assert bounded.get("public/a.mp4")[0] == b"abc"
    assert [o.key for o in bounded.list("public/")] == ["public/a.mp4"]
    assert bounded.delete("public/a.mp4") is True


def test_slow_call_times_out(bounded: TimeBoundStore, inner: HangingMoveStore) -> None:
    bounded.put("private/uploads-temp/a.mp4", b"abc", "video/mp4")

    with pytest.raises(StorageTimeoutError) as exc:
        bounded.move("private/uploads-temp/a.mp4", "public/a.mp4")

    assert exc.value.operation == "move"
    assert exc.value.timeout_seconds == 0.05


def test_public_url_is_not_bounded() -> None:
    store = TimeBoundStore(InMemoryObjectStore(public_base_url="https://cdn.test"))

    assert store.get_public_url("public/x.mp4") == "https://cdn.test/public/x.mp4"
    store.shutdown()
