"""
Regression tests for lifecycle invariants under concurrency and failure.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from io import BytesIO
from threading import Barrier, Event

import pytest

from src.adapters.memory_storage import InMemoryObjectStore
from src.components.playback import PlaybackResolver, ResolveInput
from src.components.registry import (
    AssetRegistry,
    ListAssetsInput,
    PublishInput,
    ReconcileOutput,
    RegisterAssetInput,
    RegisterOutput,
    RemoveInput,
)
from src.components.upload import BeginUploadInput, UploadTransport
from src.core.ports.storage import StoredObject
from src.domain.state import key_matches_status

from tests.conftest import UPLOAD_SECRET, VIDEO_BYTES


class BlockingMoveStore(InMemoryObjectStore):
    """Parks move() until released so a second caller can race it."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = Event()
        self.release = Event()

    def move(self, src_key: str, dst_key: str) -> StoredObject:
        self.entered.set()
        self.release.wait(5)
        return super().move(src_key, dst_key)


class ReconcileAfterMoveStore(InMemoryObjectStore):
    """Runs a reconcile pass between the object move and the registry update."""

    def __init__(self) -> None:
        super().__init__()
        self.registry: AssetRegistry | None = None
        self.reconciled: list[ReconcileOutput] = []

    def move(self, src_key: str, dst_key: str) -> StoredObject:
        moved = super().move(src_key, dst_key)
        registry, self.registry = self.registry, None
        if registry is not None:
            self.reconciled.append(registry.reconcile())
        return moved


class ReconcileBeforeRegisterRegistry(AssetRegistry):
    """Runs a reconcile pass after the upload is written but before it is registered."""

    reconciled: ReconcileOutput | None = None

    def register(self, input_data: RegisterAssetInput) -> RegisterOutput:
        self.reconciled = self.reconcile()
        return super().register(input_data)


def _assert_consistent(registry: AssetRegistry, store) -> None:
    """Every entry's key matches its status and has an object; no object is unreferenced."""
    assets = registry.list(ListAssetsInput()).items
    for asset in assets:
        assert key_matches_status(asset.status, asset.storage_key, registry.namespaces)
        assert store.exists(asset.storage_key)
    referenced = {a.storage_key for a in assets}
    assert set(store.keys()) == referenced


def test_second_mutation_on_same_id_is_refused_while_first_runs(repo, clock, make_staged) -> None:
    store = BlockingMoveStore()
    registry = AssetRegistry(repo, store, clock)
    asset = make_staged()
    # make_staged wrote through the conftest store; copy the object over.
    store.put(asset.storage_key, b"clip", asset.content_type)

    with ThreadPoolExecutor(max_workers=1) as pool:
        publishing = pool.submit(registry.publish, PublishInput(asset_id=asset.id))
        assert store.entered.wait(5)

        second_publish = registry.publish(PublishInput(asset_id=asset.id))
        remove = registry.remove(RemoveInput(asset_id=asset.id))

        store.release.set()
        first = publishing.result(timeout=5)

    assert first.success
    assert second_publish.errors[0].code == "conflict"
    assert remove.errors[0].code == "conflict"
    assert repo.get_by_id(asset.id).status == "published"


def test_mutations_on_different_ids_do_not_block(repo, clock, make_staged) -> None:
    store = BlockingMoveStore()
    registry = AssetRegistry(repo, store, clock)
    slow, fast = make_staged("Slow", "slow.mp4"), make_staged("Fast", "fast.mp4")
    store.put(slow.storage_key, b"s", slow.content_type)
    store.put(fast.storage_key, b"f", fast.content_type)

    with ThreadPoolExecutor(max_workers=1) as pool:
        publishing = pool.submit(registry.publish, PublishInput(asset_id=slow.id))
        assert store.entered.wait(5)

        removed = registry.remove(RemoveInput(asset_id=fast.id))

        store.release.set()
        assert publishing.result(timeout=5).success

    assert removed.removed


@pytest.mark.parametrize("round_", range(5))
def test_racing_publish_and_remove_leave_consistent_state(
    registry, store, make_staged, round_
) -> None:
    asset = make_staged()
    barrier = Barrier(6)

    def _publish():
        barrier.wait()
        return registry.publish(PublishInput(asset_id=asset.id))

    def _remove():
        barrier.wait()
        return registry.remove(RemoveInput(asset_id=asset.id))

    with ThreadPoolExecutor(max_workers=6) as pool:
        futures = [pool.submit(_publish) for _ in range(3)]
        futures += [pool.submit(_remove) for _ in range(3)]
        results = [f.result(timeout=5) for f in futures]

    for out in results:
        if not out.success:
            assert out.errors[0].code in ("conflict", "not_found")
    assert sum(1 for out in results[:3] if out.success) <= 1

    _assert_consistent(registry, store)


def test_resolve_never_sees_a_removing_asset(registry, repo, make_staged) -> None:
    asset = make_staged("Promo", "promo.mp4")
    published = registry.publish(PublishInput(asset_id=asset.id)).asset
    resolver = PlaybackResolver(registry, "https://cdn.test")
    assert resolver.resolve(ResolveInput(slug="promo")).success

    repo.save(published.model_copy(update={"status": "removing"}))

    out = resolver.resolve(ResolveInput(slug="promo"))
    assert out.errors[0].code == "not_found"
    assert registry.publish(PublishInput(asset_id=asset.id)).errors[0].code == "conflict"


def test_full_cycle_keeps_store_and_registry_in_step(registry, store, make_staged) -> None:
    a = make_staged("A", "a.mp4")
    b = make_staged("B", "b.mp4")
    _assert_consistent(registry, store)

    registry.publish(PublishInput(asset_id=a.id))
    _assert_consistent(registry, store)

    registry.remove(RemoveInput(asset_id=a.id))
    registry.remove(RemoveInput(asset_id=b.id))
    _assert_consistent(registry, store)
    assert store.keys() == []


def test_reconcile_during_publish_keeps_the_moved_object(repo, clock, make_staged) -> None:
    store = ReconcileAfterMoveStore()
    registry = AssetRegistry(repo, store, clock)
    asset = make_staged()
    store.put(asset.storage_key, b"clip", asset.content_type)
    store.registry = registry

    out = registry.publish(PublishInput(asset_id=asset.id))

    assert out.success
    assert store.reconciled[0].orphans_deleted == []
    assert store.exists(out.asset.storage_key)
    resolver = PlaybackResolver(registry, "https://cdn.test")
    assert resolver.resolve(ResolveInput(slug="intro-reel")).success
    _assert_consistent(registry, store)


def test_reconcile_spares_an_upload_written_but_not_registered(repo, clock, verifier) -> None:
    store = InMemoryObjectStore()
    registry = ReconcileBeforeRegisterRegistry(repo, store, clock)
    transport = UploadTransport(store, registry, verifier)
    try:
        result = transport.upload(
            BeginUploadInput(
                file=BytesIO(VIDEO_BYTES),
                filename="clip.mp4",
                content_type="video/mp4",
                size_bytes=len(VIDEO_BYTES),
                credential=UPLOAD_SECRET,
            ),
            timeout=5,
        )
    finally:
        transport.shutdown()

    assert result.success
    assert registry.reconciled is not None
    assert registry.reconciled.orphans_deleted == []
    assert store.exists(result.storage_key)
    _assert_consistent(registry, store)


def test_publish_of_a_slug_in_flight_is_refused(repo, clock, make_staged) -> None:
    store = BlockingMoveStore()
    registry = AssetRegistry(repo, store, clock)
    first, second = make_staged("Clip", "a.mp4"), make_staged("Clip", "b.mp4")
    store.put(first.storage_key, b"a", first.content_type)
    store.put(second.storage_key, b"b", second.content_type)

    with ThreadPoolExecutor(max_workers=1) as pool:
        publishing = pool.submit(registry.publish, PublishInput(asset_id=first.id))
        assert store.entered.wait(5)

        racing = registry.publish(PublishInput(asset_id=second.id))

        store.release.set()
        assert publishing.result(timeout=5).success

    assert racing.errors[0].code == "conflict"
    assert racing.errors[0].field == "slug"
    published = registry.list(ListAssetsInput(status="published")).items
    assert [a.id for a in published] == [first.id]
    assert registry.publish(PublishInput(asset_id=second.id)).errors[0].field == "slug"


@pytest.mark.parametrize("round_", range(5))
def test_racing_publishes_of_one_slug_admit_one(registry, make_staged, round_) -> None:
    assets = [make_staged("Clip", f"clip-{i}.mp4") for i in range(4)]
    barrier = Barrier(len(assets))

    def _publish(asset_id):
        barrier.wait()
        return registry.publish(PublishInput(asset_id=asset_id))

    with ThreadPoolExecutor(max_workers=len(assets)) as pool:
        results = list(pool.map(_publish, [a.id for a in assets]))

    assert sum(1 for out in results if out.success) == 1
    for out in results:
        if not out.success:
            assert out.errors[0].code == "conflict"
            assert out.errors[0].field == "slug"
    assert len(registry.list(ListAssetsInput(status="published")).items) == 1
