"""
Registry component - authoritative catalog of video assets and their lifecycle.

Provides register, list/search, publish, remove, probe metadata, dashboard
stats and a crash-repair pass over the object store.

Invariants:
- I1: staged assets live under the staging prefix, published ones under the
  public prefix; a transition that would break the pairing is refused
- I2: at most one publish/remove per asset id is in flight; others get conflict
- I3: the registry only advances after the object store confirmed the change
- I4: a removing asset is never resolvable and never publishable
- I5: remove is idempotent; an unknown id is already removed
- I6: a slug is published by one asset at a time, including concurrent publishes
- I7: reconcile never deletes an object whose key a publish or upload still holds
"""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from threading import Lock
from uuid import UUID

from src.domain.entities import VideoAsset
from src.domain.errors import LifecycleError, conflict, not_found, transport_error
from src.domain.slugs import filename_stem
from src.domain.state import DEFAULT_NAMESPACES, Namespaces, key_matches_status, transition
from src.core.ports.storage import KeyExistsError, KeyNotFoundError, StorageError

from ._guard import InFlightGuard, key_token, slug_token
from .models import (
    AssetListOutput,
    AssetOutput,
    GetAssetInput,
    ListAssetsInput,
    PublishInput,
    PublishOutput,
    ReconcileInput,
    ReconcileOutput,
    RecordProbeInput,
    RegisterAssetInput,
    RegisterOutput,
    RemoveInput,
    RemoveOutput,
    StatsInput,
    StatsOutput,
)
from .ports import ClockPort, ObjectStorePort, VideoAssetRepoPort

logger = logging.getLogger(__name__)

RegistryInput = (
    RegisterAssetInput
    | GetAssetInput
    | ListAssetsInput
    | PublishInput
    | RemoveInput
    | RecordProbeInput
    | StatsInput
    | ReconcileInput
)
RegistryOutput = (
    RegisterOutput
    | AssetOutput
    | AssetListOutput
    | PublishOutput
    | RemoveOutput
    | StatsOutput
    | ReconcileOutput
)


def matches_query(asset: VideoAsset, query: str | None) -> bool:
    """Case-insensitive substring match on display name and original filename."""
    if not query:
        return True
    needle = query.strip().lower()
    if not needle:
        return True
    return needle in asset.display_name.lower() or needle in asset.original_filename.lower()


class AssetRegistry:
    """Component owning every VideoAsset record and its storage object."""

    def __init__(
        self,
        repo: VideoAssetRepoPort,
        store: ObjectStorePort,
        clock: ClockPort,
        namespaces: Namespaces = DEFAULT_NAMESPACES,
    ) -> None:
        self._repo = repo
        self._store = store
        self._clock = clock
        self._ns = namespaces
        self._guard = InFlightGuard()
        self._register_lock = Lock()

    @property
    def namespaces(self) -> Namespaces:
        return self._ns

    def run(self, input_data: RegistryInput) -> RegistryOutput:
        """Main dispatcher - routes to appropriate handler based on input type."""
        if isinstance(input_data, RegisterAssetInput):
            return self.register(input_data)
        elif isinstance(input_data, GetAssetInput):
            return self.get(input_data)
        elif isinstance(input_data, ListAssetsInput):
            return self.list(input_data)
        elif isinstance(input_data, PublishInput):
            return self.publish(input_data)
        elif isinstance(input_data, RemoveInput):
            return self.remove(input_data)
        elif isinstance(input_data, RecordProbeInput):
            return self.record_probe(input_data)
        elif isinstance(input_data, StatsInput):
            return self.stats(input_data)
        elif isinstance(input_data, ReconcileInput):
            return self.reconcile(input_data)
        else:
            raise TypeError(f"Unknown input type: {type(input_data)}")

    # --- Reads ---

    def get(self, input_data: GetAssetInput) -> AssetOutput:
        asset = self._repo.get_by_id(input_data.asset_id)
        if asset is None:
            return AssetOutput(
                errors=[not_found(f"Asset {input_data.asset_id} not found")],
                success=False,
            )
        return AssetOutput(asset=asset)

    def find_by_dedup_token(self, token: str) -> VideoAsset | None:
        return self._repo.get_by_dedup_token(token)

    def find_by_storage_key(self, storage_key: str) -> VideoAsset | None:
        return self._repo.get_by_storage_key(storage_key)

    def hold_key(self, storage_key: str) -> AbstractContextManager[bool]:
        """
        Claim a storage key for an object that is being written but is not
        registered yet. reconcile never deletes an object whose key is held.
        """
        return self._guard.claim(key_token(storage_key))

    def list(self, input_data: ListAssetsInput) -> AssetListOutput:
        """List assets newest first, optionally filtered by status and search query."""
        items = [
            a
            for a in self._repo.list(status=input_data.status)
            if matches_query(a, input_data.query)
        ]
        items.sort(key=lambda a: a.created_at, reverse=True)
        return AssetListOutput(items=items, total=len(items))

    def stats(self, input_data: StatsInput | None = None) -> StatsOutput:
        _ = input_data
        assets = self._repo.list()
        return StatsOutput(
            total=len(assets),
            staged=sum(1 for a in assets if a.status == "staged"),
            published=sum(1 for a in assets if a.status == "published"),
            removing=sum(1 for a in assets if a.status == "removing"),
            total_bytes=sum(a.size_bytes for a in assets),
            published_bytes=sum(a.size_bytes for a in assets if a.status == "published"),
        )

    # --- Writes ---

    def register(self, input_data: RegisterAssetInput) -> RegisterOutput:
        """Catalogue a staged upload. A known dedup token returns the existing asset."""
        if not key_matches_status("staged", input_data.storage_key, self._ns):
            return RegisterOutput(
                errors=[
                    conflict(
                        f"Storage key {input_data.storage_key!r} is not in the staging namespace",
                        field="storage_key",
                    )
                ],
                success=False,
            )

        with self._register_lock:
            if input_data.dedup_token:
                existing = self._repo.get_by_dedup_token(input_data.dedup_token)
                if existing is not None:
                    return RegisterOutput(asset=existing, is_duplicate=True)

            asset = VideoAsset(
                display_name=(input_data.display_name or "").strip()
                or filename_stem(input_data.original_filename),
                original_filename=input_data.original_filename,
                content_type=input_data.content_type,
                size_bytes=input_data.size_bytes,
                sha256=input_data.sha256,
                status="staged",
                storage_key=input_data.storage_key,
                created_at=self._clock.now_utc(),
                dedup_token=input_data.dedup_token,
                uploaded_by=input_data.uploaded_by,
            )
            self._repo.save(asset)

        logger.info("Registered asset %s at %s", asset.id, asset.storage_key)
        return RegisterOutput(asset=asset)

    def publish(self, input_data: PublishInput) -> PublishOutput:
        """Move a staged asset's object to the public namespace, then flip its status."""
        asset_id = input_data.asset_id
        with self._guard.claim(asset_id) as granted:
            if not granted:
                return PublishOutput(
                    errors=[conflict(f"Another operation on asset {asset_id} is in flight")],
                    success=False,
                )

            asset = self._repo.get_by_id(asset_id)
            if asset is None:
                return PublishOutput(
                    errors=[not_found(f"Asset {asset_id} not found")], success=False
                )

            if asset.status != "staged":
                return PublishOutput(
                    errors=[conflict(f"Asset {asset_id} is {asset.status}; only staged assets publish")],
                    success=False,
                )

            try:
                public_key = self._ns.public_key_for(asset.storage_key)
                published = transition(
                    asset,
                    "published",
                    self._clock.now_utc(),
                    storage_key=public_key,
                    namespaces=self._ns,
                )
            except ValueError as e:
                return PublishOutput(errors=[conflict(str(e), field="status")], success=False)

            # The slug and both keys stay held until the entry is saved.
            slug = asset.slug
            with self._guard.claim(
                slug_token(slug), key_token(asset.storage_key), key_token(public_key)
            ) as held:
                if not held:
                    return PublishOutput(
                        errors=[conflict(f"Another publish of slug '{slug}' is in flight", field="slug")],
                        success=False,
                    )
                return self._publish_claimed(asset, published)

    def _publish_claimed(self, asset: VideoAsset, published: VideoAsset) -> PublishOutput:
        slug = asset.slug
        for other in self._repo.list(status="published"):
            if other.id != asset.id and other.slug == slug:
                return PublishOutput(
                    errors=[conflict(f"Slug '{slug}' is already published", field="slug")],
                    success=False,
                )

        public_key = published.storage_key
        try:
            self._store.move(asset.storage_key, public_key)
        except KeyNotFoundError:
            logger.error("Publish %s: staged object %s is missing", asset.id, asset.storage_key)
            return PublishOutput(
                errors=[
                    transport_error(
                        f"Staged object {asset.storage_key} is missing", retryable=False
                    )
                ],
                success=False,
            )
        except KeyExistsError:
            return PublishOutput(
                errors=[
                    transport_error(
                        f"Public key {public_key} is already occupied; run reconcile",
                        retryable=False,
                    )
                ],
                success=False,
            )
        except StorageError as e:
            logger.warning("Publish %s: move failed: %s", asset.id, e)
            return PublishOutput(errors=[transport_error(str(e))], success=False)

        try:
            self._repo.save(published)
        except Exception as e:
            logger.exception("Publish %s: registry save failed, moving object back", asset.id)
            self._move_back(public_key, asset.storage_key)
            return PublishOutput(
                errors=[transport_error(f"Registry save failed: {e}")], success=False
            )

        logger.info("Published asset %s at %s", asset.id, public_key)
        return PublishOutput(asset=published)

    def remove(self, input_data: RemoveInput) -> RemoveOutput:
        """Mark removing, delete the object, then purge the entry."""
        asset_id = input_data.asset_id
        with self._guard.claim(asset_id) as granted:
            if not granted:
                return RemoveOutput(
                    errors=[conflict(f"Another operation on asset {asset_id} is in flight")],
                    success=False,
                )
            return self._remove_claimed(asset_id)

    def _remove_claimed(self, asset_id: UUID) -> RemoveOutput:
        asset = self._repo.get_by_id(asset_id)
        if asset is None:
            return RemoveOutput(removed=False)

        if asset.status != "removing":
            asset = transition(asset, "removing", self._clock.now_utc(), namespaces=self._ns)
            self._repo.save(asset)
            logger.info("Asset %s marked removing", asset.id)

        try:
            self._store.delete(asset.storage_key)
        except StorageError as e:
            logger.warning("Remove %s: object delete failed, entry stays removing: %s", asset.id, e)
            return RemoveOutput(errors=[transport_error(str(e))], success=False)

        self._repo.delete(asset.id)
        logger.info("Removed asset %s (%s)", asset.id, asset.storage_key)
        return RemoveOutput(removed=True)

    def record_probe(self, input_data: RecordProbeInput) -> AssetOutput:
        """Fill duration/resolution once, from the first successful playback probe."""
        asset_id = input_data.asset_id
        with self._guard.claim(asset_id) as granted:
            if not granted:
                return AssetOutput(
                    errors=[conflict(f"Another operation on asset {asset_id} is in flight")],
                    success=False,
                )

            asset = self._repo.get_by_id(asset_id)
            if asset is None or asset.status != "published":
                return AssetOutput(
                    errors=[not_found(f"Published asset {asset_id} not found")],
                    success=False,
                )

            updates: dict[str, object] = {}
            if asset.duration_seconds is None and input_data.duration_seconds is not None:
                updates["duration_seconds"] = input_data.duration_seconds
            if asset.resolution is None and input_data.resolution:
                updates["resolution"] = input_data.resolution
            if not updates:
                return AssetOutput(asset=asset)

            updated = asset.model_copy(update=updates)
            self._repo.save(updated)
            return AssetOutput(asset=updated)

    # --- Repair ---

    def reconcile(self, input_data: ReconcileInput | None = None) -> ReconcileOutput:
        """
        Repair what an interrupted operation left behind.

        - removing entries: retry the object delete and purge
        - staged entries whose object sits at the public key: move it back
        - published entries without an object: reported, never guessed at
        - objects under either prefix that no entry references: deleted
        """
        inp = input_data or ReconcileInput()
        purged: list[UUID] = []
        rolled_back: list[UUID] = []
        missing: list[UUID] = []
        errors: list[LifecycleError] = []

        for asset in self._repo.list():
            with self._guard.claim(asset.id) as granted:
                if not granted:
                    continue
                current = self._repo.get_by_id(asset.id)
                if current is None:
                    continue
                try:
                    if current.status == "removing":
                        out = self._remove_claimed(current.id)
                        errors.extend(out.errors)
                        if out.removed:
                            purged.append(current.id)
                    elif not self._store.exists(current.storage_key):
                        if current.status == "staged" and self._roll_back_publish(current):
                            rolled_back.append(current.id)
                        else:
                            logger.error(
                                "Asset %s (%s) has no object at %s",
                                current.id,
                                current.status,
                                current.storage_key,
                            )
                            missing.append(current.id)
                except StorageError as e:
                    errors.append(transport_error(f"Reconcile {current.id}: {e}"))

        orphans: list[str] = []
        if inp.delete_orphans:
            for prefix in (self._ns.staging_prefix, self._ns.public_prefix):
                try:
                    objects = self._store.list(prefix)
                except StorageError as e:
                    errors.append(transport_error(f"Reconcile list {prefix}: {e}"))
                    continue
                for obj in objects:
                    if obj.key in inp.active_keys:
                        continue
                    try:
                        if self._delete_orphan(obj.key):
                            orphans.append(obj.key)
                    except StorageError as e:
                        errors.append(transport_error(f"Reconcile delete {obj.key}: {e}"))

        return ReconcileOutput(
            purged=purged,
            rolled_back=rolled_back,
            missing_objects=missing,
            orphans_deleted=orphans,
            errors=errors,
            success=not errors,
        )

    def _delete_orphan(self, key: str) -> bool:
        """Delete an object no entry references, unless a publish or upload holds its key."""
        with self._guard.claim(key_token(key)) as granted:
            if not granted or self._repo.get_by_storage_key(key) is not None:
                return False
            if not self._store.delete(key):
                return False
        logger.info("Deleted orphan object %s", key)
        return True

    def _roll_back_publish(self, asset: VideoAsset) -> bool:
        public_key = self._ns.public_key_for(asset.storage_key)
        if not self._store.exists(public_key):
            return False
        self._store.move(public_key, asset.storage_key)
        logger.warning("Asset %s: interrupted publish rolled back to %s", asset.id, asset.storage_key)
        return True

    def _move_back(self, public_key: str, staging_key: str) -> None:
        try:
            self._store.move(public_key, staging_key)
        except StorageError:
            logger.exception("Rollback move %s -> %s failed; reconcile will repair", public_key, staging_key)


def run(
    inp: RegistryInput,
    *,
    repo: VideoAssetRepoPort,
    store: ObjectStorePort,
    clock: ClockPort,
    namespaces: Namespaces = DEFAULT_NAMESPACES,
) -> RegistryOutput:
    """
    Functional entry point for one-off calls.

    The per-id guard lives on the AssetRegistry instance, so concurrent callers
    must share one AssetRegistry rather than use this function.
    """
    return AssetRegistry(repo, store, clock, namespaces).run(inp)
