from dataclasses import dataclass
from datetime import datetime
from typing import Any

from src.domain.entities import AssetStatus, VideoAsset

STAGING_PREFIX = "private/uploads-temp/"
PUBLIC_PREFIX = "public/"


@dataclass(frozen=True)
class Namespaces:
    """Storage prefixes that give a key its visibility."""

    staging_prefix: str = STAGING_PREFIX
    public_prefix: str = PUBLIC_PREFIX

    def prefix_for(self, status: AssetStatus) -> str | None:
        if status == "staged":
            return self.staging_prefix
        if status == "published":
            return self.public_prefix
        return None

    def public_key_for(self, staging_key: str) -> str:
        """Public key for a staged object: same object name, public prefix."""
        if not staging_key.startswith(self.staging_prefix):
            raise ValueError(f"Key {staging_key!r} is not under {self.staging_prefix!r}")
        return self.public_prefix + staging_key[len(self.staging_prefix) :]

    def staging_key_for(self, public_key: str) -> str:
        if not public_key.startswith(self.public_prefix):
            raise ValueError(f"Key {public_key!r} is not under {self.public_prefix!r}")
        return self.staging_prefix + public_key[len(self.public_prefix) :]


DEFAULT_NAMESPACES = Namespaces()


def key_matches_status(
    status: AssetStatus, storage_key: str, namespaces: Namespaces = DEFAULT_NAMESPACES
) -> bool:
    """
    Status/prefix pairing rule.

    staged keys live under the staging prefix and published keys under the
    public prefix. A removing asset keeps whichever key its object still has.
    """
    if status == "removing":
        return storage_key.startswith(
            (namespaces.staging_prefix, namespaces.public_prefix)
        )
    prefix = namespaces.prefix_for(status)
    return prefix is not None and storage_key.startswith(prefix)


def can_transition(current: AssetStatus, new: AssetStatus) -> bool:
    """
    Determine if a lifecycle transition is allowed.
    """
    if current == "staged":
        return new in ("published", "removing")
    if current == "published":
        return new == "removing"
    if current == "removing":
        return new == "removing"
    return False


def transition(
    asset: VideoAsset,
    new_status: AssetStatus,
    now: datetime,
    *,
    storage_key: str | None = None,
    namespaces: Namespaces = DEFAULT_NAMESPACES,
) -> VideoAsset:
    """
    Return a NEW VideoAsset with the updated status (and key, when moved).
    Raises ValueError if the transition or the resulting status/key pairing is invalid.
    """
    if not can_transition(asset.status, new_status):
        raise ValueError(f"Invalid transition from {asset.status} to {new_status}")

    key = storage_key if storage_key is not None else asset.storage_key
    if not key_matches_status(new_status, key, namespaces):
        raise ValueError(f"Storage key {key!r} does not match status {new_status}")

    updates: dict[str, Any] = {"status": new_status, "storage_key": key}
    if new_status == "published":
        updates["published_at"] = now

    return asset.model_copy(update=updates)
