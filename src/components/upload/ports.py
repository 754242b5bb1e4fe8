"""Upload component port definitions - protocols for dependencies."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol

from src.components.registry.models import RegisterAssetInput, RegisterOutput
from src.core.ports.storage import ObjectStorePort
from src.domain.entities import Principal, VideoAsset

__all__ = ["CredentialVerifierPort", "ObjectStorePort", "RegistryPort"]


class CredentialVerifierPort(Protocol):
    """Resolves an opaque credential to a caller identity."""

    def verify(self, credential: str | None) -> Principal | None:
        """Return the principal, or None when the credential is absent or invalid."""
        ...


class RegistryPort(Protocol):
    """The slice of the Asset Registry the transport needs."""

    def register(self, input_data: RegisterAssetInput) -> RegisterOutput:
        ...

    def find_by_dedup_token(self, token: str) -> VideoAsset | None:
        ...

    def hold_key(self, storage_key: str) -> AbstractContextManager[bool]:
        """Keep reconcile away from the key while the object is written and registered."""
        ...
