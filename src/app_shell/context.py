from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from src.adapters.auth.crypto import JWTCredentialVerifier, StaticTokenVerifier
from src.adapters.clock import SystemClock
from src.adapters.local_storage import create_local_storage
from src.adapters.memory_repo import InMemoryVideoAssetRepo
from src.adapters.memory_storage import InMemoryObjectStore
from src.adapters.s3_storage import create_s3_storage
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.repos import SQLiteVideoAssetRepo
from src.adapters.timebound_storage import TimeBoundStore
from src.components.intake import IntakeConfig
from src.components.playback import PlaybackResolver
from src.components.registry import AssetRegistry, ClockPort, VideoAssetRepoPort
from src.components.upload import CredentialVerifierPort, UploadTransport
from src.core.ports.storage import ObjectStorePort
from src.domain.state import Namespaces
from src.rules.models import Rules

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    """Every long-lived collaborator of the service, built once per process."""

    rules: Rules
    store: ObjectStorePort
    repo: VideoAssetRepoPort
    registry: AssetRegistry
    transport: UploadTransport
    resolver: PlaybackResolver
    verifier: CredentialVerifierPort
    intake_config: IntakeConfig
    namespaces: Namespaces
    clock: ClockPort
    public_base_url: str
    _closers: list[Any] = field(default_factory=list, repr=False)

    @classmethod
    def create(
        cls,
        rules: Rules,
        *,
        db_path: str | None = None,
        storage_path: str | Path | None = None,
        migrations_dir: str | Path = "migrations",
        public_base_url: str | None = None,
        upload_secret: str | None = None,
        s3_access_key_id: str | None = None,
        s3_secret_access_key: str | None = None,
        store: ObjectStorePort | None = None,
        repo: VideoAssetRepoPort | None = None,
        clock: ClockPort | None = None,
    ) -> ServiceContext:
        """
        Wire adapters and components from rules.

        Args:
            rules: Validated rules.yaml
            db_path: SQLite file; ignored for the memory backend
            storage_path: Root directory for the local backend
            migrations_dir: Directory holding the *.sql migrations
            public_base_url: Overrides playback.public_base_url
            upload_secret: Overrides the env var named by auth.secret_env
            s3_access_key_id: Credentials for the s3 backend
            s3_secret_access_key: Credentials for the s3 backend
            store: Pre-built object store (tests)
            repo: Pre-built registry backing (tests)
            clock: Clock override (tests)
        """
        storage_rules = rules.storage
        namespaces = Namespaces(
            staging_prefix=storage_rules.staging_prefix,
            public_prefix=storage_rules.public_prefix,
        )
        base_url = public_base_url or rules.playback.public_base_url

        if store is None:
            store = _build_store(
                rules,
                storage_path=storage_path,
                public_base_url=base_url,
                access_key_id=s3_access_key_id,
                secret_access_key=s3_secret_access_key,
            )
        bounded = TimeBoundStore(store, call_timeout_seconds=storage_rules.call_timeout_seconds)

        if repo is None:
            if storage_rules.backend == "memory" or not db_path:
                repo = InMemoryVideoAssetRepo()
            else:
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
                SQLiteMigrator(db_path, str(migrations_dir)).run_migrations()
                repo = SQLiteVideoAssetRepo(db_path)

        clock = clock or SystemClock()
        intake_config = IntakeConfig.from_rules(rules.intake)
        verifier = _build_verifier(rules, upload_secret)

        registry = AssetRegistry(repo, bounded, clock, namespaces)
        transport = UploadTransport(
            bounded,
            registry,
            verifier,
            intake_config=intake_config,
            namespaces=namespaces,
            max_workers=rules.uploads.max_parallel_uploads,
        )
        resolver = PlaybackResolver(
            registry,
            base_url,
            namespaces=namespaces,
            include_slug_hint=rules.playback.include_slug_hint,
        )

        logger.info(
            "Service context ready (backend=%s, auth=%s)", storage_rules.backend, rules.auth.mode
        )
        return cls(
            rules=rules,
            store=bounded,
            repo=repo,
            registry=registry,
            transport=transport,
            resolver=resolver,
            verifier=verifier,
            intake_config=intake_config,
            namespaces=namespaces,
            clock=clock,
            public_base_url=base_url,
            _closers=[transport.shutdown, bounded.shutdown],
        )

    def close(self) -> None:
        for closer in self._closers:
            closer()
        self._closers = []


def _build_store(
    rules: Rules,
    *,
    storage_path: str | Path | None,
    public_base_url: str,
    access_key_id: str | None,
    secret_access_key: str | None,
) -> ObjectStorePort:
    storage_rules = rules.storage
    if storage_rules.backend == "memory":
        return InMemoryObjectStore(
            chunk_size=storage_rules.chunk_size_bytes, public_base_url=public_base_url
        )
    if storage_rules.backend == "s3":
        if storage_rules.s3 is None:
            raise ValueError("storage.backend is 's3' but storage.s3 is not configured")
        return create_s3_storage(
            storage_rules.s3,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            chunk_size=storage_rules.chunk_size_bytes,
        )
    return create_local_storage(
        storage_path,
        chunk_size=storage_rules.chunk_size_bytes,
        public_base_url=public_base_url,
    )


def _build_verifier(rules: Rules, upload_secret: str | None) -> CredentialVerifierPort:
    secret = upload_secret or os.environ.get(rules.auth.secret_env, "")
    if not secret:
        raise ValueError(f"Upload secret missing: set {rules.auth.secret_env}")
    if rules.auth.mode == "jwt":
        return JWTCredentialVerifier(secret, rules.auth.jwt_algorithm)
    return StaticTokenVerifier(secret)
