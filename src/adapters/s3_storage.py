"""
S3-compatible Object Storage Adapter.

Implements ObjectStorePort on AWS S3, Cloudflare R2, MinIO and friends via
boto3. Connect/read timeouts and retries are bounded by the client config.

S3 has no native rename: move() is copy + delete, and rolls the copy back when
the source delete fails so callers only ever see the object at one key.
"""

from __future__ import annotations

import builtins
import hashlib
import logging
from io import BytesIO
from typing import Any, BinaryIO

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.client import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

from src.core.ports.storage import (
    DEFAULT_CHUNK_SIZE,
    IntegrityError,
    KeyExistsError,
    KeyNotFoundError,
    StorageError,
    StorageTimeoutError,
    StoredObject,
    compute_etag,
)
from src.rules.models import S3Rules

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def get_s3_client(
    rules: S3Rules,
    *,
    access_key_id: str | None = None,
    secret_access_key: str | None = None,
) -> Any:
    ep = (rules.endpoint_url or "").strip() or None
    # For AWS S3, endpoint_url must be None.
    # For S3-compatible providers (R2/MinIO), endpoint_url is required.
    return boto3.client(
        "s3",
        endpoint_url=ep,
        aws_access_key_id=access_key_id,
        aws_secret_access_key=secret_access_key,
        region_name=rules.region_name,
        config=Config(
            signature_version="s3v4",
            connect_timeout=rules.connect_timeout_seconds,
            read_timeout=rules.read_timeout_seconds,
            retries={"max_attempts": rules.max_attempts, "mode": "standard"},
            s3={"addressing_style": rules.addressing_style},
        ),
    )


def _is_not_found(e: ClientError) -> bool:
    code = str(e.response.get("Error", {}).get("Code", ""))
    return code in _NOT_FOUND_CODES


class _HashingReader:
    """File-like wrapper that hashes and counts bytes as boto3 reads them."""

    def __init__(self, stream: bytes | BinaryIO) -> None:
        if isinstance(stream, bytes | bytearray):
            stream = BytesIO(bytes(stream))
        self._stream = stream
        self._hasher = hashlib.sha256()
        self.size = 0

    def read(self, size: int = -1) -> bytes:
        chunk = self._stream.read(size)
        if chunk:
            self._hasher.update(chunk)
            self.size += len(chunk)
        return chunk

    @property
    def sha256(self) -> str:
        return self._hasher.hexdigest()


class S3ObjectStore:
    """boto3 implementation of ObjectStorePort for a single bucket."""

    def __init__(
        self,
        client: Any,
        bucket: str,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        public_base_url: str | None = None,
        read_timeout_seconds: float = 60.0,
    ) -> None:
        self._s3 = client
        self._read_timeout_seconds = read_timeout_seconds
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self._transfer_config = TransferConfig(
            multipart_chunksize=max(chunk_size, 5 * 1024 * 1024),
            use_threads=False,
        )

    def _wrap(self, operation: str, e: Exception) -> StorageError:
        if isinstance(e, ReadTimeoutError | ConnectTimeoutError):
            return StorageTimeoutError(operation, self._read_timeout_seconds)
        return StorageError(f"S3 {operation} failed: {e}")

    def _head(self, key: str) -> dict[str, Any] | None:
        try:
            return dict(self._s3.head_object(Bucket=self.bucket, Key=key))
        except ClientError as e:
            if _is_not_found(e):
                return None
            raise self._wrap("head", e) from e
        except BotoCoreError as e:
            raise self._wrap("head", e) from e

    def _to_stored(self, key: str, head: dict[str, Any]) -> StoredObject:
        etag = str(head.get("ETag") or "")
        sha256 = str((head.get("Metadata") or {}).get("sha256") or "")
        return StoredObject(
            key=key,
            size_bytes=int(head.get("ContentLength") or 0),
            content_type=str(head.get("ContentType") or "application/octet-stream"),
            sha256=sha256,
            etag=etag,
        )

    def put(
        self,
        key: str,
        stream: bytes | BinaryIO,
        content_type: str,
        *,
        expected_sha256: str | None = None,
    ) -> StoredObject:
        if self._head(key) is not None:
            raise KeyExistsError(key)

        reader = _HashingReader(stream)
        try:
            self._s3.upload_fileobj(
                reader,
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type},
                Config=self._transfer_config,
            )
        except (ClientError, BotoCoreError) as e:
            raise self._wrap("put", e) from e

        sha256_hex = reader.sha256
        if expected_sha256 and sha256_hex != expected_sha256:
            self.delete(key)
            raise IntegrityError(expected_sha256, sha256_hex)

        return StoredObject(
            key=key,
            size_bytes=reader.size,
            content_type=content_type,
            sha256=sha256_hex,
            etag=compute_etag(sha256_hex),
        )

    def get(self, key: str) -> tuple[bytes, StoredObject]:
        body, metadata = self.get_stream(key)
        try:
            return body.read(), metadata
        finally:
            body.close()

    def get_stream(self, key: str) -> tuple[BinaryIO, StoredObject]:
        try:
            resp = self._s3.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise KeyNotFoundError(key) from e
            raise self._wrap("get", e) from e
        except BotoCoreError as e:
            raise self._wrap("get", e) from e
        return resp["Body"], self._to_stored(key, resp)

    def exists(self, key: str) -> bool:
        return self._head(key) is not None

    def delete(self, key: str) -> bool:
        if self._head(key) is None:
            return False
        try:
            self._s3.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._wrap("delete", e) from e
        return True

    def move(self, src_key: str, dst_key: str) -> StoredObject:
        head = self._head(src_key)
        if head is None:
            raise KeyNotFoundError(src_key)
        if self._head(dst_key) is not None:
            raise KeyExistsError(dst_key)

        try:
            self._s3.copy_object(
                Bucket=self.bucket,
                Key=dst_key,
                CopySource={"Bucket": self.bucket, "Key": src_key},
                MetadataDirective="COPY",
            )
        except (ClientError, BotoCoreError) as e:
            raise self._wrap("copy", e) from e

        try:
            self._s3.delete_object(Bucket=self.bucket, Key=src_key)
        except (ClientError, BotoCoreError) as e:
            logger.warning("Move %s -> %s: source delete failed, rolling back copy", src_key, dst_key)
            try:
                self._s3.delete_object(Bucket=self.bucket, Key=dst_key)
            except (ClientError, BotoCoreError):
                logger.exception("Rollback of %s failed; object now exists at two keys", dst_key)
            raise self._wrap("move", e) from e

        return self._to_stored(dst_key, head)

    def list(self, prefix: str) -> builtins.list[StoredObject]:
        results: builtins.list[StoredObject] = []
        try:
            paginator = self._s3.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for item in page.get("Contents") or []:
                    results.append(
                        StoredObject(
                            key=str(item["Key"]),
                            size_bytes=int(item.get("Size") or 0),
                            content_type="application/octet-stream",
                            sha256="",
                            etag=str(item.get("ETag") or ""),
                        )
                    )
        except (ClientError, BotoCoreError) as e:
            raise self._wrap("list", e) from e
        results.sort(key=lambda o: o.key)
        return results

    def get_metadata(self, key: str) -> StoredObject | None:
        head = self._head(key)
        return self._to_stored(key, head) if head is not None else None

    def get_public_url(self, key: str) -> str | None:
        if self.public_base_url is None:
            return None
        return f"{self.public_base_url}/{key}"


def create_s3_storage(
    rules: S3Rules,
    *,
    access_key_id: str | None = None,
    secret_access_key: str | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> S3ObjectStore:
    """Factory: build a boto3 client from rules and wrap it."""
    client = get_s3_client(
        rules, access_key_id=access_key_id, secret_access_key=secret_access_key
    )
    return S3ObjectStore(
        client,
        rules.bucket,
        chunk_size=chunk_size,
        public_base_url=rules.public_base_url,
        read_timeout_seconds=rules.read_timeout_seconds,
    )
