"""Google Cloud Storage backend for uploaded documents."""
from __future__ import annotations

import datetime as _dt
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from google.api_core.exceptions import GoogleAPIError, NotFound
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage

from app.config import StorageConfig
from app.services.storage import (
    InvalidStorageKeyError,
    ObjectNotFoundError,
    StorageError,
    StorageNotConfiguredError,
)

logger = logging.getLogger("document-service.gcs")

GCS_PUBLIC_HOST = "https://storage.googleapis.com"
DELETE_WORKERS = 8


class GCSStorage:
    """Thin wrapper over a single bucket.

    Every method is one or two SDK calls; retries are whatever the client
    library does on its own.
    """

    def __init__(
        self,
        client: storage.Client,
        bucket_name: str,
        *,
        signed_url_ttl: int = 3600,
        public_base: str | None = None,
    ) -> None:
        if not bucket_name:
            raise StorageNotConfiguredError("GCS bucket is not configured")
        self.client = client
        self.bucket_name = bucket_name
        self.bucket = client.bucket(bucket_name)
        self.signed_url_ttl = signed_url_ttl
        self.public_base = (public_base or GCS_PUBLIC_HOST).rstrip("/")

    @classmethod
    def from_config(cls, config: StorageConfig) -> "GCSStorage":
        if not config.is_configured:
            raise StorageNotConfiguredError("GCS storage is not configured (set BUCKET)")
        if config.key_file_path:
            client = storage.Client.from_service_account_json(
                config.key_file_path, project=config.project_id
            )
        else:
            client = storage.Client(project=config.project_id)
        return cls(
            client,
            config.bucket_name or "",
            signed_url_ttl=config.signed_url_ttl,
            public_base=config.public_base,
        )

    def public_url_for(self, key: str) -> str:
        if self.public_base == GCS_PUBLIC_HOST:
            return f"{GCS_PUBLIC_HOST}/{self.bucket_name}/{key.lstrip('/')}"
        return f"{self.public_base}/{key.lstrip('/')}"

    def exists(self, key: str) -> bool:
        try:
            found = bool(self.bucket.blob(key).exists())
        except GoogleAPIError as exc:
            logger.error("Error checking object existence: key=%s err=%s", key, exc)
            raise StorageError(f"Failed to check object {key}") from exc
        if found:
            logger.info("Object exists: %s", key)
        else:
            logger.info("Object does not exist: %s", key)
        return found

    def write_object(self, key: str, data: bytes, content_type: str) -> str:
        blob = self.bucket.blob(key)
        try:
            blob.upload_from_string(bytes(data), content_type=content_type)
        except GoogleAPIError as exc:
            logger.error("GCS write failed: bucket=%s key=%s err=%s", self.bucket_name, key, exc)
            raise StorageError(f"Failed to write object {key}") from exc
        logger.info("Object written: key=%s bytes=%s type=%s", key, len(data), content_type)
        return self.public_url_for(key)

    def signed_read_url(self, key: str, ttl_seconds: int | None = None) -> str:
        if not self.exists(key):
            raise ObjectNotFoundError(key)
        ttl = ttl_seconds or self.signed_url_ttl
        try:
            return self.bucket.blob(key).generate_signed_url(
                version="v4",
                expiration=_dt.timedelta(seconds=max(int(ttl), 1)),
                method="GET",
            )
        except (GoogleAPIError, GoogleAuthError, ValueError) as exc:
            raise StorageError(f"Failed to sign URL for {key}") from exc

    def delete_object(self, key: str) -> bool:
        if not self.exists(key):
            logger.info("File does not exist: %s", key)
            return False
        try:
            self.bucket.blob(key).delete()
        except GoogleAPIError as exc:
            logger.error("Error deleting file: key=%s err=%s", key, exc)
            raise StorageError(f"Failed to delete object {key}") from exc
        logger.info("File deleted successfully: %s", key)
        return True

    def _delete_blob(self, blob: Any) -> None:
        blob.delete()
        logger.info("File deleted successfully: %s", blob.name)

    def delete_prefix(self, prefix: str) -> bool:
        if not prefix:
            raise InvalidStorageKeyError("Refusing to delete with an empty prefix")
        try:
            blobs = list(self.client.list_blobs(self.bucket_name, prefix=prefix))
        except GoogleAPIError as exc:
            logger.error("Error listing folder: prefix=%s err=%s", prefix, exc)
            raise StorageError(f"Failed to list objects under {prefix}") from exc

        failures: list[tuple[str, BaseException]] = []
        if blobs:
            with ThreadPoolExecutor(max_workers=min(DELETE_WORKERS, len(blobs))) as pool:
                futures = {pool.submit(self._delete_blob, blob): blob.name for blob in blobs}
                for future, name in futures.items():
                    exc = future.exception()
                    if exc is not None:
                        failures.append((name, exc))

        if failures:
            name, first = failures[0]
            logger.error(
                "Error deleting folder: prefix=%s failed=%s/%s first=%s err=%s",
                prefix,
                len(failures),
                len(blobs),
                name,
                first,
            )
            raise StorageError(f"Failed to delete {len(failures)} object(s) under {prefix}") from first

        logger.info("Folder deleted successfully: %s (%s objects)", prefix, len(blobs))
        return True

    def read_object(self, key: str) -> bytes:
        try:
            data = self.bucket.blob(key).download_as_bytes()
        except NotFound as exc:
            raise ObjectNotFoundError(key) from exc
        except GoogleAPIError as exc:
            logger.error("Error reading object: key=%s err=%s", key, exc)
            raise StorageError(f"Failed to read object {key}") from exc
        logger.info("Object bytes read successfully: %s bytes", len(data))
        return data


__all__ = ["GCSStorage"]
