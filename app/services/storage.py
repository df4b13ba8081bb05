"""Object storage contract shared by the GCS and R2 backends."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Protocol, runtime_checkable

from app.config import get_settings

logger = logging.getLogger("document-service.storage")


class StorageError(RuntimeError):
    """Raised when the object store rejects or fails an operation."""


class StorageNotConfiguredError(StorageError):
    pass


class InvalidStorageKeyError(StorageError, ValueError):
    """Raised for keys or prefixes the store refuses to act on."""


class ObjectNotFoundError(StorageError, LookupError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Object not found: {key}")
        self.key = key


@runtime_checkable
class ObjectStorage(Protocol):
    def exists(self, key: str) -> bool: ...

    def write_object(self, key: str, data: bytes, content_type: str) -> str: ...

    def signed_read_url(self, key: str, ttl_seconds: int | None = None) -> str: ...

    def delete_object(self, key: str) -> bool: ...

    def delete_prefix(self, prefix: str) -> bool: ...

    def read_object(self, key: str) -> bytes: ...


@lru_cache(maxsize=1)
def get_storage() -> ObjectStorage:
    """Return the configured storage backend, built on first use."""

    settings = get_settings()
    backend = settings.storage.backend
    if backend == "gcs":
        from app.services.gcs_client import GCSStorage

        storage: ObjectStorage = GCSStorage.from_config(settings.storage)
    elif backend in {"r2", "s3"}:
        from app.services.r2_client import R2Storage

        storage = R2Storage.from_config(settings.r2, signed_url_ttl=settings.storage.signed_url_ttl)
    else:
        raise StorageNotConfiguredError(f"Unknown STORAGE_BACKEND: {backend}")
    logger.info("Object storage ready: backend=%s", backend)
    return storage


__all__ = [
    "InvalidStorageKeyError",
    "ObjectNotFoundError",
    "ObjectStorage",
    "StorageError",
    "StorageNotConfiguredError",
    "get_storage",
]
