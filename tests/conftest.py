from __future__ import annotations

from typing import Dict

import pytest

from app.services.storage import InvalidStorageKeyError, ObjectNotFoundError, StorageError


class InMemoryStorage:
    """Dict-backed stand-in for the object store."""

    def __init__(self) -> None:
        self.objects: Dict[str, tuple[bytes, str]] = {}
        self.fail_writes = False
        self.fail_deletes = False

    def exists(self, key: str) -> bool:
        return key in self.objects

    def write_object(self, key: str, data: bytes, content_type: str) -> str:
        if self.fail_writes:
            raise StorageError(f"Failed to write object {key}")
        self.objects[key] = (bytes(data), content_type)
        return f"https://storage.example.com/docs/{key}"

    def signed_read_url(self, key: str, ttl_seconds: int | None = None) -> str:
        if key not in self.objects:
            raise ObjectNotFoundError(key)
        return f"https://signed.example.com/{key}?ttl={ttl_seconds}"

    def delete_object(self, key: str) -> bool:
        return self.objects.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> bool:
        if not prefix:
            raise InvalidStorageKeyError("Refusing to delete with an empty prefix")
        if self.fail_deletes:
            raise StorageError(f"Failed to delete objects under {prefix}")
        for key in [k for k in self.objects if k.startswith(prefix)]:
            del self.objects[key]
        return True

    def read_object(self, key: str) -> bytes:
        try:
            return self.objects[key][0]
        except KeyError as exc:
            raise ObjectNotFoundError(key) from exc


@pytest.fixture()
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()
