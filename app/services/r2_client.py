"""S3-compatible backend (Cloudflare R2, MinIO, AWS S3) for uploaded documents."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import boto3
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from app.config import R2Config
from app.services.storage import (
    InvalidStorageKeyError,
    ObjectNotFoundError,
    StorageError,
    StorageNotConfiguredError,
)

logger = logging.getLogger("document-service.r2")

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}
DELETE_WORKERS = 8


def _is_missing(exc: ClientError) -> bool:
    return str(exc.response.get("Error", {}).get("Code")) in _MISSING_CODES


class R2Storage:
    def __init__(
        self,
        client: BaseClient,
        bucket: str,
        *,
        endpoint: str | None = None,
        public_base: str | None = None,
        signed_url_ttl: int = 3600,
    ) -> None:
        if not bucket:
            raise StorageNotConfiguredError("R2 bucket is not configured")
        self.client = client
        self.bucket = bucket
        self.endpoint = endpoint
        self.public_base = public_base
        self.signed_url_ttl = signed_url_ttl

    @classmethod
    def from_config(cls, config: R2Config, *, signed_url_ttl: int = 3600) -> "R2Storage":
        if not config.is_configured:
            raise StorageNotConfiguredError("R2 storage is not configured")
        client = boto3.session.Session().client(
            "s3",
            endpoint_url=config.endpoint,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
        )
        return cls(
            client,
            config.bucket or "",
            endpoint=config.endpoint,
            public_base=config.public_base,
            signed_url_ttl=signed_url_ttl,
        )

    def public_url_for(self, key: str) -> str:
        if self.public_base:
            return f"{self.public_base.rstrip('/')}/{key.lstrip('/')}"
        return f"{(self.endpoint or '').rstrip('/')}/{self.bucket}/{key.lstrip('/')}"

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if _is_missing(exc):
                logger.info("Object does not exist: %s", key)
                return False
            logger.error("Error checking object existence: key=%s err=%s", key, exc)
            raise StorageError(f"Failed to check object {key}") from exc
        except BotoCoreError as exc:
            logger.error("Error checking object existence: key=%s err=%s", key, exc)
            raise StorageError(f"Failed to check object {key}") from exc
        logger.info("Object exists: %s", key)
        return True

    def write_object(self, key: str, data: bytes, content_type: str) -> str:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=bytes(data),
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            logger.error("R2 put failed: bucket=%s key=%s err=%s", self.bucket, key, exc)
            raise StorageError(f"Failed to write object {key}") from exc
        logger.info("Object written: key=%s bytes=%s type=%s", key, len(data), content_type)
        return self.public_url_for(key)

    def signed_read_url(self, key: str, ttl_seconds: int | None = None) -> str:
        if not self.exists(key):
            raise ObjectNotFoundError(key)
        ttl = ttl_seconds or self.signed_url_ttl
        try:
            return self.client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=max(int(ttl), 1),
                HttpMethod="GET",
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError("Failed to generate download URL") from exc

    def delete_object(self, key: str) -> bool:
        if not self.exists(key):
            logger.info("File does not exist: %s", key)
            return False
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            logger.error("Error deleting file: key=%s err=%s", key, exc)
            raise StorageError(f"Failed to delete object {key}") from exc
        logger.info("File deleted successfully: %s", key)
        return True

    def _list_keys(self, prefix: str) -> list[str]:
        keys: list[str] = []
        paginator = self.client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            keys.extend(item["Key"] for item in page.get("Contents", []))
        return keys

    def _delete_key(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key)
        logger.info("File deleted successfully: %s", key)

    def delete_prefix(self, prefix: str) -> bool:
        if not prefix:
            raise InvalidStorageKeyError("Refusing to delete with an empty prefix")
        try:
            keys = self._list_keys(prefix)
        except (ClientError, BotoCoreError) as exc:
            logger.error("Error listing folder: prefix=%s err=%s", prefix, exc)
            raise StorageError(f"Failed to list objects under {prefix}") from exc

        failures: list[tuple[str, BaseException]] = []
        if keys:
            with ThreadPoolExecutor(max_workers=min(DELETE_WORKERS, len(keys))) as pool:
                futures = {pool.submit(self._delete_key, key): key for key in keys}
                for future, key in futures.items():
                    exc = future.exception()
                    if exc is not None:
                        failures.append((key, exc))

        if failures:
            key, first = failures[0]
            logger.error(
                "Error deleting folder: prefix=%s failed=%s/%s first=%s err=%s",
                prefix,
                len(failures),
                len(keys),
                key,
                first,
            )
            raise StorageError(f"Failed to delete {len(failures)} object(s) under {prefix}") from first

        logger.info("Folder deleted successfully: %s (%s objects)", prefix, len(keys))
        return True

    def read_object(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if _is_missing(exc):
                raise ObjectNotFoundError(key) from exc
            raise StorageError(f"Failed to fetch object {key}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to fetch object {key}") from exc
        body = response.get("Body")
        if body is None:
            raise StorageError(f"Object {key} has no body")
        data = body.read()
        logger.info("Object bytes read successfully: %s bytes", len(data))
        return data


__all__ = ["R2Storage"]
