from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List
from urllib.parse import urlparse


def _env(*names: str) -> str | None:
    """Return the first non-blank value among the environment variables *names*."""

    for name in names:
        value = os.getenv(name)
        if value is None:
            continue
        text = value.strip()
        if text:
            return text
    return None


def _as_bool(value: str | None, default: bool) -> bool:
    """Interpret common truthy / falsy strings while providing a default."""

    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(value: str | None, default: int) -> int:
    try:
        return max(int(value), 0) if value is not None else default
    except (TypeError, ValueError):
        return default


@dataclass
class StorageConfig:
    """Where uploaded documents live.

    ``project_id``, ``key_file_path`` and ``bucket_name`` are handed to the
    Google Cloud Storage client at construction time.
    """

    backend: str = "gcs"
    project_id: str | None = None
    key_file_path: str | None = None
    bucket_name: str | None = None
    signed_url_ttl: int = 3600
    public_base: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.bucket_name)

    @classmethod
    def from_env(cls) -> "StorageConfig":
        backend = (_env("STORAGE_BACKEND") or "gcs").lower()
        return cls(
            backend=backend,
            project_id=_env("PROJECTID", "GCP_PROJECT_ID", "GOOGLE_CLOUD_PROJECT"),
            key_file_path=_env("KEYFILENAME", "GOOGLE_APPLICATION_CREDENTIALS"),
            bucket_name=_env("BUCKET", "GCS_BUCKET"),
            signed_url_ttl=_as_int(_env("SIGNED_URL_TTL_SECONDS"), 3600) or 3600,
            public_base=_env("GCS_PUBLIC_BASE"),
        )


@dataclass
class R2Config:
    endpoint: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    region: str = "auto"
    bucket: str | None = None
    public_base: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint and self.access_key and self.secret_key and self.bucket)

    @classmethod
    def from_env(cls) -> "R2Config":
        return cls(
            endpoint=_env("R2_ENDPOINT", "S3_ENDPOINT"),
            access_key=_env("R2_ACCESS_KEY_ID", "S3_ACCESS_KEY"),
            secret_key=_env("R2_SECRET_ACCESS_KEY", "S3_SECRET_KEY"),
            region=_env("R2_REGION", "S3_REGION") or "auto",
            bucket=_env("R2_BUCKET", "S3_BUCKET"),
            public_base=_env("R2_PUBLIC_BASE", "S3_PUBLIC_BASE"),
        )


@dataclass
class UploadConfig:
    max_body_bytes: int
    reject_unknown_types: bool

    @classmethod
    def from_env(cls) -> "UploadConfig":
        # 0 disables the size guard
        max_bytes = _as_int(_env("UPLOAD_MAX_BYTES"), 20 * 1024 * 1024)
        reject = _as_bool(_env("UPLOAD_REJECT_UNKNOWN_TYPES"), True)
        return cls(max_body_bytes=max_bytes, reject_unknown_types=reject)


@dataclass
class Settings:
    environment: str
    log_level: str
    allowed_origins: List[str]
    storage: StorageConfig
    r2: R2Config
    upload: UploadConfig


def _parse_allowed_origins(raw: str | None) -> List[str]:
    """Normalise comma-separated origins into values accepted by CORSMiddleware."""

    if not raw:
        return ["*"]

    cleaned: List[str] = []
    for origin in raw.split(","):
        value = origin.strip()
        if not value:
            continue
        if value == "*":
            return ["*"]

        parsed = urlparse(value)
        if parsed.scheme and parsed.netloc:
            normalised = f"{parsed.scheme}://{parsed.netloc}"
        else:
            normalised = value

        if normalised not in cleaned:
            cleaned.append(normalised)

    return cleaned or ["*"]


@lru_cache()
def get_settings() -> Settings:
    return Settings(
        environment=_env("ENVIRONMENT") or "development",
        log_level=(_env("LOG_LEVEL") or "INFO").upper(),
        allowed_origins=_parse_allowed_origins(_env("ALLOWED_ORIGINS") or "*"),
        storage=StorageConfig.from_env(),
        r2=R2Config.from_env(),
        upload=UploadConfig.from_env(),
    )
