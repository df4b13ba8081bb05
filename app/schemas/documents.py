"""Response models for the document endpoints."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore")


class StoredDocument(_Model):
    field_name: str = Field(..., description="Form field the file was uploaded under")
    key: str = Field(..., description="Object storage key of the stored document")
    url: str = Field(..., description="Public (unsigned) URL of the object")
    content_type: str
    size: int = Field(0, ge=0, description="Stored size in bytes")


class UploadDocumentsResponse(_Model):
    ok: bool = True
    documents: List[StoredDocument] = Field(default_factory=list)


class WriteBytesResponse(_Model):
    key: str
    url: str
    content_type: str
    size: int


class ExistsResponse(_Model):
    key: str
    exists: bool


class SignedUrlResponse(_Model):
    success: bool
    url: Optional[str] = None
    msg: Optional[str] = None
    expires_in: Optional[int] = Field(None, description="Lifetime of the URL in seconds")


class DeleteResponse(_Model):
    key: str
    deleted: bool


class DeleteFolderResponse(_Model):
    prefix: str
    deleted: bool
