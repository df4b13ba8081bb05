"""Pydantic models exposed by the document API."""

from .documents import (  # noqa: F401
    DeleteFolderResponse,
    DeleteResponse,
    ExistsResponse,
    SignedUrlResponse,
    StoredDocument,
    UploadDocumentsResponse,
    WriteBytesResponse,
)

__all__ = [
    "DeleteFolderResponse",
    "DeleteResponse",
    "ExistsResponse",
    "SignedUrlResponse",
    "StoredDocument",
    "UploadDocumentsResponse",
    "WriteBytesResponse",
]
