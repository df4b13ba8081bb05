"""Storage key and content-type resolution for uploaded documents.

Every file part of an upload is stored at
``uploads/documents/<email>/<field><ext>``.  The ``ttCopy`` field may be sent
several times per user, so its key carries the ``index`` form field as well.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DOCUMENT_ROOT = "uploads/documents"
INDEXED_FIELD = "ttCopy"


@dataclass(frozen=True)
class ExtensionRule:
    extension: str
    content_type: str


# Only these types are served inline; anything else would be downloaded.
EXTENSION_RULES: tuple[ExtensionRule, ...] = (
    ExtensionRule(".pdf", "application/pdf"),
    ExtensionRule(".doc", "application/msword"),
    ExtensionRule(
        ".docx",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ),
    ExtensionRule(".txt", "text/plain"),
    ExtensionRule(".jpg", "image/jpeg"),
    ExtensionRule(".png", "image/png"),
    ExtensionRule(".gif", "image/gif"),
)


@dataclass(frozen=True)
class UploadDescriptor:
    """One file part of a multipart upload plus the form fields it depends on."""

    field_name: str
    original_filename: str
    user_email: str
    index: Optional[str] = None


@dataclass(frozen=True)
class ResolvedTarget:
    storage_key: str
    content_type: Optional[str]


def file_extension(filename: str) -> str:
    """Return the extension of *filename* including the dot, or ``""``.

    Names without a dot and dot-files such as ``.env`` have no extension.
    """

    _, ext = os.path.splitext(filename or "")
    return ext


def resolve_content_type(extension: str) -> Optional[str]:
    """Look *extension* up in :data:`EXTENSION_RULES`, ignoring case."""

    wanted = (extension or "").lower()
    for rule in EXTENSION_RULES:
        if rule.extension == wanted:
            return rule.content_type
    return None


def resolve_storage_key(descriptor: UploadDescriptor) -> str:
    field = descriptor.field_name
    if field == INDEXED_FIELD:
        field += descriptor.index or ""
    ext = file_extension(descriptor.original_filename).lower()
    return f"{DOCUMENT_ROOT}/{descriptor.user_email}/{field}{ext}"


def resolve_target(descriptor: UploadDescriptor) -> ResolvedTarget:
    """Resolve the storage key and content type for *descriptor*.

    ``content_type`` is ``None`` for unrecognised extensions; callers decide
    whether that rejects the upload.
    """

    return ResolvedTarget(
        storage_key=resolve_storage_key(descriptor),
        content_type=resolve_content_type(file_extension(descriptor.original_filename)),
    )


def user_prefix(user_email: str) -> str:
    """Key prefix holding every document uploaded for *user_email*."""

    return f"{DOCUMENT_ROOT}/{user_email}/"


__all__ = [
    "DOCUMENT_ROOT",
    "EXTENSION_RULES",
    "ExtensionRule",
    "INDEXED_FIELD",
    "ResolvedTarget",
    "UploadDescriptor",
    "file_extension",
    "resolve_content_type",
    "resolve_storage_key",
    "resolve_target",
    "user_prefix",
]
