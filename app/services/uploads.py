"""Turn a parsed multipart upload into stored documents."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List

from starlette.datastructures import FormData, UploadFile

from app.schemas import StoredDocument
from app.services.document_keys import UploadDescriptor, resolve_target
from app.services.storage import ObjectStorage

logger = logging.getLogger("document-service.uploads")

EMAIL_FIELD = "email"
INDEX_FIELD = "index"
FALLBACK_CONTENT_TYPE = "application/octet-stream"


class InvalidUploadRequest(ValueError):
    pass


class UnsupportedDocumentType(ValueError):
    def __init__(self, field_name: str, filename: str) -> None:
        super().__init__(f"Unsupported file type for {field_name}: {filename}")
        self.field_name = field_name
        self.filename = filename


@dataclass
class UploadPart:
    descriptor: UploadDescriptor
    data: bytes


def _text_field(form: FormData, name: str) -> str | None:
    value = form.get(name)
    if value is None or isinstance(value, UploadFile):
        return None
    text = str(value).strip()
    return text or None


def _file_parts(form: FormData) -> list[tuple[str, UploadFile]]:
    return [(name, value) for name, value in form.multi_items() if isinstance(value, UploadFile)]


def descriptors_from_form(form: FormData) -> List[UploadDescriptor]:
    """Build one descriptor per file part of a fully parsed form.

    ``email`` and ``index`` are read from the text fields of the same form, so
    their position relative to the file parts does not matter.
    """

    email = _text_field(form, EMAIL_FIELD)
    if not email:
        raise InvalidUploadRequest("email is required")
    index = _text_field(form, INDEX_FIELD)
    return [
        UploadDescriptor(
            field_name=name,
            original_filename=upload.filename or "",
            user_email=email,
            index=index,
        )
        for name, upload in _file_parts(form)
    ]


async def read_upload_parts(form: FormData) -> List[UploadPart]:
    descriptors = descriptors_from_form(form)
    parts: List[UploadPart] = []
    for descriptor, (_, upload) in zip(descriptors, _file_parts(form)):
        parts.append(UploadPart(descriptor=descriptor, data=await upload.read()))
    return parts


def store_uploads(
    storage: ObjectStorage,
    parts: Iterable[UploadPart],
    *,
    reject_unknown: bool = True,
) -> List[StoredDocument]:
    """Resolve every part and write it to *storage*.

    All parts are resolved before the first write, so a rejected part leaves
    nothing behind.
    """

    planned: list[tuple[UploadPart, str, str]] = []
    seen: set[str] = set()
    for part in parts:
        target = resolve_target(part.descriptor)
        if target.storage_key in seen:
            raise InvalidUploadRequest(f"Duplicate document key in upload: {target.storage_key}")
        seen.add(target.storage_key)

        content_type = target.content_type
        if content_type is None:
            if reject_unknown:
                raise UnsupportedDocumentType(
                    part.descriptor.field_name, part.descriptor.original_filename
                )
            logger.warning(
                "Unrecognised document type, storing as %s: field=%s filename=%s",
                FALLBACK_CONTENT_TYPE,
                part.descriptor.field_name,
                part.descriptor.original_filename,
            )
            content_type = FALLBACK_CONTENT_TYPE
        planned.append((part, target.storage_key, content_type))

    if not planned:
        raise InvalidUploadRequest("no files in upload")

    stored: List[StoredDocument] = []
    for part, key, content_type in planned:
        url = storage.write_object(key, part.data, content_type)
        stored.append(
            StoredDocument(
                field_name=part.descriptor.field_name,
                key=key,
                url=url,
                content_type=content_type,
                size=len(part.data),
            )
        )
    return stored


__all__ = [
    "InvalidUploadRequest",
    "UnsupportedDocumentType",
    "UploadPart",
    "descriptors_from_form",
    "read_upload_parts",
    "store_uploads",
]
