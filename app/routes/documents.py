from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.config import get_settings
from app.schemas import (
    DeleteFolderResponse,
    DeleteResponse,
    ExistsResponse,
    SignedUrlResponse,
    UploadDocumentsResponse,
    WriteBytesResponse,
)
from app.services.document_keys import file_extension, resolve_content_type, user_prefix
from app.services.storage import (
    InvalidStorageKeyError,
    ObjectNotFoundError,
    ObjectStorage,
    StorageError,
    StorageNotConfiguredError,
    get_storage,
)
from app.services.uploads import (
    FALLBACK_CONTENT_TYPE,
    InvalidUploadRequest,
    UnsupportedDocumentType,
    read_upload_parts,
    store_uploads,
)

logger = logging.getLogger("document-service.routes")

router = APIRouter(prefix="/api/documents", tags=["documents"])

NOT_FOUND_MSG = "File not found or expired !"


def storage_dependency() -> ObjectStorage:
    try:
        return get_storage()
    except StorageNotConfiguredError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


def _storage_http_error(exc: StorageError) -> HTTPException:
    if isinstance(exc, ObjectNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidStorageKeyError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, StorageNotConfiguredError):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=502, detail=f"storage error: {exc}")


@router.post("", response_model=UploadDocumentsResponse)
async def upload_documents(
    request: Request,
    storage: ObjectStorage = Depends(storage_dependency),
) -> UploadDocumentsResponse:
    form = await request.form()
    try:
        parts = await read_upload_parts(form)
        documents = await run_in_threadpool(
            store_uploads,
            storage,
            parts,
            reject_unknown=get_settings().upload.reject_unknown_types,
        )
    except UnsupportedDocumentType as exc:
        raise HTTPException(status_code=415, detail=str(exc)) from exc
    except InvalidUploadRequest as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StorageError as exc:
        raise _storage_http_error(exc) from exc
    finally:
        await form.close()

    logger.info(
        "Documents uploaded: count=%s keys=%s",
        len(documents),
        [doc.key for doc in documents],
    )
    return UploadDocumentsResponse(ok=True, documents=documents)


@router.put("/bytes/{key:path}", response_model=WriteBytesResponse)
async def write_document_bytes(
    key: str,
    request: Request,
    storage: ObjectStorage = Depends(storage_dependency),
) -> WriteBytesResponse:
    data = await request.body()
    if not data:
        raise HTTPException(status_code=400, detail="request body is empty")
    content_type = (
        resolve_content_type(file_extension(key))
        or request.headers.get("content-type")
        or FALLBACK_CONTENT_TYPE
    )
    try:
        url = await run_in_threadpool(storage.write_object, key, data, content_type)
    except StorageError as exc:
        raise _storage_http_error(exc) from exc
    return WriteBytesResponse(key=key, url=url, content_type=content_type, size=len(data))


@router.get("/exists/{key:path}", response_model=ExistsResponse)
def document_exists(key: str, storage: ObjectStorage = Depends(storage_dependency)) -> ExistsResponse:
    try:
        return ExistsResponse(key=key, exists=storage.exists(key))
    except StorageError as exc:
        raise _storage_http_error(exc) from exc


@router.get(
    "/signed-url/{key:path}",
    response_model=SignedUrlResponse,
    response_model_exclude_none=True,
)
def document_signed_url(
    key: str,
    ttl: int | None = Query(None, ge=1, le=7 * 24 * 3600, description="URL lifetime in seconds"),
    storage: ObjectStorage = Depends(storage_dependency),
):
    expires_in = ttl or get_settings().storage.signed_url_ttl
    try:
        url = storage.signed_read_url(key, expires_in)
    except ObjectNotFoundError:
        logger.info("File not found or expired: %s", key)
        payload = SignedUrlResponse(success=False, msg=NOT_FOUND_MSG)
        return JSONResponse(status_code=404, content=payload.model_dump(exclude_none=True))
    except StorageError as exc:
        raise _storage_http_error(exc) from exc
    return SignedUrlResponse(success=True, url=url, expires_in=expires_in)


@router.get("/content/{key:path}")
def document_content(key: str, storage: ObjectStorage = Depends(storage_dependency)) -> Response:
    try:
        data = storage.read_object(key)
    except StorageError as exc:
        raise _storage_http_error(exc) from exc
    media_type = resolve_content_type(file_extension(key)) or FALLBACK_CONTENT_TYPE
    return Response(content=data, media_type=media_type)


@router.delete("/folders/{prefix:path}", response_model=DeleteFolderResponse)
def delete_document_folder(
    prefix: str, storage: ObjectStorage = Depends(storage_dependency)
) -> DeleteFolderResponse:
    try:
        deleted = storage.delete_prefix(prefix)
    except StorageError as exc:
        raise _storage_http_error(exc) from exc
    return DeleteFolderResponse(prefix=prefix, deleted=deleted)


@router.delete("/users/{email}", response_model=DeleteFolderResponse)
def delete_user_documents(
    email: str, storage: ObjectStorage = Depends(storage_dependency)
) -> DeleteFolderResponse:
    prefix = user_prefix(email.strip())
    try:
        deleted = storage.delete_prefix(prefix)
    except StorageError as exc:
        raise _storage_http_error(exc) from exc
    return DeleteFolderResponse(prefix=prefix, deleted=deleted)


@router.delete("/{key:path}", response_model=DeleteResponse)
def delete_document(key: str, storage: ObjectStorage = Depends(storage_dependency)) -> DeleteResponse:
    try:
        deleted = storage.delete_object(key)
    except StorageError as exc:
        raise _storage_http_error(exc) from exc
    return DeleteResponse(key=key, deleted=deleted)
