from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.middlewares import UploadSizeGuard
from app.routes.documents import router as documents_router

settings = get_settings()

# uvicorn 日志级别统一
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("uvicorn").setLevel(settings.log_level)
logging.getLogger("uvicorn.error").setLevel(settings.log_level)
logging.getLogger("uvicorn.access").setLevel(settings.log_level)
logging.getLogger("document-service").setLevel(settings.log_level)

logger = logging.getLogger("document-service")

app = FastAPI(title="Document Upload API", version="1.0.0")

app.add_middleware(UploadSizeGuard, max_body_bytes=settings.upload.max_body_bytes)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=settings.allowed_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(documents_router)

logger.info(
    "Document service starting: env=%s backend=%s bucket=%s",
    settings.environment,
    settings.storage.backend,
    settings.storage.bucket_name if settings.storage.backend == "gcs" else settings.r2.bucket,
)


@app.get("/", include_in_schema=False)
def root() -> dict[str, Any]:
    return {"service": "document-service", "ok": True}


@app.head("/", include_in_schema=False)
def root_head() -> Response:
    return Response(status_code=200)


@app.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}
