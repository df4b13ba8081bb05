"""HTTP middleware for the document service."""
from __future__ import annotations

from app.middlewares.upload_guard import UploadSizeGuard

__all__ = ["UploadSizeGuard"]
