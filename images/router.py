# images/router.py
from __future__ import annotations

import logging
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel

from core.config import DEFAULT_IMAGE_CONTENT_TYPE, IMAGE_CACHE_CONTROL, SUPPORTED_FORMATS_LABEL
from core.deps import AdmissionDep, SettingsDep, StorageDep, get_providers
from images.validation import (
    InvalidPayload,
    build_object_key,
    decode_base64_payload,
    is_valid_image_type,
    sanitize_filename,
)
from providers.storage import StorageUnavailable
from quota.accountant import CapacityAccountant
from quota.models import AdmissionOutcome
from ratelimit.limiter import enforce_rate_limit

log = logging.getLogger(__name__)

# /image/* stays public and unthrottled; everything else is rate limited
router = APIRouter(tags=["images"])
limited = APIRouter(tags=["images"], dependencies=[Depends(enforce_rate_limit)])

_GB = 1024 * 1024 * 1024
_MB = 1024 * 1024


class UploadRequestModel(BaseModel):
    fileName: Optional[str] = None
    fileData: Optional[str] = None
    contentType: Optional[str] = None


class UploadResponseModel(BaseModel):
    success: bool
    fileName: str
    evicted: int = 0


class ImageEntry(BaseModel):
    Key: str
    LastModified: str


class ImageListResponseModel(BaseModel):
    images: List[ImageEntry]


def _iso(dt) -> str:
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _gb(n: int) -> str:
    return f"{n / _GB:.2f}GB"


# ---------------------------------------------------------------------
# GET /list
# ---------------------------------------------------------------------
@limited.get("/list", response_model=ImageListResponseModel)
def list_images(request: Request, settings: SettingsDep):
    """Most recently uploaded images, newest first."""
    p = get_providers(request)
    try:
        snapshot = CapacityAccountant(p.storage, p.quota_policy).compute_inventory()
    except StorageUnavailable:
        log.exception("[storage] listing images failed")
        raise HTTPException(status_code=503, detail="Failed to list images")

    newest = sorted(snapshot.objects, key=lambda o: (o.uploaded_at, o.key), reverse=True)
    newest = newest[: settings.upload.recent_images_limit]
    return ImageListResponseModel(
        images=[ImageEntry(Key=o.key, LastModified=_iso(o.uploaded_at)) for o in newest]
    )


# ---------------------------------------------------------------------
# POST /upload
# ---------------------------------------------------------------------
@limited.post("/upload", response_model=UploadResponseModel)
def upload_image(
    payload: UploadRequestModel,
    request: Request,
    storage: StorageDep,
    admission: AdmissionDep,
    settings: SettingsDep,
):
    limits = settings.upload
    too_large = f"File too large. Maximum size is {limits.max_file_bytes // _MB}MB"

    content_length = request.headers.get("Content-Length")
    if content_length and content_length.isdigit() and int(content_length) > limits.max_request_bytes:
        raise HTTPException(status_code=413, detail=too_large)

    if not payload.fileName or not payload.fileData:
        raise HTTPException(status_code=400, detail="Missing fileName or fileData")

    if not is_valid_image_type(payload.contentType, payload.fileName):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Supported formats: {SUPPORTED_FORMATS_LABEL}",
        )

    sanitized = sanitize_filename(payload.fileName)

    try:
        data = decode_base64_payload(payload.fileData)
    except InvalidPayload as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    if len(data) > limits.max_file_bytes:
        raise HTTPException(status_code=413, detail=too_large)

    try:
        decision = admission.admit(len(data))
    except StorageUnavailable:
        log.exception("[quota] admission check failed; refusing upload")
        raise HTTPException(status_code=503, detail="Storage backend unavailable. Please try again later.")

    if decision.outcome is AdmissionOutcome.REJECTED:
        raise HTTPException(
            status_code=507,
            detail={
                "error": "Bucket storage limit reached. Please contact administrator or wait for cleanup.",
                "currentSize": _gb(decision.current_size),
                "maxSize": _gb(decision.max_size),
            },
        )

    key = build_object_key(sanitized, limits.key_prefix, int(time.time() * 1000))
    try:
        storage.put_object(
            key=key,
            data=data,
            content_type=payload.contentType or DEFAULT_IMAGE_CONTENT_TYPE,
            metadata=None,
        )
    except Exception:
        log.exception("[storage] put failed key=%s", key)
        raise HTTPException(status_code=500, detail="Failed to upload image")

    log.info("[storage] uploaded %s bytes=%s outcome=%s", key, len(data), decision.outcome.value)
    return UploadResponseModel(success=True, fileName=key, evicted=len(decision.evicted_keys))


# ---------------------------------------------------------------------
# GET /image/{filename}
# ---------------------------------------------------------------------
@router.get("/image/{filename:path}")
def serve_image(filename: str, storage: StorageDep):
    if not filename:
        raise HTTPException(status_code=400, detail="Filename required")

    safe = sanitize_filename(filename)
    if "/" in safe or "\\" in safe or ".." in safe:
        raise HTTPException(status_code=400, detail="Invalid filename")

    try:
        data = storage.get_object(safe)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Image not found")
    except Exception:
        log.exception("[storage] serving %s failed", safe)
        raise HTTPException(status_code=500, detail="Failed to serve image")

    content_type: Optional[str] = None
    try:
        content_type = storage.head_object(safe).get("content_type")
    except Exception:
        log.debug("[storage] head failed for %s; using default content type", safe, exc_info=True)

    return Response(
        content=data,
        media_type=content_type or DEFAULT_IMAGE_CONTENT_TYPE,
        headers={"Cache-Control": IMAGE_CACHE_CONTROL},
    )
