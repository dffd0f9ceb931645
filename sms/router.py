# sms/router.py
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import unquote, urlparse

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from core.config import IMAGE_ROUTE_PREFIX
from core.deps import MessagingDep, SettingsDep, StorageDep
from images.validation import sanitize_filename
from providers.messaging import MessagingError
from ratelimit.limiter import enforce_rate_limit

log = logging.getLogger(__name__)

router = APIRouter(
    tags=["sms"],
    dependencies=[Depends(enforce_rate_limit)],
)


class SmsRequestModel(BaseModel):
    message: Optional[str] = None
    recipientPhoneNumber: Optional[str] = None
    mediaUrl: Optional[str] = None


class SmsResponseModel(BaseModel):
    success: bool
    messageSid: Optional[str] = None


def _image_key_from_media_url(media_url: str) -> str:
    """
    Pull the stored object key out of a /image/<key> URL.
    Raises HTTPException(400) for anything that is not one of ours.
    """
    try:
        parsed = urlparse(media_url)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid media URL format")
    if not parsed.scheme or not parsed.netloc:
        raise HTTPException(status_code=400, detail="Invalid media URL format")
    if not parsed.path.startswith(IMAGE_ROUTE_PREFIX):
        raise HTTPException(status_code=400, detail="Invalid media URL")

    key = unquote(parsed.path[len(IMAGE_ROUTE_PREFIX):])
    if not key:
        raise HTTPException(status_code=400, detail="Invalid media URL")
    return sanitize_filename(key)


# ---------------------------------------------------------------------
# POST /sms
# ---------------------------------------------------------------------
@router.post("/sms", response_model=SmsResponseModel)
async def send_sms(
    payload: SmsRequestModel,
    storage: StorageDep,
    messaging: MessagingDep,
    settings: SettingsDep,
):
    """Relay an MMS pointing at a previously uploaded image."""
    if messaging is None:
        raise HTTPException(status_code=500, detail="Twilio credentials not configured")

    if not payload.recipientPhoneNumber or not payload.mediaUrl:
        raise HTTPException(status_code=400, detail="Missing recipientPhoneNumber or mediaUrl")

    allowed = settings.sms.allowed_recipient
    if not allowed or payload.recipientPhoneNumber != allowed:
        raise HTTPException(status_code=403, detail="Invalid recipient phone number")

    key = _image_key_from_media_url(payload.mediaUrl)

    try:
        await run_in_threadpool(storage.head_object, key)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Referenced image not found")
    except Exception:
        log.exception("[sms] could not verify media object %s", key)
        raise HTTPException(status_code=503, detail="Storage backend unavailable. Please try again later.")

    body = payload.message or settings.sms.default_message
    try:
        result = await messaging.send_mms(to=payload.recipientPhoneNumber, body=body, media_url=payload.mediaUrl)
    except MessagingError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail={"error": str(exc), "details": exc.details},
        )

    log.info("[sms] sent media=%s sid=%s", key, result.sid)
    return SmsResponseModel(success=True, messageSid=result.sid)
