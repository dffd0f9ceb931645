from __future__ import annotations

import base64
import binascii
import os
import re
from typing import Optional

from core.config import ALLOWED_EXTENSIONS, ALLOWED_IMAGE_TYPES

_MAX_FILENAME_LEN = 255
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
_WHITESPACE = re.compile(r"\s+")


class InvalidPayload(ValueError):
    pass


def sanitize_filename(file_name: str) -> str:
    """
    Strip path separators and parent references, replace anything outside
    [a-zA-Z0-9._-] with "_", force an alphanumeric first character and cap
    the length at 255 while keeping the extension.
    """
    sanitized = (file_name or "").replace("/", "").replace("\\", "")
    sanitized = sanitized.replace("..", "")
    sanitized = _UNSAFE_CHARS.sub("_", sanitized)

    if not re.match(r"^[a-zA-Z0-9]", sanitized):
        sanitized = "file_" + sanitized

    if len(sanitized) > _MAX_FILENAME_LEN:
        ext = file_extension(sanitized)
        sanitized = sanitized[: _MAX_FILENAME_LEN - len(ext)] + ext

    return sanitized


def file_extension(file_name: str) -> str:
    return os.path.splitext(file_name or "")[1].lower()


def is_valid_image_type(content_type: Optional[str], file_name: str) -> bool:
    """MIME allow-list first, extension allow-list as fallback."""
    if content_type and content_type.strip().lower() in ALLOWED_IMAGE_TYPES:
        return True
    return file_extension(file_name) in ALLOWED_EXTENSIONS


def decode_base64_payload(file_data: str) -> bytes:
    """
    Decode the upload body. Accepts bare base64 or a data URL
    ("data:image/png;base64,....").
    """
    raw = file_data or ""
    if raw.startswith("data:") and "," in raw:
        raw = raw.split(",", 1)[1]
    raw = _WHITESPACE.sub("", raw)
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidPayload("Invalid base64 data") from exc


def build_object_key(sanitized_name: str, prefix: str, timestamp_ms: int) -> str:
    return f"{prefix}{timestamp_ms}{file_extension(sanitized_name)}"
