from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Union, runtime_checkable


class StorageUnavailable(RuntimeError):
    """The object store could not be reached or answered with an error."""


@dataclass(frozen=True)
class StoredObject:
    key: str
    size: int
    uploaded_at: datetime


@dataclass(frozen=True)
class ObjectPage:
    """
    One page of a listing.

    next_cursor is None when the listing is exhausted.
    """
    objects: List[StoredObject] = field(default_factory=list)
    next_cursor: Optional[str] = None


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def normalize_timestamp(value: Union[datetime, str, int, float, None]) -> datetime:
    """
    Collapse every upload-time representation a backend may hand us into a
    tz-aware UTC datetime.

    Accepts:
      - datetime (naive values are assumed to be UTC)
      - ISO-8601 strings (a trailing "Z" is accepted)
      - epoch seconds (int/float)
    Unknown or unparseable values map to the epoch so they sort oldest.
    """
    if value is None:
        return _EPOCH
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return _EPOCH
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return normalize_timestamp(datetime.fromisoformat(raw))
        except ValueError:
            return _EPOCH
    return _EPOCH


def make_stored_object(key: str, size: Any, uploaded_at: Any) -> StoredObject:
    """Build a StoredObject from loosely typed backend fields (missing size -> 0)."""
    try:
        n = int(size or 0)
    except (TypeError, ValueError):
        n = 0
    return StoredObject(key=str(key), size=max(0, n), uploaded_at=normalize_timestamp(uploaded_at))


@runtime_checkable
class StorageProvider(Protocol):
    """
    Object storage abstraction.

    Keys are opaque strings. Implementations raise FileNotFoundError for a
    missing key on get/head; any other failure propagates as-is and callers
    decide whether it means StorageUnavailable.
    """

    def list_objects(self, cursor: Optional[str] = None, limit: int = 1000) -> ObjectPage: ...

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None: ...

    def get_object(self, key: str) -> bytes: ...

    def head_object(self, key: str) -> Dict[str, Any]: ...

    def delete_object(self, key: str) -> None: ...
