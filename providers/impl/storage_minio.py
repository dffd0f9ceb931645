from __future__ import annotations

import io
from dataclasses import dataclass
from itertools import islice
from typing import Any, Dict, Optional

from minio import Minio
from minio.error import S3Error

from providers.storage import ObjectPage, StorageProvider, make_stored_object


def _strip_http(endpoint: str) -> str:
    # Minio client expects "host:port" (no scheme)
    endpoint = (endpoint or "").strip()
    endpoint = endpoint.replace("http://", "").replace("https://", "")
    endpoint = endpoint.rstrip("/")
    return endpoint


_MISSING_CODES = ("NoSuchKey", "NoSuchObject")


@dataclass
class MinioStorageProvider(StorageProvider):
    """
    MinIO-backed implementation of StorageProvider.

    Env expected:
      - MINIO_ENDPOINT (e.g. http://minio:9000)
      - MINIO_BUCKET   (e.g. birds)
      - MINIO_ACCESS_KEY
      - MINIO_SECRET_KEY

    Notes:
      - We auto-create the bucket if missing.
      - minio-py paginates internally, so list_objects resumes with
        start_after=<cursor> where the cursor is the last key returned.
    """

    endpoint: str
    bucket: str
    access_key: str
    secret_key: str
    secure: bool = False

    def __post_init__(self) -> None:
        host = _strip_http(self.endpoint)
        if not host:
            raise RuntimeError("MINIO_ENDPOINT is empty or invalid")

        self._client = Minio(
            host,
            access_key=self.access_key,
            secret_key=self.secret_key,
            secure=bool(self.secure),
        )

        # Ensure bucket exists
        try:
            if not self._client.bucket_exists(self.bucket):
                self._client.make_bucket(self.bucket)
        except Exception as e:
            raise RuntimeError(f"MinIO bucket init failed (bucket={self.bucket}): {e}") from e

    def list_objects(self, cursor: Optional[str] = None, limit: int = 1000) -> ObjectPage:
        limit = max(1, int(limit))
        it = self._client.list_objects(self.bucket, recursive=True, start_after=cursor or None)

        # one extra item tells us whether another page exists
        batch = list(islice(it, limit + 1))
        page = batch[:limit]
        objects = [
            make_stored_object(o.object_name, o.size, o.last_modified)
            for o in page
            if not getattr(o, "is_dir", False)
        ]
        next_cursor = page[-1].object_name if len(batch) > limit else None
        return ObjectPage(objects=objects, next_cursor=next_cursor)

    def get_object(self, key: str) -> bytes:
        key = (key or "").lstrip("/")
        try:
            resp = self._client.get_object(self.bucket, key)
            try:
                return resp.read()
            finally:
                resp.close()
                resp.release_conn()
        except S3Error as e:
            # Not found should raise FileNotFoundError to match local provider behavior
            if getattr(e, "code", "") in _MISSING_CODES:
                raise FileNotFoundError(key) from e
            raise

    def head_object(self, key: str) -> Dict[str, Any]:
        key = (key or "").lstrip("/")
        try:
            st = self._client.stat_object(self.bucket, key)
        except S3Error as e:
            if getattr(e, "code", "") in _MISSING_CODES:
                raise FileNotFoundError(key) from e
            raise
        obj = make_stored_object(key, st.size, st.last_modified)
        return {
            "key": obj.key,
            "size": obj.size,
            "content_type": st.content_type,
            "uploaded_at": obj.uploaded_at,
        }

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        key = (key or "").lstrip("/")
        if data is None:
            data = b""

        # metadata headers must be strings
        meta: Dict[str, str] = {}
        if metadata:
            for k, v in metadata.items():
                if v is None:
                    continue
                meta[str(k)] = str(v)

        self._client.put_object(
            bucket_name=self.bucket,
            object_name=key,
            data=io.BytesIO(data),
            length=len(data),
            content_type=content_type or "application/octet-stream",
            metadata=meta or None,
        )

    def delete_object(self, key: str) -> None:
        key = (key or "").lstrip("/")
        try:
            self._client.remove_object(self.bucket, key)
        except S3Error as e:
            if getattr(e, "code", "") in _MISSING_CODES:
                return
            raise
