from __future__ import annotations

import os
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from providers.storage import ObjectPage, StorageProvider, make_stored_object


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name, default) or "").strip()


_MISSING_CODES = ("NoSuchKey", "404", "NotFound")


class S3StorageProvider(StorageProvider):
    """
    Native AWS S3 StorageProvider.

    Uses boto3 credential resolution (env, profile, instance role).

    Required env:
      - S3_BUCKET

    Optional env:
      - S3_PREFIX (e.g. "birds/" or "")
      - AWS_REGION or AWS_DEFAULT_REGION
    """

    def __init__(self, bucket: str, prefix: str = "", region: Optional[str] = None, client: Any = None):
        bucket = (bucket or "").strip()
        if not bucket:
            raise RuntimeError("S3_BUCKET is required for S3 storage provider")

        prefix = (prefix or "").strip()
        if prefix and not prefix.endswith("/"):
            prefix = prefix + "/"

        self.bucket = bucket
        self.prefix = prefix

        if client is not None:
            self.s3 = client
            return

        region = (region or _env("AWS_REGION") or _env("AWS_DEFAULT_REGION") or "").strip() or None
        cfg = Config(
            retries={"max_attempts": 3, "mode": "standard"},
            region_name=region,
        )
        self.s3 = boto3.client("s3", config=cfg)

    def _key(self, key: str) -> str:
        key = (key or "").lstrip("/")
        if self.prefix:
            return f"{self.prefix}{key}"
        return key

    def _unprefix(self, k: str) -> str:
        if self.prefix and k.startswith(self.prefix):
            return k[len(self.prefix):]
        return k

    def list_objects(self, cursor: Optional[str] = None, limit: int = 1000) -> ObjectPage:
        kwargs: Dict[str, Any] = {
            "Bucket": self.bucket,
            "MaxKeys": max(1, min(int(limit), 1000)),
        }
        if self.prefix:
            kwargs["Prefix"] = self.prefix
        if cursor:
            kwargs["ContinuationToken"] = cursor

        resp = self.s3.list_objects_v2(**kwargs)
        objects = [
            make_stored_object(self._unprefix(item["Key"]), item.get("Size"), item.get("LastModified"))
            for item in (resp.get("Contents") or [])
        ]
        next_cursor = resp.get("NextContinuationToken") if resp.get("IsTruncated") else None
        return ObjectPage(objects=objects, next_cursor=next_cursor or None)

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        k = self._key(key)
        kwargs: Dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": k,
            "Body": data,
            "ContentType": content_type or "application/octet-stream",
        }
        if metadata:
            # S3 metadata keys must be strings
            kwargs["Metadata"] = {str(kk): str(vv) for kk, vv in metadata.items()}
        self.s3.put_object(**kwargs)

    def get_object(self, key: str) -> bytes:
        k = self._key(key)
        try:
            resp = self.s3.get_object(Bucket=self.bucket, Key=k)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                raise FileNotFoundError(key) from e
            raise
        return resp["Body"].read()

    def head_object(self, key: str) -> Dict[str, Any]:
        k = self._key(key)
        try:
            resp = self.s3.head_object(Bucket=self.bucket, Key=k)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                raise FileNotFoundError(key) from e
            raise
        obj = make_stored_object(key, resp.get("ContentLength"), resp.get("LastModified"))
        return {
            "key": obj.key,
            "size": obj.size,
            "content_type": resp.get("ContentType"),
            "uploaded_at": obj.uploaded_at,
        }

    def delete_object(self, key: str) -> None:
        k = self._key(key)
        self.s3.delete_object(Bucket=self.bucket, Key=k)
