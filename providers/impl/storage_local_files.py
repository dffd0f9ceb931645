from __future__ import annotations

import mimetypes
import os
from typing import Any, Dict, List, Optional

from providers.storage import ObjectPage, StorageProvider, make_stored_object


class LocalFilesStorageProvider(StorageProvider):
    """
    Local filesystem storage provider rooted at STORAGE_LOCAL_DIR.

    - Keys map to files under root_dir ("/" becomes a subdirectory).
    - Upload time is the file mtime.
    - Listing is ordered by key; the cursor is the last key of the page.
    - Content type is derived from the key's extension (no sidecar metadata).
    """

    def __init__(self, root_dir: str = "./data"):
        self.root_dir = os.path.abspath(root_dir or "./data")
        os.makedirs(self.root_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        safe = (key or "").replace("..", "").lstrip("/").replace("/", os.sep)
        return os.path.join(self.root_dir, safe)

    def _all_keys(self) -> List[str]:
        keys: List[str] = []
        for dirpath, _dirnames, filenames in os.walk(self.root_dir):
            for name in filenames:
                full = os.path.join(dirpath, name)
                rel = os.path.relpath(full, self.root_dir)
                keys.append(rel.replace(os.sep, "/"))
        keys.sort()
        return keys

    def list_objects(self, cursor: Optional[str] = None, limit: int = 1000) -> ObjectPage:
        limit = max(1, int(limit))
        keys = self._all_keys()
        if cursor:
            keys = [k for k in keys if k > cursor]

        page_keys = keys[:limit]
        objects = []
        for k in page_keys:
            try:
                st = os.stat(self._path(k))
            except FileNotFoundError:
                # deleted between walk and stat
                continue
            objects.append(make_stored_object(k, st.st_size, st.st_mtime))

        next_cursor = page_keys[-1] if len(keys) > limit and page_keys else None
        return ObjectPage(objects=objects, next_cursor=next_cursor)

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        path = self._path(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data or b"")

    def get_object(self, key: str) -> bytes:
        path = self._path(key)
        with open(path, "rb") as f:
            return f.read()

    def head_object(self, key: str) -> Dict[str, Any]:
        path = self._path(key)
        st = os.stat(path)
        content_type, _ = mimetypes.guess_type(path)
        obj = make_stored_object(key, st.st_size, st.st_mtime)
        return {
            "key": obj.key,
            "size": obj.size,
            "content_type": content_type,
            "uploaded_at": obj.uploaded_at,
        }

    def delete_object(self, key: str) -> None:
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)
