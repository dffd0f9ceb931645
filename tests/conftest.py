import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Repo root holds the top-level packages (core, providers, quota, ...)
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from providers.storage import ObjectPage, StoredObject  # noqa: E402

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def ts(n: int) -> datetime:
    return T0 + timedelta(seconds=n)


class FakeStorage:
    """
    In-memory StorageProvider with key-ordered paging.

    - fail_list: raise on list_objects
    - fail_delete: keys whose delete raises
    """

    def __init__(self, objects: Optional[List[StoredObject]] = None, page_size: Optional[int] = None):
        self.objects: Dict[str, StoredObject] = {o.key: o for o in (objects or [])}
        self.blobs: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.page_size = page_size
        self.fail_list = False
        self.fail_put = False
        self.fail_delete: set = set()
        self.list_calls = 0
        self.deleted: List[str] = []
        self.clock = 10_000

    def list_objects(self, cursor=None, limit=1000) -> ObjectPage:
        self.list_calls += 1
        if self.fail_list:
            raise ConnectionError("backend down")
        size = min(limit, self.page_size or limit)
        keys = sorted(k for k in self.objects if cursor is None or k > cursor)
        page = keys[:size]
        nxt = page[-1] if len(keys) > size else None
        return ObjectPage(objects=[self.objects[k] for k in page], next_cursor=nxt)

    def put_object(self, key, data, content_type="application/octet-stream", metadata=None):
        if self.fail_put:
            raise ConnectionError("put failed")
        self.clock += 1
        self.objects[key] = StoredObject(key=key, size=len(data), uploaded_at=ts(self.clock))
        self.blobs[key] = data
        self.content_types[key] = content_type

    def get_object(self, key):
        if key not in self.objects:
            raise FileNotFoundError(key)
        return self.blobs.get(key, b"")

    def head_object(self, key):
        if key not in self.objects:
            raise FileNotFoundError(key)
        o = self.objects[key]
        return {"key": key, "size": o.size, "content_type": self.content_types.get(key), "uploaded_at": o.uploaded_at}

    def delete_object(self, key):
        if key in self.fail_delete:
            raise ConnectionError(f"delete failed for {key}")
        self.objects.pop(key, None)
        self.blobs.pop(key, None)
        self.deleted.append(key)

    @property
    def total_size(self) -> int:
        return sum(o.size for o in self.objects.values())


def obj(key: str, size: int, t: int) -> StoredObject:
    return StoredObject(key=key, size=size, uploaded_at=ts(t))


@pytest.fixture
def fake_storage():
    return FakeStorage()
