# health/router.py
from fastapi import APIRouter, Request

from core.deps import get_providers
from providers.storage import StorageUnavailable
from quota.accountant import CapacityAccountant

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    # Keep this super simple and always unauthenticated
    return {"ok": True}


@router.get("/health/storage")
def health_storage(request: Request):
    """
    Verifies:
      - the object store can be listed end to end
      - current usage against the hard limit
    """
    p = get_providers(request)
    try:
        snapshot = CapacityAccountant(p.storage, p.quota_policy).compute_inventory()
    except StorageUnavailable as e:
        return {"ok": False, "storageReachable": False, "error": str(e)}

    return {
        "ok": True,
        "storageReachable": True,
        "objectCount": snapshot.object_count,
        "totalSize": snapshot.total_size,
        "maxSize": p.quota_policy.hard_size_limit,
        "truncated": snapshot.truncated,
    }
