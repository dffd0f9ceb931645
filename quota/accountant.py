from __future__ import annotations

import logging
from typing import List, Optional, Set

from providers.storage import StorageProvider, StorageUnavailable, StoredObject
from quota.models import InventorySnapshot, QuotaPolicy

log = logging.getLogger(__name__)

# Absolute cap on list calls per snapshot, independent of page size
MAX_LIST_PAGES = 10_000


class CapacityAccountant:
    """
    Materializes an InventorySnapshot by draining the store's paginated listing.

    The drain stops early (snapshot.truncated=True) when:
      - the collected object count reaches policy.listing_object_ceiling
      - the adapter hands back a cursor it already returned (cycle)
      - MAX_LIST_PAGES list calls have been made
    Any adapter error becomes StorageUnavailable.
    """

    def __init__(self, storage: StorageProvider, policy: QuotaPolicy):
        self.storage = storage
        self.policy = policy

    def compute_inventory(self) -> InventorySnapshot:
        ceiling = self.policy.listing_object_ceiling
        page_size = self.policy.list_page_size

        objects: List[StoredObject] = []
        seen_cursors: Set[str] = set()
        cursor: Optional[str] = None
        pages = 0
        truncated = False

        while True:
            try:
                page = self.storage.list_objects(cursor=cursor, limit=page_size)
            except StorageUnavailable:
                raise
            except Exception as exc:
                raise StorageUnavailable(f"listing failed after {pages} page(s): {exc}") from exc
            pages += 1

            objects.extend(page.objects)
            cursor = page.next_cursor
            if not cursor:
                break

            if len(objects) >= ceiling:
                log.warning("[quota] listing stopped at object ceiling=%s (pages=%s)", ceiling, pages)
                truncated = True
                break
            if cursor in seen_cursors:
                log.warning("[quota] listing cursor repeated after %s page(s); stopping", pages)
                truncated = True
                break
            if pages >= MAX_LIST_PAGES:
                log.warning("[quota] listing stopped at page cap=%s", MAX_LIST_PAGES)
                truncated = True
                break
            seen_cursors.add(cursor)

        snapshot = InventorySnapshot.from_objects(objects, truncated=truncated)
        log.debug(
            "[quota] snapshot objects=%s bytes=%s pages=%s truncated=%s",
            snapshot.object_count,
            snapshot.total_size,
            pages,
            truncated,
        )
        return snapshot
