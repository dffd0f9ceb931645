from __future__ import annotations

from typing import List

from quota.models import EvictionPlan, InventorySnapshot


def _within(size: int, count: int, target_size: int, target_count: int) -> bool:
    return size <= target_size and count <= target_count


def plan_eviction(snapshot: InventorySnapshot, target_size: int, target_count: int) -> EvictionPlan:
    """
    Pick the shortest oldest-first prefix of the snapshot whose removal brings
    the inventory to size <= target_size AND count <= target_count.

    Ordering is (uploaded_at, key) ascending so ties are deterministic. If no
    prefix gets there, every object is selected and the plan is marked
    unsatisfied.
    """
    if target_size < 0 or target_count < 0:
        raise ValueError(f"targets must be non-negative (size={target_size}, count={target_count})")

    ordered = sorted(snapshot.objects, key=lambda o: (o.uploaded_at, o.key))

    remaining_size = snapshot.total_size
    remaining_count = snapshot.object_count
    keys: List[str] = []

    for obj in ordered:
        if _within(remaining_size, remaining_count, target_size, target_count):
            break
        keys.append(obj.key)
        remaining_size -= obj.size
        remaining_count -= 1

    return EvictionPlan(
        keys=keys,
        remaining_size=remaining_size,
        remaining_count=remaining_count,
        removed_size=snapshot.total_size - remaining_size,
        satisfied=_within(remaining_size, remaining_count, target_size, target_count),
    )
