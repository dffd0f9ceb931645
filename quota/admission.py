"""quota/admission.py

Per-write capacity gate for the image bucket.

Each call takes a fresh snapshot, so there is no state across calls and no
lock between concurrent uploads. Two uploads racing each other can both be
admitted against the same snapshot and overshoot hard_size_limit by at most
one object; the next admission's cleanup pass brings the bucket back down.
The storage backends have no multi-object transaction to prevent this.

Deletions are single-attempt: a failed delete is logged, reported in
failed_keys and left for a later cleanup pass.
"""

from __future__ import annotations

import logging
from typing import List

from providers.storage import StorageProvider
from quota.accountant import CapacityAccountant
from quota.models import AdmissionDecision, AdmissionOutcome, EvictionPlan, InventorySnapshot, QuotaPolicy
from quota.planner import plan_eviction

log = logging.getLogger(__name__)

CAPACITY_EXCEEDED = "capacity exceeded"


class AdmissionController:
    def __init__(self, storage: StorageProvider, policy: QuotaPolicy):
        self.storage = storage
        self.policy = policy
        self.accountant = CapacityAccountant(storage, policy)

    def admit(self, incoming_size: int) -> AdmissionDecision:
        """
        Decide whether a write of incoming_size bytes may proceed.

        Raises StorageUnavailable if the inventory cannot be read; callers must
        not write in that case.
        """
        if incoming_size < 0:
            raise ValueError(f"incoming_size must be non-negative, got {incoming_size}")

        snapshot = self.accountant.compute_inventory()
        projected_size = snapshot.total_size + incoming_size
        projected_count = snapshot.object_count + 1
        policy = self.policy

        base = dict(
            current_size=snapshot.total_size,
            current_count=snapshot.object_count,
            max_size=policy.hard_size_limit,
            projected_size=projected_size,
            projected_count=projected_count,
        )

        if projected_size > policy.hard_size_limit:
            log.info(
                "[quota] rejected upload bytes=%s current=%s limit=%s",
                incoming_size,
                snapshot.total_size,
                policy.hard_size_limit,
            )
            return AdmissionDecision(outcome=AdmissionOutcome.REJECTED, reason=CAPACITY_EXCEEDED, **base)

        if projected_size > policy.soft_size_limit or projected_count > policy.count_trigger:
            plan = plan_eviction(snapshot, policy.cleanup_target_size, policy.cleanup_target_count)
            evicted, failed = self._execute(plan, snapshot)
            return AdmissionDecision(
                outcome=AdmissionOutcome.ACCEPTED_AFTER_CLEANUP,
                evicted_keys=evicted,
                failed_keys=failed,
                plan=plan,
                **base,
            )

        return AdmissionDecision(outcome=AdmissionOutcome.ACCEPTED, **base)

    def _execute(self, plan: EvictionPlan, snapshot: InventorySnapshot):
        if plan.degenerate:
            log.warning(
                "[quota] cleanup cannot reach targets (size<=%s count<=%s); evicting all %s listed objects",
                self.policy.cleanup_target_size,
                self.policy.cleanup_target_count,
                snapshot.object_count,
            )

        evicted: List[str] = []
        failed: List[str] = []
        for key in plan.keys:
            try:
                self.storage.delete_object(key)
            except Exception:
                log.warning("[quota] failed to delete %s; leaving it for a later cleanup", key, exc_info=True)
                failed.append(key)
                continue
            log.info("[quota] deleted old file: %s", key)
            evicted.append(key)

        if failed:
            log.warning("[quota] cleanup partial failure: %s of %s deletes failed", len(failed), len(plan.keys))
        log.info(
            "[quota] cleanup done deleted=%s remaining_bytes~%s remaining_count~%s",
            len(evicted),
            plan.remaining_size,
            plan.remaining_count,
        )
        return evicted, failed
