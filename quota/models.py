from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from providers.storage import StoredObject


class QuotaConfigError(ValueError):
    pass


@dataclass(frozen=True)
class QuotaPolicy:
    """
    Process-wide capacity policy, fixed at startup.

    - hard_size_limit: bytes; a write that would exceed it is rejected.
    - hard_count_limit: objects; only soft-managed (triggers cleanup, never rejects).
    - soft_size_threshold_fraction: fraction of hard_size_limit that triggers cleanup.
    - soft_count_threshold_fraction: fraction of hard_count_limit that triggers cleanup.
    - cleanup_target_fraction: cleanup shrinks to this fraction of the soft size
      limit and of the count limit.
    - listing_ceiling_factor: listing stops after hard_count_limit * factor objects.
    - list_page_size: page size requested from the storage adapter.
    """
    hard_size_limit: int
    hard_count_limit: int
    soft_size_threshold_fraction: float = 0.85
    soft_count_threshold_fraction: float = 1.0
    cleanup_target_fraction: float = 0.8
    listing_ceiling_factor: int = 2
    list_page_size: int = 1000

    def __post_init__(self) -> None:
        if self.hard_size_limit <= 0:
            raise QuotaConfigError(f"hard_size_limit must be positive, got {self.hard_size_limit}")
        if self.hard_count_limit <= 0:
            raise QuotaConfigError(f"hard_count_limit must be positive, got {self.hard_count_limit}")
        for name in ("soft_size_threshold_fraction", "soft_count_threshold_fraction", "cleanup_target_fraction"):
            v = getattr(self, name)
            if not (0.0 < v <= 1.0):
                raise QuotaConfigError(f"{name} must be in (0, 1], got {v}")
        if self.listing_ceiling_factor < 1:
            raise QuotaConfigError("listing_ceiling_factor must be >= 1")
        if self.list_page_size < 1:
            raise QuotaConfigError("list_page_size must be >= 1")

    @classmethod
    def from_settings(cls, quota_settings) -> "QuotaPolicy":
        return cls(
            hard_size_limit=quota_settings.max_bucket_bytes,
            hard_count_limit=quota_settings.max_files,
            soft_size_threshold_fraction=quota_settings.soft_size_fraction,
            soft_count_threshold_fraction=quota_settings.soft_count_fraction,
            cleanup_target_fraction=quota_settings.cleanup_target_fraction,
            listing_ceiling_factor=quota_settings.listing_ceiling_factor,
            list_page_size=quota_settings.list_page_size,
        )

    @property
    def soft_size_limit(self) -> float:
        return self.hard_size_limit * self.soft_size_threshold_fraction

    @property
    def count_trigger(self) -> float:
        return self.hard_count_limit * self.soft_count_threshold_fraction

    @property
    def cleanup_target_size(self) -> int:
        return int(math.floor(self.soft_size_limit * self.cleanup_target_fraction))

    @property
    def cleanup_target_count(self) -> int:
        return int(math.floor(self.hard_count_limit * self.cleanup_target_fraction))

    @property
    def listing_object_ceiling(self) -> int:
        return self.hard_count_limit * self.listing_ceiling_factor


@dataclass(frozen=True)
class InventorySnapshot:
    total_size: int
    object_count: int
    objects: List[StoredObject] = field(default_factory=list)
    # True when the listing was cut short by the iteration ceiling
    truncated: bool = False

    @classmethod
    def from_objects(cls, objects: List[StoredObject], truncated: bool = False) -> "InventorySnapshot":
        objs = list(objects)
        return cls(
            total_size=sum(o.size for o in objs),
            object_count=len(objs),
            objects=objs,
            truncated=truncated,
        )


@dataclass(frozen=True)
class EvictionPlan:
    """
    Oldest-first keys to delete, plus the projected inventory once they are gone.

    satisfied is False when even evicting everything could not reach both
    targets (degenerate plan; callers proceed with whatever it achieves).
    """
    keys: List[str]
    remaining_size: int
    remaining_count: int
    removed_size: int
    satisfied: bool

    @property
    def degenerate(self) -> bool:
        return not self.satisfied


class AdmissionOutcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ACCEPTED_AFTER_CLEANUP = "accepted_after_cleanup"


@dataclass(frozen=True)
class AdmissionDecision:
    outcome: AdmissionOutcome
    current_size: int
    current_count: int
    max_size: int
    projected_size: int
    projected_count: int
    reason: Optional[str] = None
    evicted_keys: List[str] = field(default_factory=list)
    failed_keys: List[str] = field(default_factory=list)
    plan: Optional[EvictionPlan] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is not AdmissionOutcome.REJECTED
