from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class RateWindow:
    count: int
    reset_at: float  # epoch seconds


@runtime_checkable
class RateLimitStore(Protocol):
    """
    Client-identifier -> RateWindow mapping.

    In-process by default; a shared cache can back it for multi-instance
    deployments. hit() must count and decide in one atomic step (a lock, or
    INCR + EXPIRE on a cache).
    """

    def hit(self, client_id: str, now: float, window_seconds: float, max_requests: int) -> bool: ...

    def get(self, client_id: str) -> Optional[RateWindow]: ...

    def set(self, client_id: str, window: RateWindow) -> None: ...

    def purge_expired(self, now: float) -> int: ...
