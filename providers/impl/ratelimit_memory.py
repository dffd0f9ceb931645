from __future__ import annotations

import threading
from typing import Dict, Optional

from providers.ratelimit import RateLimitStore, RateWindow


class InMemoryRateLimitStore(RateLimitStore):
    """
    Process-local window store. Resets on restart and is not shared between
    instances.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._windows: Dict[str, RateWindow] = {}

    def hit(self, client_id: str, now: float, window_seconds: float, max_requests: int) -> bool:
        with self._lock:
            current = self._windows.get(client_id)
            if current is None or now > current.reset_at:
                self._windows[client_id] = RateWindow(count=1, reset_at=now + window_seconds)
                return True
            if current.count >= max_requests:
                return False
            self._windows[client_id] = RateWindow(count=current.count + 1, reset_at=current.reset_at)
            return True

    def get(self, client_id: str) -> Optional[RateWindow]:
        with self._lock:
            return self._windows.get(client_id)

    def set(self, client_id: str, window: RateWindow) -> None:
        with self._lock:
            self._windows[client_id] = window

    def purge_expired(self, now: float) -> int:
        with self._lock:
            expired = [k for k, w in self._windows.items() if now > w.reset_at]
            for k in expired:
                del self._windows[k]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
