from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from fastapi import HTTPException, Request

from core.deps import get_providers
from providers.ratelimit import RateLimitStore

log = logging.getLogger(__name__)

# Purge stale windows every N checks so the store stays bounded
_PURGE_EVERY = 256


class RateLimiter:
    """
    Fixed-window limiter: at most max_requests per window_seconds per client.
    """

    def __init__(
        self,
        store: RateLimitStore,
        max_requests: int = 20,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._checks = 0
        self._checks_lock = threading.Lock()

    def check(self, client_id: str) -> bool:
        now = self.clock()

        with self._checks_lock:
            self._checks += 1
            purge = self._checks % _PURGE_EVERY == 0
        if purge:
            self.store.purge_expired(now)

        return self.store.hit(client_id, now, self.window_seconds, self.max_requests)


def client_identifier(request: Request) -> str:
    """
    Prefer the edge-provided client IP, then the first X-Forwarded-For hop,
    then the socket peer.
    """
    cf = (request.headers.get("CF-Connecting-IP") or "").strip()
    if cf:
        return cf
    xff = (request.headers.get("X-Forwarded-For") or "").strip()
    if xff:
        first = xff.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency: 429 once the caller's window is exhausted."""
    limiter: Optional[RateLimiter] = getattr(get_providers(request), "rate_limiter", None)
    if limiter is None:
        return
    client = client_identifier(request)
    if not limiter.check(client):
        log.info("[ratelimit] client=%s exceeded %s req/%ss", client, limiter.max_requests, limiter.window_seconds)
        raise HTTPException(status_code=429, detail="Rate limit exceeded. Please try again later.")
