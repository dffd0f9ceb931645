from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


class MessagingError(RuntimeError):
    """Upstream messaging API refused or failed the request."""

    def __init__(self, message: str, status_code: int = 502, details: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


@dataclass(frozen=True)
class MessageResult:
    sid: Optional[str]
    status: Optional[str] = None


@runtime_checkable
class MessagingProvider(Protocol):
    """
    Outbound multimedia messaging.
    """

    async def send_mms(self, to: str, body: str, media_url: str) -> MessageResult: ...
