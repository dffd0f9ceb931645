from __future__ import annotations

import logging
from typing import Optional

import httpx

from providers.messaging import MessageResult, MessagingError, MessagingProvider

log = logging.getLogger(__name__)


class TwilioMessagingProvider(MessagingProvider):
    """
    Twilio Programmable Messaging over plain REST (form-encoded POST,
    HTTP basic auth with account SID + auth token).
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        api_base: str = "https://api.twilio.com",
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.api_base = (api_base or "https://api.twilio.com").rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(cls, sms_settings) -> "TwilioMessagingProvider":
        return cls(
            account_sid=sms_settings.account_sid,
            auth_token=sms_settings.auth_token,
            from_number=sms_settings.from_number,
            api_base=sms_settings.api_base,
            timeout_seconds=sms_settings.timeout_seconds,
        )

    @property
    def messages_url(self) -> str:
        return f"{self.api_base}/2010-04-01/Accounts/{self.account_sid}/Messages.json"

    async def send_mms(self, to: str, body: str, media_url: str) -> MessageResult:
        form = {
            "From": self.from_number,
            "To": to,
            "Body": body,
            "MediaUrl": media_url,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                r = await client.post(self.messages_url, data=form, auth=(self.account_sid, self.auth_token))
        except httpx.HTTPError as exc:
            log.error("[sms] Twilio request failed: %s", exc)
            raise MessagingError("Failed to reach messaging provider", status_code=502, details=str(exc)) from exc

        if r.status_code >= 400:
            log.error("[sms] Twilio error status=%s body=%s", r.status_code, r.text)
            raise MessagingError("Failed to send SMS", status_code=r.status_code, details=r.text)

        try:
            data = r.json()
        except ValueError:
            data = {}
        return MessageResult(sid=data.get("sid"), status=data.get("status"))
