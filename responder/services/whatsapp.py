"""WhatsApp Cloud API send client."""

from __future__ import annotations

from typing import Any

import httpx

from responder.models import OutboundReply, SendResult

_GRAPH_API_BASE = "https://graph.facebook.com"
_TIMEOUT_SECONDS = 30.0


class WhatsAppSender:
    """Sends text replies through the WhatsApp Business API.

    One attempt per reply; failures come back as a SendResult instead of an
    exception so callers decide what to drop.
    """

    def __init__(
        self,
        phone_number_id: str,
        access_token: str,
        api_version: str = "v18.0",
    ) -> None:
        self._phone_number_id = phone_number_id
        self._access_token = access_token
        self._api_version = api_version

    @property
    def url(self) -> str:
        return f"{_GRAPH_API_BASE}/{self._api_version}/{self._phone_number_id}/messages"

    @staticmethod
    def build_payload(reply: OutboundReply) -> dict[str, Any]:
        return {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": reply.recipient,
            "type": "text",
            "text": {"body": reply.body},
            "context": {"message_id": reply.reply_to},
        }

    async def send_reply(self, reply: OutboundReply) -> SendResult:
        """Send ``reply`` as a quoted reply to ``reply.reply_to``."""
        headers = {"Authorization": f"Bearer {self._access_token}"}

        try:
            async with httpx.AsyncClient(verify=True) as client:
                resp = await client.post(
                    self.url,
                    json=self.build_payload(reply),
                    headers=headers,
                    timeout=_TIMEOUT_SECONDS,
                )
        except httpx.HTTPError as exc:
            return SendResult(ok=False, error=f"{type(exc).__name__}: {exc}")

        if resp.status_code >= 400:
            return SendResult(
                ok=False,
                status_code=resp.status_code,
                error=resp.text[:500],
            )
        return SendResult(ok=True, status_code=resp.status_code)
