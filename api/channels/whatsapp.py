"""
WhatsApp Channel for the Ammin insurance relay.

Sends replies through the Meta Cloud API and unpacks inbound webhook
payloads into orchestrator requests.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from llm.orchestrator import InboundMessage
from .base import ChannelProvider, ChannelMessage, ChannelResponse

logger = logging.getLogger(__name__)


class MetaCloudWhatsApp(ChannelProvider):
    """WhatsApp via Meta Cloud API."""

    BASE_URL = "https://graph.facebook.com"

    def __init__(
        self,
        api_token: str,
        phone_number_id: str,
        api_version: str = "v18.0",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_token = api_token
        self.phone_number_id = phone_number_id
        self.api_version = api_version
        self.timeout = timeout
        self._transport = transport

    @property
    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_token}", "Content-Type": "application/json"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def send_message(self, message: ChannelMessage) -> ChannelResponse:
        url = f"{self.BASE_URL}/{self.api_version}/{self.phone_number_id}/messages"
        payload = {
            "messaging_product": "whatsapp",
            "to": message.to,
            "type": "text",
            "text": {"body": message.content},
        }
        try:
            async with self._client() as client:
                resp = await client.post(url, json=payload, headers=self._headers)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Meta WhatsApp send failed: {e.response.status_code} {e.response.text}")
            return ChannelResponse(success=False, error=str(e))
        except httpx.HTTPError as e:
            logger.error(f"Meta WhatsApp send failed: {e}")
            return ChannelResponse(success=False, error=str(e))

        # A 2xx means Meta accepted the message; the id is informational
        return ChannelResponse(success=True, message_id=_message_id(resp))

    async def health_check(self) -> bool:
        try:
            async with self._client() as client:
                resp = await client.get(
                    f"{self.BASE_URL}/{self.api_version}/{self.phone_number_id}",
                    headers={"Authorization": f"Bearer {self.api_token}"},
                )
                return resp.status_code == 200
        except httpx.HTTPError:
            return False


def _message_id(resp: httpx.Response) -> Optional[str]:
    try:
        data = resp.json()
    except ValueError:
        logger.warning("Meta WhatsApp send returned a non-JSON body")
        return None
    if not isinstance(data, dict):
        return None
    messages = data.get("messages") or [{}]
    first = messages[0] if isinstance(messages, list) else {}
    return first.get("id") if isinstance(first, dict) else None


def parse_inbound_messages(payload: Dict[str, Any]) -> List[InboundMessage]:
    """
    Extract inbound messages from a WhatsApp Business webhook payload.

    Anything that does not look like a message delivery (status callbacks,
    other objects, missing fields) yields an empty list.
    """
    if not isinstance(payload, dict) or payload.get("object") != "whatsapp_business_account":
        return []

    inbound: List[InboundMessage] = []
    for entry in payload.get("entry") or []:
        if not isinstance(entry, dict):
            continue
        for change in entry.get("changes") or []:
            if not isinstance(change, dict) or change.get("field") != "messages":
                continue
            value = change.get("value") or {}
            for message in value.get("messages") or []:
                parsed = _parse_message(message)
                if parsed:
                    inbound.append(parsed)
    return inbound


def _parse_message(message: Any) -> Optional[InboundMessage]:
    if not isinstance(message, dict):
        return None
    sender = message.get("from")
    if not sender:
        return None

    message_type = message.get("type") or "unknown"
    text = ""
    if message_type == "text":
        text = (message.get("text") or {}).get("body") or ""

    return InboundMessage(
        user_id=str(sender),
        text=text,
        message_type=message_type,
        message_id=message.get("id"),
    )
