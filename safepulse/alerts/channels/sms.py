"""
sms.py — Text message channel.

Delivery mechanism:
    • One send per recipient, each an independent coroutine
    • Each send reports its own outcome (provider response or
      MessageDispatchFailure); the dispatch engine decides what to do
      with it

═══════════════════════════════════════════════════════════════════════════
HTTP GATEWAY CONTRACT
═══════════════════════════════════════════════════════════════════════════

    POST {SMS_GATEWAY_URL}
    Authorization: Bearer {SMS_API_KEY}        (only when a key is set)
    {
        "to": "+919876543210",
        "from": "SAFEPULSE",
        "body": "My current location is: https://maps.google.com/?q=..."
    }

    2xx        → sent; JSON body (if any) kept as provider response
    non-2xx    → MessageDispatchFailure(status_code=...)
    transport  → MessageDispatchFailure (timeout, DNS, refused)

Segments are counted against the GSM 7-bit limit so long location texts
show up in the logs as multi-part messages.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Set, Tuple

import httpx

from safepulse.core.config import Settings
from safepulse.core.errors import MessageDispatchFailure

logger = logging.getLogger(__name__)

SMS_MAX_GSM7 = 160      # single-segment GSM 7-bit
SMS_CONCAT_GSM7 = 153   # per segment once concatenated


def count_segments(body: str) -> int:
    if len(body) <= SMS_MAX_GSM7:
        return 1
    return 1 + (len(body) - 1) // SMS_CONCAT_GSM7


class MessageSender(Protocol):
    """Platform capability that sends one text message."""

    async def send(self, number: str, body: str) -> Dict[str, Any]: ...


class SimulatedSmsSender:
    """Sender that only logs. Numbers in ``fail_numbers`` fail."""

    def __init__(self, fail_numbers: Optional[Set[str]] = None):
        self.fail_numbers = set(fail_numbers or ())
        self.sent: List[Tuple[str, str]] = []

    async def send(self, number: str, body: str) -> Dict[str, Any]:
        if number in self.fail_numbers:
            raise MessageDispatchFailure(number, "simulated delivery failure")

        self.sent.append((number, body))
        segments = count_segments(body)
        logger.info(
            "[SMS] → %s: %d chars, %d segment(s) → '%s'",
            number, len(body), segments,
            body[:80] + ("..." if len(body) > 80 else ""),
        )
        return {"mode": "simulated", "segments": segments, "number": number}


class HttpSmsGateway:
    """Sender that posts each message to an HTTP SMS gateway."""

    def __init__(
        self,
        url: str,
        *,
        api_key: Optional[str] = None,
        sender_id: str = "SAFEPULSE",
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.sender_id = sender_id
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            headers = {}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout_seconds,
                headers=headers,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def send(self, number: str, body: str) -> Dict[str, Any]:
        client = await self._get_client()
        payload = {"to": number, "from": self.sender_id, "body": body}

        try:
            response = await client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("[SMS/http] Gateway rejected message to %s: %d", number, status)
            raise MessageDispatchFailure(
                number, f"gateway returned {status}", status_code=status,
            ) from e
        except httpx.HTTPError as e:
            logger.error("[SMS/http] Request to gateway failed for %s: %s", number, e)
            raise MessageDispatchFailure(number, str(e) or type(e).__name__) from e

        try:
            data = response.json()
        except ValueError:
            data = {"text": response.text}

        logger.info("[SMS/http] → %s accepted (%d)", number, response.status_code)
        return {
            "mode": "http",
            "status_code": response.status_code,
            "segments": count_segments(body),
            "response": data,
        }


def get_message_sender(config: Settings) -> MessageSender:
    """Build the sender for the configured SMS_PROVIDER."""
    provider = config.SMS_PROVIDER
    if provider == "simulation":
        return SimulatedSmsSender()
    if provider == "http":
        if not config.SMS_GATEWAY_URL:
            raise ValueError("SMS_PROVIDER=http requires SMS_GATEWAY_URL")
        return HttpSmsGateway(
            config.SMS_GATEWAY_URL,
            api_key=config.SMS_API_KEY,
            sender_id=config.SMS_SENDER_ID,
            timeout_seconds=config.SMS_TIMEOUT_SECONDS,
        )
    raise ValueError(f"Unknown SMS provider: {provider}")
