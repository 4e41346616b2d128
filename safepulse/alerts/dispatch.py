"""
dispatch.py — Multi-channel SOS dispatch engine.

Fans one alert out to a computed recipient list on one channel:

    ┌─────────────────────┐
    │  AlertSession       │  call_recipients() / message_recipients()
    └─────────┬───────────┘
              │
              ▼
    ┌─────────────────────┐
    │  DispatchEngine     │  one independent dispatch per recipient,
    │                     │  issued in order, no throttling
    └─────────┬───────────┘
              │
       ┌──────┴───────┐
       ▼              ▼
    Dialer.dial    MessageSender.send
    (sync, fire    (async task per number,
    and forget)     outcome recorded)

═══════════════════════════════════════════════════════════════════════════
FAILURE ISOLATION
═══════════════════════════════════════════════════════════════════════════

    • A call that cannot be started is logged and marked FAILED; the next
      number is still dialled.
    • A message that fails is marked FAILED inside its own task; other
      tasks are unaffected.
    • Nothing is retried and nothing in flight is cancelled.

The engine never waits for message outcomes. Callers that want a real
success signal await DispatchBatch.wait() for a DispatchReport; the
share-location action does not, and reports success regardless.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from safepulse.alerts.channels.call import Dialer
from safepulse.alerts.channels.sms import MessageSender
from safepulse.alerts.models import (
    DeliveryAttempt,
    DeliveryStatus,
    DispatchChannel,
    DispatchReport,
    LocationSnapshot,
)
from safepulse.core.config import settings
from safepulse.core.errors import CallInitiationFailure, MessageDispatchFailure

logger = logging.getLogger(__name__)

SHARE_MESSAGE_TEMPLATE = "My current location is: {link}"


class DispatchBatch:
    """
    Handle on one issued batch.

    Call batches are complete when returned. Message batches hold the
    per-recipient tasks so they stay referenced until they finish.
    """

    def __init__(self, channel: DispatchChannel):
        self.channel = channel
        self.attempts: List[DeliveryAttempt] = []
        self._tasks: List[asyncio.Task] = []

    def __len__(self) -> int:
        return len(self.attempts)

    @property
    def numbers(self) -> List[str]:
        return [a.number for a in self.attempts]

    @property
    def pending(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def wait(self) -> DispatchReport:
        """Join every outstanding dispatch and collect the outcomes."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        return DispatchReport(channel=self.channel, attempts=list(self.attempts))


class DispatchEngine:
    """Issues call and message batches through the platform channels."""

    def __init__(
        self,
        dialer: Dialer,
        sender: MessageSender,
        *,
        map_link_base: Optional[str] = None,
    ):
        self.dialer = dialer
        self.sender = sender
        self.map_link_base = map_link_base or settings.MAP_LINK_BASE

    # ── Calls ──

    def dispatch_calls(self, targets: Sequence[str]) -> DispatchBatch:
        """Start a call to every target, in order, without observing outcomes."""
        batch = DispatchBatch(DispatchChannel.CALL)
        logger.info(
            "Dispatching calls to %d recipient(s)", len(targets),
            extra={"channel": DispatchChannel.CALL.value, "recipient_count": len(targets)},
        )

        for number in targets:
            attempt = DeliveryAttempt(channel=DispatchChannel.CALL, number=number)
            batch.attempts.append(attempt)
            try:
                attempt.provider_response = self.dialer.dial(number)
                attempt.status = DeliveryStatus.INITIATED
            except CallInitiationFailure as exc:
                attempt.status = DeliveryStatus.FAILED
                attempt.error_message = exc.message
                logger.warning("[CALL] %s", exc.message, extra={"number": number})
            except Exception as exc:
                attempt.status = DeliveryStatus.FAILED
                attempt.error_message = str(exc)
                logger.error("[CALL] Error while calling %s: %s", number, exc)
            attempt.completed_at = datetime.now(timezone.utc)

        failed = sum(1 for a in batch.attempts if a.status == DeliveryStatus.FAILED)
        if failed:
            logger.warning("%d of %d call(s) could not be started", failed, len(batch))
        return batch

    # ── Messages ──

    def dispatch_messages(self, targets: Sequence[str], body: str) -> DispatchBatch:
        """
        Schedule one send per target on the running loop and return at once.

        Must be called from inside the event loop when targets is non-empty.
        """
        batch = DispatchBatch(DispatchChannel.MESSAGE)
        logger.info(
            "Dispatching message to %d recipient(s)", len(targets),
            extra={"channel": DispatchChannel.MESSAGE.value, "recipient_count": len(targets)},
        )

        for number in targets:
            attempt = DeliveryAttempt(channel=DispatchChannel.MESSAGE, number=number)
            batch.attempts.append(attempt)
            batch._tasks.append(asyncio.create_task(self._send_one(attempt, body)))

        return batch

    async def _send_one(self, attempt: DeliveryAttempt, body: str) -> None:
        try:
            attempt.provider_response = await self.sender.send(attempt.number, body)
            attempt.status = DeliveryStatus.SENT
        except MessageDispatchFailure as exc:
            attempt.status = DeliveryStatus.FAILED
            attempt.error_message = exc.message
            logger.warning("[SMS] %s", exc.message, extra={"number": attempt.number})
        except Exception as exc:
            attempt.status = DeliveryStatus.FAILED
            attempt.error_message = str(exc)
            logger.error("[SMS] Error while messaging %s: %s", attempt.number, exc)
        finally:
            attempt.completed_at = datetime.now(timezone.utc)

    # ── Share message ──

    def build_share_message(self, snapshot: LocationSnapshot) -> str:
        link = f"{self.map_link_base}{snapshot.latitude},{snapshot.longitude}"
        return SHARE_MESSAGE_TEMPLATE.format(link=link)
