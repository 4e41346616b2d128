"""
Application controller — the single owner of SOS state.

Maps user input (press / release, get location, share, add contact) onto
the AlertSession and HoldTimer, and shows every domain error as an
informational alert instead of letting it escape to the UI layer.

Usage:
    controller = create_controller()
    await controller.start()
    controller.add_contact("Alice", "555-1111")
    controller.press_down()      # ... 4 s later both helplines and Alice are called
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional, Tuple

from safepulse.alerts.channels.call import get_dialer
from safepulse.alerts.channels.sms import get_message_sender
from safepulse.alerts.contacts import ContactRegistry
from safepulse.alerts.dispatch import DispatchBatch, DispatchEngine
from safepulse.alerts.models import Contact, LocationSnapshot
from safepulse.core.config import Settings, settings
from safepulse.core.errors import SafePulseError, build_error_notice
from safepulse.location.provider import PermissionStatus, get_location_provider
from safepulse.session import AlertSession, AlertSurface
from safepulse.trigger.hold_timer import HoldTimer

logger = logging.getLogger(__name__)

PERMISSION_DENIED_MESSAGE = "Permission to access location was denied"


class LoggingAlertSurface:
    """Alert surface that logs each alert and keeps them for inspection."""

    def __init__(self):
        self.messages: List[str] = []

    def show(self, message: str) -> None:
        self.messages.append(message)
        logger.info("[ALERT] %s", message)


class SafePulseController:
    def __init__(
        self,
        session: AlertSession,
        *,
        confirm_threshold: Optional[float] = None,
        poll_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self.hold_timer = HoldTimer(
            self._on_confirm,
            confirm_threshold=confirm_threshold,
            poll_interval=poll_interval,
            clock=clock,
        )
        self.last_call_batch: Optional[DispatchBatch] = None
        self.last_message_batch: Optional[DispatchBatch] = None
        self._message_batches: List[DispatchBatch] = []

    @property
    def surface(self) -> AlertSurface:
        return self.session.surface

    @property
    def contacts(self) -> Tuple[Contact, ...]:
        return self.session.registry.list_contacts()

    @property
    def is_holding(self) -> bool:
        return self.hold_timer.is_holding

    def _report(self, exc: BaseException) -> None:
        notice = build_error_notice(exc)
        self.surface.show(notice["message"])

    # ── Startup ──

    async def start(self) -> PermissionStatus:
        logger.info(
            "Starting %s v%s [%s]",
            settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
        )
        return await self.request_permission()

    async def request_permission(self) -> PermissionStatus:
        status = await self.session.location.request_permission()
        if status == PermissionStatus.DENIED:
            self.surface.show(PERMISSION_DENIED_MESSAGE)
        return status

    # ── SOS button ──

    def press_down(self) -> bool:
        return self.hold_timer.press_down()

    def press_up(self) -> bool:
        return self.hold_timer.press_up()

    def _on_confirm(self) -> None:
        self.last_call_batch = self.session.on_confirmed_trigger()

    # ── Location ──

    async def get_location(self) -> Optional[LocationSnapshot]:
        try:
            return await self.session.refresh_location()
        except SafePulseError as exc:
            self._report(exc)
            return None

    def share_location(self) -> Optional[DispatchBatch]:
        try:
            batch = self.session.on_share_location_requested()
        except SafePulseError as exc:
            self._report(exc)
            return None
        self.last_message_batch = batch
        self._message_batches = [b for b in self._message_batches if b.pending]
        if batch.pending:
            self._message_batches.append(batch)
        return batch

    # ── Contacts ──

    def add_contact(self, name: str, number: str) -> Optional[Contact]:
        try:
            return self.session.add_contact(name, number)
        except SafePulseError as exc:
            self._report(exc)
            return None

    # ── Shutdown ──

    async def shutdown(self) -> None:
        """Drop any hold in progress, let issued messages finish, close channels."""
        self.hold_timer.shutdown()
        outstanding = [b for b in self._message_batches if b.pending]
        if outstanding:
            logger.info("Waiting for %d message batch(es) to finish", len(outstanding))
            await asyncio.gather(*(b.wait() for b in outstanding))
        self._message_batches = []

        close = getattr(self.session.engine.sender, "close", None)
        if close is not None:
            await close()
        logger.info("Shutting down %s", settings.APP_NAME)


def create_controller(
    config: Settings = settings,
    *,
    surface: Optional[AlertSurface] = None,
) -> SafePulseController:
    """Wire a controller from settings."""
    engine = DispatchEngine(
        get_dialer(config),
        get_message_sender(config),
        map_link_base=config.MAP_LINK_BASE,
    )
    session = AlertSession(
        ContactRegistry(),
        get_location_provider(config),
        engine,
        surface or LoggingAlertSurface(),
    )
    return SafePulseController(
        session,
        confirm_threshold=config.hold_confirm_seconds,
        poll_interval=config.hold_poll_interval_seconds,
    )
