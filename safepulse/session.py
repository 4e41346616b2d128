"""
session.py — One SOS alert session.

Holds the state the alert flow needs between user actions (contacts and
the last location fix) and turns each action into a dispatch:

    confirmed hold   → calls to helplines + contacts   (no location needed)
    share location   → text with a map link to contacts (needs a fix)

Errors are raised to the caller; the controller in app.py turns them
into alerts on screen.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from safepulse.alerts.contacts import ContactRegistry
from safepulse.alerts.dispatch import DispatchBatch, DispatchEngine
from safepulse.alerts.models import Contact, LocationSnapshot
from safepulse.core.errors import NoLocationAvailable
from safepulse.location.provider import LocationProvider

logger = logging.getLogger(__name__)

SHARE_SUCCESS_MESSAGE = "Location shared successfully!"


class AlertSurface(Protocol):
    """Where informational alerts are shown to the user."""

    def show(self, message: str) -> None: ...


class AlertSession:
    """Orchestrates trigger → calls and share → messages."""

    def __init__(
        self,
        registry: ContactRegistry,
        location: LocationProvider,
        engine: DispatchEngine,
        surface: AlertSurface,
    ):
        self.registry = registry
        self.location = location
        self.engine = engine
        self.surface = surface
        self._last_snapshot: Optional[LocationSnapshot] = None

    @property
    def last_snapshot(self) -> Optional[LocationSnapshot]:
        return self._last_snapshot

    def add_contact(self, name: str, number: str) -> Contact:
        return self.registry.add_contact(name, number)

    def on_confirmed_trigger(self) -> DispatchBatch:
        """Call both helplines and every contact. Runs once per confirmed hold."""
        targets = self.registry.call_recipients()
        logger.info("SOS triggered — calling %d number(s)", len(targets))
        return self.engine.dispatch_calls(targets)

    async def refresh_location(self) -> LocationSnapshot:
        """Fetch a fresh fix and keep it for sharing."""
        snapshot = await self.location.get_current_snapshot()
        self._last_snapshot = snapshot
        return snapshot

    def on_share_location_requested(self) -> DispatchBatch:
        """
        Text the last fix to every non-helpline contact.

        Success is shown as soon as the sends are issued; individual
        outcomes are on the returned batch.

        Raises
        ------
        NoLocationAvailable
            If no fix has been fetched yet. Nothing is sent.
        """
        if self._last_snapshot is None:
            raise NoLocationAvailable()

        message = self.engine.build_share_message(self._last_snapshot)
        batch = self.engine.dispatch_messages(self.registry.message_recipients(), message)
        self.surface.show(SHARE_SUCCESS_MESSAGE)
        return batch
