"""
test_session.py — Tests for AlertSession and the application controller.

Covers:
    • Trigger → call batch (no location needed)
    • Share → message batch, optimistic success alert
    • Errors surfaced as alerts by the controller
    • End-to-end scenarios: hold to call, share filtered to zero,
      share before any location fetch

Run with:
    pytest tests/test_session.py -v
"""

from __future__ import annotations

import asyncio

import pytest

from safepulse.alerts.channels.call import SimulatedDialer
from safepulse.alerts.channels.sms import SimulatedSmsSender
from safepulse.alerts.contacts import MISSING_FIELDS_MESSAGE, ContactRegistry
from safepulse.alerts.dispatch import DispatchEngine
from safepulse.alerts.models import WOMEN_HELPLINE, DeliveryStatus, LocationSnapshot
from safepulse.app import (
    PERMISSION_DENIED_MESSAGE,
    LoggingAlertSurface,
    SafePulseController,
    create_controller,
)
from safepulse.core.config import Settings
from safepulse.core.errors import MessageDispatchFailure, NoLocationAvailable
from safepulse.location.provider import (
    LocationProvider,
    PermissionStatus,
    SimulatedGeolocator,
    SimulatedPermissionGate,
)
from safepulse.session import SHARE_SUCCESS_MESSAGE, AlertSession

CHENNAI_LAT = 13.0827
CHENNAI_LON = 80.2707


class FakeClock:
    def __init__(self, start_ms: int = 1_000_000):
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms / 1000.0

    def advance_ms(self, ms: int) -> None:
        self.now_ms += ms


class ClosingSmsSender(SimulatedSmsSender):
    """Sender whose sends take time and fail once it has been closed."""

    def __init__(self, delays):
        super().__init__()
        self.delays = list(delays)
        self.closed = False

    async def send(self, number, body):
        await asyncio.sleep(self.delays.pop(0) if self.delays else 0.0)
        if self.closed:
            raise MessageDispatchFailure(number, "client closed")
        return await super().send(number, body)

    async def close(self):
        self.closed = True


class Harness:
    """Session wired to simulated channels, with handles for assertions."""

    def __init__(self, *, granted=True, fail_messages=(), geo_error=None):
        self.dialer = SimulatedDialer()
        self.sender = SimulatedSmsSender(fail_numbers=set(fail_messages))
        self.gate = SimulatedPermissionGate(granted=granted)
        self.geolocator = SimulatedGeolocator(CHENNAI_LAT, CHENNAI_LON, error=geo_error)
        self.surface = LoggingAlertSurface()
        self.session = AlertSession(
            ContactRegistry(),
            LocationProvider(self.gate, self.geolocator, timeout_seconds=1.0),
            DispatchEngine(self.dialer, self.sender, map_link_base="https://maps.google.com/?q="),
            self.surface,
        )
        self.clock = FakeClock()
        self.controller = SafePulseController(
            self.session, confirm_threshold=4.0, poll_interval=60.0, clock=self.clock,
        )


# ═══════════════════════════════════════════════════════════════════════════
# Section 1: AlertSession
# ═══════════════════════════════════════════════════════════════════════════

class TestConfirmedTrigger:

    def test_calls_without_location(self):
        h = Harness()
        h.session.add_contact("Alice", "555-1111")
        batch = h.session.on_confirmed_trigger()
        assert h.session.last_snapshot is None
        assert batch.numbers == ["100", "1091", "555-1111"]
        assert h.dialer.dialled == ["100", "1091", "555-1111"]

    def test_helpline_contact_called_once(self):
        h = Harness()
        h.session.add_contact("Bob", WOMEN_HELPLINE)
        h.session.on_confirmed_trigger()
        assert h.dialer.dialled == ["100", "1091"]


class TestShareLocation:

    def test_no_location_raises_and_sends_nothing(self):
        h = Harness()
        h.session.add_contact("Alice", "555-1111")
        with pytest.raises(NoLocationAvailable):
            h.session.on_share_location_requested()
        assert h.sender.sent == []
        assert h.surface.messages == []

    def test_share_after_refresh(self):
        h = Harness()
        h.session.add_contact("Alice", "555-1111")

        async def scenario():
            await h.session.location.request_permission()
            snapshot = await h.session.refresh_location()
            batch = h.session.on_share_location_requested()
            report = await batch.wait()
            return snapshot, report

        snapshot, report = asyncio.run(scenario())
        assert h.session.last_snapshot == snapshot
        assert report.succeeded == 1
        assert h.sender.sent == [(
            "555-1111",
            "My current location is: https://maps.google.com/?q=13.0827,80.2707",
        )]
        assert h.surface.messages == [SHARE_SUCCESS_MESSAGE]

    def test_success_shown_even_when_every_send_fails(self):
        h = Harness(fail_messages=["555-1111"])
        h.session.add_contact("Alice", "555-1111")

        async def scenario():
            await h.session.location.request_permission()
            await h.session.refresh_location()
            batch = h.session.on_share_location_requested()
            shown = list(h.surface.messages)
            return shown, await batch.wait()

        shown, report = asyncio.run(scenario())
        assert shown == [SHARE_SUCCESS_MESSAGE]
        assert report.outcomes() == {"555-1111": DeliveryStatus.FAILED}

    def test_latest_snapshot_replaces_previous(self):
        h = Harness()

        async def scenario():
            await h.session.location.request_permission()
            await h.session.refresh_location()
            h.geolocator.latitude = 28.6139
            return await h.session.refresh_location()

        second = asyncio.run(scenario())
        assert h.session.last_snapshot is second
        assert h.session.last_snapshot.latitude == 28.6139


# ═══════════════════════════════════════════════════════════════════════════
# Section 2: Controller
# ═══════════════════════════════════════════════════════════════════════════

class TestController:

    def test_denied_permission_alerts(self):
        h = Harness(granted=False)
        status = asyncio.run(h.controller.start())
        assert status == PermissionStatus.DENIED
        assert h.surface.messages == [PERMISSION_DENIED_MESSAGE]

    def test_granted_permission_is_silent(self):
        h = Harness()
        assert asyncio.run(h.controller.start()) == PermissionStatus.GRANTED
        assert h.surface.messages == []

    def test_get_location_without_permission_alerts(self):
        h = Harness(granted=False)

        async def scenario():
            await h.controller.start()
            return await h.controller.get_location()

        assert asyncio.run(scenario()) is None
        assert h.surface.messages[-1] == "Location permission is required"

    def test_location_error_alerts(self):
        h = Harness(geo_error=RuntimeError("GPS signal lost"))

        async def scenario():
            await h.controller.start()
            return await h.controller.get_location()

        assert asyncio.run(scenario()) is None
        assert h.surface.messages == ["Error getting location: GPS signal lost"]
        assert h.session.last_snapshot is None

    @pytest.mark.parametrize("name,number", [("", "123"), ("Name", "")])
    def test_invalid_contact_alerts(self, name, number):
        h = Harness()
        assert h.controller.add_contact(name, number) is None
        assert h.surface.messages == [MISSING_FIELDS_MESSAGE]
        assert h.controller.contacts == ()

    def test_valid_contact(self):
        h = Harness()
        contact = h.controller.add_contact("Name", "123")
        assert contact is not None
        assert len(h.controller.contacts) == 1
        assert h.surface.messages == []

    def test_share_without_location_alerts(self):
        h = Harness()
        assert h.controller.share_location() is None
        assert h.surface.messages == [NoLocationAvailable().message]

    def test_release_before_confirm_calls_nobody(self):
        h = Harness()

        async def scenario():
            h.controller.press_down()
            assert h.controller.is_holding
            h.clock.advance_ms(3000)
            h.controller.hold_timer.evaluate()
            h.controller.press_up()
            h.clock.advance_ms(2000)
            h.controller.hold_timer.evaluate()

        asyncio.run(scenario())
        assert h.dialer.dialled == []
        assert h.controller.last_call_batch is None

    def test_shutdown_waits_for_messages(self):
        h = Harness()
        h.controller.add_contact("Alice", "555-1111")

        async def scenario():
            await h.controller.start()
            await h.controller.get_location()
            batch = h.controller.share_location()
            await h.controller.shutdown()
            return batch

        batch = asyncio.run(scenario())
        assert not batch.pending
        assert batch.attempts[0].status == DeliveryStatus.SENT

    def test_shutdown_waits_for_every_share_batch(self):
        h = Harness()
        sender = ClosingSmsSender(delays=[0.2, 0.0])
        h.session.engine.sender = sender
        h.controller.add_contact("Alice", "555-1111")

        async def scenario():
            await h.controller.start()
            await h.controller.get_location()
            first = h.controller.share_location()
            second = h.controller.share_location()
            await h.controller.shutdown()
            return first, second

        first, second = asyncio.run(scenario())
        assert sender.closed
        assert first.attempts[0].status == DeliveryStatus.SENT
        assert second.attempts[0].status == DeliveryStatus.SENT
        assert [number for number, _ in sender.sent] == ["555-1111", "555-1111"]


class TestCreateController:

    def test_wired_from_settings(self):
        config = Settings(HOLD_CONFIRM_MS=2500, HOLD_POLL_INTERVAL_MS=50)
        controller = create_controller(config)
        assert controller.hold_timer.confirm_threshold == 2.5
        assert controller.hold_timer.poll_interval == 0.05
        assert isinstance(controller.surface, LoggingAlertSurface)

    def test_real_time_hold_dispatches_calls(self):
        config = Settings(HOLD_CONFIRM_MS=50, HOLD_POLL_INTERVAL_MS=10)
        controller = create_controller(config)
        controller.add_contact("Alice", "555-1111")

        async def scenario():
            await controller.start()
            controller.press_down()
            await asyncio.sleep(0.3)
            await controller.shutdown()

        asyncio.run(scenario())
        assert controller.last_call_batch.numbers == ["100", "1091", "555-1111"]


# ═══════════════════════════════════════════════════════════════════════════
# Section 3: End-to-end Scenarios
# ═══════════════════════════════════════════════════════════════════════════

class TestScenarios:

    def test_a_hold_four_seconds_calls_helplines_then_contact(self):
        h = Harness()
        h.controller.add_contact("Alice", "555-1111")

        async def scenario():
            h.controller.press_down()
            h.clock.advance_ms(4000)
            h.controller.hold_timer.evaluate()

        asyncio.run(scenario())
        assert h.controller.last_call_batch.numbers == ["100", "1091", "555-1111"]
        assert h.dialer.dialled == ["100", "1091", "555-1111"]
        assert h.controller.hold_timer.triggers == 1

    def test_b_share_to_helpline_only_contact_sends_nothing(self):
        h = Harness()
        h.controller.add_contact("Bob", WOMEN_HELPLINE)

        async def scenario():
            await h.controller.start()
            snapshot = await h.controller.get_location()
            return snapshot, h.controller.share_location()

        snapshot, batch = asyncio.run(scenario())
        assert snapshot == LocationSnapshot(CHENNAI_LAT, CHENNAI_LON)
        assert len(batch) == 0
        assert h.sender.sent == []
        assert h.surface.messages == [SHARE_SUCCESS_MESSAGE]

    def test_c_share_before_any_fetch(self):
        h = Harness()
        h.controller.add_contact("Alice", "555-1111")
        with pytest.raises(NoLocationAvailable):
            h.session.on_share_location_requested()
        assert h.controller.share_location() is None
        assert h.sender.sent == []
        assert h.geolocator.fetches == 0
