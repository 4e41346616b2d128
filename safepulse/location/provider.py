"""
provider.py — One-shot location acquisition behind a permission gate.

    request_permission()      GRANTED is remembered; DENIED is remembered
                              until the user asks again (no auto-retry)
    get_current_snapshot()    PermissionRequired  if never granted
                              LocationUnavailable if the fetch fails,
                                                  times out or the service
                                                  is disabled
                              LocationSnapshot    otherwise

Every snapshot is a fresh fetch; nothing is cached or retried here.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional, Protocol, Tuple

from safepulse.alerts.models import LocationSnapshot
from safepulse.core.config import Settings, settings
from safepulse.core.errors import LocationUnavailable, PermissionRequired

logger = logging.getLogger(__name__)


class PermissionStatus(str, Enum):
    GRANTED = "granted"
    DENIED  = "denied"


class PermissionGate(Protocol):
    """Platform permission prompt. Always resolves."""

    async def request(self) -> PermissionStatus: ...


class Geolocator(Protocol):
    """Platform location service. Returns (latitude, longitude)."""

    async def locate(self) -> Tuple[float, float]: ...


class SimulatedPermissionGate:
    def __init__(self, granted: bool = True):
        self.granted = granted
        self.prompts = 0

    async def request(self) -> PermissionStatus:
        self.prompts += 1
        return PermissionStatus.GRANTED if self.granted else PermissionStatus.DENIED


class SimulatedGeolocator:
    """Fixed-position geolocator. ``error`` makes every fetch fail with it."""

    def __init__(
        self,
        latitude: float,
        longitude: float,
        *,
        error: Optional[Exception] = None,
        delay_seconds: float = 0.0,
    ):
        self.latitude = latitude
        self.longitude = longitude
        self.error = error
        self.delay_seconds = delay_seconds
        self.fetches = 0

    async def locate(self) -> Tuple[float, float]:
        self.fetches += 1
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return self.latitude, self.longitude


class LocationProvider:
    """Wraps the platform gate and geolocator with the app's error contract."""

    def __init__(
        self,
        gate: PermissionGate,
        geolocator: Geolocator,
        *,
        timeout_seconds: Optional[float] = None,
    ):
        self.gate = gate
        self.geolocator = geolocator
        self.timeout_seconds = (
            settings.LOCATION_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        )
        self._status: Optional[PermissionStatus] = None

    @property
    def permission(self) -> Optional[PermissionStatus]:
        return self._status

    @property
    def is_granted(self) -> bool:
        return self._status == PermissionStatus.GRANTED

    async def request_permission(self) -> PermissionStatus:
        if self.is_granted:
            return PermissionStatus.GRANTED

        self._status = await self.gate.request()
        if self._status == PermissionStatus.GRANTED:
            logger.info("Location permission granted")
        else:
            logger.warning("Location permission denied")
        return self._status

    async def get_current_snapshot(self) -> LocationSnapshot:
        if not self.is_granted:
            raise PermissionRequired()

        try:
            latitude, longitude = await asyncio.wait_for(
                self.geolocator.locate(), timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise LocationUnavailable(
                f"timed out after {self.timeout_seconds:g}s", timeout_seconds=self.timeout_seconds,
            ) from e
        except Exception as e:
            raise LocationUnavailable(str(e) or type(e).__name__) from e

        snapshot = LocationSnapshot(latitude=float(latitude), longitude=float(longitude))
        logger.info(
            "Location fetched: %.5f, %.5f", snapshot.latitude, snapshot.longitude,
            extra={"lat": snapshot.latitude, "lon": snapshot.longitude},
        )
        return snapshot


def get_location_provider(config: Settings) -> LocationProvider:
    """Build a provider for the configured (simulated) platform."""
    return LocationProvider(
        SimulatedPermissionGate(granted=config.SIMULATED_PERMISSION_GRANTED),
        SimulatedGeolocator(config.SIMULATED_LATITUDE, config.SIMULATED_LONGITUDE),
        timeout_seconds=config.LOCATION_TIMEOUT_SECONDS,
    )
