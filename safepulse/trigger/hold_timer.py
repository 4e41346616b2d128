"""
hold_timer.py — Press-and-hold SOS trigger.

═══════════════════════════════════════════════════════════════════════════
STATE MACHINE
═══════════════════════════════════════════════════════════════════════════

                 press_down()
        ┌──────┐ ───────────▶ ┌─────────┐  elapsed ≥ threshold  ┌───────────┐
        │ IDLE │              │ HOLDING │ ────────────────────▶ │ CONFIRMED │
        └──────┘ ◀─────┐      └─────────┘                       └─────┬─────┘
           ▲           │           │ press_up()                       │
           │           │           ▼                                  │
           │           │      ┌───────────┐                           │
           │           └───── │ CANCELLED │                           │
           │                  └───────────┘                           │
           └──────────────────────────────────── trigger emitted ─────┘

While HOLDING a wake-up task runs every poll_interval (100 ms by default)
and compares the elapsed time with confirm_threshold (4 s by default).

Every press starts a new episode number. A wake-up only acts if its
episode is still the current one and the state is still HOLDING, so a
wake-up already queued when press_up() runs can never fire a trigger.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable, Optional

from safepulse.core.config import settings
from safepulse.core.logging_config import (
    clear_episode_context,
    new_episode_id,
    set_episode_context,
)

logger = logging.getLogger(__name__)


class HoldState(str, Enum):
    IDLE      = "idle"
    HOLDING   = "holding"
    CANCELLED = "cancelled"
    CONFIRMED = "confirmed"


class HoldTimer:
    """
    Converts a sustained press into one confirmed trigger.

    Parameters
    ----------
    on_confirm : callable
        Invoked once per confirmed episode, on the event loop.
    confirm_threshold : float
        Hold time in seconds. Defaults to HOLD_CONFIRM_MS.
    poll_interval : float
        Seconds between wake-ups. Defaults to HOLD_POLL_INTERVAL_MS.
    clock : callable
        Monotonic time source in seconds.
    on_state_change : callable, optional
        Called with each new HoldState (e.g. to highlight the button).
    """

    def __init__(
        self,
        on_confirm: Callable[[], Any],
        *,
        confirm_threshold: Optional[float] = None,
        poll_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Optional[Callable[[HoldState], Any]] = None,
    ):
        self.on_confirm = on_confirm
        self.confirm_threshold = (
            settings.hold_confirm_seconds if confirm_threshold is None else confirm_threshold
        )
        self.poll_interval = (
            settings.hold_poll_interval_seconds if poll_interval is None else poll_interval
        )
        self.clock = clock
        self.on_state_change = on_state_change

        self.state = HoldState.IDLE
        self.started_at: Optional[float] = None
        self.episode_id: Optional[str] = None
        self.triggers = 0
        self._episode = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def is_holding(self) -> bool:
        return self.state == HoldState.HOLDING

    def elapsed_ms(self) -> float:
        if self.started_at is None:
            return 0.0
        return (self.clock() - self.started_at) * 1000.0

    def _set_state(self, state: HoldState) -> None:
        self.state = state
        logger.debug("Hold state → %s", state.value)
        if self.on_state_change is not None:
            self.on_state_change(state)

    def _reset(self) -> None:
        self.started_at = None
        self.episode_id = None
        self._set_state(HoldState.IDLE)
        clear_episode_context()

    # ── Transitions ──

    def press_down(self) -> bool:
        """Start a hold episode. Ignored unless IDLE. Needs a running loop."""
        if self.state != HoldState.IDLE:
            logger.warning("press_down ignored in state %s", self.state.value)
            return False

        loop = asyncio.get_running_loop()

        self._episode += 1
        self.episode_id = new_episode_id()

        self.started_at = self.clock()
        self._set_state(HoldState.HOLDING)
        self._task = loop.create_task(self._wake_loop(self._episode))
        logger.info(
            "SOS hold started — confirming in %.0f ms",
            self.confirm_threshold * 1000,
            extra={"episode_id": self.episode_id},
        )
        return True

    def press_up(self) -> bool:
        """Release before confirmation. No trigger is emitted."""
        if self.state != HoldState.HOLDING:
            return False

        elapsed = self.elapsed_ms()
        self._episode += 1  # stale wake-ups see a different episode
        self._stop_wakeups()
        self._set_state(HoldState.CANCELLED)
        logger.info(
            "SOS hold released after %.0f ms — cancelled", elapsed,
            extra={"elapsed_ms": round(elapsed), "episode_id": self.episode_id},
        )
        self._reset()
        return True

    def evaluate(self, episode: Optional[int] = None) -> bool:
        """
        One wake-up: confirm if the hold has lasted long enough.

        Returns True when the wake-up loop should stop (confirmed, or the
        episode it belongs to is over).
        """
        if episode is None:
            episode = self._episode
        if episode != self._episode or self.state != HoldState.HOLDING:
            return True

        elapsed = self.clock() - self.started_at
        if elapsed < self.confirm_threshold:
            return False

        self._task = None
        self._set_state(HoldState.CONFIRMED)
        self.triggers += 1
        logger.info(
            "SOS confirmed after %.0f ms", elapsed * 1000,
            extra={"elapsed_ms": round(elapsed * 1000)},
        )
        try:
            self.on_confirm()
        except Exception:
            logger.exception("SOS trigger handler failed")
        finally:
            self._reset()
        return True

    async def _wake_loop(self, episode: int) -> None:
        # The task runs in a copy of the caller's context, so the episode
        # id tags the confirm and dispatch logs without leaking back out.
        set_episode_context(episode_id=self.episode_id)
        while True:
            await asyncio.sleep(self.poll_interval)
            if self.evaluate(episode):
                return

    def _stop_wakeups(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def shutdown(self) -> None:
        """Abandon any hold in progress without emitting a trigger."""
        if self.state == HoldState.HOLDING:
            self._episode += 1
            self._stop_wakeups()
            self._reset()
