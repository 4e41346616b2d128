"""
call.py — Voice call channel.

Delivery mechanism:
    • The platform dialer is handed a tel: URI and opens its call UI
    • Fire-and-forget: answered / busy / rejected is never observed here
    • Only a failure to *start* the call is visible (bad number, no handler)

═══════════════════════════════════════════════════════════════════════════
PROVIDERS
═══════════════════════════════════════════════════════════════════════════

    Provider      Behaviour
    ──────────    ───────────────────────────────────────────────────
    simulation    Logs the call and records the number (default)
    tel_uri       Opens tel:<number> through the OS URL handler

Number format accepted: digits with optional leading "+", and the usual
separators (space, dash, dot, parentheses). Between 3 and 15 digits, so
short helpline codes like "100" are valid.
"""

from __future__ import annotations

import logging
import re
import webbrowser
from typing import Any, Dict, List, Optional, Protocol, Set

from safepulse.core.config import Settings
from safepulse.core.errors import CallInitiationFailure

logger = logging.getLogger(__name__)

_ALLOWED_CHARS = re.compile(r"^\+?[0-9\s\-.()]+$")
_SEPARATORS = re.compile(r"[\s\-.()]")

MIN_DIGITS = 3
MAX_DIGITS = 15  # E.164 upper bound


def normalise_number(number: str) -> str:
    """
    Strip separators from a dialable number.

    Raises
    ------
    CallInitiationFailure
        If the number is not dialable.
    """
    raw = (number or "").strip()
    if not raw or not _ALLOWED_CHARS.match(raw):
        raise CallInitiationFailure(number, "malformed number")

    cleaned = _SEPARATORS.sub("", raw)
    digits = cleaned.lstrip("+")
    if not (MIN_DIGITS <= len(digits) <= MAX_DIGITS):
        raise CallInitiationFailure(number, f"expected {MIN_DIGITS}-{MAX_DIGITS} digits")

    return cleaned


def tel_uri(number: str) -> str:
    return f"tel:{normalise_number(number)}"


class Dialer(Protocol):
    """Platform capability that starts a call and returns immediately."""

    def dial(self, number: str) -> Dict[str, Any]: ...


class SimulatedDialer:
    """Dialer that only logs. Numbers in ``fail_numbers`` fail to initiate."""

    def __init__(self, fail_numbers: Optional[Set[str]] = None):
        self.fail_numbers = set(fail_numbers or ())
        self.dialled: List[str] = []

    def dial(self, number: str) -> Dict[str, Any]:
        uri = tel_uri(number)
        if number in self.fail_numbers:
            raise CallInitiationFailure(number, "simulated initiation failure")

        self.dialled.append(number)
        logger.info("[CALL] Dialling %s (%s)", number, uri)
        return {"mode": "simulated", "uri": uri}


class TelUriDialer:
    """Dialer that hands a tel: URI to the operating system."""

    def dial(self, number: str) -> Dict[str, Any]:
        uri = tel_uri(number)
        if not webbrowser.open(uri):
            raise CallInitiationFailure(number, "no handler registered for tel: URIs")

        logger.info("[CALL/tel] Opened %s", uri)
        return {"mode": "tel_uri", "uri": uri}


def get_dialer(config: Settings) -> Dialer:
    """Build the dialer for the configured CALL_PROVIDER."""
    provider = config.CALL_PROVIDER
    if provider == "simulation":
        return SimulatedDialer()
    if provider == "tel_uri":
        return TelUriDialer()
    raise ValueError(f"Unknown call provider: {provider}")
