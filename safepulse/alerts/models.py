"""
models.py — Shared data structures for the SOS dispatch system.

Defines:
    • Helpline numbers — the two fixed emergency numbers
    • Contact          — a user-added emergency contact
    • LocationSnapshot — one location fix
    • DispatchChannel  — call / message
    • DeliveryStatus   — per-recipient dispatch tracking
    • DeliveryAttempt  — one recipient on one channel
    • DispatchReport   — collected outcome of a batch

═══════════════════════════════════════════════════════════════════════════
RECIPIENT SETS
═══════════════════════════════════════════════════════════════════════════

    Channel     Recipients
    ───────     ──────────────────────────────────────────────────────
    CALL        POLICE_HELPLINE, WOMEN_HELPLINE, then every contact
                whose number is not a helpline
    MESSAGE     every contact whose number is not a helpline

Helplines are called exactly once each, whatever the contact list holds,
and never receive the location text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


POLICE_HELPLINE = "100"
WOMEN_HELPLINE = "1091"

HELPLINE_NUMBERS: Tuple[str, str] = (POLICE_HELPLINE, WOMEN_HELPLINE)


# ═══════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════

class DispatchChannel(str, Enum):
    """Available dispatch channels."""
    CALL    = "call"
    MESSAGE = "message"


class DeliveryStatus(str, Enum):
    """Dispatch state per recipient per channel."""
    PENDING   = "pending"      # message task scheduled, not finished
    INITIATED = "initiated"    # call handed to the platform, outcome unobserved
    SENT      = "sent"         # platform reported the message as sent
    FAILED    = "failed"       # initiation or send failed


# ═══════════════════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════════════════

def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Contact:
    """An emergency contact. Created by add-contact, never mutated."""
    name: str
    number: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "number": self.number}


@dataclass(frozen=True)
class LocationSnapshot:
    """A single location fix. The next fetch replaces it."""
    latitude: float
    longitude: float
    captured_at: datetime = field(default_factory=_now, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "captured_at": self.captured_at.isoformat(),
        }


@dataclass
class DeliveryAttempt:
    """Record of one dispatch to one recipient via one channel."""
    channel: DispatchChannel
    number: str
    status: DeliveryStatus = DeliveryStatus.PENDING
    attempted_at: datetime = field(default_factory=_now)
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    provider_response: Optional[Dict[str, Any]] = None

    @property
    def succeeded(self) -> bool:
        return self.status in (DeliveryStatus.INITIATED, DeliveryStatus.SENT)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channel": self.channel.value,
            "number": self.number,
            "status": self.status.value,
            "attempted_at": self.attempted_at.isoformat(),
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
            "error_message": self.error_message,
        }


@dataclass
class DispatchReport:
    """Collected outcome of one dispatch batch, in issue order."""
    channel: DispatchChannel
    attempts: List[DeliveryAttempt] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.attempts)

    @property
    def succeeded(self) -> int:
        return sum(1 for a in self.attempts if a.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for a in self.attempts if a.status == DeliveryStatus.FAILED)

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0

    def outcomes(self) -> Dict[str, DeliveryStatus]:
        """Recipient number → final status. Duplicate numbers keep the last."""
        return {a.number: a.status for a in self.attempts}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channel": self.channel.value,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "attempts": [a.to_dict() for a in self.attempts],
        }
