"""
Centralised error handling — exception hierarchy + user-facing notices.

Provides:
    • Domain-specific exception classes
    • Consistent notice format for the alert surface and logs
    • Automatic logging of unexpected errors

Usage:
    from safepulse.core.errors import (
        SafePulseError,
        ValidationError,
        NoLocationAvailable,
        build_error_notice,
    )

    raise ValidationError("Please provide both name and number", field="name")
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Dict, Optional

from safepulse.core.config import settings

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Exception Hierarchy
# ═══════════════════════════════════════════════════════════════════════════

class SafePulseError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class PermissionRequired(SafePulseError):
    """Location was requested before permission was granted."""

    def __init__(self, message: str = "Location permission is required"):
        super().__init__(message, error_code="PERMISSION_REQUIRED")


class LocationUnavailable(SafePulseError):
    """The platform could not produce a location fix."""

    def __init__(self, reason: str = "", **details: Any):
        message = "Error getting location"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            error_code="LOCATION_UNAVAILABLE",
            details={"reason": reason, **details},
        )


class ValidationError(SafePulseError):
    """Input validation failed."""

    def __init__(self, message: str, *, field: Optional[str] = None, **details: Any):
        d = {**details}
        if field:
            d["field"] = field
        super().__init__(message, error_code="VALIDATION_ERROR", details=d)


class CallInitiationFailure(SafePulseError):
    """A call to one recipient could not be started."""

    def __init__(self, number: str, message: str = ""):
        super().__init__(
            f"Could not call {number}: {message}" if message else f"Could not call {number}",
            error_code="CALL_INITIATION_FAILURE",
            details={"number": number},
        )
        self.number = number


class MessageDispatchFailure(SafePulseError):
    """A text message to one recipient could not be sent."""

    def __init__(self, number: str, message: str = "", **details: Any):
        super().__init__(
            f"Message to {number} failed: {message}" if message else f"Message to {number} failed",
            error_code="MESSAGE_DISPATCH_FAILURE",
            details={"number": number, **details},
        )
        self.number = number


class NoLocationAvailable(SafePulseError):
    """Share was requested before any successful location fetch."""

    def __init__(self, message: str = "No location available. Fetch your location first."):
        super().__init__(message, error_code="NO_LOCATION_AVAILABLE")


# ═══════════════════════════════════════════════════════════════════════════
# Notice Builder
# ═══════════════════════════════════════════════════════════════════════════

def build_error_notice(exc: BaseException) -> Dict[str, Any]:
    """
    Render an exception into a consistent notice dict.

    Domain errors keep their own message. Anything else is reported as
    INTERNAL_ERROR and logged with its traceback; its text is only
    exposed when DEBUG is on.
    """
    if isinstance(exc, SafePulseError):
        logger.warning("Error [%s]: %s | details=%s", exc.error_code, exc.message, exc.details)
        notice: Dict[str, Any] = {"code": exc.error_code, "message": exc.message}
        if exc.details:
            notice["details"] = exc.details
        return notice

    logger.critical(
        "Unhandled exception: %s\n%s",
        exc, "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    )
    return {
        "code": "INTERNAL_ERROR",
        "message": str(exc) if settings.DEBUG else "Something went wrong",
    }
