"""
test_core.py — Tests for cross-cutting concerns.

Covers:
    • Settings defaults and derived properties
    • Error hierarchy and notice rendering
    • JSON / pretty log formatters with episode context

Run with:
    pytest tests/test_core.py -v
"""

from __future__ import annotations

import json
import logging

import pytest

from safepulse.core.config import Settings
from safepulse.core.errors import (
    CallInitiationFailure,
    LocationUnavailable,
    MessageDispatchFailure,
    NoLocationAvailable,
    PermissionRequired,
    SafePulseError,
    ValidationError,
    build_error_notice,
)
from safepulse.core.logging_config import (
    JSONFormatter,
    PrettyFormatter,
    clear_episode_context,
    get_episode_context,
    new_episode_id,
    set_episode_context,
)


@pytest.fixture(autouse=True)
def _clear_context():
    clear_episode_context()
    yield
    clear_episode_context()


def _make_record(msg: str = "SOS confirmed", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="safepulse.test", level=logging.INFO, pathname=__file__,
        lineno=1, msg=msg, args=(), exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ═══════════════════════════════════════════════════════════════════════════
# Section 1: Settings
# ═══════════════════════════════════════════════════════════════════════════

class TestSettings:

    def test_hold_defaults(self):
        config = Settings()
        assert config.HOLD_CONFIRM_MS == 4000
        assert config.HOLD_POLL_INTERVAL_MS == 100
        assert config.hold_confirm_seconds == 4.0
        assert config.hold_poll_interval_seconds == 0.1

    def test_environment_flags(self):
        assert Settings(ENVIRONMENT="production").is_production
        assert Settings(ENVIRONMENT="development").is_development

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("HOLD_CONFIRM_MS", "3000")
        assert Settings().HOLD_CONFIRM_MS == 3000


# ═══════════════════════════════════════════════════════════════════════════
# Section 2: Errors
# ═══════════════════════════════════════════════════════════════════════════

class TestErrorHierarchy:

    @pytest.mark.parametrize("exc,code", [
        (PermissionRequired(), "PERMISSION_REQUIRED"),
        (LocationUnavailable("timeout"), "LOCATION_UNAVAILABLE"),
        (ValidationError("bad", field="name"), "VALIDATION_ERROR"),
        (CallInitiationFailure("100"), "CALL_INITIATION_FAILURE"),
        (MessageDispatchFailure("555-1111"), "MESSAGE_DISPATCH_FAILURE"),
        (NoLocationAvailable(), "NO_LOCATION_AVAILABLE"),
    ])
    def test_codes(self, exc, code):
        assert isinstance(exc, SafePulseError)
        assert exc.error_code == code

    def test_location_unavailable_without_reason(self):
        assert LocationUnavailable().message == "Error getting location"

    def test_call_failure_carries_number(self):
        exc = CallInitiationFailure("1091", "no signal")
        assert exc.number == "1091"
        assert exc.message == "Could not call 1091: no signal"


class TestErrorNotice:

    def test_domain_error(self):
        notice = build_error_notice(ValidationError("Please provide both name and number", field="number"))
        assert notice == {
            "code": "VALIDATION_ERROR",
            "message": "Please provide both name and number",
            "details": {"field": "number"},
        }

    def test_domain_error_without_details(self):
        notice = build_error_notice(PermissionRequired())
        assert notice == {
            "code": "PERMISSION_REQUIRED",
            "message": "Location permission is required",
        }

    def test_unexpected_error(self):
        notice = build_error_notice(RuntimeError("boom"))
        assert notice["code"] == "INTERNAL_ERROR"
        assert notice["message"]


# ═══════════════════════════════════════════════════════════════════════════
# Section 3: Logging
# ═══════════════════════════════════════════════════════════════════════════

class TestEpisodeContext:

    def test_ids_unique(self):
        assert new_episode_id() != new_episode_id()

    def test_set_and_clear(self):
        set_episode_context(episode_id="EP-1234")
        assert get_episode_context() == {"episode_id": "EP-1234"}
        clear_episode_context()
        assert get_episode_context() == {}


class TestFormatters:

    def test_json_includes_context_and_extras(self):
        set_episode_context(episode_id="EP-ABCD")
        record = _make_record(channel="call", recipient_count=3)
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "SOS confirmed"
        assert entry["level"] == "INFO"
        assert entry["context"] == {"episode_id": "EP-ABCD"}
        assert entry["channel"] == "call"
        assert entry["recipient_count"] == 3

    def test_json_without_context(self):
        entry = json.loads(JSONFormatter().format(_make_record()))
        assert "context" not in entry

    def test_pretty_shows_episode(self):
        set_episode_context(episode_id="EP-ABCD")
        line = PrettyFormatter().format(_make_record())
        assert "[EP-ABCD]" in line
        assert "safepulse.test: SOS confirmed" in line
