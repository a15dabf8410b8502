"""
test_payloads.py — Tests for the push message templates.

Covers:
    • Raised / cancelled titles, bodies and data payload strings
    • Location encoding (JavaScript-style number printing, unknown)
    • Android / APNs delivery hints and the wire shape
    • Token binding of the template

Run with:
    pytest tests/test_payloads.py -v
"""

from __future__ import annotations

import pytest

from backend.app.notifications.models import EventKind, GeoPoint, NotificationMessage
from backend.app.notifications.payloads import (
    CANCELLED_TITLE,
    RAISED_TITLE,
    build_cancelled_message,
    build_message,
    build_raised_message,
    format_location,
)


# ═══════════════════════════════════════════════════════════════════════════
# Section 1: Location Encoding
# ═══════════════════════════════════════════════════════════════════════════

class TestFormatLocation:
    """Test format_location."""

    def test_none_is_unknown(self):
        assert format_location(None) == "unknown"

    def test_whole_numbers_drop_decimal(self):
        assert format_location(GeoPoint(latitude=1.0, longitude=2.0)) == "1,2"

    def test_fractional_coordinates(self):
        point = GeoPoint(latitude=13.0827, longitude=80.2707)
        assert format_location(point) == "13.0827,80.2707"

    def test_negative_coordinates(self):
        point = GeoPoint(latitude=-33.8688, longitude=151.2093)
        assert format_location(point) == "-33.8688,151.2093"

    def test_zero(self):
        assert format_location(GeoPoint(latitude=0.0, longitude=-0.0)) == "0,0"

    @pytest.mark.parametrize("value,expected", [
        (1e-7, "1e-7"),
        (1.5e-7, "1.5e-7"),
        (0.000001, "0.000001"),
        (0.00005, "0.00005"),
        (1e16, "10000000000000000"),
        (1e21, "1e+21"),
        (-2.5e-8, "-2.5e-8"),
        (float("nan"), "NaN"),
        (float("inf"), "Infinity"),
        (float("-inf"), "-Infinity"),
    ])
    def test_javascript_number_forms(self, value, expected):
        assert format_location(GeoPoint(latitude=value, longitude=2.0)) == f"{expected},2"


# ═══════════════════════════════════════════════════════════════════════════
# Section 2: Raised
# ═══════════════════════════════════════════════════════════════════════════

class TestRaisedMessage:
    """Test build_raised_message."""

    def test_title_and_body(self):
        msg = build_raised_message("S1", "Alice")
        assert msg.title == "Emergency Alert!"
        assert msg.body == "Alice needs help! Tap to view location."

    def test_payload_with_location(self):
        msg = build_raised_message("S1", "Alice", GeoPoint(latitude=1.0, longitude=2.0))
        assert msg.data["payload"] == "emergency:S1:1,2"
        assert msg.data["latitude"] == "1"
        assert msg.data["longitude"] == "2"

    def test_payload_without_location(self):
        msg = build_raised_message("S1", "Alice")
        assert msg.data["payload"] == "emergency:S1:unknown"
        assert "latitude" not in msg.data

    def test_routing_hint_and_structured_keys(self):
        msg = build_raised_message("S1", "Alice")
        assert msg.data["click_action"] == "FLUTTER_NOTIFICATION_CLICK"
        assert msg.data["type"] == "emergency"
        assert msg.data["seniorId"] == "S1"

    def test_data_values_are_strings(self):
        msg = build_raised_message("S1", "Alice", GeoPoint(latitude=13.5, longitude=80.25))
        assert all(isinstance(v, str) for v in msg.data.values())

    def test_template_has_no_token(self):
        assert build_raised_message("S1", "Alice").token is None


# ═══════════════════════════════════════════════════════════════════════════
# Section 3: Cancelled
# ═══════════════════════════════════════════════════════════════════════════

class TestCancelledMessage:
    """Test build_cancelled_message."""

    def test_title_and_body(self):
        msg = build_cancelled_message("S1", "Senior")
        assert msg.title == "Emergency Cancelled"
        assert msg.body == "Senior is now safe. Emergency has been cancelled."

    def test_payload(self):
        msg = build_cancelled_message("S1", "Alice")
        assert msg.data["payload"] == "emergency_cancelled:S1"
        assert msg.data["type"] == "emergency_cancelled"
        assert msg.data["click_action"] == "FLUTTER_NOTIFICATION_CLICK"

    def test_no_location_fields(self):
        msg = build_cancelled_message("S1", "Alice")
        assert "latitude" not in msg.data
        assert "longitude" not in msg.data


# ═══════════════════════════════════════════════════════════════════════════
# Section 4: Delivery Hints & Dispatch
# ═══════════════════════════════════════════════════════════════════════════

class TestDeliveryHints:
    """Both variants share the same platform hints."""

    @pytest.mark.parametrize("msg", [
        build_raised_message("S1", "Alice"),
        build_cancelled_message("S1", "Alice"),
    ])
    def test_android_and_apns(self, msg):
        wire = msg.to_dict()
        assert wire["android"]["priority"] == "high"
        assert wire["android"]["notification"]["sound"] == "default"
        assert wire["android"]["notification"]["priority"] == "high"
        assert wire["android"]["notification"]["channel_id"] == "high_importance_channel"
        assert wire["apns"]["payload"]["aps"] == {"sound": "default", "badge": 1}

    def test_wire_notification_block(self):
        wire = build_raised_message("S1", "Alice").for_token("T1").to_dict()
        assert wire["token"] == "T1"
        assert wire["notification"] == {
            "title": RAISED_TITLE,
            "body": "Alice needs help! Tap to view location.",
        }


class TestBuildMessage:
    """Test build_message dispatch and token binding."""

    def test_raised(self):
        msg = build_message(EventKind.RAISED, "S9", "Bob", GeoPoint(latitude=1.5, longitude=2.0))
        assert msg.title == RAISED_TITLE
        assert msg.data["payload"] == "emergency:S9:1.5,2"

    def test_cancelled_ignores_location(self):
        msg = build_message(EventKind.CANCELLED, "S9", "Bob", GeoPoint(latitude=1.0, longitude=2.0))
        assert msg.title == CANCELLED_TITLE
        assert msg.data["payload"] == "emergency_cancelled:S9"

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            build_message("panic", "S1", "Alice")

    def test_for_token_copies_data(self):
        template = build_raised_message("S1", "Alice")
        bound = template.for_token("T1")
        bound.data["payload"] = "changed"
        assert template.data["payload"] == "emergency:S1:unknown"
        assert template.token is None
        assert isinstance(bound, NotificationMessage)
