"""
payloads.py — Push message templates for emergency rounds.

Pure functions: (event kind, senior id, senior name, location) →
NotificationMessage without a token. The fan-out binds a copy to each
recipient.

═══════════════════════════════════════════════════════════════════════════
MESSAGE VARIANTS
═══════════════════════════════════════════════════════════════════════════

    Kind        Title                  data.payload
    ─────────   ────────────────────   ──────────────────────────────────
    raised      Emergency Alert!       emergency:{id}:{lat},{lon}
                                       emergency:{id}:unknown  (no location)
    cancelled   Emergency Cancelled    emergency_cancelled:{id}

Every message also carries ``click_action`` so the mobile client routes
the tap to the right screen, plus ``type`` and ``seniorId`` for clients
that read structured keys. Both variants share the same Android
(high priority, default sound, high-importance channel) and APNs
(default sound, badge 1) hints.

The mobile client splits ``data.payload`` on ':' and parses coordinates
as JavaScript numbers, so coordinates are printed in that form:
1.0 → "1", 13.0827 → "13.0827".
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Dict, Optional, Tuple

from backend.app.core.config import settings
from backend.app.notifications.models import (
    AndroidDirectives,
    ApnsDirectives,
    EventKind,
    GeoPoint,
    NotificationMessage,
)

RAISED_TITLE = "Emergency Alert!"
RAISED_BODY = "{name} needs help! Tap to view location."
CANCELLED_TITLE = "Emergency Cancelled"
CANCELLED_BODY = "{name} is now safe. Emergency has been cancelled."
UNKNOWN_LOCATION = "unknown"


def _format_number(value: float) -> str:
    """JavaScript ``Number.prototype.toString`` for a float."""
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    # repr is the shortest round-trip form, same digit string JS picks.
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = "".join(map(str, digit_tuple)).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    k = len(digits)
    n = k + exponent

    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        text = "0." + "0" * (-n) + digits
    else:
        mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
        text = f"{mantissa}e{'+' if n - 1 >= 0 else '-'}{abs(n - 1)}"
    return sign + text


def format_location(location: Optional[GeoPoint]) -> str:
    """``"{lat},{lon}"`` or ``"unknown"``."""
    if location is None:
        return UNKNOWN_LOCATION
    return f"{_format_number(location.latitude)},{_format_number(location.longitude)}"


def _delivery_hints() -> Tuple[AndroidDirectives, ApnsDirectives]:
    return (
        AndroidDirectives(channel_id=settings.ANDROID_CHANNEL_ID),
        ApnsDirectives(),
    )


def _base_data(kind: EventKind, senior_id: str, payload: str) -> Dict[str, str]:
    return {
        "payload": payload,
        "click_action": settings.CLICK_ACTION,
        "type": kind.value,
        "seniorId": senior_id,
    }


def build_raised_message(
    senior_id: str,
    senior_name: str,
    location: Optional[GeoPoint] = None,
) -> NotificationMessage:
    """Template for a newly raised emergency."""
    payload = f"{EventKind.RAISED.value}:{senior_id}:{format_location(location)}"
    data = _base_data(EventKind.RAISED, senior_id, payload)
    if location is not None:
        data["latitude"] = _format_number(location.latitude)
        data["longitude"] = _format_number(location.longitude)

    android, apns = _delivery_hints()
    return NotificationMessage(
        title=RAISED_TITLE,
        body=RAISED_BODY.format(name=senior_name),
        data=data,
        android=android,
        apns=apns,
    )


def build_cancelled_message(senior_id: str, senior_name: str) -> NotificationMessage:
    """Template for a cancelled emergency. Carries no location."""
    payload = f"{EventKind.CANCELLED.value}:{senior_id}"
    android, apns = _delivery_hints()
    return NotificationMessage(
        title=CANCELLED_TITLE,
        body=CANCELLED_BODY.format(name=senior_name),
        data=_base_data(EventKind.CANCELLED, senior_id, payload),
        android=android,
        apns=apns,
    )


def build_message(
    kind: EventKind,
    senior_id: str,
    senior_name: str,
    location: Optional[GeoPoint] = None,
) -> NotificationMessage:
    """Dispatch to the variant builder for ``kind``."""
    if kind == EventKind.RAISED:
        return build_raised_message(senior_id, senior_name, location)
    if kind == EventKind.CANCELLED:
        return build_cancelled_message(senior_id, senior_name)
    raise ValueError(f"Unsupported event kind: {kind!r}")
