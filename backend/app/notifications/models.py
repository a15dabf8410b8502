"""
models.py — Shared data structures for the emergency notification fan-out.

Defines:
    • EmergencyRecord     — the tracked emergency document (validated)
    • SubscriberAccount   — a user document that may follow one or more seniors
    • EventKind           — raised / cancelled
    • NotificationMessage — per-recipient push message (ephemeral)
    • SendOutcome         — result of one send
    • RoundResult         — typed result of one notification round

═══════════════════════════════════════════════════════════════════════════
BOUNDARY VALIDATION
═══════════════════════════════════════════════════════════════════════════

Stored documents are untyped maps. They enter the core only through
``EmergencyRecord.from_snapshot`` and ``SubscriberAccount.from_snapshot``,
which validate with pydantic and raise RecordValidationError on bad
shapes. An unparseable optional ``location`` is dropped with a WARNING
instead; the alert still goes out with an unknown location. Store keys are camelCase (seniorId, connectedSeniorIds, fcmToken);
the Python attributes are snake_case.

═══════════════════════════════════════════════════════════════════════════
ROUND OUTCOMES
═══════════════════════════════════════════════════════════════════════════

    Status      Meaning
    ──────      ─────────────────────────────────────────────────────
    SENT        every issued send was accepted by the transport
    DEGRADED    at least one send failed; the others still went out
    NO_OP       nothing was sent; ``reason`` says why

A round never fails from the trigger's point of view. Unexpected errors
become NO_OP with reason UNEXPECTED_ERROR.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_validator,
)

from backend.app.core.errors import RecordValidationError

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════

class EventKind(str, Enum):
    """Lifecycle transitions that start a notification round."""
    RAISED    = "emergency"
    CANCELLED = "emergency_cancelled"


class SendStatus(str, Enum):
    SENT   = "sent"
    FAILED = "failed"


class RoundStatus(str, Enum):
    SENT     = "sent"
    DEGRADED = "degraded"   # partial failures, still a success upstream
    NO_OP    = "no_op"


class NoOpReason(str, Enum):
    """Why a round finished without sending anything."""
    INACTIVE_ON_CREATE = "inactive_on_create"
    NOT_A_CANCELLATION = "not_a_cancellation"
    NO_SUBSCRIBERS     = "no_subscribers"
    NO_DELIVERY_TOKENS = "no_delivery_tokens"
    SUBJECT_NOT_FOUND  = "subject_not_found"
    UNEXPECTED_ERROR   = "unexpected_error"


# ═══════════════════════════════════════════════════════════════════════════
# Stored Records
# ═══════════════════════════════════════════════════════════════════════════

class GeoPoint(BaseModel):
    """
    A latitude/longitude pair.

    Accepts ``latitude``/``longitude`` or ``lat``/``lon`` keys, and any
    object exposing ``.latitude`` and ``.longitude`` (Firestore GeoPoint).
    """
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(
        ..., validation_alias=AliasChoices("longitude", "lon", "lng"),
    )

    @model_validator(mode="before")
    @classmethod
    def _unwrap_geopoint(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return value
        if hasattr(value, "latitude") and hasattr(value, "longitude"):
            return {"latitude": value.latitude, "longitude": value.longitude}
        return value


class EmergencyRecord(BaseModel):
    """An emergency document from the ``emergencies`` collection."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    senior_id: str = Field(..., min_length=1, alias="seniorId")
    senior_name: Optional[str] = Field(None, alias="seniorName")
    active: Optional[bool] = None
    location: Optional[GeoPoint] = None

    @field_validator("location", mode="wrap")
    @classmethod
    def _drop_unparseable_location(
        cls, value: Any, handler: ValidatorFunctionWrapHandler,
    ) -> Optional[GeoPoint]:
        try:
            return handler(value)
        except ValidationError as exc:
            logger.warning(
                "Ignoring unparseable location %r (%d error(s))",
                value, exc.error_count(),
            )
            return None

    @property
    def is_active(self) -> bool:
        return bool(self.active)

    @classmethod
    def from_snapshot(cls, data: Optional[Mapping[str, Any]]) -> "EmergencyRecord":
        """Validate a raw document map into an EmergencyRecord."""
        try:
            return cls.model_validate(dict(data or {}))
        except ValidationError as exc:
            raise RecordValidationError(
                "EmergencyRecord", str(exc), error_count=exc.error_count(),
            ) from exc


class SubscriberAccount(BaseModel):
    """
    A document from the ``users`` collection.

    Family members list the seniors they follow in ``connected_senior_ids``.
    A senior's own account is the same shape; only ``name`` is read from it.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    account_id: str
    name: Optional[str] = None
    connected_senior_ids: List[str] = Field(
        default_factory=list, alias="connectedSeniorIds",
    )
    fcm_token: Optional[str] = Field(None, alias="fcmToken")

    @property
    def has_delivery_token(self) -> bool:
        return bool(self.fcm_token and self.fcm_token.strip())

    @classmethod
    def from_snapshot(
        cls, account_id: str, data: Optional[Mapping[str, Any]],
    ) -> "SubscriberAccount":
        """Validate a raw document map into a SubscriberAccount."""
        try:
            return cls.model_validate({**dict(data or {}), "account_id": account_id})
        except ValidationError as exc:
            raise RecordValidationError(
                "SubscriberAccount", str(exc),
                account_id=account_id, error_count=exc.error_count(),
            ) from exc


# ═══════════════════════════════════════════════════════════════════════════
# Push Message
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AndroidDirectives:
    """Android delivery hints."""
    priority: str = "high"
    sound: str = "default"
    notification_priority: str = "high"
    channel_id: str = "high_importance_channel"


@dataclass(frozen=True)
class ApnsDirectives:
    """iOS (APNs) delivery hints."""
    sound: str = "default"
    badge: int = 1


@dataclass(frozen=True)
class NotificationMessage:
    """
    One push message.

    Built once per round as a template (``token is None``) and bound to
    each recipient with :meth:`for_token`. Never persisted.
    """
    title: str
    body: str
    data: Dict[str, str] = field(default_factory=dict)
    android: AndroidDirectives = field(default_factory=AndroidDirectives)
    apns: ApnsDirectives = field(default_factory=ApnsDirectives)
    token: Optional[str] = None

    def for_token(self, token: str) -> "NotificationMessage":
        return dataclasses.replace(self, token=token, data=dict(self.data))

    def to_dict(self) -> Dict[str, Any]:
        """Transport wire shape."""
        return {
            "token": self.token,
            "notification": {
                "title": self.title,
                "body": self.body,
            },
            "data": dict(self.data),
            "android": {
                "priority": self.android.priority,
                "notification": {
                    "sound": self.android.sound,
                    "priority": self.android.notification_priority,
                    "channel_id": self.android.channel_id,
                },
            },
            "apns": {
                "payload": {
                    "aps": {
                        "sound": self.apns.sound,
                        "badge": self.apns.badge,
                    },
                },
            },
        }


# ═══════════════════════════════════════════════════════════════════════════
# Results
# ═══════════════════════════════════════════════════════════════════════════

def _generate_id() -> str:
    return f"RND-{uuid.uuid4().hex[:12].upper()}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def token_prefix(token: Optional[str]) -> str:
    """Loggable token stub; full tokens never reach the logs."""
    return (token or "")[:12] + "..."


@dataclass
class SendOutcome:
    """Result of sending to one delivery token."""
    token_prefix: str
    status: SendStatus
    message_id: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == SendStatus.SENT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_prefix": self.token_prefix,
            "status": self.status.value,
            "message_id": self.message_id,
            "error_message": self.error_message,
        }


@dataclass
class RoundResult:
    """Typed outcome of one notification round."""
    event_kind: EventKind
    senior_id: Optional[str] = None
    status: RoundStatus = RoundStatus.NO_OP
    reason: Optional[NoOpReason] = None
    outcomes: List[SendOutcome] = field(default_factory=list)
    error_message: Optional[str] = None
    round_id: str = field(default_factory=_generate_id)
    started_at: datetime = field(default_factory=_now)
    completed_at: Optional[datetime] = None

    @property
    def sent_count(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    @property
    def is_no_op(self) -> bool:
        return self.status == RoundStatus.NO_OP

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round_id": self.round_id,
            "event_kind": self.event_kind.value,
            "senior_id": self.senior_id,
            "status": self.status.value,
            "reason": self.reason.value if self.reason else None,
            "sent": self.sent_count,
            "failed": self.failed_count,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "error_message": self.error_message,
            "started_at": self.started_at.isoformat(),
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
        }
