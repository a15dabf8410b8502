"""
dispatcher.py — Trigger entry points for emergency lifecycle events.

═══════════════════════════════════════════════════════════════════════════
ROUND FLOW
═══════════════════════════════════════════════════════════════════════════

    on_emergency_created(data)              on_emergency_updated(before, after)
        │ active?  no → NO_OP                   │ true → false?  no → NO_OP
        │                                       │
        │                                       ▼
        │                               resolve_subject_name
        │                                       │ missing → NO_OP
        ▼                                       ▼
    resolve_recipients ◄────────────────────────┘
        │ empty → NO_OP
        ▼
    build_message (once)
        │
        ▼
    dispatch_to_recipients (N concurrent sends)
        │ no tokens → NO_OP
        ▼
    SENT | DEGRADED

═══════════════════════════════════════════════════════════════════════════
ERROR BOUNDARY
═══════════════════════════════════════════════════════════════════════════

The hosting platform retries a failed invocation by re-delivering the
same event, which would notify everyone twice. So a round never raises:
any exception from validation, the store, the builder or the fan-out is
logged at ERROR and returned as NO_OP / UNEXPECTED_ERROR.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Mapping, Optional

from backend.app.core.config import settings
from backend.app.notifications.channels import PushTransport
from backend.app.notifications.fanout import dispatch_to_recipients
from backend.app.notifications.models import (
    EmergencyRecord,
    EventKind,
    NoOpReason,
    NotificationMessage,
    RoundResult,
    RoundStatus,
    SubscriberAccount,
)
from backend.app.notifications.payloads import build_message
from backend.app.notifications.resolver import (
    resolve_recipients,
    resolve_subject_name,
)
from backend.app.notifications.store import AccountStore

logger = logging.getLogger(__name__)

Snapshot = Optional[Mapping[str, Any]]


# ═══════════════════════════════════════════════════════════════════════════
# Round Helpers
# ═══════════════════════════════════════════════════════════════════════════

def _no_op(result: RoundResult, reason: NoOpReason, message: str) -> None:
    result.status = RoundStatus.NO_OP
    result.reason = reason
    logger.info(
        "%s (senior=%s)", message, result.senior_id,
        extra={
            "senior_id": result.senior_id,
            "event_kind": result.event_kind.value,
            "reason": reason.value,
        },
    )


def is_cancellation(before: Snapshot, after: Snapshot) -> bool:
    """
    True only for an active=true → active=false transition.

    Reads only ``active`` from each side; the rest of ``before`` is never
    validated.
    """
    if before is None or after is None:
        return False
    return bool(before.get("active")) and not after.get("active")


async def _fan_out(
    result: RoundResult,
    template: NotificationMessage,
    recipients: List[SubscriberAccount],
    transport: PushTransport,
) -> None:
    outcomes = await dispatch_to_recipients(template, recipients, transport)
    if not outcomes:
        _no_op(result, NoOpReason.NO_DELIVERY_TOKENS, "No valid FCM tokens found")
        return

    result.outcomes = outcomes
    result.status = (
        RoundStatus.DEGRADED if result.failed_count else RoundStatus.SENT
    )


async def _guarded(
    result: RoundResult,
    body: Callable[[RoundResult], Awaitable[None]],
    *,
    emergency_id: Optional[str] = None,
) -> RoundResult:
    """Run one round inside the never-fail boundary."""
    try:
        await body(result)
    except Exception as exc:
        logger.error(
            "Error sending %s notifications (emergency=%s, senior=%s): %s",
            result.event_kind.value, emergency_id, result.senior_id, exc,
            exc_info=True,
            extra={
                "senior_id": result.senior_id,
                "event_kind": result.event_kind.value,
                "emergency_id": emergency_id,
            },
        )
        result.status = RoundStatus.NO_OP
        result.reason = NoOpReason.UNEXPECTED_ERROR
        result.error_message = str(exc)
        result.outcomes = []

    result.completed_at = datetime.now(timezone.utc)
    logger.info(
        "Round %s [%s] senior=%s → %s (%d sent, %d failed)",
        result.round_id, result.event_kind.value, result.senior_id,
        result.status.value, result.sent_count, result.failed_count,
        extra={
            "senior_id": result.senior_id,
            "event_kind": result.event_kind.value,
            "emergency_id": emergency_id,
            "status": result.status.value,
            "reason": result.reason.value if result.reason else None,
            "duration_ms": (
                (result.completed_at - result.started_at).total_seconds() * 1000
            ),
        },
    )
    return result


# ═══════════════════════════════════════════════════════════════════════════
# Entry Points
# ═══════════════════════════════════════════════════════════════════════════

async def on_emergency_created(
    snapshot: Snapshot,
    *,
    store: AccountStore,
    transport: PushTransport,
    emergency_id: Optional[str] = None,
) -> RoundResult:
    """
    Handle creation of an emergency document.

    Parameters
    ----------
    snapshot : mapping
        The created document's fields.
    store, transport
        Account store and push transport from the backend handle.
    emergency_id : str | None
        Document id, for logging only.

    Returns
    -------
    RoundResult
        Always returned; never raises.
    """
    async def body(result: RoundResult) -> None:
        record = EmergencyRecord.from_snapshot(snapshot)
        result.senior_id = record.senior_id

        if not record.is_active:
            _no_op(
                result, NoOpReason.INACTIVE_ON_CREATE,
                "Emergency not active, skipping notification",
            )
            return

        recipients = await resolve_recipients(store, record.senior_id)
        if not recipients:
            _no_op(
                result, NoOpReason.NO_SUBSCRIBERS,
                "No family members found for senior",
            )
            return

        template = build_message(
            EventKind.RAISED,
            record.senior_id,
            record.senior_name or settings.DEFAULT_SUBJECT_NAME,
            record.location,
        )
        await _fan_out(result, template, recipients, transport)

    return await _guarded(
        RoundResult(event_kind=EventKind.RAISED), body, emergency_id=emergency_id,
    )


async def on_emergency_updated(
    before: Snapshot,
    after: Snapshot,
    *,
    store: AccountStore,
    transport: PushTransport,
    emergency_id: Optional[str] = None,
) -> RoundResult:
    """
    Handle an update of an emergency document.

    Only a strict active=true → active=false transition notifies
    subscribers; every other update is a NO_OP without touching the store.
    """
    async def body(result: RoundResult) -> None:
        raw_senior_id = (after or {}).get("seniorId")
        if isinstance(raw_senior_id, str):
            result.senior_id = raw_senior_id

        if not is_cancellation(before, after):
            _no_op(
                result, NoOpReason.NOT_A_CANCELLATION,
                "Update is not a cancellation, skipping notification",
            )
            return

        senior_id = EmergencyRecord.from_snapshot(after).senior_id
        senior_name = await resolve_subject_name(store, senior_id)
        if senior_name is None:
            _no_op(
                result, NoOpReason.SUBJECT_NOT_FOUND, "Senior document not found",
            )
            return

        recipients = await resolve_recipients(store, senior_id)
        if not recipients:
            _no_op(result, NoOpReason.NO_SUBSCRIBERS, "No family members found")
            return

        template = build_message(EventKind.CANCELLED, senior_id, senior_name)
        await _fan_out(result, template, recipients, transport)

    return await _guarded(
        RoundResult(event_kind=EventKind.CANCELLED), body, emergency_id=emergency_id,
    )
