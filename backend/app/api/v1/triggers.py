"""
FastAPI route: emergency lifecycle triggers.

Provides endpoints to:
    POST /api/v1/triggers/emergencies/created   — document created
    POST /api/v1/triggers/emergencies/updated   — document updated (before/after)
    GET  /api/v1/triggers/health                — trigger service health

Events are delivered by the document database's change feed (e.g. an
Eventarc push subscription). Both POST endpoints always answer 200 with
the round result: a non-2xx answer would make the sender re-deliver the
event and notify every subscriber a second time.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from backend.app.core.backend import BackendHandle
from backend.app.core.logging_config import bind_log_context
from backend.app.notifications.dispatcher import (
    on_emergency_created,
    on_emergency_updated,
)
from backend.app.notifications.models import EventKind, NoOpReason, RoundStatus

router = APIRouter(prefix="/api/v1/triggers", tags=["emergency-triggers"])


# ---------------------------------------------------------------------------
# Request / Response Schemas
# ---------------------------------------------------------------------------

class EmergencyCreatedEvent(BaseModel):
    """A newly created emergency document."""
    emergency_id: Optional[str] = Field(None, examples=["EMG-8F2C"])
    data: Optional[Dict[str, Any]] = Field(
        None,
        description="Document fields as stored",
        examples=[{
            "seniorId": "S1",
            "seniorName": "Alice",
            "active": True,
            "location": {"latitude": 13.0827, "longitude": 80.2707},
        }],
    )


class EmergencyUpdatedEvent(BaseModel):
    """An emergency document before and after an update."""
    emergency_id: Optional[str] = Field(None, examples=["EMG-8F2C"])
    before: Optional[Dict[str, Any]] = Field(
        None, examples=[{"seniorId": "S1", "active": True}],
    )
    after: Optional[Dict[str, Any]] = Field(
        None, examples=[{"seniorId": "S1", "active": False}],
    )


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_backend(request: Request) -> BackendHandle:
    """The process-wide backend handle created in the app lifespan."""
    return request.app.state.backend


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/emergencies/created",
    summary="Emergency created",
    description="Notify every subscriber of the senior when an active emergency is raised.",
)
async def emergency_created(
    event: EmergencyCreatedEvent,
    backend: BackendHandle = Depends(get_backend),
):
    bind_log_context(emergency_id=event.emergency_id)
    result = await on_emergency_created(
        event.data,
        store=backend.store,
        transport=backend.transport,
        emergency_id=event.emergency_id,
    )
    return result.to_dict()


@router.post(
    "/emergencies/updated",
    summary="Emergency updated",
    description="Notify subscribers when an active emergency is cancelled.",
)
async def emergency_updated(
    event: EmergencyUpdatedEvent,
    backend: BackendHandle = Depends(get_backend),
):
    bind_log_context(emergency_id=event.emergency_id)
    result = await on_emergency_updated(
        event.before,
        event.after,
        store=backend.store,
        transport=backend.transport,
        emergency_id=event.emergency_id,
    )
    return result.to_dict()


@router.get(
    "/health",
    summary="Trigger service health check",
)
async def health(backend: BackendHandle = Depends(get_backend)):
    """Check trigger service health."""
    return {
        "status": "healthy" if backend.initialised else "unhealthy",
        "service": "emergency-triggers",
        "event_kinds": [k.value for k in EventKind],
        "round_statuses": [s.value for s in RoundStatus],
        "no_op_reasons": [r.value for r in NoOpReason],
    }
