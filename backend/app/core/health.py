"""
Health check aggregation — deep health probe for the notifier.

Checks:
    • Backend handle initialised
    • Account store configured
    • Push transport configured (simulation counts as degraded in production)

Returns a structured health report suitable for:
    - Cloud Run / Kubernetes liveness and readiness probes
    - Monitoring dashboards
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

from backend.app.core.backend import BackendHandle
from backend.app.core.config import settings

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"  # partial functionality
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    name: str
    status: HealthStatus = HealthStatus.HEALTHY
    latency_ms: float = 0.0
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            d["message"] = self.message
        if self.details:
            d["details"] = self.details
        return d


@dataclass
class HealthReport:
    status: HealthStatus = HealthStatus.HEALTHY
    version: str = settings.APP_VERSION
    environment: str = settings.ENVIRONMENT
    timestamp: str = ""
    uptime_seconds: float = 0.0
    components: List[ComponentHealth] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "version": self.version,
            "environment": self.environment,
            "timestamp": self.timestamp or datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(self.uptime_seconds, 1),
            "components": [c.to_dict() for c in self.components],
        }


# Track application start time
_start_time = time.monotonic()


async def check_backend(handle: BackendHandle) -> ComponentHealth:
    """Check the backend handle has been initialised."""
    comp = ComponentHealth(name="backend")
    start = time.monotonic()
    if handle.initialised:
        comp.message = "Backend handle initialised"
    else:
        comp.status = HealthStatus.UNHEALTHY
        comp.message = "Backend handle not initialised"
    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


async def check_account_store(handle: BackendHandle) -> ComponentHealth:
    """Report which account store is wired in."""
    comp = ComponentHealth(name="account_store")
    start = time.monotonic()
    comp.details = {
        "implementation": handle.store_kind,
        "collection": settings.USERS_COLLECTION,
    }
    if handle.store_kind == "none":
        comp.status = HealthStatus.UNHEALTHY
        comp.message = "No account store"
    elif handle.store_kind == "InMemoryAccountStore" and settings.is_production:
        comp.status = HealthStatus.DEGRADED
        comp.message = "In-memory account store in production"
    else:
        comp.message = "Account store available"
    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


async def check_push_transport(handle: BackendHandle) -> ComponentHealth:
    """Report which push transport is wired in."""
    comp = ComponentHealth(name="push_transport")
    start = time.monotonic()
    comp.details = {
        "implementation": handle.transport_kind,
        "dry_run": settings.PUSH_DRY_RUN,
    }
    if handle.transport_kind == "none":
        comp.status = HealthStatus.UNHEALTHY
        comp.message = "No push transport"
    elif handle.transport_kind == "SimulatedPushTransport" and settings.is_production:
        comp.status = HealthStatus.DEGRADED
        comp.message = "Simulated push transport in production"
    else:
        comp.message = "Push transport available"
    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


async def run_health_check(handle: BackendHandle) -> HealthReport:
    """Run all health checks and aggregate into a report."""
    report = HealthReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime_seconds=time.monotonic() - _start_time,
    )

    checks = [
        check_backend(handle),
        check_account_store(handle),
        check_push_transport(handle),
    ]

    for coro in checks:
        comp = await coro
        report.components.append(comp)

    # Aggregate status
    statuses = [c.status for c in report.components]
    if HealthStatus.UNHEALTHY in statuses:
        report.status = HealthStatus.UNHEALTHY
    elif HealthStatus.DEGRADED in statuses:
        report.status = HealthStatus.DEGRADED
    else:
        report.status = HealthStatus.HEALTHY

    return report
