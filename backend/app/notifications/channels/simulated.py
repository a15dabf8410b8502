"""
simulated.py — Log-only push transport for local development.

Selected with PUSH_PROVIDER=simulation. Logs the notification and
returns a synthetic message id; nothing leaves the process.
"""

from __future__ import annotations

import logging
import uuid

from backend.app.notifications.models import NotificationMessage, token_prefix

logger = logging.getLogger(__name__)


class SimulatedPushTransport:
    """Accepts every message."""

    async def send(self, message: NotificationMessage) -> str:
        prefix = token_prefix(message.token)
        logger.info(
            "[PUSH-SIM] %s → %s: %s | %s",
            message.title, prefix, message.body, message.data.get("payload"),
            extra={"token_prefix": prefix},
        )
        return f"simulated/{uuid.uuid4().hex[:16]}"
