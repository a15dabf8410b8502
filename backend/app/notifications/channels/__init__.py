"""
channels — Push delivery transports.

Each transport exposes:
    async send(message) → message id

Transports raise PushTransportError on failure. Isolation of one
failed send from its siblings lives in notifications.fanout.
"""

from typing import Protocol

from backend.app.notifications.models import NotificationMessage


class PushTransport(Protocol):
    """Send capability the notification core depends on."""

    async def send(self, message: NotificationMessage) -> str:
        ...
