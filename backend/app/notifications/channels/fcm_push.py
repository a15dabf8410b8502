"""
fcm_push.py — Firebase Cloud Messaging transport.

Delivery mechanism:
    • firebase_admin.messaging.send() — one HTTP v1 request per token
    • Android hints via AndroidConfig / AndroidNotification
    • iOS hints via APNSConfig / APNSPayload / Aps

messaging.send() is blocking, so it runs in a worker thread; the event
loop stays free to issue the other sends of the same round.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from backend.app.core.errors import PushTransportError
from backend.app.notifications.models import NotificationMessage, token_prefix

logger = logging.getLogger(__name__)


def to_fcm_message(message: NotificationMessage) -> messaging.Message:
    """Convert a token-bound NotificationMessage into an FCM Message."""
    if not message.token:
        raise ValueError("Cannot build an FCM message without a token")

    return messaging.Message(
        token=message.token,
        notification=messaging.Notification(
            title=message.title,
            body=message.body,
        ),
        data=dict(message.data),
        android=messaging.AndroidConfig(
            priority=message.android.priority,
            notification=messaging.AndroidNotification(
                sound=message.android.sound,
                priority=message.android.notification_priority,
                channel_id=message.android.channel_id,
            ),
        ),
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(
                aps=messaging.Aps(
                    sound=message.apns.sound,
                    badge=message.apns.badge,
                ),
            ),
        ),
    )


class FcmPushTransport:
    """
    Push transport backed by firebase_admin.

    Parameters
    ----------
    app : firebase_admin.App | None
        Initialised Firebase app; the default app when None.
    dry_run : bool
        Ask FCM to validate without delivering.
    """

    def __init__(self, app: Optional[Any] = None, *, dry_run: bool = False) -> None:
        self._app = app
        self._dry_run = dry_run

    async def send(self, message: NotificationMessage) -> str:
        fcm_message = to_fcm_message(message)
        prefix = token_prefix(message.token)

        try:
            message_id = await asyncio.to_thread(
                messaging.send, fcm_message, self._dry_run, self._app,
            )
        except firebase_exceptions.FirebaseError as exc:
            raise PushTransportError(
                prefix, str(exc), code=getattr(exc, "code", None),
            ) from exc

        logger.debug(
            "[FCM] %s → %s (%s)", message.title, prefix, message_id,
            extra={"token_prefix": prefix},
        )
        return message_id
