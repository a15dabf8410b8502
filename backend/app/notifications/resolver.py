"""
resolver.py — Recipient resolution.

Turns a senior id into the accounts that should hear about it, and
(for cancellations) into the senior's display name.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from backend.app.core.config import settings
from backend.app.notifications.models import SubscriberAccount
from backend.app.notifications.store import AccountStore

logger = logging.getLogger(__name__)


async def resolve_recipients(
    store: AccountStore, senior_id: str,
) -> List[SubscriberAccount]:
    """
    All accounts subscribed to ``senior_id``.

    Order is not meaningful. An empty list is a valid result.
    """
    recipients = await store.find_subscribers(senior_id)
    logger.info(
        "Resolved %d subscriber(s) for senior %s",
        len(recipients), senior_id,
        extra={"senior_id": senior_id, "recipient_count": len(recipients)},
    )
    return recipients


async def resolve_subject_name(
    store: AccountStore,
    senior_id: str,
    *,
    default_name: Optional[str] = None,
) -> Optional[str]:
    """
    Display name from the senior's own account.

    Returns None when the account does not exist. A missing, blank or
    non-string ``name`` falls back to ``default_name`` (settings.DEFAULT_SUBJECT_NAME).
    """
    fallback = default_name or settings.DEFAULT_SUBJECT_NAME
    account = await store.get_account(senior_id)
    if account is None:
        return None
    if account.name and account.name.strip():
        return account.name
    return fallback
