"""
fanout.py — Concurrent per-recipient delivery.

    template ──► for_token(t1) ──► transport.send ─┐
             ├─► for_token(t2) ──► transport.send ─┼─► gather_settled ─► [SendOutcome]
             └─► for_token(tN) ──► transport.send ─┘

All sends of a round are issued together and joined; one failed send
never cancels or delays its siblings. Accounts without a delivery token
are skipped silently.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Generic, Iterable, List, Optional, TypeVar

from backend.app.notifications.channels import PushTransport
from backend.app.notifications.models import (
    NotificationMessage,
    SendOutcome,
    SendStatus,
    SubscriberAccount,
    token_prefix,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Settled(Generic[T]):
    """Outcome of one awaitable: a value or the exception it raised."""
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_settled(aws: Iterable[Awaitable[T]]) -> List[Settled[T]]:
    """
    Await every awaitable concurrently and collect each outcome.

    Join-all semantics: waits for the full set, never short-circuits on
    the first failure. Results keep input order. A child that was
    cancelled on its own settles as a failure; cancelling the caller
    cancels every child and propagates out of the ``await``. Other
    BaseExceptions (KeyboardInterrupt, SystemExit) are re-raised.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)

    settled: List[Settled[T]] = []
    for result in results:
        if isinstance(result, (Exception, asyncio.CancelledError)):
            settled.append(Settled(error=result))
        elif isinstance(result, BaseException):
            raise result
        else:
            settled.append(Settled(value=result))
    return settled


def usable_tokens(recipients: Iterable[SubscriberAccount]) -> List[str]:
    """Delivery tokens of recipients that have one, in recipient order."""
    return [r.fcm_token for r in recipients if r.has_delivery_token]


async def dispatch_to_recipients(
    template: NotificationMessage,
    recipients: Iterable[SubscriberAccount],
    transport: PushTransport,
) -> List[SendOutcome]:
    """
    Send one token-bound copy of ``template`` per recipient with a token.

    Returns
    -------
    list of SendOutcome
        One per issued send; empty when no recipient has a usable token.
    """
    messages = [template.for_token(token) for token in usable_tokens(recipients)]
    if not messages:
        return []

    settled = await gather_settled(transport.send(m) for m in messages)

    outcomes: List[SendOutcome] = []
    for message, result in zip(messages, settled):
        prefix = token_prefix(message.token)
        if result.ok:
            outcomes.append(SendOutcome(
                token_prefix=prefix,
                status=SendStatus.SENT,
                message_id=result.value,
            ))
            continue

        logger.warning(
            "Push to %s failed: %s", prefix, result.error,
            extra={"token_prefix": prefix},
        )
        outcomes.append(SendOutcome(
            token_prefix=prefix,
            status=SendStatus.FAILED,
            error_message=str(result.error) or type(result.error).__name__,
        ))

    return outcomes
