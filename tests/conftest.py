"""
Shared fixtures: a recording account store and a recording push transport.

Both append to one ``calls`` log so tests can assert on the order of
store lookups and sends within a round.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

import pytest

from backend.app.core.errors import AccountStoreError, PushTransportError
from backend.app.notifications.models import (
    NotificationMessage,
    SubscriberAccount,
    token_prefix,
)
from backend.app.notifications.store import InMemoryAccountStore


class RecordingStore(InMemoryAccountStore):
    """In-memory store that logs every query."""

    def __init__(
        self,
        documents: Optional[Dict[str, Dict[str, Any]]] = None,
        *,
        calls: Optional[List[Tuple[str, str]]] = None,
        fail_with: Optional[Exception] = None,
    ) -> None:
        super().__init__(documents)
        self.calls = calls if calls is not None else []
        self.fail_with = fail_with

    async def find_subscribers(self, senior_id: str) -> List[SubscriberAccount]:
        self.calls.append(("find_subscribers", senior_id))
        if self.fail_with is not None:
            raise self.fail_with
        return await super().find_subscribers(senior_id)

    async def get_account(self, account_id: str) -> Optional[SubscriberAccount]:
        self.calls.append(("get_account", account_id))
        if self.fail_with is not None:
            raise self.fail_with
        return await super().get_account(account_id)


class RecordingTransport:
    """Push transport that records messages and fails chosen tokens."""

    def __init__(
        self,
        failing_tokens: Iterable[str] = (),
        *,
        calls: Optional[List[Tuple[str, str]]] = None,
    ) -> None:
        self.failing_tokens = set(failing_tokens)
        self.calls = calls if calls is not None else []
        self.attempted: List[NotificationMessage] = []
        self.sent: List[NotificationMessage] = []

    async def send(self, message: NotificationMessage) -> str:
        self.calls.append(("send", message.token))
        self.attempted.append(message)
        if message.token in self.failing_tokens:
            raise PushTransportError(token_prefix(message.token), "unregistered token")
        self.sent.append(message)
        return f"projects/demo/messages/{len(self.sent)}"

    @property
    def sent_tokens(self) -> List[str]:
        return [m.token for m in self.sent]


def family_doc(*senior_ids: str, token: Optional[str] = None, name: str = "Family") -> Dict[str, Any]:
    """A users document for a family member."""
    doc: Dict[str, Any] = {"name": name, "connectedSeniorIds": list(senior_ids)}
    if token is not None:
        doc["fcmToken"] = token
    return doc


@pytest.fixture
def calls() -> List[Tuple[str, str]]:
    return []


@pytest.fixture
def store(calls) -> RecordingStore:
    """Senior S1 (Alice) with two tokened followers and one tokenless follower."""
    return RecordingStore(
        {
            "S1": {"name": "Alice", "connectedSeniorIds": []},
            "F1": family_doc("S1", token="T1"),
            "F2": family_doc("S1", "S2", token="T2"),
            "F3": family_doc("S1"),
            "F4": family_doc("S2", token="T4"),
        },
        calls=calls,
    )


@pytest.fixture
def transport(calls) -> RecordingTransport:
    return RecordingTransport(calls=calls)


@pytest.fixture
def store_error() -> AccountStoreError:
    return AccountStoreError("find_subscribers", "deadline exceeded")
