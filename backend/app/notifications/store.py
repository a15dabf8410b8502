"""
store.py — Read-only access to user accounts.

The core needs exactly two queries:

    find_subscribers(senior_id)  accounts whose connectedSeniorIds contains it
    get_account(account_id)      point lookup of one account (the senior's own)

Backends:
    FirestoreAccountStore  — async Firestore client from firebase_admin
    InMemoryAccountStore   — dict-backed, for local development and tests

Documents are validated into SubscriberAccount here. A subscriber
document that fails validation is logged and skipped so one malformed
account cannot block delivery to the rest. A point lookup of an account
that fails validation keeps only a string ``name``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from backend.app.core.errors import AccountStoreError, RecordValidationError
from backend.app.notifications.models import SubscriberAccount

logger = logging.getLogger(__name__)

SUBSCRIPTION_FIELD = "connectedSeniorIds"


class AccountStore(Protocol):
    """Query capability the notification core depends on."""

    async def find_subscribers(self, senior_id: str) -> List[SubscriberAccount]:
        ...

    async def get_account(self, account_id: str) -> Optional[SubscriberAccount]:
        ...


def _parse_subscribers(
    documents: Iterable[Tuple[str, Optional[Mapping[str, Any]]]],
) -> List[SubscriberAccount]:
    accounts: List[SubscriberAccount] = []
    for account_id, data in documents:
        try:
            accounts.append(SubscriberAccount.from_snapshot(account_id, data))
        except RecordValidationError as exc:
            logger.warning(
                "Skipping malformed account %s: %s", account_id, exc.message,
            )
    return accounts


def _parse_account(
    account_id: str, data: Optional[Mapping[str, Any]],
) -> SubscriberAccount:
    try:
        return SubscriberAccount.from_snapshot(account_id, data)
    except RecordValidationError as exc:
        logger.warning(
            "Account %s failed validation, keeping name only: %s",
            account_id, exc.message,
        )
    name = (data or {}).get("name")
    return SubscriberAccount(
        account_id=account_id, name=name if isinstance(name, str) else None,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Firestore
# ═══════════════════════════════════════════════════════════════════════════

class FirestoreAccountStore:
    """
    Account store over a Firestore ``users`` collection.

    Parameters
    ----------
    client : google.cloud.firestore.AsyncClient
        Usually ``firebase_admin.firestore_async.client(app)``.
    collection : str
        Collection holding user documents.
    """

    def __init__(self, client: Any, collection: str = "users") -> None:
        self._client = client
        self._collection = collection

    async def find_subscribers(self, senior_id: str) -> List[SubscriberAccount]:
        query = self._client.collection(self._collection).where(
            filter=FieldFilter(SUBSCRIPTION_FIELD, "array_contains", senior_id),
        )
        documents = []
        try:
            async for snapshot in query.stream():
                documents.append((snapshot.id, snapshot.to_dict()))
        except google_exceptions.GoogleAPICallError as exc:
            raise AccountStoreError(
                "find_subscribers", str(exc), senior_id=senior_id,
            ) from exc

        return _parse_subscribers(documents)

    async def get_account(self, account_id: str) -> Optional[SubscriberAccount]:
        try:
            snapshot = await (
                self._client.collection(self._collection).document(account_id).get()
            )
        except google_exceptions.GoogleAPICallError as exc:
            raise AccountStoreError(
                "get_account", str(exc), account_id=account_id,
            ) from exc

        if not snapshot.exists:
            return None
        return _parse_account(snapshot.id, snapshot.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
# In-Memory
# ═══════════════════════════════════════════════════════════════════════════

class InMemoryAccountStore:
    """Dict-backed store keyed by account id, holding raw documents."""

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self.documents: Dict[str, Dict[str, Any]] = dict(documents or {})

    def put(self, account_id: str, data: Dict[str, Any]) -> None:
        self.documents[account_id] = data

    async def find_subscribers(self, senior_id: str) -> List[SubscriberAccount]:
        matches = [
            (account_id, data)
            for account_id, data in self.documents.items()
            if senior_id in (data.get(SUBSCRIPTION_FIELD) or [])
        ]
        return _parse_subscribers(matches)

    async def get_account(self, account_id: str) -> Optional[SubscriberAccount]:
        data = self.documents.get(account_id)
        if data is None:
            return None
        return _parse_account(account_id, data)
