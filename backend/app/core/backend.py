"""
Backend handle — process-wide access to the account store and push transport.

Lifecycle:
    handle = BackendHandle().initialise()   # once, at startup
    ... handle.store / handle.transport for every invocation ...
    handle.close()                           # at shutdown

Which implementations are built is decided by settings:

    ACCOUNT_STORE   firestore → FirestoreAccountStore (firebase_admin.firestore_async)
                    memory    → InMemoryAccountStore
    PUSH_PROVIDER   fcm        → FcmPushTransport (firebase_admin.messaging)
                    simulation → SimulatedPushTransport

The Firebase app is only initialised when one of the two needs it.
The notification core never touches this module; it receives the store
and transport as arguments.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials, firestore_async

from backend.app.core.config import Settings, settings
from backend.app.core.errors import BackendNotInitialisedError
from backend.app.notifications.channels import PushTransport
from backend.app.notifications.channels.fcm_push import FcmPushTransport
from backend.app.notifications.channels.simulated import SimulatedPushTransport
from backend.app.notifications.store import (
    AccountStore,
    FirestoreAccountStore,
    InMemoryAccountStore,
)

logger = logging.getLogger(__name__)

ACCOUNT_STORES = ("firestore", "memory")
PUSH_PROVIDERS = ("fcm", "simulation")


def _initialise_firebase_app(config: Settings) -> Any:
    """Return the default Firebase app, initialising it on first use."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if config.FIREBASE_CREDENTIALS_PATH:
        cred = credentials.Certificate(config.FIREBASE_CREDENTIALS_PATH)
    else:
        cred = credentials.ApplicationDefault()

    options = (
        {"projectId": config.FIREBASE_PROJECT_ID}
        if config.FIREBASE_PROJECT_ID else None
    )
    app = firebase_admin.initialize_app(cred, options)
    logger.info("Firebase app initialised (project=%s)", app.project_id)
    return app


class BackendHandle:
    """Owns the external collaborators for the lifetime of the process."""

    def __init__(self, config: Optional[Settings] = None) -> None:
        self._config = config or settings
        self._app: Any = None
        self._store: Optional[AccountStore] = None
        self._transport: Optional[PushTransport] = None

    @classmethod
    def from_components(
        cls, store: AccountStore, transport: PushTransport,
    ) -> "BackendHandle":
        """Handle around already-built collaborators."""
        handle = cls()
        handle._store = store
        handle._transport = transport
        return handle

    @property
    def initialised(self) -> bool:
        return self._store is not None and self._transport is not None

    @property
    def store(self) -> AccountStore:
        if self._store is None:
            raise BackendNotInitialisedError()
        return self._store

    @property
    def transport(self) -> PushTransport:
        if self._transport is None:
            raise BackendNotInitialisedError()
        return self._transport

    @property
    def store_kind(self) -> str:
        return type(self._store).__name__ if self._store is not None else "none"

    @property
    def transport_kind(self) -> str:
        return type(self._transport).__name__ if self._transport is not None else "none"

    def initialise(self) -> "BackendHandle":
        """Build store and transport from settings. Idempotent."""
        if self.initialised:
            return self

        config = self._config
        if config.ACCOUNT_STORE not in ACCOUNT_STORES:
            raise ValueError(
                f"Invalid ACCOUNT_STORE '{config.ACCOUNT_STORE}'. "
                f"Must be one of: {list(ACCOUNT_STORES)}"
            )
        if config.PUSH_PROVIDER not in PUSH_PROVIDERS:
            raise ValueError(
                f"Invalid PUSH_PROVIDER '{config.PUSH_PROVIDER}'. "
                f"Must be one of: {list(PUSH_PROVIDERS)}"
            )

        if config.ACCOUNT_STORE == "firestore" or config.PUSH_PROVIDER == "fcm":
            self._app = _initialise_firebase_app(config)

        if config.ACCOUNT_STORE == "firestore":
            self._store = FirestoreAccountStore(
                firestore_async.client(self._app),
                collection=config.USERS_COLLECTION,
            )
        else:
            self._store = InMemoryAccountStore()

        if config.PUSH_PROVIDER == "fcm":
            self._transport = FcmPushTransport(self._app, dry_run=config.PUSH_DRY_RUN)
        else:
            self._transport = SimulatedPushTransport()

        logger.info(
            "Backend ready: store=%s transport=%s",
            self.store_kind, self.transport_kind,
        )
        return self

    def close(self) -> None:
        """Release the Firebase app, if this handle created one."""
        if self._app is not None:
            firebase_admin.delete_app(self._app)
            self._app = None
        self._store = None
        self._transport = None
        logger.info("Backend closed")
