"""
Session Credential Store
========================

This module defines the SessionStore, the single source of truth for whether
the user is authenticated. It holds the opaque bearer credential returned by
the authentication endpoint and persists it through `LocalStorage` so the
session survives a restart of the client.

One SessionStore is created at startup and handed by reference to every
backend client; nothing looks the credential up from a global.

The store never inspects the credential. Expiry is only discovered when a
backend answers 401, at which point the interceptor chain clears the store.
"""

import logging
import threading
from typing import Optional

from clinxr.core.config import TOKEN_STORAGE_KEY
from clinxr.utils.local_storage import LocalStorage


class SessionStore:
    """
    Owner of the bearer credential.

    Reads are snapshots: a request calls `get()` once at dispatch and uses that
    value. Writes (login success, 401 handling, explicit logout) are
    idempotent. All access to the storage file goes through one lock, so
    concurrent 401 handlers agree on which of them actually removed the
    credential and a read never sees a half-written file.

    Attributes:
        storage: The persistence backend holding the `token` entry.
    """

    def __init__(self, storage: Optional[LocalStorage] = None):
        self.logger = logging.getLogger(__name__)
        self.storage = storage or LocalStorage()
        self._lock = threading.Lock()

    def set(self, credential: str) -> None:
        """Store a freshly issued credential, replacing any previous one."""
        if not credential:
            raise ValueError("Cannot store an empty credential")
        with self._lock:
            self.storage.set_item(TOKEN_STORAGE_KEY, credential)
        self.logger.info("Session credential stored")

    def get(self) -> Optional[str]:
        """Return the current credential, or None when logged out."""
        with self._lock:
            return self.storage.get_item(TOKEN_STORAGE_KEY) or None

    def clear(self) -> bool:
        """
        Destroy the credential.

        Returns:
            True if a credential was removed by this call, False if the store
            was already empty.
        """
        with self._lock:
            removed = self.storage.remove_item(TOKEN_STORAGE_KEY)
        if removed:
            self.logger.info("Session credential cleared")
        else:
            self.logger.debug("Session already empty, nothing to clear")
        return removed

    @property
    def is_authenticated(self) -> bool:
        return self.get() is not None

    def __repr__(self) -> str:
        return f"<SessionStore path={self.storage.path} authenticated={self.is_authenticated}>"
