"""SessionStore: the encrypted session blob across the two storage tiers.

A session lives in exactly one tier at a time. "Remember me" writes to the
persistent tier, otherwise to the ephemeral one; every save removes the
blob from the other tier.
"""

import structlog

from storefront.errors import StorageError
from storefront.identity.session import Session
from storefront.identity.vault import SessionVault
from storefront.storage.port import KeyValueStore

logger = structlog.get_logger(__name__)

SESSION_KEY = "session"


class SessionStore:
    def __init__(
        self,
        vault: SessionVault,
        remember_store: KeyValueStore,
        ephemeral_store: KeyValueStore,
        key: str = SESSION_KEY,
    ) -> None:
        self.vault = vault
        self.remember_store = remember_store
        self.ephemeral_store = ephemeral_store
        self.key = key

    def save(self, session: Session, remember: bool = True) -> None:
        target, other = (
            (self.remember_store, self.ephemeral_store)
            if remember
            else (self.ephemeral_store, self.remember_store)
        )
        blob = self.vault.encrypt(session.to_payload())
        try:
            target.set(self.key, blob)
        except StorageError as exc:
            logger.error(
                "Failed to persist session",
                user_id=str(session.user_id),
                remember=remember,
                error=exc.message,
            )
            return
        other.remove(self.key)

    def load(self) -> Session | None:
        """Restore the session, preferring the persistent tier."""
        for store in (self.remember_store, self.ephemeral_store):
            payload = self.vault.decrypt(store.get(self.key))
            if payload:
                return Session.from_payload(payload)
        return None

    def is_remembered(self) -> bool:
        return self.key in self.remember_store

    def clear(self) -> None:
        self.remember_store.remove(self.key)
        self.ephemeral_store.remove(self.key)
