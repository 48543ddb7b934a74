"""Key-value storage port.

Abstracts the browser's storage tiers so the cart, the session store and the
promo resolver can be exercised against an in-memory implementation. Two
instances play the two tiers: "remember" (survives restarts, like
localStorage) and "ephemeral" (one browsing session, like sessionStorage).
"""

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Abstract string key-value store."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value. Raises StorageError when the write cannot be made."""
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key. Removing an absent key is a no-op."""
        ...

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
