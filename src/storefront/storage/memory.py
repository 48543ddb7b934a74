"""In-memory key-value store for development and testing.

An optional byte quota reproduces the storage-quota failures browsers raise
when a write would exceed the origin's allowance.
"""

from storefront.errors import StorageError
from storefront.storage.port import KeyValueStore


class MemoryStore(KeyValueStore):
    def __init__(self, quota_bytes: int | None = None) -> None:
        self.quota_bytes = quota_bytes
        self.data: dict[str, str] = {}

    def _size_with(self, key: str, value: str) -> int:
        sizes = {k: len(k) + len(v) for k, v in self.data.items()}
        sizes[key] = len(key) + len(value)
        return sum(sizes.values())

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None and self._size_with(key, value) > self.quota_bytes:
            raise StorageError("Storage quota exceeded", key=key, quota_bytes=self.quota_bytes)
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)
