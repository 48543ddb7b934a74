"""Tests for the in-memory key-value store and environment settings."""

import pytest
from storefront.config import DEFAULT_VAULT_ITERATIONS, StorefrontSettings
from storefront.errors import StorageError
from storefront.storage.memory import MemoryStore


class TestMemoryStore:
    def test_set_get_remove(self):
        store = MemoryStore()
        store.set("cart", "{}")
        assert store.get("cart") == "{}"
        assert "cart" in store
        store.remove("cart")
        assert store.get("cart") is None

    def test_remove_absent_key(self):
        MemoryStore().remove("missing")

    def test_quota(self):
        store = MemoryStore(quota_bytes=20)
        store.set("a", "x" * 10)
        with pytest.raises(StorageError):
            store.set("b", "x" * 10)
        assert store.get("b") is None

    def test_overwrite_counts_once(self):
        store = MemoryStore(quota_bytes=20)
        store.set("a", "x" * 15)
        store.set("a", "y" * 15)
        assert store.get("a") == "y" * 15


class TestSettings:
    def test_defaults(self):
        settings = StorefrontSettings.from_env({})
        assert settings.api_url == "http://localhost:8000/api"
        assert settings.vault_iterations == DEFAULT_VAULT_ITERATIONS
        assert settings.remember_session is True

    def test_from_env(self):
        settings = StorefrontSettings.from_env(
            {
                "STOREFRONT_API_URL": "https://shop.example.com/api/",
                "STOREFRONT_API_TIMEOUT": "5",
                "STOREFRONT_VAULT_ITERATIONS": "2000",
                "STOREFRONT_REMEMBER_SESSION": "no",
            }
        )
        assert settings.api_url == "https://shop.example.com/api"
        assert settings.api_timeout == 5.0
        assert settings.vault_iterations == 2000
        assert settings.remember_session is False
