"""Runtime settings for the storefront core, read from the environment."""

import os
from dataclasses import dataclass

DEFAULT_VAULT_SECRET = "SHIPTEEZ_SECURE_KEY_MATERIAL_V1"
DEFAULT_VAULT_SALT = "SHIPTEEZ_SALT"
DEFAULT_VAULT_ITERATIONS = 100_000

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class StorefrontSettings:
    api_url: str = "http://localhost:8000/api"
    api_timeout: float = 15.0
    vault_secret: str = DEFAULT_VAULT_SECRET
    vault_salt: str = DEFAULT_VAULT_SALT
    vault_iterations: int = DEFAULT_VAULT_ITERATIONS
    remember_session: bool = True

    @classmethod
    def from_env(cls, environ=None) -> "StorefrontSettings":
        """Build settings from ``STOREFRONT_*`` environment variables."""
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            api_url=env.get("STOREFRONT_API_URL", defaults.api_url).rstrip("/"),
            api_timeout=float(env.get("STOREFRONT_API_TIMEOUT", defaults.api_timeout)),
            vault_secret=env.get("STOREFRONT_VAULT_SECRET", defaults.vault_secret),
            vault_salt=env.get("STOREFRONT_VAULT_SALT", defaults.vault_salt),
            vault_iterations=int(env.get("STOREFRONT_VAULT_ITERATIONS", defaults.vault_iterations)),
            remember_session=env.get("STOREFRONT_REMEMBER_SESSION", "true").lower() in _TRUTHY,
        )
