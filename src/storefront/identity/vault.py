"""SessionVault: symmetric encryption of the session blob kept in browser storage.

The key is derived with PBKDF2-HMAC-SHA256 from an application secret and a
fixed salt that ship with the client. This keeps the auth token and profile
out of plain sight in storage; it is NOT confidentiality against anyone who
can read the application code or run script in its origin. Treat it as
obfuscation with integrity, not as a cryptographic guarantee.

Ciphertext layout: base64(nonce ∥ AES-256-GCM sealed data), with a fresh
12-byte random nonce per encryption.

When the AEAD primitive is unavailable the vault degrades to a reversible
base64 encoding of the JSON payload. That mode is functional but offers no
protection at all; ``secure`` reports which mode is active.
"""

import base64
import binascii
import json
import os
from typing import Any

import structlog
from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from storefront.config import DEFAULT_VAULT_ITERATIONS, DEFAULT_VAULT_SALT, DEFAULT_VAULT_SECRET

logger = structlog.get_logger(__name__)

NONCE_LENGTH = 12
KEY_LENGTH = 32


def derive_key(secret: str, salt: str, iterations: int) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt.encode("utf-8"),
        iterations=iterations,
    )
    return kdf.derive(secret.encode("utf-8"))


class SessionVault:
    """Encrypts and decrypts JSON-serializable session payloads."""

    def __init__(
        self,
        secret: str = DEFAULT_VAULT_SECRET,
        salt: str = DEFAULT_VAULT_SALT,
        iterations: int = DEFAULT_VAULT_ITERATIONS,
        cipher_factory=AESGCM,
    ) -> None:
        try:
            self._cipher = cipher_factory(derive_key(secret, salt, iterations))
        except UnsupportedAlgorithm as exc:
            logger.warning(
                "AES-GCM unavailable, session vault falling back to INSECURE reversible encoding",
                error=str(exc),
            )
            self._cipher = None

    @property
    def secure(self) -> bool:
        """False when running in the insecure base64 fallback."""
        return self._cipher is not None

    def encrypt(self, payload: Any) -> str:
        data = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        if self._cipher is None:
            return base64.b64encode(data).decode("ascii")

        nonce = os.urandom(NONCE_LENGTH)
        sealed = self._cipher.encrypt(nonce, data, None)
        return base64.b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, ciphertext: str | None) -> Any | None:
        """Return the payload, or None for empty, corrupt or foreign ciphertext."""
        if not ciphertext:
            return None

        try:
            combined = base64.b64decode(ciphertext, validate=True)
            if self._cipher is None:
                data = combined
            else:
                nonce, sealed = combined[:NONCE_LENGTH], combined[NONCE_LENGTH:]
                data = self._cipher.decrypt(nonce, sealed, None)
            return json.loads(data.decode("utf-8"))
        except (binascii.Error, InvalidTag, ValueError, UnicodeDecodeError) as exc:
            # json.JSONDecodeError is a ValueError; so is a too-short nonce
            logger.warning("Session decryption failed", error=type(exc).__name__)
            return None
