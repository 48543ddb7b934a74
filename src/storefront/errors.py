"""Error taxonomy for the storefront core.

Failures below the charge boundary are recoverable where they occur. Anything
at or after a successful charge is logged and absorbed, never surfaced.

Field-level validation uses ``protean.exceptions.ValidationError``.
"""


class StorefrontError(Exception):
    """Base class for storefront failures."""

    def __init__(self, message: str = "", **context):
        super().__init__(message)
        self.message = message
        self.context = context


class ApiError(StorefrontError):
    """A server endpoint could not be reached or answered with an error status."""

    def __init__(self, message: str = "", status: int | None = None, payload: dict | None = None):
        super().__init__(message, status=status)
        self.status = status
        self.payload = payload or {}


class AvailabilityCheckError(StorefrontError):
    """The email availability lookup failed. Non-fatal: checkout fails open."""


class PromoValidationError(StorefrontError):
    """The promo validator failed or timed out. Fails closed to a zero discount."""


class TokenizationError(StorefrontError):
    """The payment provider could not produce a payment method or confirmation."""


class ChargeError(StorefrontError):
    """The charge endpoint declined or failed. Retryable; no charge took place."""


class AuthenticationError(StorefrontError):
    """Login or registration was rejected by the server."""

    def __init__(self, message: str = "", remaining_attempts: int | None = None):
        super().__init__(message, remaining_attempts=remaining_attempts)
        self.remaining_attempts = remaining_attempts


class PersistenceError(StorefrontError):
    """A best-effort record write failed. Logged only."""


class StorageError(PersistenceError):
    """A key-value storage write failed, e.g. the storage quota was exceeded."""
