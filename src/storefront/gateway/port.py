"""Storefront API port (abstract interface).

Defines the server endpoints the checkout core consumes. Every endpoint
answers with a typed result; transport failures and error statuses raise
``ApiError``. Swapping ``FakeStorefrontApi`` (dev/test) for
``HttpStorefrontApi`` (httpx) changes no checkout code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class PromoKind(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class EmailAvailability:
    available: bool


@dataclass(frozen=True)
class PromoCheck:
    """Result of a promo validation. ``kind``/``value`` are set only when valid."""

    valid: bool
    kind: PromoKind | None = None
    value: float | None = None
    error: str | None = None


@dataclass(frozen=True)
class PaymentIntent:
    client_secret: str
    id: str


@dataclass(frozen=True)
class ChargeResult:
    """Result of a charge. ``verified_total`` is the server-recomputed amount."""

    success: bool
    charge_id: str | None = None
    payment_intent_id: str | None = None
    is_fraud_suspect: bool = False
    fraud_score: float = 0.0
    verified_total: float | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: dict = field(default_factory=dict)


@dataclass(frozen=True)
class SavedPaymentMethod:
    id: str
    brand: str | None = None
    last4: str | None = None


class StorefrontApi(ABC):
    """Abstract storefront server interface."""

    @abstractmethod
    async def check_email_available(self, email: str) -> EmailAvailability:
        """Report whether an email address is free to register."""
        ...

    @abstractmethod
    async def validate_promo(self, code: str) -> PromoCheck:
        """Validate a promo code. The server alone decides validity, kind and value."""
        ...

    @abstractmethod
    async def create_payment_intent(
        self,
        items: list[dict],
        promo_code: str | None = None,
        customer_email: str | None = None,
    ) -> PaymentIntent:
        """Create a provider payment intent for the wallet/express path."""
        ...

    @abstractmethod
    async def process_payment(
        self,
        items: list[dict],
        customer_email: str,
        payment_method_id: str | None = None,
        promo_code: str | None = None,
        save_card: bool = False,
        payment_intent_id: str | None = None,
        auth_token: str | None = None,
    ) -> ChargeResult:
        """Charge for the full cart contents. The server recomputes the total."""
        ...

    @abstractmethod
    async def create_order(self, order: dict, auth_token: str | None = None) -> None:
        """Record a placed order. Best-effort from the caller's point of view."""
        ...

    @abstractmethod
    async def update_user_addresses(self, user_id: str, addresses: list[dict], auth_token: str | None = None) -> None:
        """Replace the user's saved address book."""
        ...

    @abstractmethod
    async def login(self, email: str, password: str) -> AuthResult:
        """Authenticate; raises AuthenticationError when rejected."""
        ...

    @abstractmethod
    async def register(self, name: str, email: str, password: str) -> AuthResult:
        """Create an account; raises AuthenticationError when rejected."""
        ...

    @abstractmethod
    async def list_payment_methods(self, auth_token: str) -> list[SavedPaymentMethod]:
        """Saved cards of the authenticated user."""
        ...

    @abstractmethod
    async def send_order_confirmation(self, email: str, order_id: str, name: str | None, total: float) -> None:
        """Trigger the order confirmation email."""
        ...

    @abstractmethod
    async def track_promo_usage(self, code: str) -> None:
        """Count one redemption of a promo code."""
        ...
