"""Payment provider port (abstract interface).

The provider's tokenization internals are opaque: the checkout only needs a
payment-method id for the manual card path and a confirmed payment intent
for the wallet/express path.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class CardEntry:
    """Completion state of the provider's hosted card fields."""

    number_complete: bool = False
    expiry_complete: bool = False
    cvc_complete: bool = False
    name: str | None = None


@dataclass(frozen=True)
class WalletConfirmation:
    """Outcome of a wallet payment, with the details the wallet supplied."""

    status: str
    payment_intent_id: str | None = None
    shipping_name: str | None = None
    shipping_address: dict = field(default_factory=dict)
    billing_name: str | None = None
    billing_email: str | None = None
    billing_address: dict = field(default_factory=dict)
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


class PaymentProvider(ABC):
    """Abstract payment provider interface."""

    @abstractmethod
    async def create_payment_method(self, card: CardEntry, billing: dict) -> str:
        """Tokenize the entered card. Raises TokenizationError on failure."""
        ...

    @abstractmethod
    async def confirm_wallet_payment(self, client_secret: str) -> WalletConfirmation:
        """Present the wallet sheet and confirm the intent. Raises TokenizationError."""
        ...
