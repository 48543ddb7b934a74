"""Configurable fake payment provider for development and testing.

Simulates card tokenization and wallet confirmation without any external
calls. Configure it to fail to exercise the checkout's retry path.
"""

from uuid import uuid4

from storefront.errors import TokenizationError
from storefront.payments.port import CardEntry, PaymentProvider, WalletConfirmation


class FakePaymentProvider(PaymentProvider):
    """Configurable fake payment provider."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Your card number is incomplete."
        self.wallet = {
            "shipping_name": "Wallet Customer",
            "shipping_address": {
                "street": "1 Wallet Way",
                "city": "Austin",
                "state": "TX",
                "zip": "73301",
            },
            "billing_name": "Wallet Customer",
            "billing_email": "wallet@example.com",
            "billing_address": {},
        }
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Your card number is incomplete.") -> None:
        """Configure provider behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    async def create_payment_method(self, card: CardEntry, billing: dict) -> str:
        self.calls.append({"method": "create_payment_method", "card": card, "billing": billing})

        if not self.should_succeed:
            raise TokenizationError(self.failure_reason)
        return f"pm_fake_{uuid4().hex[:12]}"

    async def confirm_wallet_payment(self, client_secret: str) -> WalletConfirmation:
        self.calls.append({"method": "confirm_wallet_payment", "client_secret": client_secret})

        if not self.should_succeed:
            raise TokenizationError(self.failure_reason)
        return WalletConfirmation(
            status="succeeded",
            payment_intent_id=client_secret.removesuffix("_secret"),
            **self.wallet,
        )
