"""Payment gateway port and fake adapter used by the reference API.

The reference server charges through this port. ``FakeGateway`` can be
configured at runtime to succeed or fail, which makes the decline path
reproducible in integration tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import uuid4


@dataclass(frozen=True)
class GatewayCharge:
    """Result of a gateway charge attempt."""

    success: bool
    transaction_id: str | None = None
    payment_intent_id: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class GatewayIntent:
    id: str
    client_secret: str
    amount: float


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_intent(self, amount: float, currency: str) -> GatewayIntent:
        """Create a payment intent for a wallet confirmation."""
        ...

    @abstractmethod
    def create_charge(
        self,
        amount: float,
        currency: str,
        payment_method_id: str | None,
        payment_intent_id: str | None,
        idempotency_key: str,
    ) -> GatewayCharge:
        """Charge a payment method, or capture a confirmed intent."""
        ...


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_intent(self, amount: float, currency: str) -> GatewayIntent:
        self.calls.append({"method": "create_intent", "amount": amount, "currency": currency})
        intent_id = f"pi_fake_{uuid4().hex[:12]}"
        return GatewayIntent(id=intent_id, client_secret=f"{intent_id}_secret", amount=amount)

    def create_charge(
        self,
        amount: float,
        currency: str,
        payment_method_id: str | None,
        payment_intent_id: str | None,
        idempotency_key: str,
    ) -> GatewayCharge:
        call = {
            "method": "create_charge",
            "amount": amount,
            "currency": currency,
            "payment_method_id": payment_method_id,
            "payment_intent_id": payment_intent_id,
            "idempotency_key": idempotency_key,
        }
        self.calls.append(call)

        if self.should_succeed:
            return GatewayCharge(
                success=True,
                transaction_id=f"ch_fake_{uuid4().hex[:12]}",
                payment_intent_id=payment_intent_id or f"pi_fake_{uuid4().hex[:12]}",
            )
        return GatewayCharge(success=False, failure_reason=self.failure_reason)
