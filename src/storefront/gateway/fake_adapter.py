"""Configurable fake storefront API for development and testing.

Simulates the storefront server without network calls. Each endpoint can be
told to fail (``fail("process_payment", ApiError(...))``) so tests can
reproduce an unreachable promo validator, a declined charge or a failing
order write. Every call is recorded in ``calls``.
"""

from uuid import uuid4

from storefront.errors import AuthenticationError
from storefront.gateway.port import (
    AuthResult,
    ChargeResult,
    EmailAvailability,
    PaymentIntent,
    PromoCheck,
    PromoKind,
    SavedPaymentMethod,
    StorefrontApi,
)


class FakeStorefrontApi(StorefrontApi):
    """In-memory storefront server."""

    def __init__(self) -> None:
        self.registered: dict[str, dict] = {}
        self.passwords: dict[str, str] = {}
        self.promos: dict[str, PromoCheck] = {}
        self.payment_methods: list[SavedPaymentMethod] = []
        self.orders: list[dict] = []
        self.address_books: dict[str, list[dict]] = {}
        self.charge_succeeds: bool = True
        self.decline_reason: str = "Card declined"
        self.fraud_suspect: bool = False
        self.verified_total: float | None = None
        self.failures: dict[str, Exception] = {}
        self.calls: list[dict] = []

    # -------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------
    def add_user(self, email: str, password: str, name: str = "Test Customer", **extra) -> dict:
        user = {"id": f"user-{uuid4().hex[:8]}", "name": name, "email": email, "role": "customer"}
        user.update(extra)
        self.registered[email] = user
        self.passwords[email] = password
        return user

    def add_promo(self, code: str, kind: PromoKind, value: float) -> None:
        self.promos[code.upper()] = PromoCheck(valid=True, kind=kind, value=value)

    def fail(self, method: str, error: Exception) -> None:
        """Make the named endpoint raise ``error`` until ``recover`` is called."""
        self.failures[method] = error

    def recover(self, method: str) -> None:
        self.failures.pop(method, None)

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def _record(self, method: str, **kwargs) -> None:
        self.calls.append({"method": method, **kwargs})
        if method in self.failures:
            raise self.failures[method]

    # -------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------
    async def check_email_available(self, email: str) -> EmailAvailability:
        self._record("check_email_available", email=email)
        return EmailAvailability(available=email not in self.registered)

    async def validate_promo(self, code: str) -> PromoCheck:
        self._record("validate_promo", code=code)
        return self.promos.get(code.upper(), PromoCheck(valid=False, error="Invalid or expired promo code"))

    async def create_payment_intent(self, items, promo_code=None, customer_email=None) -> PaymentIntent:
        self._record("create_payment_intent", items=items, promo_code=promo_code, customer_email=customer_email)
        intent_id = f"pi_fake_{uuid4().hex[:12]}"
        return PaymentIntent(client_secret=f"{intent_id}_secret", id=intent_id)

    async def process_payment(
        self,
        items,
        customer_email,
        payment_method_id=None,
        promo_code=None,
        save_card=False,
        payment_intent_id=None,
        auth_token=None,
    ) -> ChargeResult:
        self._record(
            "process_payment",
            items=items,
            customer_email=customer_email,
            payment_method_id=payment_method_id,
            promo_code=promo_code,
            save_card=save_card,
            payment_intent_id=payment_intent_id,
            auth_token=auth_token,
        )
        if not self.charge_succeeds:
            return ChargeResult(success=False, failure_reason=self.decline_reason)

        subtotal = sum(item["unit_price"] * item["quantity"] for item in items)
        return ChargeResult(
            success=True,
            charge_id=f"ch_fake_{uuid4().hex[:12]}",
            payment_intent_id=payment_intent_id or f"pi_fake_{uuid4().hex[:12]}",
            is_fraud_suspect=self.fraud_suspect,
            fraud_score=85.0 if self.fraud_suspect else 5.0,
            verified_total=self.verified_total if self.verified_total is not None else subtotal,
        )

    async def create_order(self, order, auth_token=None) -> None:
        self._record("create_order", order=order, auth_token=auth_token)
        self.orders.append(order)

    async def update_user_addresses(self, user_id, addresses, auth_token=None) -> None:
        self._record("update_user_addresses", user_id=user_id, addresses=addresses, auth_token=auth_token)
        self.address_books[user_id] = addresses

    async def login(self, email, password) -> AuthResult:
        self._record("login", email=email)
        if email not in self.registered or self.passwords[email] != password:
            raise AuthenticationError("Invalid email or password", remaining_attempts=4)
        return AuthResult(token=f"token-{uuid4().hex[:8]}", user=self.registered[email])

    async def register(self, name, email, password) -> AuthResult:
        self._record("register", name=name, email=email)
        if email in self.registered:
            raise AuthenticationError("Email already registered")
        user = self.add_user(email, password, name=name)
        return AuthResult(token=f"token-{uuid4().hex[:8]}", user=user)

    async def list_payment_methods(self, auth_token) -> list[SavedPaymentMethod]:
        self._record("list_payment_methods", auth_token=auth_token)
        return list(self.payment_methods)

    async def send_order_confirmation(self, email, order_id, name, total) -> None:
        self._record("send_order_confirmation", email=email, order_id=order_id, name=name, total=total)

    async def track_promo_usage(self, code) -> None:
        self._record("track_promo_usage", code=code)
