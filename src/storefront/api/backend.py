"""In-memory backend behind the reference storefront API.

Holds users, promo codes, catalogue prices, saved cards and placed orders.
Charges are priced here from the catalogue: client-supplied unit prices are
ignored, and the verified total is what the gateway is asked to charge.
"""

import base64
import os
import secrets
from collections import Counter
from dataclasses import dataclass
from uuid import uuid4

import structlog
from cryptography.hazmat.primitives import constant_time, hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from protean.exceptions import ValidationError

from storefront.api.gateway import FakeGateway, PaymentGateway
from storefront.errors import AuthenticationError
from storefront.gateway.port import PromoKind
from storefront.promo.resolver import compute_discount
from storefront.shipping.calculator import ShippingConfig, ShippingTemplate, calculate_shipping

logger = structlog.get_logger(__name__)

MAX_LOGIN_ATTEMPTS = 5
PASSWORD_ITERATIONS = 100_000
FRAUD_SUSPECT_THRESHOLD = 75.0
HIGH_VALUE_TOTAL = 1000.0
BULK_QUANTITY = 10
DISPOSABLE_DOMAINS = frozenset(
    {
        "mailinator.com",
        "guerrillamail.com",
        "yopmail.com",
        "sharklasers.com",
        "getnada.com",
        "dispostable.com",
        "grr.la",
        "mailnesia.com",
    }
)


def hash_password(password: str, salt: bytes, iterations: int = PASSWORD_ITERATIONS) -> bytes:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=salt, iterations=iterations)
    return kdf.derive(password.encode("utf-8"))


@dataclass(frozen=True)
class _PricedLine:
    unit_price: float
    quantity: int
    shipping_template_id: str | None


@dataclass(frozen=True)
class Promo:
    code: str
    kind: PromoKind
    value: float
    active: bool = True


@dataclass
class CatalogueEntry:
    product_id: str
    price: float
    shipping_template_id: str | None = None


class StorefrontBackend:
    def __init__(
        self,
        gateway: PaymentGateway | None = None,
        shipping_config: ShippingConfig | None = None,
        password_iterations: int = PASSWORD_ITERATIONS,
    ) -> None:
        self.gateway = gateway or FakeGateway()
        self.shipping_config = shipping_config or ShippingConfig()
        self.password_iterations = password_iterations
        self.users: dict[str, dict] = {}
        self.tokens: dict[str, str] = {}
        self.promos: dict[str, Promo] = {}
        self.catalogue: dict[str, CatalogueEntry] = {}
        self.orders: list[dict] = []
        self.confirmations: list[dict] = []
        self.promo_usage: Counter = Counter()
        self.login_failures: Counter = Counter()

    @classmethod
    def with_demo_data(cls) -> "StorefrontBackend":
        """A backend seeded with a small catalogue, shipping rules and promos."""
        backend = cls(
            shipping_config=ShippingConfig(
                base_rate=5.0,
                additional_item_rate=1.10,
                templates={"heavy": ShippingTemplate(id="heavy", base_rate=9.0, additional_item_rate=2.5)},
                free_shipping_threshold=75.0,
            )
        )
        backend.add_product("tee-classic", 25.0)
        backend.add_product("hoodie", 55.0, shipping_template_id="heavy")
        backend.add_promo("WELCOME10", PromoKind.PERCENTAGE, 10)
        backend.add_promo("FIVEOFF", PromoKind.FIXED, 5)
        return backend

    # -------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------
    def add_product(self, product_id: str, price: float, shipping_template_id: str | None = None) -> None:
        self.catalogue[product_id] = CatalogueEntry(product_id, price, shipping_template_id)

    def add_promo(self, code: str, kind: PromoKind, value: float, active: bool = True) -> None:
        self.promos[code.upper()] = Promo(code.upper(), kind, value, active)

    # -------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------
    @staticmethod
    def public_user(user: dict) -> dict:
        return {k: v for k, v in user.items() if k not in ("password_hash", "salt", "payment_methods")}

    def email_available(self, email: str) -> bool:
        return email.lower() not in self.users

    def _issue_token(self, email: str) -> str:
        token = secrets.token_urlsafe(32)
        self.tokens[token] = email
        return token

    def register(self, name: str, email: str, password: str) -> tuple[str, dict]:
        email = email.lower()
        if email in self.users:
            raise AuthenticationError("Email already registered")

        salt = os.urandom(16)
        user = {
            "id": str(uuid4()),
            "name": name,
            "email": email,
            "role": "customer",
            "addresses": [],
            "payment_methods": [],
            "salt": base64.b64encode(salt).decode("ascii"),
            "password_hash": base64.b64encode(hash_password(password, salt, self.password_iterations)).decode("ascii"),
        }
        self.users[email] = user
        logger.info("Account registered", user_id=user["id"])
        return self._issue_token(email), self.public_user(user)

    def login(self, email: str, password: str) -> tuple[str, dict]:
        email = email.lower()
        remaining = MAX_LOGIN_ATTEMPTS - self.login_failures[email]
        if remaining <= 0:
            raise AuthenticationError("Account locked", remaining_attempts=0)

        user = self.users.get(email)
        if user is not None:
            salt = base64.b64decode(user["salt"])
            expected = base64.b64decode(user["password_hash"])
            if constant_time.bytes_eq(hash_password(password, salt, self.password_iterations), expected):
                self.login_failures.pop(email, None)
                return self._issue_token(email), self.public_user(user)

        self.login_failures[email] += 1
        logger.warning("Login failed", remaining_attempts=remaining - 1)
        raise AuthenticationError("Invalid email or password", remaining_attempts=remaining - 1)

    def user_for_token(self, token: str | None) -> dict:
        email = self.tokens.get(token or "")
        if email is None:
            raise AuthenticationError("Not authenticated")
        return self.users[email]

    def update_addresses(self, user_id: str, addresses: list[dict], token: str | None) -> None:
        user = self.user_for_token(token)
        if user["id"] != user_id:
            raise AuthenticationError("Cannot update another user's addresses")
        user["addresses"] = addresses

    def payment_methods(self, token: str | None) -> list[dict]:
        return list(self.user_for_token(token)["payment_methods"])

    # -------------------------------------------------------------------
    # Promos
    # -------------------------------------------------------------------
    def validate_promo(self, code: str) -> Promo | None:
        promo = self.promos.get((code or "").strip().upper())
        if promo is None or not promo.active:
            return None
        return promo

    def track_promo(self, code: str) -> None:
        self.promo_usage[code.upper()] += 1

    # -------------------------------------------------------------------
    # Pricing and charging
    # -------------------------------------------------------------------
    def verify_total(self, items: list[dict], promo_code: str | None) -> float:
        """Recompute the charge amount from catalogue prices."""
        lines = []
        for item in items:
            entry = self.catalogue.get(item["product_id"])
            if entry is None:
                raise ValidationError({"items": [f"Unknown product {item['product_id']}"]})
            lines.append(_PricedLine(entry.price, item["quantity"], entry.shipping_template_id))

        subtotal = sum(line.unit_price * line.quantity for line in lines)
        shipping = calculate_shipping(lines, self.shipping_config)
        discount = 0.0
        promo = self.validate_promo(promo_code) if promo_code else None
        if promo is not None:
            discount = compute_discount(promo.kind, promo.value, subtotal)
        return round(max(0.0, subtotal + shipping.cost - discount), 2)

    @staticmethod
    def fraud_score(email: str, total: float, items: list[dict]) -> float:
        score = 5.0
        if total >= HIGH_VALUE_TOTAL:
            score += 40.0
        if any(item["quantity"] > BULK_QUANTITY for item in items):
            score += 30.0
        if email.rsplit("@", 1)[-1].lower() in DISPOSABLE_DOMAINS:
            score += 35.0
        return min(score, 100.0)

    def create_intent(self, items: list[dict], promo_code: str | None) -> dict:
        intent = self.gateway.create_intent(self.verify_total(items, promo_code), "USD")
        return {"client_secret": intent.client_secret, "id": intent.id}

    def process_payment(
        self,
        items: list[dict],
        customer_email: str,
        payment_method_id: str | None,
        promo_code: str | None,
        save_card: bool,
        payment_intent_id: str | None,
        token: str | None,
    ) -> dict:
        total = self.verify_total(items, promo_code)
        charge = self.gateway.create_charge(
            amount=total,
            currency="USD",
            payment_method_id=payment_method_id,
            payment_intent_id=payment_intent_id,
            idempotency_key=str(uuid4()),
        )
        if not charge.success:
            logger.warning("Charge declined", reason=charge.failure_reason)
            return {"success": False, "failure_reason": charge.failure_reason}

        score = self.fraud_score(customer_email, total, items)
        if save_card and payment_method_id and token in self.tokens:
            user = self.user_for_token(token)
            user["payment_methods"].append({"id": payment_method_id, "brand": "card", "last4": None})

        logger.info("Charge succeeded", charge_id=charge.transaction_id, total=total, fraud_score=score)
        return {
            "success": True,
            "charge_id": charge.transaction_id,
            "payment_intent_id": charge.payment_intent_id,
            "is_fraud_suspect": score >= FRAUD_SUSPECT_THRESHOLD,
            "fraud_score": score,
            "verified_total": total,
        }

    # -------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------
    def record_order(self, order: dict) -> None:
        self.orders.append(order)
        logger.info("Order recorded", order_id=order["id"], total=order["total"])

    def send_confirmation(self, email: str, order_id: str, name: str | None, total: float) -> None:
        self.confirmations.append({"email": email, "order_id": order_id, "name": name, "total": total})
