"""Order aggregate: the record of a completed checkout.

An Order only ever comes into existence after the charge endpoint reported
success, and carries the server-verified total, not the client estimate.
Nothing on it changes afterwards; later status transitions belong to the
back office.
"""

import json
import secrets
from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from storefront.domain import storefront
from storefront.order.events import OrderPlaced


class OrderStatus(Enum):
    PROCESSING = "Processing"
    ON_HOLD = "On Hold"


def generate_order_number() -> str:
    return f"ORD-{secrets.randbelow(1_000_000):06d}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class DeliveryAddress:
    """A shipping or billing address as captured at checkout time."""

    name = String(max_length=255)
    street = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(max_length=100)
    state = String(max_length=100)
    zip = String(max_length=20)

    def to_payload(self) -> dict:
        return {
            "name": self.name,
            "street": self.street,
            "line2": self.line2,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
        }


@storefront.value_object(part_of="Order")
class OrderPricing:
    """Amounts locked at the point of charge. ``total`` is the verified total."""

    subtotal = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    discount = Float(default=0.0)
    total = Float(default=0.0)


@storefront.value_object(part_of="Order")
class PaymentReference:
    charge_id = String(max_length=255)
    payment_intent_id = String(max_length=255)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderLine:
    """A cart line frozen into the order."""

    line_id = Identifier(required=True)
    product_id = Identifier(required=True)
    title = String(max_length=255)
    size = String(max_length=50)
    color = String(max_length=50)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    image = Text()

    def to_payload(self) -> dict:
        return {
            "line_id": str(self.line_id),
            "product_id": str(self.product_id),
            "title": self.title,
            "size": self.size,
            "color": self.color,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "image": self.image,
        }


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    status = String(choices=OrderStatus, default=OrderStatus.PROCESSING.value)
    lines = HasMany(OrderLine)
    pricing = ValueObject(OrderPricing)
    payment = ValueObject(PaymentReference)
    shipping_address = ValueObject(DeliveryAddress)
    billing_address = ValueObject(DeliveryAddress)
    customer_name = String(max_length=255)
    customer_email = String(required=True, max_length=254)
    user_id = Identifier()  # None for guest checkouts
    promo_code = String(max_length=100)
    fraud_flag = Boolean(default=False)
    fraud_score = Float(default=0.0)
    utm = Text()  # JSON object of campaign attribution
    placed_at = DateTime()

    @classmethod
    def place(
        cls,
        lines: list[dict],
        pricing: dict,
        payment: dict,
        customer_email: str,
        customer_name=None,
        user_id=None,
        shipping_address: dict | None = None,
        billing_address: dict | None = None,
        promo_code=None,
        fraud_flag=False,
        fraud_score=0.0,
        utm: dict | None = None,
        number: str | None = None,
    ) -> "Order":
        """Create the order for a successful charge.

        Args:
            lines: Cart line snapshots (line_id, product_id, title, size,
                   color, unit_price, quantity, image).
            pricing: Dict with subtotal, shipping_cost, discount, total.
            payment: Dict with charge_id, payment_intent_id.
            number: Order number, when the caller reserved one up front.
        """
        now = datetime.now(UTC)
        status = OrderStatus.ON_HOLD if fraud_flag else OrderStatus.PROCESSING

        order = cls(
            id=number or generate_order_number(),
            status=status.value,
            pricing=OrderPricing(**pricing),
            payment=PaymentReference(**payment),
            shipping_address=DeliveryAddress(**shipping_address) if shipping_address else None,
            billing_address=DeliveryAddress(**billing_address) if billing_address else None,
            customer_name=customer_name,
            customer_email=customer_email,
            user_id=user_id,
            promo_code=promo_code,
            fraud_flag=bool(fraud_flag),
            fraud_score=fraud_score or 0.0,
            utm=json.dumps(utm or {}),
            placed_at=now,
        )
        for line in lines:
            order.add_lines(
                OrderLine(
                    line_id=line["line_id"],
                    product_id=line["product_id"],
                    title=line.get("title"),
                    size=line.get("size"),
                    color=line.get("color"),
                    unit_price=line["unit_price"],
                    quantity=line["quantity"],
                    image=line.get("image"),
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_email=customer_email,
                total=order.pricing.total,
                status=order.status,
                fraud_flag=order.fraud_flag,
                promo_code=promo_code,
                placed_at=now,
            )
        )
        return order

    @property
    def number(self) -> str:
        return str(self.id)

    @property
    def total(self) -> float:
        return self.pricing.total

    def to_payload(self) -> dict:
        """Wire/storage representation sent to the order record endpoint."""
        return {
            "id": str(self.id),
            "status": self.status,
            "lines": [line.to_payload() for line in self.lines],
            "subtotal": self.pricing.subtotal,
            "shipping_cost": self.pricing.shipping_cost,
            "discount": self.pricing.discount,
            "total": self.pricing.total,
            "promo_code": self.promo_code,
            "payment_refs": {
                "charge_id": self.payment.charge_id if self.payment else None,
                "payment_intent_id": self.payment.payment_intent_id if self.payment else None,
            },
            "fraud_flag": self.fraud_flag,
            "fraud_score": self.fraud_score,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "user_id": str(self.user_id) if self.user_id else None,
            "shipping_address": self.shipping_address.to_payload() if self.shipping_address else None,
            "billing_address": self.billing_address.to_payload() if self.billing_address else None,
            "utm": json.loads(self.utm) if self.utm else {},
            "placed_at": self.placed_at.isoformat() if self.placed_at else None,
        }
