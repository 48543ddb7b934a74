"""Domain events for the Order aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A charge succeeded and the order record was created."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_email = String(required=True, max_length=254)
    total = Float(required=True)
    status = String(required=True, max_length=20)
    fraud_flag = Boolean(default=False)
    promo_code = String(max_length=100)
    placed_at = DateTime(required=True)
