"""ShoppingCart aggregate: the client-side cart and its line-merge rules.

Lines are keyed by ``(product_id, size, color)``: adding a product whose key
already exists merges into that line. A line's id is generated once, when the
line is first created, and survives persistence round-trips.

Quantities never drop below 1 through ``update_quantity``; a decrement that
would take a line to zero or below is ignored and the line must be removed
explicitly.
"""

from protean.exceptions import ValidationError
from protean.fields import Float, HasMany, Identifier, Integer, String, Text

from storefront.cart.events import CartCleared, CartLineAdded, CartLineRemoved, CartQuantityUpdated
from storefront.domain import storefront

# Fields written to storage; ``design_asset`` is left out
PERSISTED_LINE_FIELDS = (
    "product_id",
    "title",
    "size",
    "color",
    "unit_price",
    "original_price",
    "quantity",
    "image",
    "shipping_template_id",
)


@storefront.entity(part_of="ShoppingCart")
class CartLine:
    product_id = Identifier(required=True)
    title = String(max_length=255)
    size = String(max_length=50)
    color = String(max_length=50)
    unit_price = Float(required=True, min_value=0.0)
    original_price = Float(min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    image = Text()
    shipping_template_id = String(max_length=100)
    design_asset = Text()

    def identity_key(self):
        return (str(self.product_id), self.size, self.color)

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity

    def to_payload(self, include_heavy: bool = False) -> dict:
        payload = {"line_id": str(self.id)}
        payload.update({field: getattr(self, field) for field in PERSISTED_LINE_FIELDS})
        payload["product_id"] = str(self.product_id)
        if include_heavy:
            payload["design_asset"] = self.design_asset
        return payload


@storefront.aggregate
class ShoppingCart:
    lines = HasMany(CartLine)

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def create(cls):
        return cls()

    @classmethod
    def restore(cls, payload: dict) -> "ShoppingCart":
        """Rebuild a cart from its storage payload, keeping line ids."""
        cart = cls(id=payload["cart_id"]) if payload.get("cart_id") else cls()
        for data in payload.get("lines", []):
            kwargs = {field: data.get(field) for field in PERSISTED_LINE_FIELDS if data.get(field) is not None}
            cart.add_lines(CartLine(id=data["line_id"], **kwargs))
        return cart

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def find_line(self, line_id) -> CartLine | None:
        return next((line for line in self.lines if str(line.id) == str(line_id)), None)

    def _get_line(self, line_id) -> CartLine:
        line = self.find_line(line_id)
        if line is None:
            raise ValidationError({"line_id": ["Line not found in cart"]})
        return line

    @property
    def subtotal(self) -> float:
        return sum(line.unit_price * line.quantity for line in self.lines)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_line(
        self,
        product_id,
        unit_price,
        quantity=1,
        size=None,
        color=None,
        title=None,
        original_price=None,
        image=None,
        shipping_template_id=None,
        design_asset=None,
        open_drawer=True,
    ) -> CartLine:
        """Add a product to the cart, merging into the line with the same key."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        key = (str(product_id), size, color)
        line = next((existing for existing in self.lines if existing.identity_key() == key), None)

        if line is not None:
            line.quantity += quantity
        else:
            line = CartLine(
                product_id=product_id,
                title=title,
                size=size,
                color=color,
                unit_price=unit_price,
                original_price=original_price,
                quantity=quantity,
                image=image,
                shipping_template_id=shipping_template_id,
                design_asset=design_asset,
            )
            self.add_lines(line)

        self.raise_(
            CartLineAdded(
                cart_id=str(self.id),
                line_id=str(line.id),
                product_id=str(product_id),
                quantity=quantity,
                open_drawer=open_drawer,
            )
        )
        return line

    def update_quantity(self, line_id, delta) -> bool:
        """Shift a line's quantity by ``delta``.

        Returns False, leaving the line untouched, when the result would be
        zero or less.
        """
        line = self._get_line(line_id)
        new_quantity = line.quantity + delta
        if new_quantity <= 0:
            return False

        previous_quantity = line.quantity
        line.quantity = new_quantity

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                line_id=str(line.id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )
        return True

    def remove_line(self, line_id) -> None:
        line = self._get_line(line_id)
        self.remove_lines(line)

        self.raise_(CartLineRemoved(cart_id=str(self.id), line_id=str(line_id)))

    def clear(self) -> None:
        line_count = len(self.lines)
        for line in list(self.lines):
            self.remove_lines(line)

        self.raise_(CartCleared(cart_id=str(self.id), line_count=line_count))

    # -------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------
    def to_payload(self) -> dict:
        """Storage payload. Heavy design assets are excluded."""
        return {
            "cart_id": str(self.id),
            "lines": [line.to_payload() for line in self.lines],
        }
