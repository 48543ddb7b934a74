"""CartLedger: the application service that owns the live cart.

The in-memory ShoppingCart is authoritative. Every mutation is written to
the key-value store afterwards; a failed write (typically a storage quota
error) is logged and the cart carries on unchanged.

Collaborators observe the cart through ``subscribe`` (every cart event) and
``on_drawer_open`` (add-to-cart calls that did not suppress the drawer).
"""

import json
from collections.abc import Callable

import structlog
from protean.exceptions import ValidationError

from storefront.cart.cart import CartLine, ShoppingCart
from storefront.cart.events import CartLineAdded
from storefront.cart.product import CatalogueProduct
from storefront.errors import StorageError
from storefront.storage.port import KeyValueStore

logger = structlog.get_logger(__name__)

CART_KEY = "cart"


class CartLedger:
    def __init__(self, store: KeyValueStore, key: str = CART_KEY) -> None:
        self.store = store
        self.key = key
        self._listeners: list[Callable] = []
        self._drawer_listeners: list[Callable] = []
        self.cart = self._restore()

    def _restore(self) -> ShoppingCart:
        raw = self.store.get(self.key)
        if not raw:
            return ShoppingCart.create()
        try:
            return ShoppingCart.restore(json.loads(raw))
        except (ValueError, KeyError, TypeError, ValidationError) as exc:
            logger.warning("Discarding unreadable stored cart", error=str(exc))
            return ShoppingCart.create()

    # -------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------
    def subscribe(self, listener: Callable) -> None:
        """Register ``listener(event)`` for every cart domain event."""
        self._listeners.append(listener)

    def on_drawer_open(self, listener: Callable) -> None:
        """Register ``listener(line)`` for add-to-cart calls that open the drawer."""
        self._drawer_listeners.append(listener)

    def _commit(self) -> None:
        self._persist()
        events = list(self.cart._events)
        self.cart._events.clear()
        for event in events:
            for listener in self._listeners:
                listener(event)
            if isinstance(event, CartLineAdded) and event.open_drawer:
                line = self.cart.find_line(event.line_id)
                for listener in self._drawer_listeners:
                    listener(line)

    def _persist(self) -> None:
        try:
            self.store.set(self.key, json.dumps(self.cart.to_payload()))
        except StorageError as exc:
            logger.warning(
                "Failed to persist cart",
                cart_id=str(self.cart.id),
                line_count=len(self.cart.lines),
                error=exc.message,
            )

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add_line(
        self,
        product: CatalogueProduct,
        quantity: int = 1,
        size: str | None = None,
        color: str | None = None,
        open_drawer: bool = True,
    ) -> CartLine:
        line = self.cart.add_line(
            product_id=product.id,
            unit_price=product.price,
            quantity=quantity,
            size=size,
            color=color,
            title=product.title,
            original_price=product.original_price,
            image=product.image,
            shipping_template_id=product.shipping_template_id,
            design_asset=product.design_asset,
            open_drawer=open_drawer,
        )
        logger.info(
            "Cart line added",
            line_id=str(line.id),
            product_id=product.id,
            quantity=quantity,
            line_quantity=line.quantity,
        )
        self._commit()
        return line

    def update_quantity(self, line_id, delta: int) -> bool:
        changed = self.cart.update_quantity(line_id, delta)
        if not changed:
            logger.debug("Quantity update ignored below 1", line_id=str(line_id), delta=delta)
            return False
        self._commit()
        return True

    def remove_line(self, line_id) -> None:
        self.cart.remove_line(line_id)
        logger.info("Cart line removed", line_id=str(line_id))
        self._commit()

    def clear(self) -> None:
        self.cart.clear()
        self._commit()

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def lines(self) -> list[CartLine]:
        return list(self.cart.lines)

    def subtotal(self) -> float:
        return self.cart.subtotal

    @property
    def item_count(self) -> int:
        return self.cart.item_count

    @property
    def is_empty(self) -> bool:
        return not self.cart.lines

    def snapshot(self) -> list[dict]:
        """Full current contents, as sent to the charge and intent endpoints."""
        return [line.to_payload() for line in self.cart.lines]
