"""The slice of a catalogue product the cart needs at add-to-cart time."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CatalogueProduct:
    id: str
    title: str
    price: float
    original_price: float | None = None
    image: str | None = None
    shipping_template_id: str | None = None
    design_asset: str | None = None  # Large inline asset; never persisted
