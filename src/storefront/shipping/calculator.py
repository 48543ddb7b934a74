"""Shipping cost calculation.

Each line is charged its base rate plus a per-unit additional rate. Additional
rates are normalised first: anything whose cents are not .25, .50, .75 or .95
is rounded to the nearest quarter, and a whole-dollar result is bumped by
$0.25. A base-only template (additional rate 0) charges the base rate per unit,
and a line holding a single unit is charged its base rate alone.

Example: base 5.00, additional 1.10, quantity 3
    1.10 -> nearest quarter 1.00 -> whole dollar, bump -> 1.25
    line cost = 5.00 + 1.25 * 3 = 8.75
"""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

ALLOWED_CENTS = frozenset({25, 50, 75, 95})
WHOLE_DOLLAR_BUMP = 0.25


@dataclass(frozen=True)
class ShippingTemplate:
    id: str
    base_rate: float
    additional_item_rate: float = 0.0


@dataclass(frozen=True)
class ShippingConfig:
    base_rate: float = 0.0
    additional_item_rate: float = 0.0
    templates: Mapping[str, ShippingTemplate] = field(default_factory=dict)
    free_shipping_threshold: float = 0.0
    handling_fee: float = 0.0
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "ShippingConfig":
        templates = {
            str(t["id"]): ShippingTemplate(
                id=str(t["id"]),
                base_rate=float(t.get("base_rate", 0.0)),
                additional_item_rate=float(t.get("additional_item_rate") or 0.0),
            )
            for t in data.get("templates", [])
        }
        return cls(
            base_rate=float(data.get("base_rate", 0.0)),
            additional_item_rate=float(data.get("additional_item_rate") or 0.0),
            templates=templates,
            free_shipping_threshold=float(data.get("free_shipping_threshold") or 0.0),
            handling_fee=float(data.get("handling_fee") or 0.0),
            enabled=data.get("enabled", True),
        )


@dataclass(frozen=True)
class ShippingQuote:
    cost: float
    is_free: bool = False
    savings: float = 0.0


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _cents(amount: float) -> int:
    return _round_half_up((amount % 1) * 100)


def normalize_additional_rate(additional: float) -> float:
    if _cents(additional) in ALLOWED_CENTS:
        return additional

    adjusted = _round_half_up(additional * 4) / 4
    if _cents(adjusted) == 0:
        adjusted += WHOLE_DOLLAR_BUMP
    return adjusted


def _rates_for(line, config: ShippingConfig) -> tuple[float, float]:
    template = config.templates.get(line.shipping_template_id) if line.shipping_template_id else None
    source = template if template is not None else config
    # A single unit ships at the base rate alone
    additional = source.additional_item_rate if line.quantity > 1 else 0.0
    return source.base_rate, additional


def line_shipping_cost(line, config: ShippingConfig) -> float:
    base, additional = _rates_for(line, config)
    if not additional:
        return base * line.quantity
    return base + normalize_additional_rate(additional) * line.quantity


def calculate_shipping(lines: Iterable, config: ShippingConfig) -> ShippingQuote:
    """Shipping quote for cart lines (anything with quantity, unit_price and
    shipping_template_id)."""
    if not config.enabled:
        return ShippingQuote(cost=0.0)

    lines = list(lines)
    cost = sum(line_shipping_cost(line, config) for line in lines)
    if config.handling_fee:
        cost += config.handling_fee

    subtotal = sum(line.unit_price * line.quantity for line in lines)
    if config.free_shipping_threshold > 0 and subtotal >= config.free_shipping_threshold:
        return ShippingQuote(cost=0.0, is_free=True, savings=cost)

    return ShippingQuote(cost=cost)
