"""Storefront bounded context: cart, pricing, session and checkout.

Owns the client-side shopping cart, the shipping and promo pricing rules,
the encrypted browser session, and the checkout flow that turns a cart into
a server-verified charge and an Order record.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

storefront = Domain(name="storefront")
