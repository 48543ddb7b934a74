"""Composition root: wires the storefront services from settings.

Every service is an explicit instance with its collaborators injected.
Callers own the domain context: initialise ``storefront`` and enter
``storefront.domain_context()`` before building.
"""

from dataclasses import dataclass

import structlog

from storefront.analytics import AnalyticsLog
from storefront.cart.ledger import CartLedger
from storefront.checkout.orchestrator import CheckoutOrchestrator
from storefront.config import StorefrontSettings
from storefront.gateway.http_adapter import HttpStorefrontApi
from storefront.gateway.port import StorefrontApi
from storefront.identity.auth import AuthService
from storefront.identity.store import SessionStore
from storefront.identity.vault import SessionVault
from storefront.payments.port import PaymentProvider
from storefront.promo.resolver import PromoResolver
from storefront.shipping.calculator import ShippingConfig
from storefront.storage.port import KeyValueStore

logger = structlog.get_logger(__name__)


@dataclass
class Storefront:
    settings: StorefrontSettings
    api: StorefrontApi
    payments: PaymentProvider
    vault: SessionVault
    cart: CartLedger
    auth: AuthService
    promos: PromoResolver
    analytics: AnalyticsLog
    remember_store: KeyValueStore
    ephemeral_store: KeyValueStore

    def checkout(self, shipping_config: ShippingConfig, notifier=None, navigator=None) -> CheckoutOrchestrator:
        """A fresh orchestrator for one visit to the checkout page."""
        return CheckoutOrchestrator(
            cart=self.cart,
            promos=self.promos,
            auth=self.auth,
            api=self.api,
            payments=self.payments,
            shipping_config=shipping_config,
            guest_store=self.remember_store,
            analytics=self.analytics,
            notifier=notifier,
            navigator=navigator,
        )


def build_storefront(
    settings: StorefrontSettings,
    remember_store: KeyValueStore,
    ephemeral_store: KeyValueStore,
    payments: PaymentProvider,
    api: StorefrontApi | None = None,
) -> Storefront:
    api = api or HttpStorefrontApi(settings.api_url, timeout=settings.api_timeout)
    vault = SessionVault(settings.vault_secret, settings.vault_salt, settings.vault_iterations)
    if not vault.secure:
        logger.warning("Session storage is running without encryption")

    cart = CartLedger(remember_store)
    auth = AuthService(
        api,
        SessionStore(vault, remember_store, ephemeral_store),
        remember_by_default=settings.remember_session,
    )
    auth.restore()

    return Storefront(
        settings=settings,
        api=api,
        payments=payments,
        vault=vault,
        cart=cart,
        auth=auth,
        promos=PromoResolver(api, cart, ephemeral_store),
        analytics=AnalyticsLog(remember_store, ephemeral_store),
        remember_store=remember_store,
        ephemeral_store=ephemeral_store,
    )
