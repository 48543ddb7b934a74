import pytest
from protean.integrations.pytest import DomainFixture
from storefront.analytics import AnalyticsLog
from storefront.cart.ledger import CartLedger
from storefront.cart.product import CatalogueProduct
from storefront.checkout.orchestrator import CheckoutOrchestrator
from storefront.gateway.fake_adapter import FakeStorefrontApi
from storefront.identity.auth import AuthService
from storefront.identity.store import SessionStore
from storefront.identity.vault import SessionVault
from storefront.payments.fake_adapter import FakePaymentProvider
from storefront.promo.resolver import PromoResolver
from storefront.shipping.calculator import ShippingConfig, ShippingTemplate
from storefront.storage.memory import MemoryStore

# Low iteration count keeps key derivation fast under test
TEST_VAULT_ITERATIONS = 1_000


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------
@pytest.fixture(scope="session")
def vault():
    return SessionVault(iterations=TEST_VAULT_ITERATIONS)


@pytest.fixture()
def remember_store():
    return MemoryStore()


@pytest.fixture()
def ephemeral_store():
    return MemoryStore()


@pytest.fixture()
def api():
    return FakeStorefrontApi()


@pytest.fixture()
def payments():
    return FakePaymentProvider()


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------
@pytest.fixture()
def session_store(vault, remember_store, ephemeral_store):
    return SessionStore(vault, remember_store, ephemeral_store)


@pytest.fixture()
def auth(api, session_store):
    return AuthService(api, session_store)


@pytest.fixture()
def cart(remember_store):
    return CartLedger(remember_store)


@pytest.fixture()
def promos(api, cart, ephemeral_store):
    return PromoResolver(api, cart, ephemeral_store)


@pytest.fixture()
def analytics(remember_store, ephemeral_store):
    return AnalyticsLog(remember_store, ephemeral_store)


@pytest.fixture()
def shipping_config():
    return ShippingConfig(
        base_rate=5.0,
        additional_item_rate=1.10,
        templates={"heavy": ShippingTemplate(id="heavy", base_rate=9.0, additional_item_rate=2.5)},
        free_shipping_threshold=75.0,
    )


@pytest.fixture()
def notices():
    return []


@pytest.fixture()
def redirects():
    return []


@pytest.fixture()
def checkout(cart, promos, auth, api, payments, shipping_config, remember_store, analytics, notices, redirects):
    return CheckoutOrchestrator(
        cart=cart,
        promos=promos,
        auth=auth,
        api=api,
        payments=payments,
        shipping_config=shipping_config,
        guest_store=remember_store,
        analytics=analytics,
        notifier=notices.append,
        navigator=redirects.append,
    )


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------
@pytest.fixture()
def tee():
    return CatalogueProduct(id="tee-classic", title="Classic Tee", price=25.0, image="https://cdn.example.com/tee.png")


@pytest.fixture()
def hoodie():
    return CatalogueProduct(
        id="hoodie",
        title="Pullover Hoodie",
        price=55.0,
        shipping_template_id="heavy",
        design_asset="data:image/png;base64," + "A" * 2048,
    )
