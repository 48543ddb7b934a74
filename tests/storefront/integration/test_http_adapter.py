"""Integration tests for the httpx client adapter against the reference API."""

import httpx
import pytest
from storefront.bootstrap import build_storefront
from storefront.cart.product import CatalogueProduct
from storefront.checkout.forms import AddressForm, ContactForm, PaymentForm
from storefront.checkout.states import CheckoutStep
from storefront.config import StorefrontSettings
from storefront.errors import (
    ApiError,
    AuthenticationError,
    AvailabilityCheckError,
    ChargeError,
    PersistenceError,
    PromoValidationError,
)
from storefront.gateway.http_adapter import HttpStorefrontApi
from storefront.gateway.port import PromoKind
from storefront.payments.fake_adapter import FakePaymentProvider
from storefront.payments.port import CardEntry
from storefront.shipping.calculator import ShippingConfig, ShippingTemplate
from storefront.storage.memory import MemoryStore


def _items(quantity=2, unit_price=25.0):
    return [{"line_id": "line-1", "product_id": "tee-classic", "unit_price": unit_price, "quantity": quantity}]


def _api_for(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test/api")
    return HttpStorefrontApi("http://test/api", client=client)


def _unreachable(request):
    raise httpx.ConnectError("connection refused", request=request)


def _server_error(request):
    return httpx.Response(500, text="Internal Server Error")


def _not_json(request):
    return httpx.Response(200, text="<html>maintenance</html>")


class TestEndpoints:
    async def test_check_email(self, http_api, backend):
        assert (await http_api.check_email_available("jane@example.com")).available is True
        backend.register("Jane", "jane@example.com", "Secret123")
        assert (await http_api.check_email_available("jane@example.com")).available is False

    async def test_validate_promo(self, http_api):
        check = await http_api.validate_promo("welcome10")
        assert check.valid is True
        assert check.kind == PromoKind.PERCENTAGE
        assert check.value == 10

    async def test_invalid_promo(self, http_api):
        check = await http_api.validate_promo("NOPE")
        assert check.valid is False
        assert check.kind is None

    async def test_process_payment_ignores_client_prices(self, http_api):
        result = await http_api.process_payment(_items(unit_price=0.5), "guest@example.com", payment_method_id="pm_1")
        assert result.success is True
        assert result.verified_total == 57.5
        assert result.charge_id.startswith("ch_fake_")

    async def test_declined_charge_is_a_result(self, http_api, backend):
        backend.gateway.configure(should_succeed=False)
        result = await http_api.process_payment(_items(), "guest@example.com", payment_method_id="pm_1")
        assert result.success is False
        assert result.failure_reason == "Card declined"

    async def test_login_and_register(self, http_api):
        registered = await http_api.register("Jane", "jane@example.com", "Secret123")
        logged_in = await http_api.login("jane@example.com", "Secret123")
        assert registered.user["id"] == logged_in.user["id"]
        assert logged_in.token != registered.token

    async def test_login_failure_carries_remaining_attempts(self, http_api):
        await http_api.register("Jane", "jane@example.com", "Secret123")
        with pytest.raises(AuthenticationError) as exc:
            await http_api.login("jane@example.com", "wrong")
        assert exc.value.message == "Invalid email or password"
        assert exc.value.remaining_attempts == 4

    async def test_duplicate_registration(self, http_api):
        await http_api.register("Jane", "jane@example.com", "Secret123")
        with pytest.raises(AuthenticationError):
            await http_api.register("Jane", "jane@example.com", "Secret123")

    async def test_wallet_and_addresses(self, http_api, backend):
        auth = await http_api.register("Jane", "jane@example.com", "Secret123")
        address = {"id": "addr-1", "street": "1 Main St", "city": "Austin", "state": "TX", "zip": "78701"}
        await http_api.update_user_addresses(auth.user["id"], [address], auth_token=auth.token)
        assert backend.users["jane@example.com"]["addresses"][0]["street"] == "1 Main St"
        assert await http_api.list_payment_methods(auth.token) == []

    async def test_unknown_product_is_charge_error(self, http_api):
        items = [{"line_id": "l", "product_id": "ghost", "unit_price": 1.0, "quantity": 1}]
        with pytest.raises(ChargeError):
            await http_api.process_payment(items, "guest@example.com")


class TestFailureMapping:
    async def test_unreachable_availability_check(self):
        async with _api_for(_unreachable) as api:
            with pytest.raises(AvailabilityCheckError):
                await api.check_email_available("jane@example.com")

    async def test_promo_validator_error(self):
        async with _api_for(_server_error) as api:
            with pytest.raises(PromoValidationError):
                await api.validate_promo("WELCOME10")

    async def test_malformed_promo_reply(self):
        async with _api_for(_not_json) as api:
            with pytest.raises(PromoValidationError):
                await api.validate_promo("WELCOME10")

    async def test_order_write_error(self):
        async with _api_for(_server_error) as api:
            with pytest.raises(PersistenceError):
                await api.create_order({"id": "ORD-000001"})

    async def test_login_server_error_stays_api_error(self):
        async with _api_for(_server_error) as api:
            with pytest.raises(ApiError) as exc:
                await api.login("jane@example.com", "Secret123")
        assert exc.value.status == 500

    async def test_confirmation_error(self):
        async with _api_for(_unreachable) as api:
            with pytest.raises(ApiError):
                await api.send_order_confirmation("g@example.com", "ORD-000001", None, 10.0)


class TestCheckoutOverHttp:
    @pytest.fixture()
    def storefront(self, http_api):
        settings = StorefrontSettings(api_url="http://test/api", vault_iterations=1_000)
        return build_storefront(settings, MemoryStore(), MemoryStore(), FakePaymentProvider(), api=http_api)

    @pytest.fixture()
    def shipping_config(self):
        return ShippingConfig(
            base_rate=5.0,
            additional_item_rate=1.10,
            templates={"heavy": ShippingTemplate(id="heavy", base_rate=9.0, additional_item_rate=2.5)},
            free_shipping_threshold=75.0,
        )

    async def test_guest_checkout_charges_verified_total(self, storefront, shipping_config, backend):
        tampered = CatalogueProduct(id="tee-classic", title="Classic Tee", price=1.0)
        storefront.cart.add_line(tampered, quantity=2)
        checkout = storefront.checkout(shipping_config)

        await checkout.start()
        await checkout.submit_contact(ContactForm(email="guest@example.com"))
        checkout.submit_shipping(
            AddressForm(name="Guest Shopper", street="12 Elm Street", city="Austin", state="TX", zip="78701")
        )
        card = CardEntry(number_complete=True, expiry_complete=True, cvc_complete=True)
        transition = await checkout.place_order(PaymentForm(card=card))
        await checkout.wait_for_background()

        assert transition.step == CheckoutStep.COMPLETE
        assert checkout.order.total == 57.5
        assert backend.orders[0]["total"] == 57.5
        assert backend.confirmations[0]["order_id"] == checkout.order.number
        assert storefront.cart.is_empty

    async def test_signed_in_express_checkout(self, storefront, shipping_config, backend):
        await storefront.auth.register("Jane", "jane@example.com", "Secret123")
        storefront.cart.add_line(CatalogueProduct(id="hoodie", title="Hoodie", price=55.0, shipping_template_id="heavy"))
        storefront.payments.wallet["billing_email"] = None
        checkout = storefront.checkout(shipping_config)

        await checkout.start()
        transition = await checkout.place_express_order()
        await checkout.wait_for_background()

        assert transition.step == CheckoutStep.COMPLETE
        assert checkout.order.total == 64.0
        assert backend.orders[0]["customer_email"] == "jane@example.com"
        assert storefront.auth.current.orders[0]["id"] == checkout.order.number
