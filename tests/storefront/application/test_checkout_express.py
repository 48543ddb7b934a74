"""Tests for the wallet (express) checkout path."""

import re

from storefront.checkout.states import CheckoutStep
from storefront.errors import ChargeError


class TestExpressCheckout:
    async def test_guest_express_order(self, api, cart, checkout, redirects, tee):
        cart.add_line(tee)
        await checkout.start()
        transition = await checkout.place_express_order()

        assert transition.step == CheckoutStep.COMPLETE
        assert cart.is_empty
        order = api.orders[0]
        assert order["customer_email"] == "wallet@example.com"
        assert order["customer_name"] == "Wallet Customer"
        assert order["shipping_address"]["street"] == "1 Wallet Way"
        assert order["billing_address"]["street"] == "1 Wallet Way"
        assert redirects == [f"/order-confirmation/{order['id']}"]

    async def test_charge_uses_confirmed_intent(self, api, cart, checkout, tee):
        cart.add_line(tee)
        await checkout.start()
        await checkout.place_express_order()

        intent_call = api.calls_to("create_payment_intent")[0]
        charge_call = api.calls_to("process_payment")[0]
        assert charge_call["payment_intent_id"].startswith("pi_fake_")
        assert charge_call["payment_method_id"] is None
        assert charge_call["items"] == intent_call["items"]

    async def test_fallback_contact_details(self, api, cart, checkout, payments, tee):
        payments.wallet.update(billing_email=None, billing_name=None, shipping_name=None, shipping_address={})
        cart.add_line(tee)
        await checkout.start()
        await checkout.place_express_order()

        order = api.orders[0]
        assert order["customer_email"] == "express@checkout.com"
        assert order["customer_name"] == "Express User"
        assert order["shipping_address"]["street"] == "Express Address"

    async def test_signed_in_email_used_when_wallet_has_none(self, api, auth, cart, checkout, payments, tee):
        api.add_user("jane@example.com", "Secret123")
        await auth.login("jane@example.com", "Secret123")
        payments.wallet.update(billing_email=None)
        cart.add_line(tee)
        await checkout.start()
        await checkout.place_express_order()
        assert api.orders[0]["customer_email"] == "jane@example.com"
        assert auth.current.orders[0]["id"] == api.orders[0]["id"]

    async def test_wallet_failure_returns_to_origin(self, cart, checkout, notices, payments, tee):
        payments.configure(should_succeed=False, failure_reason="Wallet dismissed")
        cart.add_line(tee)
        await checkout.start()
        transition = await checkout.place_express_order()

        assert transition.step == CheckoutStep.CONTACT_INFO
        assert notices[-1].message == "Payment failed: Wallet dismissed"
        assert checkout.processing is False
        assert not cart.is_empty

    async def test_intent_failure(self, api, cart, checkout, tee):
        api.fail("create_payment_intent", ChargeError("intent failed"))
        cart.add_line(tee)
        await checkout.start()
        transition = await checkout.place_express_order()
        assert transition.step == CheckoutStep.CONTACT_INFO
        assert api.calls_to("process_payment") == []

    async def test_decline_after_wallet(self, api, cart, checkout, tee):
        api.charge_succeeds = False
        cart.add_line(tee)
        await checkout.start()
        transition = await checkout.place_express_order()
        assert transition.step == CheckoutStep.CONTACT_INFO
        assert checkout.order is None

    async def test_wallet_failure_does_not_charge(self, api, cart, checkout, payments, tee):
        payments.configure(should_succeed=False)
        cart.add_line(tee)
        await checkout.start()
        await checkout.place_express_order()
        assert payments.calls[0]["method"] == "confirm_wallet_payment"
        assert api.calls_to("process_payment") == []
        assert checkout.order_complete is False

    async def test_rejected_order_details_still_complete(self, api, cart, checkout, payments, tee):
        payments.wallet.update(billing_name="X" * 300)
        cart.add_line(tee)
        await checkout.start()
        transition = await checkout.place_express_order()
        await checkout.wait_for_background()

        assert transition.step == CheckoutStep.COMPLETE
        assert checkout.order is None
        assert len(api.calls_to("process_payment")) == 1
        assert api.orders == []
        confirmation = api.calls_to("send_order_confirmation")[0]
        assert re.fullmatch(r"ORD-\d{6}", confirmation["order_id"])
        assert checkout.redirect_target == f"/order-confirmation/{confirmation['order_id']}"
        assert cart.is_empty
