"""BDD tests for the checkout flow."""

import asyncio
import re

from pytest_bdd import given, parsers, scenarios, then, when
from storefront.checkout.forms import ContactForm
from storefront.errors import AvailabilityCheckError, PersistenceError, PromoValidationError

scenarios("features/checkout.feature")


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("the card will be declined")
def card_declined(api):
    api.charge_succeeds = False


@given("the order record service is down")
def order_service_down(api):
    api.fail("create_order", PersistenceError("order service unavailable"))


@given("the charge will be flagged as fraud")
def fraud_flagged(api):
    api.fraud_suspect = True


@given("the email lookup is down")
def email_lookup_down(api):
    api.fail("check_email_available", AvailabilityCheckError("lookup timed out"))


@given("the promo validator is down")
def promo_validator_down(api):
    api.fail("validate_promo", PromoValidationError("validator timed out"))


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the guest pays by card")
def pay_by_card(checkout, card_payment):
    async def pay():
        await checkout.place_order(card_payment)
        await checkout.wait_for_background()

    asyncio.run(pay())


@when("the customer pays with the wallet")
def pay_with_wallet(checkout):
    async def pay():
        await checkout.start()
        await checkout.place_express_order()
        await checkout.wait_for_background()

    asyncio.run(pay())


@when(parsers.cfparse('contact details "{email}" are submitted'))
def submit_contact(checkout, email):
    asyncio.run(checkout.submit_contact(ContactForm(email=email)))


@when(parsers.cfparse('contact details "{email}" are submitted with password "{password}"'))
def submit_contact_with_password(checkout, email, password):
    asyncio.run(checkout.submit_contact(ContactForm(email=email, password=password)))


@when(parsers.cfparse('promo "{code}" is applied'))
def apply_promo(checkout, code):
    asyncio.run(checkout.apply_promo(code))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("an order number is shown")
def order_number_shown(checkout, redirects):
    assert re.fullmatch(r"ORD-\d{6}", checkout.order.number)
    assert redirects == [f"/order-confirmation/{checkout.order.number}"]


@then("a confirmation email is sent")
def confirmation_sent(api, checkout):
    calls = api.calls_to("send_order_confirmation")
    assert [call["order_id"] for call in calls] == [checkout.order.number]


@then(parsers.cfparse('the customer is told "{message}"'))
def customer_told(notices, message):
    assert notices[-1].message == message


@then(parsers.cfparse('the order status is "{status}"'))
def order_status(checkout, status):
    assert checkout.order.status == status


@then(parsers.cfparse('the email error mentions "{text}"'))
def email_error(checkout, text):
    assert text in checkout.errors["email"]


@then(parsers.cfparse("the discount is {amount:f}"))
def discount_is(checkout, amount):
    assert checkout.quote().discount == amount


@then(parsers.cfparse("the shipping estimate is {amount:f}"))
def shipping_estimate(checkout, amount):
    assert checkout.quote().shipping.cost == amount


@then(parsers.cfparse('the order is for "{email}"'))
def order_is_for(checkout, email):
    assert checkout.order.customer_email == email
