"""Shared BDD fixtures and step definitions for the storefront."""

import asyncio

import pytest
from pytest_bdd import given, parsers, then
from storefront.cart.product import CatalogueProduct
from storefront.checkout.forms import AddressForm, ContactForm, PaymentForm
from storefront.checkout.states import CheckoutStep
from storefront.gateway.port import PromoKind
from storefront.payments.port import CardEntry


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


@pytest.fixture()
def products(tee, hoodie):
    return {
        "tee-classic": tee,
        "hoodie": hoodie,
        "sticker": CatalogueProduct(id="sticker", title="Die-cut Sticker", price=8.0),
    }


@pytest.fixture()
def guest_address():
    return AddressForm(name="Guest Shopper", street="12 Elm Street", city="Austin", state="TX", zip="78701")


@pytest.fixture()
def card_payment():
    return PaymentForm(card=CardEntry(number_complete=True, expiry_complete=True, cvc_complete=True))


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("an empty cart")
def empty_cart(cart):
    assert cart.is_empty


@given(parsers.cfparse('the cart holds {qty:d} of "{product_id}"'))
def cart_holds(cart, products, qty, product_id):
    cart.add_line(products[product_id], quantity=qty)


@given(parsers.cfparse('the cart holds {qty:d} "{product_id}" in size "{size}"'))
def cart_holds_size(cart, products, qty, product_id, size):
    cart.add_line(products[product_id], quantity=qty, size=size)


@given(parsers.cfparse('a {kind} promo "{code}" worth {value:g}'))
def promo_exists(api, kind, code, value):
    api.add_promo(code, PromoKind(kind), value)


@given(parsers.cfparse('a registered customer "{email}" with password "{password}"'))
def registered_customer(api, email, password):
    api.add_user(email, password, name="Registered Customer")


@given(parsers.cfparse('a guest "{email}" has reached the payment step'))
def guest_at_payment(checkout, guest_address, email):
    async def reach():
        await checkout.start()
        await checkout.submit_contact(ContactForm(email=email))
        checkout.submit_shipping(guest_address)

    asyncio.run(reach())
    assert checkout.step == CheckoutStep.PAYMENT


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the checkout is on the {step} step"))
def checkout_on_step(checkout, step):
    assert checkout.step == CheckoutStep[step.upper().replace(" ", "_")]


@then("the cart is empty")
def cart_is_empty(cart):
    assert cart.is_empty


@then("the cart is not empty")
def cart_is_not_empty(cart):
    assert not cart.is_empty


@then("the action is rejected")
def action_rejected(error):
    assert error["exc"] is not None
