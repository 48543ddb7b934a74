"""Tests for the checkout step transition functions."""

import pytest
from protean.exceptions import InvalidOperationError
from storefront.checkout.states import (
    CheckoutStep,
    Notify,
    Redirect,
    charge_failed,
    charge_succeeded,
    contact_submitted,
    initial_step,
    payment_submitted,
    revisit,
    shipping_submitted,
    should_redirect_home,
)


class TestInitialStep:
    def test_guest_starts_at_contact(self):
        assert initial_step(False, False).step == CheckoutStep.CONTACT_INFO

    def test_signed_in_without_address(self):
        assert initial_step(True, False).step == CheckoutStep.SHIPPING_ADDRESS

    def test_signed_in_with_address_skips_to_payment(self):
        assert initial_step(True, True).step == CheckoutStep.PAYMENT


class TestContact:
    def test_invalid_email(self):
        transition = contact_submitted(email_valid=False, signed_in=False, available=True)
        assert transition.step == CheckoutStep.CONTACT_INFO
        assert transition.errors == {"email": "Valid email required"}

    def test_available_email_advances(self):
        transition = contact_submitted(email_valid=True, signed_in=False, available=True)
        assert transition.step == CheckoutStep.SHIPPING_ADDRESS
        assert transition.ok

    def test_registered_email_blocks_guest(self):
        transition = contact_submitted(email_valid=True, signed_in=False, available=False)
        assert transition.step == CheckoutStep.CONTACT_INFO
        assert "login" in transition.errors["email"]

    def test_signed_in_email_advances(self):
        transition = contact_submitted(email_valid=True, signed_in=True, available=False)
        assert transition.step == CheckoutStep.SHIPPING_ADDRESS


class TestShippingAndPayment:
    def test_shipping_errors_stay(self):
        transition = shipping_submitted({"zip": "Valid ZIP required"})
        assert transition.step == CheckoutStep.SHIPPING_ADDRESS
        assert not transition.ok

    def test_shipping_valid_advances(self):
        assert shipping_submitted({}).step == CheckoutStep.PAYMENT

    def test_payment_contact_errors_go_back_to_contact(self):
        transition = payment_submitted({"email": "Valid email required"}, {"zip": "x"}, {"cvc": "x"})
        assert transition.step == CheckoutStep.CONTACT_INFO

    def test_payment_shipping_errors_go_back_to_shipping(self):
        transition = payment_submitted({}, {"zip": "Valid ZIP required"}, {"cvc": "Invalid CVC"})
        assert transition.step == CheckoutStep.SHIPPING_ADDRESS
        assert transition.errors == {"zip": "Valid ZIP required"}

    def test_payment_errors_stay_on_payment(self):
        assert payment_submitted({}, {}, {"cvc": "Invalid CVC"}).step == CheckoutStep.PAYMENT

    def test_valid_payment_moves_to_processing(self):
        assert payment_submitted({}, {}, {}).step == CheckoutStep.PROCESSING


class TestChargeOutcome:
    def test_failure_returns_with_notice(self):
        transition = charge_failed(CheckoutStep.PAYMENT, "Card declined")
        assert transition.step == CheckoutStep.PAYMENT
        assert transition.effects == (Notify("Payment failed: Card declined"),)

    def test_success_completes_and_redirects(self):
        transition = charge_succeeded("ORD-123456")
        assert transition.step == CheckoutStep.COMPLETE
        assert Redirect("/order-confirmation/ORD-123456") in transition.effects
        assert Notify("Order placed", kind="success") in transition.effects


class TestRevisit:
    def test_back_to_earlier_step(self):
        assert revisit(CheckoutStep.PAYMENT, CheckoutStep.CONTACT_INFO).step == CheckoutStep.CONTACT_INFO

    def test_cannot_skip_ahead(self):
        with pytest.raises(InvalidOperationError):
            revisit(CheckoutStep.CONTACT_INFO, CheckoutStep.PAYMENT)

    @pytest.mark.parametrize("current", [CheckoutStep.PROCESSING, CheckoutStep.COMPLETE])
    def test_cannot_leave_locked_steps(self, current):
        with pytest.raises(InvalidOperationError):
            revisit(current, CheckoutStep.PAYMENT)


class TestRedirectHome:
    def test_empty_cart_redirects(self):
        assert should_redirect_home(True, False, False) is True

    def test_not_after_completion(self):
        assert should_redirect_home(True, True, False) is False

    def test_not_while_processing(self):
        assert should_redirect_home(True, False, True) is False

    def test_cart_with_items(self):
        assert should_redirect_home(False, False, False) is False
