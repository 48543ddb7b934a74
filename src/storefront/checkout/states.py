"""Checkout steps and the pure transition functions between them.

Each function takes the facts the orchestrator gathered and returns a
``Transition``: the step to show next, the effects to perform and any
field errors. Failures always land on the step they came from (or an
earlier one), never a later one.

    ContactInfo -> ShippingAddress -> Payment -> Processing -> Complete
"""

from dataclasses import dataclass, field
from enum import Enum

from protean.exceptions import InvalidOperationError


class CheckoutStep(Enum):
    CONTACT_INFO = 1
    SHIPPING_ADDRESS = 2
    PAYMENT = 3
    PROCESSING = 4
    COMPLETE = 5


@dataclass(frozen=True)
class Notify:
    """Show a message in the toast/notification sink."""

    message: str
    kind: str = "error"


@dataclass(frozen=True)
class Redirect:
    target: str


@dataclass(frozen=True)
class Transition:
    step: CheckoutStep
    effects: tuple = ()
    errors: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def initial_step(authenticated: bool, has_saved_address: bool) -> Transition:
    if authenticated and has_saved_address:
        return Transition(CheckoutStep.PAYMENT)
    if authenticated:
        return Transition(CheckoutStep.SHIPPING_ADDRESS)
    return Transition(CheckoutStep.CONTACT_INFO)


# ---------------------------------------------------------------------------
# ContactInfo
# ---------------------------------------------------------------------------
def contact_submitted(email_valid: bool, signed_in: bool, available: bool | None) -> Transition:
    """Decide the ContactInfo outcome.

    ``signed_in`` means a session exists for this exact email (already
    authenticated, or the inline login/registration just succeeded).
    ``available`` is the availability lookup result; lookup failures arrive
    here as True.
    """
    if not email_valid:
        return Transition(CheckoutStep.CONTACT_INFO, errors={"email": "Valid email required"})
    if signed_in or available:
        return Transition(CheckoutStep.SHIPPING_ADDRESS)
    return Transition(
        CheckoutStep.CONTACT_INFO,
        errors={"email": "Email is registered. Please login to continue or use another email."},
    )


def contact_rejected(field_name: str, message: str) -> Transition:
    return Transition(CheckoutStep.CONTACT_INFO, errors={field_name: message})


# ---------------------------------------------------------------------------
# ShippingAddress / Payment
# ---------------------------------------------------------------------------
def shipping_submitted(errors: dict) -> Transition:
    if errors:
        return Transition(CheckoutStep.SHIPPING_ADDRESS, errors=errors)
    return Transition(CheckoutStep.PAYMENT)


def payment_submitted(contact_errors: dict, shipping_errors: dict, payment_errors: dict) -> Transition:
    if contact_errors:
        return Transition(CheckoutStep.CONTACT_INFO, errors=contact_errors)
    if shipping_errors:
        return Transition(CheckoutStep.SHIPPING_ADDRESS, errors=shipping_errors)
    if payment_errors:
        return Transition(CheckoutStep.PAYMENT, errors=payment_errors)
    return Transition(CheckoutStep.PROCESSING)


def charge_failed(return_to: CheckoutStep, message: str) -> Transition:
    return Transition(return_to, effects=(Notify(f"Payment failed: {message}"),))


def charge_succeeded(order_id: str) -> Transition:
    return Transition(
        CheckoutStep.COMPLETE,
        effects=(Notify("Order placed", kind="success"), Redirect(f"/order-confirmation/{order_id}")),
    )


def revisit(current: CheckoutStep, target: CheckoutStep) -> Transition:
    """Go back to an earlier editable step."""
    if current in (CheckoutStep.PROCESSING, CheckoutStep.COMPLETE):
        raise InvalidOperationError(f"Cannot leave the {current.name} step")
    if target.value > current.value:
        raise InvalidOperationError(f"Cannot skip ahead from {current.name} to {target.name}")
    return Transition(target)


def should_redirect_home(cart_empty: bool, order_complete: bool, processing: bool) -> bool:
    """An empty cart sends the customer home, except during or after a submission."""
    return cart_empty and not order_complete and not processing
