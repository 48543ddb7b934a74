"""CheckoutOrchestrator: drives one checkout from contact details to a placed order.

The orchestrator gathers facts from its collaborators (session, availability
lookup, promo validator, payment provider, charge endpoint) and hands them to
the pure transition functions in ``checkout.states``; it then applies the
returned step, errors and effects.

Submission protocol, for both the manual card path and the wallet path:

    1. save a new address to the address book, if asked and not a duplicate
    2. obtain a payment method (tokenize the card, reuse a saved one, or
       confirm the wallet intent)
    3. revalidate the applied promo (fail-closed), then charge the full cart
       contents plus that code; the server returns the verified total
    4. mark the order complete
    5. record the order (best effort)
    6. append it to the session history, or stash guest details
    7. send the confirmation email and the conversion event in the background
    8. clear the cart and the saved promo code

Failures up to and including step 3 return the customer to where they came
from with a message. From step 4 on the customer has been charged, so every
failure is logged and absorbed.
"""

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass
from uuid import uuid4

import structlog
from protean.exceptions import InvalidOperationError, ValidationError

from storefront.analytics import AnalyticsLog
from storefront.cart.ledger import CartLedger
from storefront.checkout import states
from storefront.checkout.forms import AddressForm, ContactForm, PaymentForm
from storefront.checkout.states import CheckoutStep, Notify, Redirect, Transition
from storefront.checkout.validation import (
    check_password_strength,
    is_valid_email,
    sanitize_email,
    validate_address,
    validate_payment,
)
from storefront.errors import AuthenticationError, StorageError, StorefrontError
from storefront.gateway.port import ChargeResult, SavedPaymentMethod, StorefrontApi
from storefront.identity.auth import AuthService, describe_login_failure
from storefront.order.order import Order, generate_order_number
from storefront.payments.port import PaymentProvider, WalletConfirmation
from storefront.promo.resolver import PromoApplication, PromoResolver, compute_discount
from storefront.shipping.calculator import ShippingConfig, ShippingQuote, calculate_shipping
from storefront.storage.port import KeyValueStore

logger = structlog.get_logger(__name__)

GUEST_DETAILS_KEY = "guest_shipping_info"

EXPRESS_FALLBACK_EMAIL = "express@checkout.com"
EXPRESS_FALLBACK_NAME = "Express User"
EXPRESS_FALLBACK_STREET = "Express Address"


@dataclass(frozen=True)
class CheckoutQuote:
    """Display totals. ``estimate`` is never what gets charged."""

    subtotal: float
    shipping: ShippingQuote
    discount: float
    estimate: float


def _wallet_addresses(wallet: WalletConfirmation) -> tuple[dict, dict]:
    """Shipping and billing addresses from the wallet, each falling back on the other."""
    ship, bill = wallet.shipping_address or {}, wallet.billing_address or {}
    name = wallet.billing_name or EXPRESS_FALLBACK_NAME

    def merged(primary: dict, secondary: dict, person: str) -> dict:
        return {
            "name": person,
            "street": primary.get("street") or secondary.get("street") or EXPRESS_FALLBACK_STREET,
            "line2": primary.get("line2"),
            "city": primary.get("city") or secondary.get("city"),
            "state": primary.get("state") or secondary.get("state"),
            "zip": primary.get("zip") or secondary.get("zip"),
        }

    return merged(ship, bill, wallet.shipping_name or name), merged(bill, ship, name)


class CheckoutOrchestrator:
    def __init__(
        self,
        cart: CartLedger,
        promos: PromoResolver,
        auth: AuthService,
        api: StorefrontApi,
        payments: PaymentProvider,
        shipping_config: ShippingConfig,
        guest_store: KeyValueStore,
        analytics: AnalyticsLog,
        notifier: Callable[[Notify], None] | None = None,
        navigator: Callable[[str], None] | None = None,
    ) -> None:
        self.id = str(uuid4())
        self.cart = cart
        self.promos = promos
        self.auth = auth
        self.api = api
        self.payments = payments
        self.shipping_config = shipping_config
        self.guest_store = guest_store
        self.analytics = analytics
        self.notifier = notifier
        self.navigator = navigator

        self.step = CheckoutStep.CONTACT_INFO
        self.errors: dict[str, str] = {}
        self.contact = ContactForm()
        self.shipping = AddressForm()
        self.billing: AddressForm | None = None
        self.promo: PromoApplication | None = None
        self.saved_methods: list[SavedPaymentMethod] = []
        self.selected_method_id: str | None = None
        self.order: Order | None = None
        self.order_complete = False
        self.processing = False
        self.redirect_target: str | None = None

        self._availability: tuple[str, bool] | None = None
        self._background: set[asyncio.Task] = set()
        self.log = logger.bind(checkout_id=self.id)

    # -------------------------------------------------------------------
    # Effects
    # -------------------------------------------------------------------
    def _apply(self, transition: Transition) -> Transition:
        self.step = transition.step
        self.errors = dict(transition.errors)
        for effect in transition.effects:
            if isinstance(effect, Notify):
                if self.notifier is not None:
                    self.notifier(effect)
                else:
                    self.log.info("Checkout notice", message=effect.message, kind=effect.kind)
            elif isinstance(effect, Redirect):
                self.redirect_target = effect.target
                if self.navigator is not None:
                    self.navigator(effect.target)
        return transition

    def _spawn(self, label: str, coro) -> None:
        task = asyncio.create_task(self._best_effort(label, coro))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _best_effort(self, label: str, coro) -> None:
        try:
            await coro
        except StorefrontError as exc:
            self.log.warning("Background task failed", task=label, error=exc.message)
        except Exception as exc:
            # Follow-ups run after the charge and must never surface
            self.log.error("Background task crashed", task=label, error=str(exc), exc_info=True)

    async def wait_for_background(self) -> None:
        """Await the fire-and-forget follow-ups started by a submission."""
        if self._background:
            await asyncio.gather(*list(self._background))

    # -------------------------------------------------------------------
    # Session helpers
    # -------------------------------------------------------------------
    @property
    def _token(self) -> str | None:
        return self.auth.current.auth_token if self.auth.current else None

    def _signed_in_as(self, email: str) -> bool:
        return self.auth.current is not None and self.auth.current.email == email

    def _prefill_from_session(self) -> None:
        session = self.auth.current
        self.contact.email = session.email

        shipping = session.default_shipping_address()
        if shipping is not None:
            self.shipping = AddressForm.from_saved(shipping)

        billing = session.default_billing_address()
        if billing is not None and (shipping is None or billing.id != shipping.id):
            self.billing = AddressForm.from_saved(billing)

    def _prefill_from_guest_details(self) -> None:
        raw = self.guest_store.get(GUEST_DETAILS_KEY)
        if not raw:
            return
        try:
            details = json.loads(raw)
        except ValueError:
            self.log.warning("Ignoring unreadable guest details")
            return

        self.contact.email = details.get("email") or ""
        self.shipping = AddressForm(
            name=details.get("name") or "",
            street=details.get("street") or "",
            city=details.get("city") or "",
            state=details.get("state") or "",
            zip=details.get("zip") or "",
        )

    async def _load_saved_methods(self) -> None:
        try:
            self.saved_methods = await self.api.list_payment_methods(self._token)
        except StorefrontError as exc:
            self.log.warning("Could not load saved payment methods", error=exc.message)
            self.saved_methods = []
        self.selected_method_id = self.saved_methods[0].id if self.saved_methods else None

    async def _on_signed_in(self) -> None:
        self._prefill_from_session()
        await self._load_saved_methods()

    # -------------------------------------------------------------------
    # Entry
    # -------------------------------------------------------------------
    async def start(self) -> Transition:
        """Prefill forms, revalidate the saved promo and pick the first step."""
        if self.auth.current is not None:
            await self._on_signed_in()
        else:
            self._prefill_from_guest_details()

        application = await self.promos.reapply_saved()
        if application is not None and application.is_applied:
            self.promo = application

        authenticated = self.auth.current is not None
        transition = states.initial_step(authenticated, authenticated and bool(self.shipping.street))
        self.log.info("Checkout started", step=transition.step.name, authenticated=authenticated)
        return self._apply(transition)

    def should_redirect_home(self) -> bool:
        return states.should_redirect_home(self.cart.is_empty, self.order_complete, self.processing)

    def _guard_editable(self) -> None:
        if self.order_complete:
            raise InvalidOperationError("Order has already been placed")
        if self.processing:
            raise InvalidOperationError("A payment is already being processed")

    def go_back(self, step: CheckoutStep) -> Transition:
        return self._apply(states.revisit(self.step, step))

    # -------------------------------------------------------------------
    # ContactInfo
    # -------------------------------------------------------------------
    def edit_email(self, value: str) -> None:
        self.contact.email = value
        self._availability = None
        self.errors.pop("email", None)

    async def check_email(self, raw_email: str) -> bool | None:
        """Whether the email is free to register; None when it is not a valid address.

        The last answer is cached for its email value. A failed lookup counts
        as available and is not cached.
        """
        email = sanitize_email(raw_email)
        if not is_valid_email(email):
            return None
        if self._signed_in_as(email):
            return True
        if self._availability is not None and self._availability[0] == email:
            return self._availability[1]

        try:
            result = await self.api.check_email_available(email)
        except StorefrontError as exc:
            self.log.warning("Email availability check failed, treating as available", error=exc.message)
            return True

        self._availability = (email, result.available)
        return result.available

    async def submit_contact(self, form: ContactForm) -> Transition:
        self._guard_editable()
        email = sanitize_email(form.email)
        form.email = email
        self.contact = form

        if not is_valid_email(email):
            return self._apply(states.contact_submitted(False, False, None))
        if self._signed_in_as(email):
            return self._apply(states.contact_submitted(True, True, True))

        available = await self.check_email(email)

        if available and form.create_account:
            problem = check_password_strength(form.password)
            if problem:
                return self._apply(states.contact_rejected("password", problem))
            try:
                await self.auth.register(form.name or email.split("@")[0], email, form.password, remember=form.remember)
            except AuthenticationError as exc:
                return self._apply(states.contact_rejected("email", exc.message or "Registration failed"))
            await self._on_signed_in()
        elif not available and form.password:
            try:
                await self.auth.login(email, form.password, remember=form.remember)
            except AuthenticationError as exc:
                return self._apply(states.contact_rejected("password", describe_login_failure(exc)))
            await self._on_signed_in()

        return self._apply(states.contact_submitted(True, self._signed_in_as(email), available))

    # -------------------------------------------------------------------
    # ShippingAddress
    # -------------------------------------------------------------------
    def submit_shipping(self, form: AddressForm) -> Transition:
        self._guard_editable()
        self.shipping = form
        return self._apply(states.shipping_submitted(validate_address(form)))

    def select_saved_address(self, address_id, for_billing: bool = False) -> AddressForm:
        session = self.auth.current
        address = session.find_address(address_id) if session else None
        if address is None:
            raise ValidationError({"address_id": ["Address not found"]})

        form = AddressForm.from_saved(address)
        if for_billing:
            self.billing = form
        else:
            self.shipping = form
        return form

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    async def _promo_for_charge(self) -> PromoApplication | None:
        """Revalidate the applied promo just before charging.

        The result decides both the code sent with the charge and the discount
        recorded on the order. Fails closed: an unreachable validator drops
        the code, so the server charges the undiscounted total.
        """
        if self.promo is None or not self.promo.is_applied:
            return None
        application = await self.promos.resolve(self.promo.code)
        if not application.is_applied:
            self.log.warning("Promo dropped at point of charge", code=self.promo.code, error=application.error)
            return None
        return application

    async def apply_promo(self, code: str) -> PromoApplication:
        application = await self.promos.apply(code)
        self.promo = application if application.is_applied else None
        return application

    def remove_promo(self) -> None:
        self.promo = None
        self.promos.forget()

    def quote(self) -> CheckoutQuote:
        subtotal = self.cart.subtotal()
        shipping = calculate_shipping(self.cart.lines, self.shipping_config)
        discount = 0.0
        if self.promo is not None and self.promo.is_applied:
            discount = compute_discount(self.promo.kind, self.promo.value, subtotal)
        return CheckoutQuote(
            subtotal=subtotal,
            shipping=shipping,
            discount=discount,
            estimate=max(0.0, subtotal + shipping.cost - discount),
        )

    # -------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------
    def _begin_submission(self) -> None:
        self._guard_editable()
        if self.cart.is_empty:
            raise InvalidOperationError("Cart is empty")

    def _fail(self, return_to: CheckoutStep, message: str) -> Transition:
        self.log.warning("Checkout payment failed", reason=message, return_to=return_to.name)
        return self._apply(states.charge_failed(return_to, message))

    async def _save_address_if_requested(self, payment: PaymentForm) -> None:
        session = self.auth.current
        if session is None or not payment.save_address:
            return
        if session.has_address(self.shipping.street, self.shipping.zip):
            return

        new_address = {
            "id": str(uuid4()),
            **self.shipping.to_address(),
            "is_default_shipping": not session.addresses,
            "is_default_billing": False,
        }
        await self.auth.update_addresses([a.to_payload() for a in session.addresses] + [new_address])

    async def place_order(self, payment: PaymentForm) -> Transition:
        """Manual path: validate, tokenize (or reuse a saved card), charge, finalize."""
        self._begin_submission()

        contact_errors = {} if is_valid_email(self.contact.email) else {"email": "Valid email required"}
        transition = states.payment_submitted(contact_errors, validate_address(self.shipping), validate_payment(payment))
        if not transition.ok:
            return self._apply(transition)

        self.processing = True
        self._apply(transition)
        try:
            await self._save_address_if_requested(payment)

            billing = self.shipping if payment.same_as_shipping else payment.billing
            method_id = payment.saved_method_id
            if not method_id:
                try:
                    method_id = await self.payments.create_payment_method(
                        payment.card,
                        {
                            "name": payment.card.name,
                            "email": self.contact.email,
                            "address": billing.to_address(),
                        },
                    )
                except StorefrontError as exc:
                    return self._fail(CheckoutStep.PAYMENT, exc.message)

            promo = await self._promo_for_charge()
            try:
                charge = await self.api.process_payment(
                    items=self.cart.snapshot(),
                    customer_email=self.contact.email,
                    payment_method_id=method_id,
                    promo_code=promo.code.upper() if promo else None,
                    save_card=payment.save_card and not payment.saved_method_id,
                    auth_token=self._token,
                )
            except StorefrontError as exc:
                return self._fail(CheckoutStep.PAYMENT, exc.message)
            if not charge.success:
                return self._fail(CheckoutStep.PAYMENT, charge.failure_reason or "Charge declined")

            return await self._finalize(
                charge,
                promo,
                customer_email=self.contact.email,
                customer_name=self.shipping.name,
                shipping=self.shipping.to_address(),
                billing=billing.to_address(),
            )
        finally:
            self.processing = False

    async def place_express_order(self) -> Transition:
        """Wallet path: the wallet supplies payment, contact and addresses."""
        self._begin_submission()

        origin = self.step
        session = self.auth.current
        self.processing = True
        self._apply(Transition(CheckoutStep.PROCESSING))
        try:
            promo = await self._promo_for_charge()
            promo_code = promo.code.upper() if promo else None
            try:
                intent = await self.api.create_payment_intent(
                    self.cart.snapshot(),
                    promo_code=promo_code,
                    customer_email=session.email if session else None,
                )
                wallet = await self.payments.confirm_wallet_payment(intent.client_secret)
            except StorefrontError as exc:
                return self._fail(origin, exc.message)
            if not wallet.succeeded:
                return self._fail(origin, wallet.error or f"Wallet payment {wallet.status}")

            email = wallet.billing_email or (session.email if session else None) or EXPRESS_FALLBACK_EMAIL
            try:
                charge = await self.api.process_payment(
                    items=self.cart.snapshot(),
                    customer_email=email,
                    promo_code=promo_code,
                    save_card=False,
                    payment_intent_id=wallet.payment_intent_id,
                    auth_token=self._token,
                )
            except StorefrontError as exc:
                return self._fail(origin, exc.message)
            if not charge.success:
                return self._fail(origin, charge.failure_reason or "Charge declined")

            shipping, billing = _wallet_addresses(wallet)
            return await self._finalize(
                charge,
                promo,
                customer_email=email,
                customer_name=wallet.billing_name or EXPRESS_FALLBACK_NAME,
                shipping=shipping,
                billing=billing,
            )
        finally:
            self.processing = False

    async def _finalize(
        self,
        charge: ChargeResult,
        promo: PromoApplication | None,
        customer_email: str,
        customer_name: str | None,
        shipping: dict,
        billing: dict,
    ) -> Transition:
        # Set before anything empties the cart
        self.order_complete = True

        session = self.auth.current
        subtotal = self.cart.subtotal()
        shipping_quote = calculate_shipping(self.cart.lines, self.shipping_config)

        promo_code = promo.code.upper() if promo else None
        discount = promo.discount if promo else 0.0
        if promo_code:
            self._spawn("track_promo_usage", self.api.track_promo_usage(promo_code))

        estimate = max(0.0, subtotal + shipping_quote.cost - discount)
        total = charge.verified_total if charge.verified_total is not None else estimate

        number = generate_order_number()
        try:
            order = Order.place(
                number=number,
                lines=self.cart.snapshot(),
                pricing={
                    "subtotal": subtotal,
                    "shipping_cost": shipping_quote.cost,
                    "discount": discount,
                    "total": total,
                },
                payment={"charge_id": charge.charge_id, "payment_intent_id": charge.payment_intent_id},
                customer_email=customer_email,
                customer_name=customer_name,
                user_id=str(session.user_id) if session else None,
                shipping_address=shipping,
                billing_address=billing,
                promo_code=promo_code,
                fraud_flag=charge.is_fraud_suspect,
                fraud_score=charge.fraud_score,
                utm=self.analytics.utm(),
            )
        except ValidationError as exc:
            self.log.error(
                "Order details rejected after successful charge",
                order_id=number,
                charge_id=charge.charge_id,
                total=total,
                errors=exc.messages,
            )
            order = None

        self.order = order
        if order is not None:
            self.log.info(
                "Order placed",
                order_id=order.number,
                charge_id=charge.charge_id,
                total=total,
                estimate=estimate,
                fraud_flag=order.fraud_flag,
            )
            await self._record_order(order, charge)

        if session is None:
            self._stash_guest_details(customer_email, shipping)

        self._spawn(
            "order_confirmation",
            self.api.send_order_confirmation(customer_email, number, customer_name, total),
        )
        self._spawn("conversion", self.analytics.record_conversion(number, total))

        self.cart.clear()
        self.promos.forget()
        self.promo = None

        return self._apply(states.charge_succeeded(number))

    async def _record_order(self, order: Order, charge: ChargeResult) -> None:
        payload = order.to_payload()
        try:
            await self.api.create_order(payload, auth_token=self._token)
        except StorefrontError as exc:
            self.log.error(
                "Failed to record order after successful charge",
                order_id=order.number,
                charge_id=charge.charge_id,
                error=exc.message,
            )

        if self.auth.current is not None:
            self.auth.record_order(payload)

    def _stash_guest_details(self, email: str, shipping: dict) -> None:
        details = {
            "name": shipping.get("name"),
            "email": email,
            "street": shipping.get("street"),
            "city": shipping.get("city"),
            "state": shipping.get("state"),
            "zip": shipping.get("zip"),
        }
        try:
            self.guest_store.set(GUEST_DETAILS_KEY, json.dumps(details))
        except StorageError as exc:
            self.log.warning("Failed to stash guest details", error=exc.message)
