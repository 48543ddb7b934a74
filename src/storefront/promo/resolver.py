"""PromoResolver: discount previews against the server's promo validator.

The server alone decides whether a code is valid and what it is worth. Any
failure to get a definite answer (transport error, timeout, malformed reply,
``valid == False``) resolves to a zero discount.

A successfully applied code is remembered in the ephemeral storage tier so
it survives navigation within one browsing session. It is only ever a hint:
``reapply_saved`` revalidates it and forgets it if it no longer grants a
discount.
"""

from dataclasses import dataclass

import structlog

from storefront.cart.ledger import CartLedger
from storefront.errors import PromoValidationError, StorefrontError
from storefront.gateway.port import PromoKind, StorefrontApi
from storefront.storage.port import KeyValueStore

logger = structlog.get_logger(__name__)

SAVED_PROMO_KEY = "saved_promo"


@dataclass(frozen=True)
class PromoApplication:
    code: str
    kind: PromoKind | None = None
    value: float | None = None
    discount: float = 0.0
    error: str | None = None

    @property
    def is_applied(self) -> bool:
        return self.discount > 0


def compute_discount(kind: PromoKind, value: float, subtotal: float) -> float:
    if kind == PromoKind.FIXED:
        return min(value, subtotal)
    return subtotal * value / 100


class PromoResolver:
    def __init__(
        self,
        api: StorefrontApi,
        cart: CartLedger,
        saved_store: KeyValueStore,
        key: str = SAVED_PROMO_KEY,
    ) -> None:
        self.api = api
        self.cart = cart
        self.saved_store = saved_store
        self.key = key

    async def resolve(self, code: str) -> PromoApplication:
        """Validate ``code`` and price it against the current subtotal."""
        code = (code or "").strip()
        if not code:
            return PromoApplication(code=code, error="Enter a promo code")

        try:
            check = await self.api.validate_promo(code)
            if check.valid and (check.kind is None or check.value is None):
                raise PromoValidationError("Validator returned no kind or value", code=code)
        except StorefrontError as exc:
            logger.warning("Promo validation failed, no discount applied", code=code, error=exc.message)
            return PromoApplication(code=code, error="Could not validate promo code")

        if not check.valid:
            return PromoApplication(code=code, error=check.error or "Invalid promo code")

        discount = compute_discount(check.kind, check.value, self.cart.subtotal())
        return PromoApplication(code=code, kind=check.kind, value=check.value, discount=discount)

    async def apply(self, code: str) -> PromoApplication:
        """Resolve ``code`` and remember it when it grants a discount."""
        application = await self.resolve(code)
        if application.is_applied:
            self._save(application.code.upper())
            logger.info(
                "Promo applied",
                code=application.code,
                kind=application.kind.value,
                discount=application.discount,
            )
        return application

    async def reapply_saved(self) -> PromoApplication | None:
        """Revalidate the remembered code, forgetting it if it no longer applies."""
        code = self.saved_code
        if not code:
            return None

        application = await self.resolve(code)
        if not application.is_applied:
            logger.info("Saved promo no longer applies", code=code)
            self.forget()
        return application

    @property
    def saved_code(self) -> str | None:
        return self.saved_store.get(self.key)

    def _save(self, code: str) -> None:
        try:
            self.saved_store.set(self.key, code)
        except StorefrontError as exc:
            logger.warning("Failed to remember promo code", code=code, error=exc.message)

    def forget(self) -> None:
        self.saved_store.remove(self.key)
