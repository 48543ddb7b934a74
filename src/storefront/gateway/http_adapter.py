"""httpx adapter for the storefront API.

Talks to the server over JSON using the shared pydantic schemas. Transport
failures, error statuses and malformed bodies all become ``ApiError``;
endpoints with a dedicated failure type re-raise as that type
(``AvailabilityCheckError``, ``PromoValidationError``, ``ChargeError``,
``AuthenticationError``, ``PersistenceError``).
"""

import httpx
import pydantic
import structlog

from storefront.api.schemas import (
    AuthResponse,
    EmailCheckResponse,
    PaymentIntentResponse,
    ProcessPaymentResponse,
    PromoValidateResponse,
    WalletResponse,
)
from storefront.errors import (
    ApiError,
    AuthenticationError,
    AvailabilityCheckError,
    ChargeError,
    PersistenceError,
    PromoValidationError,
)
from storefront.gateway.port import (
    AuthResult,
    ChargeResult,
    EmailAvailability,
    PaymentIntent,
    PromoCheck,
    PromoKind,
    SavedPaymentMethod,
    StorefrontApi,
)

logger = structlog.get_logger(__name__)


def _error_payload(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {"error": response.text or response.reason_phrase}
    detail = body.get("detail", body) if isinstance(body, dict) else body
    return detail if isinstance(detail, dict) else {"error": str(detail)}


class HttpStorefrontApi(StorefrontApi):
    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "HttpStorefrontApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, body: dict | None = None, token: str | None = None) -> dict:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            response = await self.client.request(method, path, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Storefront API unreachable", method=method, path=path, error=str(exc))
            raise ApiError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            payload = _error_payload(response)
            raise ApiError(
                payload.get("error") or f"{method} {path} returned {response.status_code}",
                status=response.status_code,
                payload=payload,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"{method} {path} returned a non-JSON body", status=response.status_code) from exc

    async def _call(self, schema: type[pydantic.BaseModel], method: str, path: str, body=None, token=None):
        data = await self._request(method, path, body, token)
        try:
            return schema.model_validate(data)
        except pydantic.ValidationError as exc:
            raise ApiError(f"{method} {path} returned a malformed body", payload={"errors": exc.errors()}) from exc

    # -------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------
    async def check_email_available(self, email: str) -> EmailAvailability:
        try:
            data = await self._call(EmailCheckResponse, "POST", "/auth/check-email", {"email": email})
        except ApiError as exc:
            raise AvailabilityCheckError(exc.message, status=exc.status) from exc
        return EmailAvailability(available=data.available)

    async def validate_promo(self, code: str) -> PromoCheck:
        try:
            data = await self._call(PromoValidateResponse, "POST", "/promos/validate", {"code": code})
        except ApiError as exc:
            raise PromoValidationError(exc.message, code=code, status=exc.status) from exc
        return PromoCheck(
            valid=data.valid,
            kind=PromoKind(data.kind) if data.kind else None,
            value=data.value,
            error=data.error,
        )

    async def create_payment_intent(self, items, promo_code=None, customer_email=None) -> PaymentIntent:
        try:
            data = await self._call(
                PaymentIntentResponse,
                "POST",
                "/checkout/intent",
                {"items": items, "promo_code": promo_code, "customer_email": customer_email},
            )
        except ApiError as exc:
            raise ChargeError(exc.message, status=exc.status) from exc
        return PaymentIntent(client_secret=data.client_secret, id=data.id)

    async def process_payment(
        self,
        items,
        customer_email,
        payment_method_id=None,
        promo_code=None,
        save_card=False,
        payment_intent_id=None,
        auth_token=None,
    ) -> ChargeResult:
        body = {
            "items": items,
            "customer_email": customer_email,
            "payment_method_id": payment_method_id,
            "promo_code": promo_code,
            "save_card": save_card,
            "payment_intent_id": payment_intent_id,
        }
        try:
            data = await self._call(ProcessPaymentResponse, "POST", "/checkout/process", body, auth_token)
        except ApiError as exc:
            raise ChargeError(exc.message, status=exc.status) from exc
        return ChargeResult(**data.model_dump())

    async def create_order(self, order, auth_token=None) -> None:
        try:
            await self._request("POST", "/orders", order, auth_token)
        except ApiError as exc:
            raise PersistenceError(exc.message, order_id=order.get("id"), status=exc.status) from exc

    async def update_user_addresses(self, user_id, addresses, auth_token=None) -> None:
        await self._request("PUT", f"/users/{user_id}/addresses", {"addresses": addresses}, auth_token)

    async def login(self, email, password) -> AuthResult:
        try:
            data = await self._call(AuthResponse, "POST", "/auth/login", {"email": email, "password": password})
        except ApiError as exc:
            if exc.status is None or exc.status >= 500:
                raise
            raise AuthenticationError(
                exc.payload.get("error") or "Login failed",
                remaining_attempts=exc.payload.get("remaining_attempts"),
            ) from exc
        return AuthResult(token=data.token, user=data.user.model_dump())

    async def register(self, name, email, password) -> AuthResult:
        body = {"name": name, "email": email, "password": password}
        try:
            data = await self._call(AuthResponse, "POST", "/auth/register", body)
        except ApiError as exc:
            if exc.status is None or exc.status >= 500:
                raise
            raise AuthenticationError(exc.payload.get("error") or "Registration failed") from exc
        return AuthResult(token=data.token, user=data.user.model_dump())

    async def list_payment_methods(self, auth_token) -> list[SavedPaymentMethod]:
        data = await self._call(WalletResponse, "GET", "/users/wallet", token=auth_token)
        return [SavedPaymentMethod(id=m.id, brand=m.brand, last4=m.last4) for m in data.methods]

    async def send_order_confirmation(self, email, order_id, name, total) -> None:
        body = {"email": email, "order_id": order_id, "name": name, "total": total}
        await self._request("POST", "/orders/confirmation", body)

    async def track_promo_usage(self, code) -> None:
        await self._request("POST", "/promos/track", {"code": code})
