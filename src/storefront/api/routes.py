"""FastAPI routes for the reference storefront API."""

from fastapi import APIRouter, Depends, Header, Request

from storefront.api.backend import StorefrontBackend
from storefront.api.schemas import (
    AuthResponse,
    EmailCheckRequest,
    EmailCheckResponse,
    LoginRequest,
    OrderConfirmationRequest,
    OrderSchema,
    PaymentIntentRequest,
    PaymentIntentResponse,
    ProcessPaymentRequest,
    ProcessPaymentResponse,
    PromoTrackRequest,
    PromoValidateRequest,
    PromoValidateResponse,
    RegisterRequest,
    StatusResponse,
    UpdateAddressesRequest,
    UserSchema,
    WalletResponse,
)


def get_backend(request: Request) -> StorefrontBackend:
    return request.app.state.backend


def bearer_token(authorization: str = Header(default="")) -> str | None:
    scheme, _, token = authorization.partition(" ")
    return token if scheme.lower() == "bearer" and token else None


# ---------------------------------------------------------------------------
# Auth Router
# ---------------------------------------------------------------------------
auth_router = APIRouter(prefix="/auth", tags=["auth"])


@auth_router.post("/check-email", response_model=EmailCheckResponse)
async def check_email(body: EmailCheckRequest, backend: StorefrontBackend = Depends(get_backend)) -> EmailCheckResponse:
    return EmailCheckResponse(available=backend.email_available(body.email))


@auth_router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, backend: StorefrontBackend = Depends(get_backend)) -> AuthResponse:
    token, user = backend.login(body.email, body.password)
    return AuthResponse(token=token, user=UserSchema(**user))


@auth_router.post("/register", status_code=201, response_model=AuthResponse)
async def register(body: RegisterRequest, backend: StorefrontBackend = Depends(get_backend)) -> AuthResponse:
    token, user = backend.register(body.name, body.email, body.password)
    return AuthResponse(token=token, user=UserSchema(**user))


# ---------------------------------------------------------------------------
# Promo Router
# ---------------------------------------------------------------------------
promo_router = APIRouter(prefix="/promos", tags=["promos"])


@promo_router.post("/validate", response_model=PromoValidateResponse)
async def validate_promo(
    body: PromoValidateRequest, backend: StorefrontBackend = Depends(get_backend)
) -> PromoValidateResponse:
    promo = backend.validate_promo(body.code)
    if promo is None:
        return PromoValidateResponse(valid=False, error="Invalid or expired promo code")
    return PromoValidateResponse(valid=True, kind=promo.kind.value, value=promo.value)


@promo_router.post("/track", response_model=StatusResponse)
async def track_promo(body: PromoTrackRequest, backend: StorefrontBackend = Depends(get_backend)) -> StatusResponse:
    backend.track_promo(body.code)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/intent", status_code=201, response_model=PaymentIntentResponse)
async def create_payment_intent(
    body: PaymentIntentRequest, backend: StorefrontBackend = Depends(get_backend)
) -> PaymentIntentResponse:
    items = [item.model_dump() for item in body.items]
    return PaymentIntentResponse(**backend.create_intent(items, body.promo_code))


@checkout_router.post("/process", response_model=ProcessPaymentResponse)
async def process_payment(
    body: ProcessPaymentRequest,
    backend: StorefrontBackend = Depends(get_backend),
    token: str | None = Depends(bearer_token),
) -> ProcessPaymentResponse:
    """Charge the cart. The amount is recomputed server-side from catalogue prices."""
    result = backend.process_payment(
        items=[item.model_dump() for item in body.items],
        customer_email=body.customer_email,
        payment_method_id=body.payment_method_id,
        promo_code=body.promo_code,
        save_card=body.save_card,
        payment_intent_id=body.payment_intent_id,
        token=token,
    )
    return ProcessPaymentResponse(**result)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=StatusResponse)
async def create_order(body: OrderSchema, backend: StorefrontBackend = Depends(get_backend)) -> StatusResponse:
    backend.record_order(body.model_dump())
    return StatusResponse()


@order_router.post("/confirmation", status_code=202, response_model=StatusResponse)
async def send_order_confirmation(
    body: OrderConfirmationRequest, backend: StorefrontBackend = Depends(get_backend)
) -> StatusResponse:
    backend.send_confirmation(body.email, body.order_id, body.name, body.total)
    return StatusResponse()


# ---------------------------------------------------------------------------
# User Router
# ---------------------------------------------------------------------------
user_router = APIRouter(prefix="/users", tags=["users"])


@user_router.get("/wallet", response_model=WalletResponse)
async def list_payment_methods(
    backend: StorefrontBackend = Depends(get_backend),
    token: str | None = Depends(bearer_token),
) -> WalletResponse:
    return WalletResponse(methods=backend.payment_methods(token))


@user_router.put("/{user_id}/addresses", response_model=StatusResponse)
async def update_addresses(
    user_id: str,
    body: UpdateAddressesRequest,
    backend: StorefrontBackend = Depends(get_backend),
    token: str | None = Depends(bearer_token),
) -> StatusResponse:
    backend.update_addresses(user_id, [a.model_dump() for a in body.addresses], token)
    return StatusResponse()
