"""Pydantic wire schemas for the storefront API.

Shared by the reference server (``storefront.api.routes``) and the httpx
client adapter, so both ends agree on one contract.
"""

from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    name: str | None = None
    street: str
    line2: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None


class SavedAddressSchema(AddressSchema):
    id: str
    is_default_shipping: bool = False
    is_default_billing: bool = False


class CartItemSchema(BaseModel):
    line_id: str
    product_id: str
    title: str | None = None
    size: str | None = None
    color: str | None = None
    unit_price: float = Field(ge=0)
    original_price: float | None = None
    quantity: int = Field(ge=1)
    image: str | None = None
    shipping_template_id: str | None = None


class UserSchema(BaseModel):
    id: str
    name: str | None = None
    email: str
    role: str = "customer"
    addresses: list[SavedAddressSchema] = []


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------
class EmailCheckRequest(BaseModel):
    email: str


class EmailCheckResponse(BaseModel):
    available: bool


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str = Field(min_length=8)


class AuthResponse(BaseModel):
    token: str
    user: UserSchema


# ---------------------------------------------------------------------------
# Promos
# ---------------------------------------------------------------------------
class PromoValidateRequest(BaseModel):
    code: str


class PromoValidateResponse(BaseModel):
    valid: bool
    kind: Literal["percentage", "fixed"] | None = None
    value: float | None = None
    error: str | None = None


class PromoTrackRequest(BaseModel):
    code: str


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class PaymentIntentRequest(BaseModel):
    items: list[CartItemSchema] = Field(min_length=1)
    promo_code: str | None = None
    customer_email: str | None = None


class PaymentIntentResponse(BaseModel):
    client_secret: str
    id: str


class ProcessPaymentRequest(BaseModel):
    items: list[CartItemSchema] = Field(min_length=1)
    customer_email: str
    payment_method_id: str | None = None
    promo_code: str | None = None
    save_card: bool = False
    payment_intent_id: str | None = None


class ProcessPaymentResponse(BaseModel):
    success: bool
    charge_id: str | None = None
    payment_intent_id: str | None = None
    is_fraud_suspect: bool = False
    fraud_score: float = 0.0
    verified_total: float | None = None
    failure_reason: str | None = None


class PaymentMethodSchema(BaseModel):
    id: str
    brand: str | None = None
    last4: str | None = None


class WalletResponse(BaseModel):
    methods: list[PaymentMethodSchema] = []


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderLineSchema(BaseModel):
    line_id: str
    product_id: str
    title: str | None = None
    size: str | None = None
    color: str | None = None
    unit_price: float
    quantity: int = Field(ge=1)
    image: str | None = None


class PaymentRefsSchema(BaseModel):
    charge_id: str | None = None
    payment_intent_id: str | None = None


class OrderSchema(BaseModel):
    id: str
    status: str
    lines: list[OrderLineSchema]
    subtotal: float
    shipping_cost: float
    discount: float
    total: float
    promo_code: str | None = None
    payment_refs: PaymentRefsSchema
    fraud_flag: bool = False
    fraud_score: float = 0.0
    customer_name: str | None = None
    customer_email: str
    user_id: str | None = None
    shipping_address: AddressSchema | None = None
    billing_address: AddressSchema | None = None
    utm: dict = {}
    placed_at: str | None = None


class OrderConfirmationRequest(BaseModel):
    email: str
    order_id: str
    name: str | None = None
    total: float


class UpdateAddressesRequest(BaseModel):
    addresses: list[SavedAddressSchema]
