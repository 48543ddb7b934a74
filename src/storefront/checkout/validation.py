"""Field validation for the checkout forms.

Validators return a ``{field: message}`` dict; an empty dict means valid.
"""

import re

US_STATES = (
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
)  # fmt: skip

MIN_NAME_LENGTH = 3
MIN_STREET_LENGTH = 5
MIN_CITY_LENGTH = 2
MIN_ZIP_LENGTH = 5
MIN_PASSWORD_LENGTH = 8

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_WHITESPACE_RE = re.compile(r"\s+")
_UNSAFE_EMAIL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f<>,\"'`()]")


def sanitize_email(email: str | None) -> str:
    """Lower-case and strip whitespace, control characters and unsafe symbols."""
    if not email:
        return ""
    cleaned = _WHITESPACE_RE.sub("", email.lower())
    return _UNSAFE_EMAIL_CHARS_RE.sub("", cleaned).strip()


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))


def check_password_strength(password: str | None) -> str | None:
    """Return why ``password`` is too weak, or None when it is strong enough."""
    password = password or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter."
    if not re.search(r"[0-9]", password):
        return "Password must contain at least one number."
    return None


def validate_address(address, prefix: str = "", require_name: bool = True) -> dict[str, str]:
    """Validate an AddressForm. ``prefix`` namespaces the error keys (e.g. "billing_")."""
    errors = {}
    if require_name and len(address.name or "") < MIN_NAME_LENGTH:
        errors[f"{prefix}name"] = "Full name required"
    if len(address.street or "") < MIN_STREET_LENGTH:
        errors[f"{prefix}street"] = "Valid address required"
    if len(address.city or "") < MIN_CITY_LENGTH:
        errors[f"{prefix}city"] = "City required"
    if not address.state:
        errors[f"{prefix}state"] = "State required"
    elif address.state not in US_STATES:
        errors[f"{prefix}state"] = "Select a valid US state"
    if len(address.zip or "") < MIN_ZIP_LENGTH:
        errors[f"{prefix}zip"] = "Valid ZIP required"
    return errors


def validate_payment(payment) -> dict[str, str]:
    """Validate a PaymentForm for the manual path."""
    errors = {}
    if not payment.saved_method_id:
        card = payment.card
        if card is None or not card.number_complete:
            errors["card_number"] = "Invalid card number"
        if card is None or not card.expiry_complete:
            errors["expiry"] = "Invalid expiry"
        if card is None or not card.cvc_complete:
            errors["cvc"] = "Invalid CVC"

    if not payment.same_as_shipping:
        if payment.billing is None:
            errors["billing_street"] = "Billing address required"
        else:
            errors.update(validate_address(payment.billing, prefix="billing_", require_name=False))
    return errors
