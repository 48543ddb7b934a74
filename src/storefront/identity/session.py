"""Session aggregate: the logged-in customer as held by the client.

A Session is created from a successful login or registration, mutated when
the address book changes or an order is placed, and destroyed on logout.
It is never stored in the clear: SessionStore encrypts ``to_payload()``
through the SessionVault.
"""

import json
from uuid import uuid4

from protean.fields import Boolean, HasMany, Identifier, String, Text, ValueObject

from storefront.domain import storefront
from storefront.identity.events import AddressBookUpdated, OrderRecorded, SessionStarted

# Order-history images longer than this are dropped before storage
MAX_STORED_IMAGE_LENGTH = 500

_ADDRESS_FIELDS = (
    "name",
    "street",
    "line2",
    "city",
    "state",
    "zip",
    "is_default_shipping",
    "is_default_billing",
)


@storefront.value_object(part_of="Session")
class Profile:
    """Who the customer is, as returned by the authentication endpoint."""

    name = String(max_length=255)
    email = String(required=True, max_length=254)
    role = String(max_length=20, default="customer")


@storefront.entity(part_of="Session")
class SavedAddress:
    """An address in the customer's address book."""

    name = String(max_length=255)
    street = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    zip = String(required=True, max_length=20)
    is_default_shipping = Boolean(default=False)
    is_default_billing = Boolean(default=False)

    def dedupe_key(self):
        return (self.street, self.zip)

    def to_payload(self) -> dict:
        payload = {"id": str(self.id)}
        payload.update({field: getattr(self, field) for field in _ADDRESS_FIELDS})
        return payload


def _address_from_payload(data: dict) -> SavedAddress:
    kwargs = {field: data[field] for field in _ADDRESS_FIELDS if data.get(field) is not None}
    return SavedAddress(id=str(data.get("id") or uuid4()), **kwargs)


def _strip_heavy_fields(order: dict) -> dict:
    lines = []
    for line in order.get("lines", []):
        kept = {k: v for k, v in line.items() if k != "design_asset"}
        if kept.get("image") and len(kept["image"]) >= MAX_STORED_IMAGE_LENGTH:
            kept["image"] = None
        lines.append(kept)
    return {**order, "lines": lines}


@storefront.aggregate
class Session:
    user_id = Identifier(required=True)
    profile = ValueObject(Profile)
    auth_token = String(max_length=4096)
    addresses = HasMany(SavedAddress)
    order_history = Text()  # JSON array of order payloads, newest first

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def start(cls, user: dict, token: str) -> "Session":
        """Create a session from an authentication response."""
        session = cls._from_user(user, token)
        session.raise_(
            SessionStarted(
                session_id=str(session.id),
                user_id=str(session.user_id),
                email=session.profile.email,
            )
        )
        return session

    @classmethod
    def from_payload(cls, payload: dict) -> "Session":
        """Rebuild a session from a decrypted storage payload."""
        return cls._from_user(payload, payload.get("auth_token"))

    @classmethod
    def _from_user(cls, user: dict, token: str | None) -> "Session":
        profile = user.get("profile") or user
        session = cls(
            user_id=str(user.get("user_id") or user["id"]),
            profile=Profile(
                name=profile.get("name"),
                email=profile["email"],
                role=profile.get("role") or "customer",
            ),
            auth_token=token,
            order_history=json.dumps(user.get("orders") or []),
        )
        for data in user.get("addresses") or []:
            session.add_addresses(_address_from_payload(data))
        return session

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def email(self) -> str:
        return self.profile.email

    @property
    def orders(self) -> list[dict]:
        return json.loads(self.order_history) if self.order_history else []

    def default_shipping_address(self) -> SavedAddress | None:
        if not self.addresses:
            return None
        return next((a for a in self.addresses if a.is_default_shipping), self.addresses[0])

    def default_billing_address(self) -> SavedAddress | None:
        return next((a for a in self.addresses if a.is_default_billing), None)

    def find_address(self, address_id) -> SavedAddress | None:
        return next((a for a in self.addresses if str(a.id) == str(address_id)), None)

    def has_address(self, street: str, zip_code: str) -> bool:
        return any(a.dedupe_key() == (street, zip_code) for a in self.addresses)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def replace_addresses(self, addresses: list[dict]) -> None:
        for existing in list(self.addresses):
            self.remove_addresses(existing)
        for data in addresses:
            self.add_addresses(_address_from_payload(data))

        self.raise_(
            AddressBookUpdated(
                session_id=str(self.id),
                user_id=str(self.user_id),
                address_count=len(self.addresses),
            )
        )

    def record_order(self, order: dict) -> None:
        """Prepend a placed order to the history."""
        self.order_history = json.dumps([order, *self.orders])
        self.raise_(
            OrderRecorded(
                session_id=str(self.id),
                user_id=str(self.user_id),
                order_id=str(order["id"]),
            )
        )

    # -------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------
    def to_payload(self) -> dict:
        """Storage payload, with heavy per-item fields stripped from history."""
        return {
            "user_id": str(self.user_id),
            "profile": {
                "name": self.profile.name,
                "email": self.profile.email,
                "role": self.profile.role,
            },
            "auth_token": self.auth_token,
            "addresses": [a.to_payload() for a in self.addresses],
            "orders": [_strip_heavy_fields(order) for order in self.orders],
        }
