"""Form state carried between checkout steps.

Forms are plain mutable dataclasses: a failed step keeps whatever the
customer entered.
"""

from dataclasses import dataclass

from storefront.payments.port import CardEntry


@dataclass
class ContactForm:
    email: str = ""
    password: str | None = None
    create_account: bool = False
    name: str | None = None
    remember: bool | None = None


@dataclass
class AddressForm:
    name: str = ""
    street: str = ""
    line2: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""

    @classmethod
    def from_saved(cls, address) -> "AddressForm":
        return cls(
            name=address.name or "",
            street=address.street or "",
            line2=address.line2 or "",
            city=address.city or "",
            state=address.state or "",
            zip=address.zip or "",
        )

    def to_address(self) -> dict:
        return {
            "name": self.name or None,
            "street": self.street,
            "line2": self.line2 or None,
            "city": self.city,
            "state": self.state or None,
            "zip": self.zip,
        }


@dataclass
class PaymentForm:
    card: CardEntry | None = None
    saved_method_id: str | None = None
    same_as_shipping: bool = True
    billing: AddressForm | None = None
    save_card: bool = False
    save_address: bool = False
