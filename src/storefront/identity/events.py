"""Domain events for the Session aggregate."""

from protean.fields import Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Session")
class SessionStarted:
    """A customer logged in or registered and a session was created."""

    __version__ = 1

    session_id = Identifier(required=True)
    user_id = Identifier(required=True)
    email = String(required=True, max_length=254)


@storefront.event(part_of="Session")
class AddressBookUpdated:
    """The session's saved address book was replaced."""

    __version__ = 1

    session_id = Identifier(required=True)
    user_id = Identifier(required=True)
    address_count = Integer(required=True)


@storefront.event(part_of="Session")
class OrderRecorded:
    """A placed order was prepended to the session's order history."""

    __version__ = 1

    session_id = Identifier(required=True)
    user_id = Identifier(required=True)
    order_id = Identifier(required=True)
