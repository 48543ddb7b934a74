"""AuthService: login, registration, logout and address-book sync.

Owns the current Session and keeps it persisted through the SessionStore.
The checkout's ContactInfo step reuses ``login`` and ``register`` for its
inline account paths.
"""

import structlog

from storefront.errors import ApiError, AuthenticationError
from storefront.gateway.port import StorefrontApi
from storefront.identity.session import Session
from storefront.identity.store import SessionStore

logger = structlog.get_logger(__name__)


def describe_login_failure(exc: AuthenticationError) -> str:
    """User-facing login failure message, including attempts left or lockout."""
    if exc.remaining_attempts == 0:
        return "Too many attempts. Account locked temporarily."
    message = exc.message or "Login failed"
    if exc.remaining_attempts is not None and exc.remaining_attempts <= 3:
        plural = "" if exc.remaining_attempts == 1 else "s"
        message = f"{message} ({exc.remaining_attempts} attempt{plural} remaining)"
    return message


class AuthService:
    def __init__(self, api: StorefrontApi, store: SessionStore, remember_by_default: bool = True) -> None:
        self.api = api
        self.store = store
        self.remember_by_default = remember_by_default
        self.current: Session | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.current is not None

    def restore(self) -> Session | None:
        """Load a previously persisted session, if any."""
        self.current = self.store.load()
        if self.current is not None:
            logger.debug("Session restored", user_id=str(self.current.user_id))
        return self.current

    async def login(self, email: str, password: str, remember: bool | None = None) -> Session:
        try:
            result = await self.api.login(email, password)
        except ApiError as exc:
            raise AuthenticationError(
                exc.payload.get("error") or exc.message or "Login failed",
                remaining_attempts=exc.payload.get("remaining_attempts"),
            ) from exc

        return self._start(result.user, result.token, remember)

    async def register(self, name: str, email: str, password: str, remember: bool | None = None) -> Session:
        try:
            result = await self.api.register(name, email, password)
        except ApiError as exc:
            raise AuthenticationError(exc.payload.get("error") or exc.message or "Registration failed") from exc

        return self._start(result.user, result.token, remember)

    def _start(self, user: dict, token: str, remember: bool | None) -> Session:
        if remember is None:
            remember = self.remember_by_default
        session = Session.start(user, token)
        self.store.save(session, remember=remember)
        self.current = session
        logger.info("Session started", user_id=str(session.user_id), remember=remember)
        return session

    def logout(self) -> None:
        if self.current is not None:
            logger.info("Session ended", user_id=str(self.current.user_id))
        self.current = None
        self.store.clear()

    def _persist(self) -> None:
        # Re-persist into whichever tier currently holds the session
        self.store.save(self.current, remember=self.store.is_remembered())

    async def update_addresses(self, addresses: list[dict]) -> None:
        """Replace the address book locally, then sync it to the server.

        The local update is optimistic: a failed server sync is logged and the
        local copy stays.
        """
        if self.current is None:
            raise AuthenticationError("Not signed in")

        self.current.replace_addresses(addresses)
        self._persist()

        try:
            await self.api.update_user_addresses(
                str(self.current.user_id),
                [a.to_payload() for a in self.current.addresses],
                auth_token=self.current.auth_token,
            )
        except ApiError as exc:
            logger.error(
                "Failed to sync address book",
                user_id=str(self.current.user_id),
                error=exc.message,
                status=exc.status,
            )

    def record_order(self, order: dict) -> None:
        if self.current is None:
            return
        self.current.record_order(order)
        self._persist()
