"""Explicit session object: created at login or verification, torn down at logout."""

import logging

from newswatch.core.constants import (
    LANDING_READER,
    LANDING_REPORTER,
    REMEMBER_FLAG_KEY,
    REMEMBERED_EMAIL_KEY,
    REMEMBERED_PASSWORD_KEY,
    REPORTER_ROLES,
    TOKEN_KEY,
    USER_KEY,
)
from newswatch.errors import AuthError, NetworkError, ServerError
from newswatch.providers import BackendGateway
from newswatch.schemas import UserProfile
from newswatch.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


class SessionContext:
    def __init__(self, store: CredentialStore):
        self.store = store
        self.token: str | None = None
        self.user: UserProfile | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    @property
    def landing(self) -> str:
        """Where to go after authentication: reporters and admins get the dashboard."""
        if self.user is not None and self.user.role in REPORTER_ROLES:
            return LANDING_REPORTER
        return LANDING_READER

    async def establish(self, token: str, user: UserProfile) -> None:
        self.token = token
        self.user = user
        await self.store.set(TOKEN_KEY, token)
        await self.store.set_json(USER_KEY, user.model_dump(by_alias=True, exclude_none=True))
        logger.info("Session established for %s (role=%s)", user.email, user.role)

    async def restore(self, gateway: BackendGateway | None = None) -> bool:
        """Load the persisted session. With a gateway, re-validate the token and refresh the profile."""
        token = await self.store.get(TOKEN_KEY)
        if not token:
            return False
        raw_user = await self.store.get_json(USER_KEY)
        user = UserProfile.model_validate(raw_user) if isinstance(raw_user, dict) else None

        if gateway is not None:
            try:
                user = await gateway.fetch_current_user(token)
            except AuthError:
                logger.info("Stored session token rejected; clearing session")
                await self.clear()
                return False
            except (NetworkError, ServerError) as e:
                logger.warning("Could not re-validate stored session (%s); using saved profile", e.kind.value)
            else:
                await self.store.set_json(USER_KEY, user.model_dump(by_alias=True, exclude_none=True))

        if user is None:
            await self.clear()
            return False
        self.token = token
        self.user = user
        return True

    async def clear(self) -> None:
        self.token = None
        self.user = None
        await self.store.remove(TOKEN_KEY, USER_KEY)


class RememberMe:
    """Opt-in plaintext persistence of login credentials, a user-consented convenience."""

    def __init__(self, store: CredentialStore):
        self.store = store

    async def save(self, email: str, password: str) -> None:
        await self.store.set(REMEMBERED_EMAIL_KEY, email)
        await self.store.set(REMEMBERED_PASSWORD_KEY, password)
        await self.store.set(REMEMBER_FLAG_KEY, "true")

    async def forget(self) -> None:
        # Email stays so the form can still be prefilled
        await self.store.remove(REMEMBERED_PASSWORD_KEY)
        await self.store.set(REMEMBER_FLAG_KEY, "false")

    async def load(self) -> tuple[str, str] | None:
        if await self.store.get(REMEMBER_FLAG_KEY) != "true":
            return None
        email = await self.store.get(REMEMBERED_EMAIL_KEY)
        password = await self.store.get(REMEMBERED_PASSWORD_KEY)
        if not email:
            return None
        return email, password or ""
