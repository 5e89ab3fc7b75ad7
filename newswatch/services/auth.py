"""Auth (signup, login, reset, logout) orchestration over the gateway, store and session."""

import logging

from newswatch.core import FLOW_KEYS
from newswatch.core.constants import PENDING_REGISTRATION_KEY
from newswatch.providers import BackendGateway, get_backend_gateway
from newswatch.schemas import LoginForm, SignupForm, UserProfile, parse_form
from newswatch.services.credential_store import CredentialStore
from newswatch.services.otp_flow import OtpFlowController, OtpPurpose
from newswatch.services.session import RememberMe, SessionContext

logger = logging.getLogger(__name__)


class AuthService:
    """Facade for auth operations. Owns the session for the lifetime of the app."""

    def __init__(
        self,
        store: CredentialStore,
        gateway: BackendGateway,
        session: SessionContext | None = None,
        *,
        auto_tick: bool = True,
    ):
        self.store = store
        self.gateway = gateway
        self.session = session or SessionContext(store)
        self.remember_me = RememberMe(store)
        self.auto_tick = auto_tick

    @classmethod
    async def open(
        cls,
        store_url: str | None = None,
        gateway: BackendGateway | None = None,
    ) -> "AuthService":
        store = await CredentialStore.open(store_url)
        return cls(store, gateway or get_backend_gateway())

    async def close(self) -> None:
        await self.store.close()

    def flow(self, purpose: OtpPurpose, **kwargs) -> OtpFlowController:
        kwargs.setdefault("auto_tick", self.auto_tick)
        return OtpFlowController(self.gateway, self.store, self.session, purpose, **kwargs)

    async def begin_signup(
        self,
        *,
        name: str,
        email: str,
        phone: str,
        password: str,
        role: str | None,
        **flow_kwargs,
    ) -> OtpFlowController:
        """Validate the form, hold it as a pending registration and send the first code.

        No account exists until the code is verified; the returned controller
        finalizes registration from the held payload.
        """
        form = parse_form(SignupForm, name=name, email=email, phone=phone, password=password, role=role)
        pending = form.to_pending()

        # A new signup replaces whatever an abandoned one left behind
        await self.store.remove(PENDING_REGISTRATION_KEY, *FLOW_KEYS)
        await self.store.set_json(PENDING_REGISTRATION_KEY, pending.model_dump())
        logger.info("Pending registration held for %s (role=%s)", pending.email, pending.role)

        controller = self.flow(OtpPurpose.SIGNUP, **flow_kwargs)
        await controller.send_code(pending.email)
        return controller

    async def start_email_verification(self, email: str, **flow_kwargs) -> OtpFlowController:
        controller = self.flow(OtpPurpose.VERIFY_EMAIL, **flow_kwargs)
        await controller.send_code(email)
        return controller

    async def start_password_reset(self, email: str, **flow_kwargs) -> OtpFlowController:
        controller = self.flow(OtpPurpose.RESET_PASSWORD, **flow_kwargs)
        await controller.send_code(email)
        return controller

    async def login(self, email: str, password: str, remember: bool = False) -> UserProfile:
        """Authenticate and establish the session. Raises EmailNotVerifiedError when
        the account must verify first; callers open start_email_verification then."""
        form = parse_form(LoginForm, email=email, password=password)
        result = await self.gateway.login(str(form.email), form.password)
        await self.session.establish(result.token, result.user)
        if remember:
            await self.remember_me.save(str(form.email), form.password)
        else:
            await self.remember_me.forget()
        return result.user

    async def remembered_credentials(self) -> tuple[str, str] | None:
        return await self.remember_me.load()

    async def restore_session(self, validate: bool = True) -> bool:
        return await self.session.restore(self.gateway if validate else None)

    async def logout(self) -> None:
        email = self.session.user.email if self.session.user else None
        await self.session.clear()
        logger.info("Logged out %s", email)
