"""
OTP wizard shared by signup verification, email verification and password reset.

Stages: collect identifier -> verify code -> complete. Sending a code starts a
resend countdown; the sixth digit triggers verification on its own; a signup
verification is followed by a second call that creates the account from the
pending registration held in the credential store.

Backend errors never escape the controller: each operation returns a
FlowNotice describing what went wrong and which recoveries to offer, or None
on success. Nothing is retried automatically.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError

from newswatch.core import FLOW_KEYS, get_settings
from newswatch.core.constants import DEV_CODE_KEY, LANDING_LOGIN, PENDING_EMAIL_KEY, PENDING_REGISTRATION_KEY
from newswatch.errors import (
    AuthFlowError,
    ConflictError,
    ExpiredOrInvalidCodeError,
    FormValidationError,
    NetworkError,
    ServerError,
)
from newswatch.providers import BackendGateway
from newswatch.schemas import CodeForm, EmailForm, NewPasswordForm, PendingRegistration, parse_form
from newswatch.services.countdown import Countdown
from newswatch.services.credential_store import CredentialStore
from newswatch.services.session import SessionContext

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


class FlowState(str, Enum):
    COLLECTING_IDENTIFIER = "collecting_identifier"
    AWAITING_CODE = "awaiting_code"
    COMPLETING = "completing"
    DONE = "done"


class OtpPurpose(str, Enum):
    SIGNUP = "signup"
    RESET_PASSWORD = "reset-password"
    VERIFY_EMAIL = "verify-email"


class RecoveryAction(str, Enum):
    RESEND = "resend"
    RETRY = "retry"
    LOGIN = "login"
    START_OVER = "start_over"
    DISMISS = "dismiss"


@dataclass(frozen=True)
class FlowNotice:
    """User-facing outcome of a failed (or informational) step."""

    title: str
    message: str
    actions: tuple[RecoveryAction, ...] = (RecoveryAction.DISMISS,)
    error: AuthFlowError | None = None


def notice_for(error: AuthFlowError, stage: str = "") -> FlowNotice:
    """Map an error to the recovery the user is offered."""
    if isinstance(error, FormValidationError):
        return FlowNotice("Error", error.message, (RecoveryAction.DISMISS,), error)
    if isinstance(error, ExpiredOrInvalidCodeError):
        if stage == "reset":
            return FlowNotice(
                "Session Expired",
                "Your code has expired. Please start the password reset process again.",
                (RecoveryAction.START_OVER,),
                error,
            )
        return FlowNotice(
            "Invalid Code",
            "The verification code is invalid or has expired.",
            (RecoveryAction.RESEND, RecoveryAction.DISMISS),
            error,
        )
    if isinstance(error, NetworkError):
        return FlowNotice(
            "Connection Error",
            "Unable to connect to the server. Please check your connection.",
            (RecoveryAction.RETRY,),
            error,
        )
    if isinstance(error, ConflictError):
        return FlowNotice(
            "Account Exists",
            "This email is already registered. Would you like to login instead?",
            (RecoveryAction.LOGIN, RecoveryAction.DISMISS),
            error,
        )
    if isinstance(error, ServerError):
        return FlowNotice("Server Error", error.message, (RecoveryAction.DISMISS,), error)
    return FlowNotice(
        "Error",
        error.message or "Something went wrong. Please try again.",
        (RecoveryAction.DISMISS,),
        error,
    )


class OtpFlowController:
    def __init__(
        self,
        gateway: BackendGateway,
        store: CredentialStore,
        session: SessionContext,
        purpose: OtpPurpose,
        *,
        countdown_seconds: int | None = None,
        tick_interval: float = 1.0,
        auto_tick: bool = True,
    ):
        s = get_settings()
        self.gateway = gateway
        self.store = store
        self.session = session
        self.purpose = OtpPurpose(purpose)
        self.code_length = s.otp_length
        seconds = s.otp_countdown_seconds if countdown_seconds is None else countdown_seconds
        self.countdown = Countdown(seconds, tick_interval)
        self.auto_tick = auto_tick

        self.state = FlowState.COLLECTING_IDENTIFIER
        self.email: str | None = None
        self.digits: list[str] = [""] * self.code_length
        self.focus = 0
        self.dev_code: str | None = None
        self.notice: FlowNotice | None = None

        # Bumped whenever a new code is issued; older codes are void
        self._generation = 0
        self._verifying = False
        self._verified_code: str | None = None

    async def __aenter__(self) -> OtpFlowController:
        return self

    async def __aexit__(self, *exc) -> None:
        self.close()

    @property
    def code(self) -> str:
        return "".join(self.digits)

    @property
    def countdown_display(self) -> str:
        return self.countdown.display

    @property
    def can_resend(self) -> bool:
        return self.countdown.can_resend

    @property
    def destination(self) -> str | None:
        """Where the app should navigate once the flow is done."""
        if self.state is not FlowState.DONE:
            return None
        return self.session.landing if self.session.is_authenticated else LANDING_LOGIN

    def _require(self, *states: FlowState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise RuntimeError(f"Operation not allowed in state {self.state.value} (expected {allowed})")

    def _fail(self, error: AuthFlowError, stage: str = "") -> FlowNotice:
        self.notice = notice_for(error, stage)
        return self.notice

    def _clear_digits(self) -> None:
        self.digits = [""] * self.code_length
        self.focus = 0

    def _start_countdown(self) -> None:
        if self.auto_tick:
            self.countdown.start()
        else:
            self.countdown.reset()

    async def _store_dev_code(self, dev_code: str | None) -> None:
        self.dev_code = dev_code
        if dev_code:
            logger.info("Dev-mode code received for %s", self.email)
            await self.store.set(DEV_CODE_KEY, dev_code)
        else:
            await self.store.remove(DEV_CODE_KEY)

    async def _enter_awaiting_code(self, email: str, dev_code: str | None) -> None:
        self.email = email
        self.state = FlowState.AWAITING_CODE
        self._generation += 1
        self._verified_code = None
        self._clear_digits()
        await self.store.set(PENDING_EMAIL_KEY, email)
        await self._store_dev_code(dev_code)
        self._start_countdown()

    def _back_to_code_entry(self) -> None:
        self.state = FlowState.AWAITING_CODE
        self._verified_code = None
        self._clear_digits()
        if self.auto_tick:
            self.countdown.resume()

    def _back_to_start(self) -> None:
        self.countdown.cancel()
        self.state = FlowState.COLLECTING_IDENTIFIER
        self._verified_code = None
        self._clear_digits()

    async def _finish(self) -> None:
        self.countdown.cancel()
        self.state = FlowState.DONE
        self.dev_code = None
        self.notice = None
        self._verified_code = None
        await self.store.remove(*FLOW_KEYS)
        logger.info("OTP flow finished for %s (purpose=%s)", self.email, self.purpose.value)

    async def resume_from_store(self) -> bool:
        """Pick up a flow whose code was sent on a previous screen."""
        self._require(FlowState.COLLECTING_IDENTIFIER)
        email = await self.store.get(PENDING_EMAIL_KEY)
        if not email:
            return False
        self.email = email
        self.state = FlowState.AWAITING_CODE
        self._generation += 1
        self._clear_digits()
        self.dev_code = await self.store.get(DEV_CODE_KEY)
        self._start_countdown()
        return True

    async def send_code(self, email: str) -> FlowNotice | None:
        self._require(FlowState.COLLECTING_IDENTIFIER)
        try:
            form = parse_form(EmailForm, email=email)
        except FormValidationError as e:
            return self._fail(e)
        normalized = str(form.email)

        try:
            result = await self.gateway.send_code(normalized, self.purpose.value)
        except NetworkError as e:
            return self._fail(e, "send")
        except AuthFlowError as e:
            if self.purpose is not OtpPurpose.RESET_PASSWORD:
                return self._fail(e, "send")
            # Same answer whether or not the account exists
            logger.info("Reset code request for %s failed (%s); continuing", normalized, e.kind.value)
            await self._enter_awaiting_code(normalized, None)
            self.notice = FlowNotice(
                "Information", "If an account exists with this email, a reset code will be sent."
            )
            return self.notice

        await self._enter_awaiting_code(normalized, result.dev_code)
        self.notice = None
        logger.info("Code sent to %s (purpose=%s)", normalized, self.purpose.value)
        return None

    async def enter_digit(self, index: int, text: str) -> FlowNotice | None:
        """Type into one slot; the entry that fills the last empty slot verifies."""
        if not 0 <= index < self.code_length:
            raise IndexError(f"Code slot {index} out of range")
        if self.state is not FlowState.AWAITING_CODE or self._verifying:
            logger.debug("Ignoring code input in state %s", self.state.value)
            return None
        numeric = _NON_DIGITS.sub("", text or "")
        if len(numeric) > 1:
            logger.debug("Ignoring multi-character code input in slot %s", index)
            return None

        self.digits[index] = numeric
        if numeric and index < self.code_length - 1:
            self.focus = index + 1
        if numeric and all(self.digits):
            return await self.verify()
        return None

    def clear_code(self) -> None:
        self._clear_digits()

    def press_backspace(self, index: int) -> None:
        if not 0 <= index < self.code_length:
            raise IndexError(f"Code slot {index} out of range")
        if self.digits[index]:
            self.digits[index] = ""
            self.focus = index
        elif index > 0:
            self.focus = index - 1

    async def verify(self) -> FlowNotice | None:
        self._require(FlowState.AWAITING_CODE)
        if self._verifying:
            return None
        try:
            parse_form(CodeForm, code=self.code)
        except FormValidationError as e:
            return self._fail(e)
        if not self.email:
            return self._fail(FormValidationError("Email not found. Please try again."))

        code = self.code
        generation = self._generation
        self._verifying = True
        try:
            result = await self.gateway.verify_code(self.email, code)
            if generation != self._generation:
                raise ExpiredOrInvalidCodeError("This code was replaced by a newer one.")
        except AuthFlowError as e:
            logger.info("Verification failed for %s: %s", self.email, e.kind.value)
            self._clear_digits()
            return self._fail(e, "verify")
        finally:
            self._verifying = False

        logger.info("Code verified for %s (purpose=%s)", self.email, self.purpose.value)
        self.countdown.cancel()
        self.state = FlowState.COMPLETING
        self._verified_code = code
        self.notice = None

        if self.purpose is OtpPurpose.SIGNUP or result.requires_finalization:
            return await self.finalize()
        if self.purpose is OtpPurpose.RESET_PASSWORD:
            return None
        if result.token and result.user:
            await self.session.establish(result.token, result.user)
        await self._finish()
        return None

    async def finalize(self) -> FlowNotice | None:
        """Create the account from the held pending registration. A repeat after success is a no-op."""
        if self.state is FlowState.DONE:
            logger.info("Registration for %s already finalized; ignoring repeat", self.email)
            return None
        self._require(FlowState.COMPLETING)

        raw = await self.store.get_json(PENDING_REGISTRATION_KEY)
        try:
            pending = PendingRegistration.model_validate(raw) if isinstance(raw, dict) else None
        except ValidationError:
            pending = None
        if pending is None:
            self._back_to_start()
            self.notice = FlowNotice(
                "Error",
                "Registration data not found. Please start over.",
                (RecoveryAction.START_OVER,),
            )
            return self.notice

        try:
            result = await self.gateway.finalize(pending)
        except AuthFlowError as e:
            logger.info("Registration for %s failed: %s", pending.email, e.kind.value)
            self._back_to_code_entry()
            return self._fail(e, "finalize")

        await self.session.establish(result.token, result.user)
        await self.store.remove(PENDING_REGISTRATION_KEY)
        await self._finish()
        return None

    async def complete_reset(self, new_password: str, confirm_password: str) -> FlowNotice | None:
        if self.purpose is not OtpPurpose.RESET_PASSWORD:
            raise RuntimeError("complete_reset is only valid for password reset flows")
        self._require(FlowState.COMPLETING)
        try:
            form = parse_form(NewPasswordForm, new_password=new_password, confirm_password=confirm_password)
        except FormValidationError as e:
            return self._fail(e)

        try:
            result = await self.gateway.reset_password(self.email or "", self._verified_code or "", form.new_password)
        except ExpiredOrInvalidCodeError as e:
            self._back_to_start()
            return self._fail(e, "reset")
        except AuthFlowError as e:
            return self._fail(e, "reset")

        if result.token and result.user:
            await self.session.establish(result.token, result.user)
        await self._finish()
        return None

    async def resend(self) -> FlowNotice | None:
        self._require(FlowState.AWAITING_CODE)
        if not self.countdown.can_resend:
            self.notice = FlowNotice(
                "Please Wait", f"You can request a new code in {self.countdown.display}."
            )
            return self.notice
        generation = self._generation
        try:
            result = await self.gateway.resend_code(self.email or "", self.purpose.value)
        except AuthFlowError as e:
            return self._fail(e, "resend")
        if self.state is not FlowState.AWAITING_CODE or generation != self._generation:
            logger.debug("Resend for %s completed after the flow moved on; ignoring", self.email)
            return None

        self._generation += 1
        self._clear_digits()
        await self._store_dev_code(result.dev_code)
        self._start_countdown()
        self.notice = None
        logger.info("New code sent to %s", self.email)
        return None

    def tick(self) -> int:
        """Advance the countdown by one step; only counts while waiting for a code."""
        if self.state is not FlowState.AWAITING_CODE:
            return self.countdown.remaining
        return self.countdown.tick()

    def go_back(self) -> None:
        if self.state is FlowState.AWAITING_CODE:
            self._back_to_start()
        elif self.state is FlowState.COMPLETING and self.purpose is OtpPurpose.RESET_PASSWORD:
            self._back_to_code_entry()

    def close(self) -> None:
        """Screen teardown: stop the timer. The server-side challenge expires on its own."""
        self.countdown.cancel()
