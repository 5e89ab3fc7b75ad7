import logging
from functools import lru_cache
from typing import Any

import httpx

from newswatch.core import OTP_TYPE_RESET_PASSWORD, OTP_TYPE_VERIFICATION, get_settings
from newswatch.errors import (
    AuthError,
    BackendError,
    ConflictError,
    EmailNotVerifiedError,
    ExpiredOrInvalidCodeError,
    NetworkError,
    RateLimitError,
    RemoteValidationError,
    ServerError,
)
from newswatch.schemas import (
    AuthResult,
    PendingRegistration,
    ResetResult,
    SendCodeResult,
    UserProfile,
    VerifyResult,
)

logger = logging.getLogger(__name__)

# Purposes that verify an email address (server OTP type "verification")
_VERIFICATION_PURPOSES = {"signup", "verify-email"}


def otp_type_for(purpose: str) -> str:
    if purpose in _VERIFICATION_PURPOSES:
        return OTP_TYPE_VERIFICATION
    if purpose == "reset-password":
        return OTP_TYPE_RESET_PASSWORD
    raise ValueError(f"Unknown OTP purpose: {purpose}")


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _message(data: dict, default: str) -> str:
    msg = data.get("message") or data.get("detail")
    return msg if isinstance(msg, str) and msg else default


def _is_conflict(data: dict, message: str) -> bool:
    lowered = message.lower()
    return (
        data.get("code") == "EMAIL_EXISTS"
        or "already registered" in lowered
        or "already exists" in lowered
    )


def _is_code_rejection(message: str) -> bool:
    lowered = message.lower()
    return "invalid" in lowered or "expired" in lowered


class BackendGateway:
    """Stateless JSON client for the NewsWatch auth endpoints. One round trip per call, no retry."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        token: str | None = None,
        code_endpoint: bool = False,
    ) -> dict:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            async with self._client() as client:
                r = await client.request(method, path, json=json, headers=headers)
        except httpx.RequestError as e:
            logger.warning("Backend unreachable for %s %s: %s", method, path, e)
            raise NetworkError(
                "Unable to connect to the server. Please check your connection.", cause=e
            ) from e

        try:
            data = r.json()
        except ValueError as e:
            body = r.text or ""
            logger.warning("Backend returned non-JSON %s for %s: %s", r.status_code, path, body[:500])
            raise ServerError("Invalid server response format", status_code=r.status_code, cause=e) from e
        if not isinstance(data, dict):
            raise ServerError("Invalid server response format", status_code=r.status_code)

        if r.is_success:
            if data.get("success") is False:
                raise BackendError(_message(data, "Request failed"), status_code=r.status_code)
            return data

        self._raise_for_status(r.status_code, data, path, code_endpoint)
        return data  # unreachable; _raise_for_status always raises

    def _raise_for_status(self, status: int, data: dict, path: str, code_endpoint: bool) -> None:
        message = _message(data, f"Request failed: {status}")
        if status >= 500:
            logger.warning("Backend error %s on %s: %s", status, path, message[:500])
            raise ServerError("Something went wrong on our side. Please try again later.", status_code=status)
        if status == 429:
            raise RateLimitError("Too many attempts. Please wait and try again.", status_code=status)
        if status == 401:
            raise AuthError("Invalid email or password. Please check your credentials.", status_code=status)
        if status == 403 and "verif" in message.lower():
            raise EmailNotVerifiedError(message, status_code=status)
        if _is_conflict(data, message):
            raise ConflictError(message, status_code=status)
        if code_endpoint and (status in (400, 404) and _is_code_rejection(message)):
            raise ExpiredOrInvalidCodeError(message, status_code=status)
        errors = data.get("errors")
        if status == 400 and isinstance(errors, list) and errors:
            field_errors = {
                str(err.get("field") or err.get("path") or ""): str(err.get("message") or err.get("msg") or "")
                for err in errors
                if isinstance(err, dict)
            }
            summary = "\n".join(f"{k}: {v}" for k, v in field_errors.items())
            raise RemoteValidationError(summary or message, field_errors, status_code=status)
        raise BackendError(message, status_code=status)

    async def send_code(self, email: str, purpose: str) -> SendCodeResult:
        """Issue the first code of a flow: send-verification, or forgot-password for resets."""
        otp_type = otp_type_for(purpose)
        path = "/api/auth/forgot-password" if otp_type == OTP_TYPE_RESET_PASSWORD else "/api/auth/send-verification"
        data = await self._request("POST", path, json={"email": _normalize_email(email)})
        return SendCodeResult.model_validate(data)

    async def resend_code(self, email: str, purpose: str) -> SendCodeResult:
        """Issue a new code; the server voids the previous one."""
        payload = {"email": _normalize_email(email), "type": otp_type_for(purpose)}
        data = await self._request("POST", "/api/auth/resend-otp", json=payload)
        return SendCodeResult.model_validate(data)

    async def verify_code(self, email: str, code: str) -> VerifyResult:
        payload = {"email": _normalize_email(email), "otp": code}
        data = await self._request("POST", "/api/auth/verify-otp", json=payload, code_endpoint=True)
        return VerifyResult.model_validate(data)

    async def finalize(self, pending: PendingRegistration) -> AuthResult:
        """Create the account from a verified pending registration."""
        data = await self._request("POST", "/api/auth/register", json=pending.model_dump())
        return _auth_result(data)

    async def reset_password(self, email: str, code: str, new_password: str) -> ResetResult:
        payload = {"email": _normalize_email(email), "otp": code, "newPassword": new_password}
        data = await self._request("POST", "/api/auth/reset-password", json=payload, code_endpoint=True)
        return ResetResult.model_validate(data)

    async def login(self, email: str, password: str) -> AuthResult:
        payload = {"email": _normalize_email(email), "password": password}
        data = await self._request("POST", "/api/auth/login", json=payload)
        return _auth_result(data)

    async def fetch_current_user(self, token: str) -> UserProfile:
        """Validate a stored token and return the fresh profile."""
        data = await self._request("GET", "/api/auth/verify", token=token)
        user = data.get("user")
        if not isinstance(user, dict):
            raise ServerError("Invalid server response format")
        return UserProfile.model_validate(user)


def _auth_result(data: dict) -> AuthResult:
    if not data.get("token") or not isinstance(data.get("user"), dict):
        raise ServerError("Invalid server response format")
    return AuthResult.model_validate(data)


@lru_cache
def get_backend_gateway() -> BackendGateway:
    s = get_settings()
    return BackendGateway(base_url=s.api_base_url, timeout=s.request_timeout_seconds)
