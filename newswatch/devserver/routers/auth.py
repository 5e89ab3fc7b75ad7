import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from newswatch.core import OTP_TYPE_RESET_PASSWORD, OTP_TYPE_VERIFICATION, get_settings
from newswatch.devserver.schemas import EmailIn, LoginIn, RegisterIn, ResendOtpIn, ResetPasswordIn, VerifyOtpIn
from newswatch.devserver.security import create_access_token, decode_access_token
from newswatch.devserver.store import DevStore, DevUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)


def get_store(request: Request) -> DevStore:
    return request.app.state.store


def _fail(status_code: int, message: str, code: str | None = None) -> JSONResponse:
    body: dict = {"success": False, "message": message}
    if code:
        body["code"] = code
    return JSONResponse(status_code=status_code, content=body)


def _code_issued(message: str, code: str, expires_in: int) -> dict:
    body: dict = {"success": True, "message": message, "expiresIn": expires_in}
    if get_settings().dev_expose_otp:
        body["otp"] = code
        body["note"] = "DEV MODE: OTP shown in response"
    return body


def _session_body(user: DevUser, message: str) -> dict:
    token = create_access_token(subject=user.id, role=user.role, email=user.email)
    return {"success": True, "message": message, "token": token, "user": user.public()}


@router.post("/send-verification")
async def send_verification(body: EmailIn, store: Annotated[DevStore, Depends(get_store)]):
    record = store.issue_otp(str(body.email), OTP_TYPE_VERIFICATION)
    return _code_issued("Verification code generated", record.code, store.otp_ttl_seconds)


@router.post("/verify-otp")
async def verify_otp(body: VerifyOtpIn, store: Annotated[DevStore, Depends(get_store)]):
    record = store.find_otp(str(body.email), body.otp)
    if record is None:
        return _fail(status.HTTP_400_BAD_REQUEST, "Invalid or expired OTP")
    if record.expired:
        store.discard_otp(record)
        return _fail(status.HTTP_400_BAD_REQUEST, "OTP has expired")

    if record.type == OTP_TYPE_RESET_PASSWORD:
        # Stays usable once more, for reset-password
        record.verified = True
        return {"success": True, "message": "OTP verified successfully"}

    store.discard_otp(record)
    user = store.get_user(record.email)
    if user is None:
        return {
            "success": True,
            "message": "OTP verified successfully",
            "email": record.email,
            "requiresSignup": True,
        }
    user.is_verified = True
    return _session_body(user, "Email verified successfully")


@router.post("/resend-otp")
async def resend_otp(body: ResendOtpIn, store: Annotated[DevStore, Depends(get_store)]):
    record = store.issue_otp(str(body.email), body.type)
    return _code_issued("New verification code generated", record.code, store.otp_ttl_seconds)


@router.post("/forgot-password")
async def forgot_password(body: EmailIn, store: Annotated[DevStore, Depends(get_store)]):
    if store.get_user(str(body.email)) is None:
        return {
            "success": True,
            "message": "If an account exists with this email, a reset code will be generated",
        }
    record = store.issue_otp(str(body.email), OTP_TYPE_RESET_PASSWORD)
    return _code_issued("Password reset code generated", record.code, store.otp_ttl_seconds)


@router.post("/reset-password")
async def reset_password(body: ResetPasswordIn, store: Annotated[DevStore, Depends(get_store)]):
    if len(body.new_password) < 6:
        return _fail(status.HTTP_400_BAD_REQUEST, "Password must be at least 6 characters")
    record = store.find_otp(str(body.email), body.otp, OTP_TYPE_RESET_PASSWORD)
    if record is None:
        return _fail(status.HTTP_400_BAD_REQUEST, "Invalid or expired reset code")
    if record.expired:
        store.discard_otp(record)
        return _fail(status.HTTP_400_BAD_REQUEST, "Reset code has expired")

    user = store.get_user(record.email)
    if user is None:
        return _fail(status.HTTP_404_NOT_FOUND, "User not found")
    store.discard_otp(record)
    user.set_password(body.new_password)
    logger.info("Password reset for %s", user.email)
    return {"success": True, "message": "Password reset successfully"}


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterIn, store: Annotated[DevStore, Depends(get_store)]):
    email = str(body.email).lower()
    if store.get_user(email) is not None:
        return _fail(
            status.HTTP_400_BAD_REQUEST,
            "This email is already registered. Please login instead.",
            code="EMAIL_EXISTS",
        )
    user = store.create_user(
        email,
        body.name,
        body.password,
        phone=(body.phone or "").strip(),
        role=body.role,
        is_verified=True,
    )
    return _session_body(user, "Registration successful! You can now login.")


@router.post("/login")
async def login(body: LoginIn, store: Annotated[DevStore, Depends(get_store)]):
    user = store.get_user(str(body.email))
    if user is None or not user.check_password(body.password):
        return _fail(status.HTTP_401_UNAUTHORIZED, "Invalid credentials")
    if get_settings().email_verification_required and not user.is_verified:
        return _fail(status.HTTP_403_FORBIDDEN, "Please verify your email before logging in")
    return _session_body(user, "Login successful")


@router.get("/verify")
async def verify_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    store: Annotated[DevStore, Depends(get_store)],
):
    if not credentials:
        return _fail(status.HTTP_401_UNAUTHORIZED, "Not authenticated")
    claims = decode_access_token(credentials.credentials)
    if not claims:
        return _fail(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    user = store.get_user_by_id(str(claims["sub"]))
    if user is None:
        return _fail(status.HTTP_404_NOT_FOUND, "User not found")
    return {
        "success": True,
        "user": user.public(),
        "tokenInfo": {"expiresAt": int(claims["exp"]) * 1000, "role": claims.get("role")},
    }
