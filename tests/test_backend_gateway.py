import json

import httpx
import pytest

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
from newswatch.providers import BackendGateway, otp_type_for
from newswatch.schemas import PendingRegistration

from .conftest import PENDING


def _gateway(handler) -> BackendGateway:
    return BackendGateway("http://test", transport=httpx.MockTransport(handler))


def _replying(status: int, body, seen: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    return handler


def test_otp_type_for():
    assert otp_type_for("signup") == "verification"
    assert otp_type_for("verify-email") == "verification"
    assert otp_type_for("reset-password") == "reset_password"
    with pytest.raises(ValueError):
        otp_type_for("login")


async def test_send_code_posts_normalized_email():
    seen = []
    gateway = _gateway(_replying(200, {"success": True, "otp": "123456", "expiresIn": 600}, seen))

    result = await gateway.send_code("  User@Test.com ", "signup")

    assert result.ok
    assert result.dev_code == "123456"
    assert result.expires_in == 600
    assert seen[0].url.path == "/api/auth/send-verification"
    assert json.loads(seen[0].content) == {"email": "user@test.com"}


async def test_reset_code_uses_forgot_password():
    seen = []
    gateway = _gateway(_replying(200, {"success": True}, seen))
    await gateway.send_code("user@test.com", "reset-password")
    assert seen[0].url.path == "/api/auth/forgot-password"


async def test_resend_sends_otp_type():
    seen = []
    gateway = _gateway(_replying(200, {"success": True}, seen))
    await gateway.resend_code("user@test.com", "reset-password")
    assert seen[0].url.path == "/api/auth/resend-otp"
    assert json.loads(seen[0].content) == {"email": "user@test.com", "type": "reset_password"}


async def test_verify_code_reads_requires_signup():
    seen = []
    gateway = _gateway(_replying(200, {"success": True, "requiresSignup": True}, seen))

    result = await gateway.verify_code("user@test.com", "123456")

    assert result.requires_finalization
    assert result.token is None
    assert json.loads(seen[0].content) == {"email": "user@test.com", "otp": "123456"}


async def test_finalize_returns_token_and_user():
    seen = []
    body = {"success": True, "token": "abc", "user": {"name": "A", "isVerified": True}}
    gateway = _gateway(_replying(201, body, seen))

    result = await gateway.finalize(PendingRegistration(**PENDING))

    assert result.token == "abc"
    assert result.user.name == "A"
    assert result.user.is_verified
    assert seen[0].url.path == "/api/auth/register"
    assert json.loads(seen[0].content) == PENDING


async def test_reset_password_payload():
    seen = []
    gateway = _gateway(_replying(200, {"success": True, "message": "Password reset successfully"}, seen))
    result = await gateway.reset_password("user@test.com", "654321", "newpass1")
    assert result.token is None
    assert json.loads(seen[0].content) == {"email": "user@test.com", "otp": "654321", "newPassword": "newpass1"}


async def test_fetch_current_user_sends_bearer():
    seen = []
    gateway = _gateway(_replying(200, {"success": True, "user": {"name": "A", "role": "reporter"}}, seen))
    user = await gateway.fetch_current_user("abc")
    assert user.role == "reporter"
    assert seen[0].method == "GET"
    assert seen[0].headers["Authorization"] == "Bearer abc"


async def test_login_without_token_is_a_server_error():
    gateway = _gateway(_replying(200, {"success": True, "user": {"name": "A"}}))
    with pytest.raises(ServerError):
        await gateway.login("user@test.com", "secret1")


async def test_unreachable_backend_is_a_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError) as exc_info:
        await _gateway(handler).send_code("user@test.com", "signup")
    assert isinstance(exc_info.value.cause, httpx.ConnectError)


async def test_non_json_body_is_a_server_error():
    gateway = _gateway(_replying(200, "<html>maintenance</html>"))
    with pytest.raises(ServerError) as exc_info:
        await gateway.send_code("user@test.com", "signup")
    assert exc_info.value.message == "Invalid server response format"
    assert isinstance(exc_info.value.cause, ValueError)


async def test_success_false_is_a_backend_error():
    gateway = _gateway(_replying(200, {"success": False, "message": "Failed to send OTP"}))
    with pytest.raises(BackendError) as exc_info:
        await gateway.send_code("user@test.com", "signup")
    assert exc_info.value.message == "Failed to send OTP"


@pytest.mark.parametrize(
    "status, body, expected",
    [
        (500, {"success": False, "message": "boom"}, ServerError),
        (503, {"message": "unavailable"}, ServerError),
        (429, {"message": "slow down"}, RateLimitError),
        (401, {"success": False, "message": "Invalid credentials"}, AuthError),
        (403, {"success": False, "message": "Please verify your email before logging in"}, EmailNotVerifiedError),
        (400, {"success": False, "message": "Email taken", "code": "EMAIL_EXISTS"}, ConflictError),
        (409, {"success": False, "message": "User already exists"}, ConflictError),
        (400, {"success": False, "message": "Something else"}, BackendError),
    ],
)
async def test_status_mapping(status, body, expected):
    gateway = _gateway(_replying(status, body))
    with pytest.raises(expected) as exc_info:
        await gateway.login("user@test.com", "secret1")
    assert exc_info.value.status_code == status


async def test_rejected_code_only_on_code_endpoints():
    gateway = _gateway(_replying(400, {"success": False, "message": "Invalid or expired OTP"}))

    with pytest.raises(ExpiredOrInvalidCodeError):
        await gateway.verify_code("user@test.com", "000000")
    with pytest.raises(ExpiredOrInvalidCodeError):
        await gateway.reset_password("user@test.com", "000000", "newpass1")

    with pytest.raises(BackendError) as exc_info:
        await gateway.login("user@test.com", "secret1")
    assert not isinstance(exc_info.value, ExpiredOrInvalidCodeError)


async def test_field_errors_are_collected():
    body = {
        "success": False,
        "message": "Validation failed",
        "errors": [{"field": "name", "message": "Name is required"}, {"path": "phone", "msg": "Too short"}],
    }
    gateway = _gateway(_replying(400, body))

    with pytest.raises(RemoteValidationError) as exc_info:
        await gateway.finalize(PendingRegistration(**PENDING))

    assert exc_info.value.field_errors == {"name": "Name is required", "phone": "Too short"}
    assert "name: Name is required" in exc_info.value.message
