"""End to end: the client flows against the dev backend over an in-process transport."""

import httpx
import pytest

from newswatch.core import get_settings
from newswatch.core.constants import LANDING_LOGIN, LANDING_READER, PENDING_REGISTRATION_KEY
from newswatch.devserver.store import DevUser
from newswatch.errors import AuthError, EmailNotVerifiedError, RemoteValidationError
from newswatch.schemas import PendingRegistration
from newswatch.services import FlowState, RecoveryAction

from .conftest import PENDING, type_code

SIGNUP = {**PENDING, "email": "new@test.com"}


async def test_health(dev_app):
    transport = httpx.ASGITransport(app=dev_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


async def test_signup_end_to_end(service, dev_store, store):
    controller = await service.begin_signup(**SIGNUP)
    assert controller.state is FlowState.AWAITING_CODE
    assert controller.dev_code

    assert await type_code(controller, controller.dev_code) is None

    assert controller.state is FlowState.DONE
    assert controller.destination == LANDING_READER
    assert service.session.user.email == "new@test.com"
    assert dev_store.get_user("new@test.com").is_verified
    assert await store.get_json(PENDING_REGISTRATION_KEY) is None

    # The issued token is accepted by the backend
    assert await service.restore_session()
    assert service.session.user.name == "Ada Reader"


async def test_wrong_code_is_rejected(service, dev_store):
    controller = await service.begin_signup(**SIGNUP)
    wrong = "000000" if controller.dev_code != "000000" else "111111"

    notice = await type_code(controller, wrong)

    assert notice.title == "Invalid Code"
    assert controller.state is FlowState.AWAITING_CODE
    assert controller.digits == [""] * 6
    assert dev_store.get_user("new@test.com") is None


async def test_signup_with_registered_email_offers_login(service, existing_user):
    controller = await service.begin_signup(**{**SIGNUP, "email": existing_user.email})

    notice = await type_code(controller, controller.dev_code)

    assert notice.title == "Account Exists"
    assert RecoveryAction.LOGIN in notice.actions
    assert controller.state is FlowState.AWAITING_CODE


async def test_login_and_remember(service, existing_user):
    user = await service.login(existing_user.email, "secret1", remember=True)
    assert user.name == "Existing Reader"
    assert service.session.is_authenticated
    assert await service.remembered_credentials() == (existing_user.email, "secret1")


async def test_login_with_wrong_password(service, existing_user):
    with pytest.raises(AuthError) as exc_info:
        await service.login(existing_user.email, "not-the-password")
    assert exc_info.value.status_code == 401


async def test_unverified_login_then_verify_email(service, dev_store, existing_user, monkeypatch):
    monkeypatch.setattr(get_settings(), "email_verification_required", True)
    existing_user.is_verified = False

    with pytest.raises(EmailNotVerifiedError):
        await service.login(existing_user.email, "secret1")

    controller = await service.start_email_verification(existing_user.email)
    assert await type_code(controller, controller.dev_code) is None

    assert controller.state is FlowState.DONE
    assert existing_user.is_verified
    assert service.session.is_authenticated
    await service.login(existing_user.email, "secret1")


async def test_password_reset_end_to_end(service, existing_user):
    controller = await service.start_password_reset(existing_user.email)
    assert controller.notice is None
    assert await type_code(controller, controller.dev_code) is None
    assert controller.state is FlowState.COMPLETING

    assert await controller.complete_reset("brandnew1", "brandnew1") is None

    assert controller.state is FlowState.DONE
    assert controller.destination == LANDING_LOGIN
    with pytest.raises(AuthError):
        await service.login(existing_user.email, "secret1")
    user = await service.login(existing_user.email, "brandnew1")
    assert user.email == existing_user.email


async def test_password_reset_for_unknown_email(service):
    controller = await service.start_password_reset("nobody@test.com")
    assert controller.state is FlowState.AWAITING_CODE
    assert controller.dev_code is None


async def test_resend_replaces_code(service, dev_store):
    controller = await service.begin_signup(**SIGNUP)
    first = controller.dev_code
    for _ in range(600):
        controller.tick()

    assert await controller.resend() is None
    assert dev_store.otps[("new@test.com", "verification")].code == controller.dev_code

    if controller.dev_code != first:
        notice = await type_code(controller, first)
        assert notice.title == "Invalid Code"
    assert await type_code(controller, controller.dev_code) is None
    assert controller.state is FlowState.DONE


async def test_backend_field_errors(gateway):
    pending = PendingRegistration(**{**SIGNUP, "name": "   "})
    with pytest.raises(RemoteValidationError) as exc_info:
        await gateway.finalize(pending)
    assert "name" in exc_info.value.field_errors


async def test_stale_token_is_cleared(service, store):
    await store.set("userToken", "not-a-jwt")
    await store.set_json("userData", {"name": "A"})
    assert not await service.restore_session()
    assert await store.get("userToken") is None


def test_dev_user_password(dev_store):
    user = dev_store.create_user("hash@test.com", "Hash", "secret1")
    assert user.hashed_password != "secret1"
    assert user.check_password("secret1")
    assert not user.check_password("secret2")

    user.set_password("brandnew1")
    assert user.check_password("brandnew1")
    assert not user.check_password("secret1")


def test_dev_user_without_password_cannot_log_in(dev_store):
    user = dev_store.add_user(DevUser(email="nopass@test.com", name="No Pass"))
    assert not user.check_password("")
