import os
from unittest.mock import AsyncMock

import pytest

# Settings are cached on first use, so the environment must be set before importing newswatch
os.environ.setdefault("CREDENTIAL_STORE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("API_BASE_URL", "http://test")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DEV_EXPOSE_OTP", "true")

import httpx

from newswatch.devserver.main import create_app
from newswatch.devserver.store import DevStore
from newswatch.providers import BackendGateway
from newswatch.schemas import SendCodeResult
from newswatch.services import AuthService, CredentialStore, OtpFlowController, SessionContext

MEMORY_URL = "sqlite+aiosqlite:///:memory:"

PENDING = {
    "name": "Ada Reader",
    "email": "user@test.com",
    "password": "secret1",
    "phone": "0123456789",
    "role": "visitor",
}


async def type_code(controller: OtpFlowController, code: str):
    """Type a code one slot at a time, as the keypad does. Returns the last notice."""
    notice = None
    for index, char in enumerate(code):
        notice = await controller.enter_digit(index, char)
    return notice


@pytest.fixture
async def store():
    store = await CredentialStore.open(MEMORY_URL)
    yield store
    await store.close()


@pytest.fixture
def session(store):
    return SessionContext(store)


@pytest.fixture
def gateway_mock():
    gateway = AsyncMock(spec=BackendGateway)
    gateway.send_code.return_value = SendCodeResult(success=True, expiresIn=600)
    gateway.resend_code.return_value = SendCodeResult(success=True, expiresIn=600)
    return gateway


@pytest.fixture
def make_flow(gateway_mock, store, session):
    controllers = []

    def _make(purpose, **kwargs):
        kwargs.setdefault("auto_tick", False)
        controller = OtpFlowController(gateway_mock, store, session, purpose, **kwargs)
        controllers.append(controller)
        return controller

    yield _make
    for controller in controllers:
        controller.close()


@pytest.fixture
def dev_store():
    return DevStore(otp_ttl_seconds=600)


@pytest.fixture
def dev_app(dev_store):
    return create_app(dev_store)


@pytest.fixture
def gateway(dev_app):
    return BackendGateway("http://test", transport=httpx.ASGITransport(app=dev_app))


@pytest.fixture
def service(store, gateway):
    return AuthService(store, gateway, auto_tick=False)


@pytest.fixture
def existing_user(dev_store):
    return dev_store.create_user(
        "reader@test.com",
        "Existing Reader",
        "secret1",
        phone="0123456789",
        is_verified=True,
    )
