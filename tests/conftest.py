"""Pytest configuration and shared fixtures."""
import json
from typing import Callable, Dict, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from notifier.config import PushConfig, ServiceAccountConfig
from notifier.database import Base
from notifier.models import Device, User

PROJECT_ID = "test-project"
CLIENT_EMAIL = "dispatch@test-project.iam.gserviceaccount.com"
ACCESS_TOKEN = "ya29.test-access-token"


@pytest.fixture(scope="session")
def rsa_key():
    """One RSA key for the whole run; generating keys is slow."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def public_key_pem(rsa_key) -> str:
    return rsa_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture
def service_account(private_key_pem) -> ServiceAccountConfig:
    return ServiceAccountConfig(client_email=CLIENT_EMAIL, private_key=private_key_pem)


@pytest.fixture
def push_config(service_account) -> PushConfig:
    return PushConfig(
        project_id=PROJECT_ID,
        service_account=service_account,
        workers=4,
        request_timeout=5.0,
        dispatch_timeout=10.0,
    )


class FakeGoogle:
    """Stands in for Google's OAuth token endpoint and the FCM send API."""

    def __init__(self):
        self.token_requests = []
        self.sent = []
        self.token_status = 200
        self.token_body: dict = {"access_token": ACCESS_TOKEN, "expires_in": 3600, "token_type": "Bearer"}
        self.token_error: Optional[Exception] = None
        # device token -> (status, body)
        self.send_responses: Dict[str, Tuple[int, str]] = {}
        self.send_hook: Optional[Callable] = None

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            self.token_requests.append(request)
            if self.token_error:
                raise self.token_error
            return httpx.Response(self.token_status, json=self.token_body)

        message = json.loads(request.content)["message"]
        self.sent.append({"message": message, "authorization": request.headers.get("authorization")})
        if self.send_hook:
            await self.send_hook(message)
        status, body = self.send_responses.get(
            message["token"],
            (200, json.dumps({"name": f"projects/{PROJECT_ID}/messages/1"})),
        )
        return httpx.Response(status, text=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def sent_tokens(self):
        return sorted(call["message"]["token"] for call in self.sent)


def unregistered_body() -> str:
    return json.dumps({
        "error": {
            "code": 404,
            "message": "Requested entity was not found.",
            "status": "NOT_FOUND",
            "details": [{
                "@type": "type.googleapis.com/google.firebase.fcm.v1.FcmError",
                "errorCode": "UNREGISTERED",
            }],
        }
    })


@pytest.fixture
def fake_google() -> FakeGoogle:
    return FakeGoogle()


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Fresh SQLite database per test; one connection per session."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'notifier-test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


async def add_user(session_factory, user_id: str, prefs: Optional[dict] = None) -> User:
    async with session_factory() as session:
        user = User(id=user_id, email=f"{user_id}@example.org", notification_preferences=prefs)
        session.add(user)
        await session.commit()
        return user


async def add_device(session_factory, user_id: str, token: str, is_active: bool = True) -> Device:
    async with session_factory() as session:
        device = Device(user_id=user_id, token=token, platform="web", is_active=is_active)
        session.add(device)
        await session.commit()
        return device
