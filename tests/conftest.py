"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database (tables recreated for every test)
- A registered instance owned by the test user
- Fakes for the Evolution API, redis, the media service and the dispatcher
- FastAPI TestClient with service handles overridden
"""
import os

# Configure before anything imports app.core.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("INSTANCE_DATABASE_URL", None)
os.environ["REDIS_URL"] = "memory://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["DEFAULT_COUNTRY_PREFIX"] = "55"

from typing import Generator

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.core.errors import EvolutionAPIError
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.main import app
from app.models.instance import Instance, InstanceBase
from app.services import get_group_service, get_webhook_service
from app.services.group_cache import GroupCache
from app.services.group_service import GroupService
from app.services.instance_service import InstanceResolver
from app.services.webhook_service import WebhookService

USER_ID = "user-1"
OTHER_USER_ID = "user-2"
INSTANCE_ID = "65a1b2c3d4e5f60718293a4b"
INSTANCE_NAME = "inst-1"
GROUP_JID = "120363025555555555@g.us"


# =============================================================================
# Fakes
# =============================================================================

class FakeEvolutionClient:
    """Records every call; responses and failures are set per method name."""

    def __init__(self):
        self.calls = []
        self.responses = {}
        self.errors = {}

    def _handle(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if name in self.errors:
            raise self.errors[name]
        return self.responses.get(name, {})

    def calls_to(self, name):
        return [call for call in self.calls if call[0] == name]

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return lambda *args, **kwargs: self._handle(name, *args, **kwargs)


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)


class FakeMediaClient:
    def __init__(self, result=None):
        self.result = result if result is not None else {"url": "/m/pic.png", "fullUrl": "https://media.test/m/pic.png"}
        self.uploads = []

    def upload(self, content, filename, content_type):
        self.uploads.append((content, filename, content_type))
        return self.result


class FakeDispatcher:
    def __init__(self):
        self.submitted = []

    def submit(self, kind, instance_name, group_id, contact_jid, contact_name=None, group_name=None, group_description=None):
        self.submitted.append({
            "kind": kind,
            "instance_name": instance_name,
            "group_id": group_id,
            "contact_jid": contact_jid,
            "contact_name": contact_name,
            "group_name": group_name,
            "group_description": group_description,
        })


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def tables() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    InstanceBase.metadata.create_all(bind=engine)
    yield
    InstanceBase.metadata.drop_all(bind=engine)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def instance(db: Session) -> Instance:
    row = Instance(id=INSTANCE_ID, instance_name=INSTANCE_NAME, user_id=USER_ID, status="open", name="Main")
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def resolver() -> InstanceResolver:
    return InstanceResolver(SessionLocal)


# =============================================================================
# Service Fakes
# =============================================================================

@pytest.fixture
def evolution() -> FakeEvolutionClient:
    return FakeEvolutionClient()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis) -> GroupCache:
    return GroupCache(fake_redis, ttl_seconds=30, stale_ttl_seconds=3600)


@pytest.fixture
def media() -> FakeMediaClient:
    return FakeMediaClient()


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def notifications():
    return []


@pytest.fixture
def group_service(evolution, resolver, cache, media, notifications) -> GroupService:
    return GroupService(
        evolution,
        resolver,
        cache,
        media_client=media,
        notifier=lambda user_id, instance_id: notifications.append((user_id, instance_id)),
    )


@pytest.fixture
def webhook_service(evolution, resolver, dispatcher) -> WebhookService:
    return WebhookService(evolution, resolver, dispatcher, SessionLocal)


# =============================================================================
# HTTP Fixtures
# =============================================================================

def make_token(user_id: str = USER_ID) -> str:
    return jwt.encode({"id": user_id}, "test-secret", algorithm="HS256")


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def client(group_service, webhook_service) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_group_service] = lambda: group_service
    app.dependency_overrides[get_webhook_service] = lambda: webhook_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def rate_limited_error() -> EvolutionAPIError:
    return EvolutionAPIError(
        'HTTP 429 Too Many Requests\nPATH: /group/fetchAllGroups\nRESPONSE: {"message":"rate-overlimit"}',
        status_code=429,
    )
