"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite database per test
- Users, an organization and a ticket to act on
- Fake inference provider with queued answers
- HTTPX AsyncClients (anonymous and per-user) with the CSRF header
"""
import os
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Generator

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+pysqlite://"
os.environ["TESTING"] = "1"
os.environ["ENV"] = "dev"
os.environ["DEV_SECRET"] = "test-dev-secret"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["SENTRY_DSN"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from feedback_hub.core.deps import COOKIE_NAME, get_db
from feedback_hub.core.security import create_session_token
from feedback_hub.db.base import Base
from feedback_hub.db.enums import TicketTag
from feedback_hub.db.models import Organization, Ticket, User
from feedback_hub.db.session import enable_sqlite_foreign_keys
from feedback_hub.main import app
from feedback_hub.services.inference_provider import (
    ImagePayload,
    InferenceProvider,
    get_inference_provider,
)

CSRF_HEADERS = {"X-Requested-With": "XMLHttpRequest"}


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="function")
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


def create_user(db: Session, first_name: str = "Test", last_name: str = "User") -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"user-{uuid.uuid4().hex[:8]}@test.com",
        first_name=first_name,
        last_name=last_name,
    )
    db.add(user)
    db.commit()
    return user


def create_org(db: Session, owner: User, name: str = "Acme") -> Organization:
    org = Organization(created_by=owner.id, description=f"{name} product feedback")
    org.rename(name)
    db.add(org)
    db.commit()
    return org


def create_ticket(
    db: Session,
    org: Organization,
    reporter: User,
    title: str = "Login button broken",
    description: str = "Clicking login does nothing",
    tag: TicketTag = TicketTag.BUG,
    **fields,
) -> Ticket:
    ticket = Ticket(
        organization_id=org.id,
        reported_by=reporter.id,
        title=title,
        description=description,
        tag=tag,
        **fields,
    )
    db.add(ticket)
    db.commit()
    return ticket


@pytest.fixture(scope="function")
def owner(db: Session) -> User:
    """Owns the test organization."""
    return create_user(db, "Olive", "Owner")


@pytest.fixture(scope="function")
def reporter(db: Session) -> User:
    """Reports the test ticket."""
    return create_user(db, "Rita", "Reporter")


@pytest.fixture(scope="function")
def voter(db: Session) -> User:
    """Unrelated authenticated user."""
    return create_user(db, "Victor", "Voter")


@pytest.fixture(scope="function")
def org(db: Session, owner: User) -> Organization:
    return create_org(db, owner)


@pytest.fixture(scope="function")
def ticket(db: Session, org: Organization, reporter: User) -> Ticket:
    return create_ticket(db, org, reporter)


# =============================================================================
# Inference Fixtures
# =============================================================================

class FakeInferenceProvider(InferenceProvider):
    """Returns queued answers in order; an Exception in the queue is raised."""

    def __init__(self):
        self.answers: list = []
        self.calls: list[dict] = []

    def queue(self, *answers) -> None:
        self.answers.extend(answers)

    async def complete(
        self,
        prompt: str,
        image: ImagePayload | None = None,
        model: str | None = None,
    ) -> str:
        self.calls.append({"prompt": prompt, "image": image, "model": model})
        if not self.answers:
            return ""
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture(scope="function")
def fake_provider() -> FakeInferenceProvider:
    return FakeInferenceProvider()


# =============================================================================
# Client Fixtures
# =============================================================================

def session_cookie(user: User) -> dict[str, str]:
    token = create_session_token(user.id, user.email, user.first_name, user.last_name)
    return {COOKIE_NAME: token}


@pytest.fixture(scope="function")
def api(db: Session, fake_provider: FakeInferenceProvider):
    """Route the app's database and inference dependencies to test doubles."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_inference_provider] = lambda: fake_provider
    yield app
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(api) -> AsyncGenerator[AsyncClient, None]:
    """Anonymous AsyncClient (CSRF header set so auth is what gets tested)."""
    async with AsyncClient(
        transport=ASGITransport(app=api),
        base_url="http://test",
        headers=CSRF_HEADERS,
    ) as c:
        yield c


@pytest.fixture(scope="function")
def client_for(api):
    """Factory: `async with client_for(user) as c:` gives an authenticated client."""

    @asynccontextmanager
    async def _client_for(user: User) -> AsyncGenerator[AsyncClient, None]:
        async with AsyncClient(
            transport=ASGITransport(app=api),
            base_url="http://test",
            cookies=session_cookie(user),
            headers=CSRF_HEADERS,
        ) as c:
            yield c

    return _client_for


@pytest.fixture(scope="function")
async def owner_client(client_for, owner) -> AsyncGenerator[AsyncClient, None]:
    async with client_for(owner) as c:
        yield c


@pytest.fixture(scope="function")
async def reporter_client(client_for, reporter) -> AsyncGenerator[AsyncClient, None]:
    async with client_for(reporter) as c:
        yield c


@pytest.fixture(scope="function")
async def voter_client(client_for, voter) -> AsyncGenerator[AsyncClient, None]:
    async with client_for(voter) as c:
        yield c
