"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema created and dropped per test
- Organizations and approved members of every role
- Bearer token minting for authenticated tests
- A small curriculum catalog and a recording push dispatcher
- HTTPX AsyncClient with dependency overrides
"""
import os
import uuid
from typing import AsyncGenerator, Generator

# Configure before any pathway import reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENV"] = "test"

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from pathway.core.deps import get_db
from pathway.core.security import create_access_token
from pathway.db.base import Base
from pathway.db.enums import ActivityType, Role
from pathway.db.models import Activity, ActivityPhase, Member, Organization, Question
from pathway.db.session import SessionLocal, engine
from pathway.main import app
from pathway.schemas.auth import Principal
from pathway.schemas.catalog import Catalog, CatalogPhase, CatalogTopic
from pathway.services.catalog_service import get_catalog
from pathway.services.notification_service import (
    NotificationDispatcher,
    PushMessage,
    get_dispatcher,
)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    Services commit and roll back on their own, so each test gets its own
    tables instead of an outer transaction.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


def make_org(db: Session, name: str = "Test Organization", is_active: bool = True) -> Organization:
    org = Organization(id=uuid.uuid4(), name=name, is_active=is_active)
    db.add(org)
    db.commit()
    return org


def make_member(
    db: Session,
    role: Role,
    org: Organization | None,
    *,
    phase: str = "1",
    is_approved: bool = True,
    is_active: bool = True,
) -> Member:
    member = Member(
        id=uuid.uuid4(),
        name=f"{role.value.title()} Member",
        email=f"{role.value}-{uuid.uuid4().hex[:8]}@test.com",
        role=role.value,
        organization_id=org.id if org else None,
        phase=phase,
        is_active=is_active,
        is_approved=is_approved,
    )
    db.add(member)
    db.commit()
    return member


def principal_for(member: Member) -> Principal:
    role = Role(member.role)
    return Principal(
        member_id=member.id,
        name=member.name,
        email=member.email,
        role=role,
        organization_id=member.organization_id,
        phase=member.phase if role == Role.LEARNER else None,
    )


def auth_headers(member: Member) -> dict[str, str]:
    token = create_access_token(member.id, member.role, member.organization_id)
    return {"Authorization": f"Bearer {token}"}


def make_quiz(db: Session, author: Member, phases: tuple[int, ...] = (1,)) -> Activity:
    activity = Activity(
        title="Quiz",
        type=ActivityType.QUIZ.value,
        author_id=author.id,
        organization_id=author.organization_id,
    )
    activity.phases = [ActivityPhase(phase_number=p) for p in phases]
    activity.questions = [
        Question(position=0, text="2 + 2", options=["3", "4"], correct_option="4"),
        Question(position=1, text="Capital of France", options=["Paris", "Rome"], correct_option="Paris"),
    ]
    db.add(activity)
    db.commit()
    return activity


def make_text_activity(db: Session, author: Member, phases: tuple[int, ...] = (1,)) -> Activity:
    activity = Activity(
        title="Essay",
        type=ActivityType.TEXT.value,
        author_id=author.id,
        organization_id=author.organization_id,
    )
    activity.phases = [ActivityPhase(phase_number=p) for p in phases]
    db.add(activity)
    db.commit()
    return activity


@pytest.fixture(scope="function")
def test_org(db: Session) -> Organization:
    return make_org(db)


@pytest.fixture(scope="function")
def other_org(db: Session) -> Organization:
    return make_org(db, name="Other Organization")


@pytest.fixture(scope="function")
def admin(db: Session) -> Member:
    return make_member(db, Role.ADMINISTRATOR, None)


@pytest.fixture(scope="function")
def supervisor(db: Session, test_org: Organization) -> Member:
    return make_member(db, Role.SUPERVISOR, test_org)


@pytest.fixture(scope="function")
def instructor(db: Session, test_org: Organization) -> Member:
    return make_member(db, Role.INSTRUCTOR, test_org)


@pytest.fixture(scope="function")
def learner(db: Session, test_org: Organization) -> Member:
    return make_member(db, Role.LEARNER, test_org, phase="1")


# =============================================================================
# Catalog and Notifications
# =============================================================================

@pytest.fixture(scope="function")
def catalog() -> Catalog:
    return Catalog(
        version="test",
        phases=(
            CatalogPhase(
                id="1",
                title="Phase 1",
                topics=tuple(CatalogTopic(id=f"t{i}", title=f"Topic {i}") for i in range(1, 6)),
            ),
            CatalogPhase(
                id="2",
                title="Phase 2",
                topics=(CatalogTopic(id="a", title="A"), CatalogTopic(id="b", title="B")),
            ),
        ),
    )


class RecordingDispatcher(NotificationDispatcher):
    """Captures messages instead of delivering them."""

    def __init__(self):
        super().__init__(webhook_url="")
        self.sent: list[PushMessage] = []

    def send(self, message: PushMessage) -> None:
        self.sent.append(message)


class FailingDispatcher(NotificationDispatcher):
    """Every delivery attempt fails at the transport."""

    def __init__(self):
        super().__init__(webhook_url="http://push.invalid")
        self.attempts = 0

    def send(self, message: PushMessage) -> None:
        self.attempts += 1
        raise httpx.ConnectError("push gateway unreachable")


@pytest.fixture(scope="function")
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(
    db: Session,
    catalog: Catalog,
    dispatcher: RecordingDispatcher,
) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient sharing the test session, catalog and dispatcher.

    Pass `headers=auth_headers(member)` per request to authenticate.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
