"""
Pytest Configuration and Shared Fixtures

The API runs against an in-memory SQLite database and a fake
chat-completions client, so no network or AI key is needed.
"""

import json
from types import SimpleNamespace
from typing import Dict, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  (registers tables)
from app.core.auth import create_access_token, hash_password
from app.core.database import Base, get_db
from app.main import create_app
from app.models import Client, Role, Tender, User
from app.services.ai_pipeline import AIService, get_ai_service


# ============================================================================
# Fakes
# ============================================================================

class FakeCompletions:
    """Stands in for `client.chat.completions`; replies are queued per test"""

    def __init__(self):
        self.replies: List = []
        self.calls: List[Dict] = []

    def queue(self, reply) -> None:
        """Queue a reply: a dict/list is sent as JSON, an Exception is raised"""
        self.replies.append(reply)

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        if not isinstance(reply, str):
            reply = json.dumps(reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


class FakeOpenAI:
    def __init__(self):
        self.chat = SimpleNamespace(completions=FakeCompletions())


# ============================================================================
# Database / app
# ============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_ai():
    return FakeOpenAI()


@pytest.fixture
def ai_service(fake_ai):
    return AIService(client=fake_ai, model="test-model", vision_model="test-vision")


@pytest.fixture
def api(engine, ai_service):
    """TestClient wired to the in-memory database and the fake AI service"""
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = factory()
        try:
            yield db
        finally:
            db.close()

    application = create_app()
    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_ai_service] = lambda: ai_service
    return TestClient(application)


# ============================================================================
# Seed data
# ============================================================================

def _make_user(session, name: str, username: str, role: Role) -> User:
    user = User(
        name=name,
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password("password123"),
        role=role.value,
        status="Active",
        specializations=[],
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def users(db_session) -> Dict[str, User]:
    """One user per role, keyed by lower-case role name"""
    return {
        "admin": _make_user(db_session, "Admin User", "admin", Role.ADMIN),
        "sales": _make_user(db_session, "Sales User", "sales.user", Role.SALES),
        "finance": _make_user(db_session, "Finance User", "finance.user", Role.FINANCE),
        "viewer": _make_user(db_session, "Viewer User", "viewer.user", Role.VIEWER),
    }


@pytest.fixture
def auth(users) -> Dict[str, Dict[str, str]]:
    """Authorization headers per role"""
    return {
        key: {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}
        for key, user in users.items()
    }


@pytest.fixture
def client_row(db_session) -> Client:
    client = Client(
        name="Indian Railways",
        industry="Transport",
        status="Active",
        contacts=[],
        interactions=[],
        history=[],
    )
    db_session.add(client)
    db_session.commit()
    db_session.refresh(client)
    return client


@pytest.fixture
def tender_row(db_session, client_row) -> Tender:
    tender = Tender(
        title="Supply of 500 Laptops",
        department="IT",
        client_id=client_row.id,
        client_name=client_row.name,
        description="Supply, installation and 3 year warranty of 500 laptops.",
        value=5_000_000,
        assigned_to=[],
        assignment_responses={},
        history=[],
        checklists={},
        documents=[],
        version=1,
    )
    db_session.add(tender)
    db_session.commit()
    db_session.refresh(tender)
    return tender


# ============================================================================
# Plain objects for service-level tests
# ============================================================================

@pytest.fixture
def actor():
    return SimpleNamespace(id="user-admin", name="Admin User", role=Role.ADMIN.value)


@pytest.fixture
def tender(actor):
    """Attribute-style tender without a database"""
    return SimpleNamespace(
        id="ten-1",
        title="Supply of 500 Laptops",
        status="Drafting",
        workflow_stage="Tender Identification",
        description="Laptops",
        assigned_to=[],
        assignment_responses={},
        checklists={},
        history=[],
        post_award_process={},
        emds=[],
        pbgs=[],
        tender_fee=None,
    )
