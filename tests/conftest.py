"""Pytest fixtures for testing"""

import os

# Keep the module-level engine off PostgreSQL; tests bind their own in-memory database
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from dues_service.api.main import create_app
from dues_service.api.dependencies import get_clock, get_notifier
from dues_service.infrastructure.database.models import Base, Association, Member
from dues_service.infrastructure.database.session import get_db


FIXED_NOW = datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)


class RecordingNotifier:
    """Notifier double that keeps delivered events in memory"""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    async def notify(self, payload: Dict[str, Any]) -> bool:
        self.events.append(payload)
        return True


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Fresh in-memory database and session per test"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(db: Session, notifier: RecordingNotifier) -> TestClient:
    """Create FastAPI test client with test database, fixed clock and recording notifier"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: (lambda: FIXED_NOW)
    app.dependency_overrides[get_notifier] = lambda: notifier
    return TestClient(app)


@pytest.fixture
def association(db: Session) -> Association:
    """
    Association with monthly dues of 50 on the 1st.

    Members:
    - u-admin: admin, active
    - u-mod: moderator, active
    - u-1: member, active
    - u-2: member, pending (no dues generated)
    """
    association = Association(
        name="Old Students Union",
        currency="GHS",
        dues_enabled=True,
        dues_amount=Decimal("50.00"),
        dues_frequency="monthly",
        dues_anchor_day=1,
    )
    association.members = [
        Member(user_id="u-admin", name="Ama Admin", role="admin", status="active"),
        Member(user_id="u-mod", name="Kofi Moderator", role="moderator", status="active"),
        Member(user_id="u-1", name="Esi Member", role="member", status="active"),
        Member(user_id="u-2", name="Yaw Pending", role="member", status="pending"),
    ]
    db.add(association)
    db.commit()
    db.refresh(association)
    return association


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"X-User-ID": "u-admin"}


@pytest.fixture
def member_headers() -> Dict[str, str]:
    return {"X-User-ID": "u-1"}
