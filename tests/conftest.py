import os
import tempfile
import uuid
from datetime import datetime, timedelta, timezone

import pytest

# Settings are read at import time, so point them at a throwaway database first
_DB_PATH = os.path.join(tempfile.gettempdir(), f"metrics-test-{uuid.uuid4().hex}.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret-key"

from fastapi.testclient import TestClient  # noqa: E402

from app.api.auth import create_access_token  # noqa: E402
from app.db.session import Base, SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models import EventType, User, UserRole, Website, WebsiteEvent, WebsiteSession  # noqa: E402

# Report window used across the API tests: 2026-10-01 (UTC), one day
WINDOW_START = datetime(2026, 10, 1)
WINDOW_END = datetime(2026, 10, 2)


def to_ms(value: datetime) -> int:
    return int(value.replace(tzinfo=timezone.utc).timestamp() * 1000)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def owner(db):
    user = User(email="owner@example.com", name="Owner", role=UserRole.USER)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def website(db, owner):
    site = Website(name="Example", domain="example.com", user_id=owner.id)
    db.add(site)
    db.commit()
    db.refresh(site)
    return site


def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


def add_visits(
    db,
    website: Website,
    count: int,
    *,
    os: str,
    browser: str,
    country: str,
    language: str = "en-US",
    url_path: str = "/",
    created_at: datetime = WINDOW_START + timedelta(hours=12),
) -> None:
    """Add `count` visitors that each viewed one page once."""
    for _ in range(count):
        session = WebsiteSession(
            website_id=website.id,
            os=os,
            browser=browser,
            country=country,
            language=language,
            device="desktop",
            created_at=created_at,
        )
        db.add(session)
        db.flush()
        db.add(WebsiteEvent(
            website_id=website.id,
            session_id=session.id,
            visit_id=uuid.uuid4(),
            created_at=created_at,
            url_path=url_path,
            event_type=EventType.PAGEVIEW.value,
        ))
    db.commit()
