# tests/conftest.py

import os

# settings are read at import time, so the environment goes first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_URL"] = "https://project.supabase.test"
os.environ["SUPABASE_ANON_KEY"] = "anon-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["COOKIE_SECURE"] = "false"
for name in ("ANTHROPIC_API_KEY", "MSG91_AUTH_KEY", "MSG91_TEMPLATE_ID"):
    os.environ.pop(name, None)

from datetime import timedelta
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.common.deps import get_auth_client, get_event_bus
from app.common.events import EventBus, FriendshipEvent
from app.core.security import create_access_token
from app.db.session import get_db
from app.main import app
from app.models.base import Base
from app.models.user import UserProfile

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def events() -> List[FriendshipEvent]:
    recorded: List[FriendshipEvent] = []
    bus = EventBus()
    bus.subscribe(recorded.append)
    app.dependency_overrides[get_event_bus] = lambda: bus
    return recorded


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    # no network: the remote auth client is opt-in per test
    app.dependency_overrides.setdefault(get_auth_client, lambda: None)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def make_token(user_id: str, expires: Optional[timedelta] = None, **claims) -> str:
    return create_access_token({"sub": user_id, **claims}, expires_delta=expires)


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def make_user(db, user_id: str, name: Optional[str] = "Test User") -> UserProfile:
    user = UserProfile(id=user_id, email=f"{user_id}@example.com", name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
