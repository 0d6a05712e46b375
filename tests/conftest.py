"""
Shared fixtures: in-memory SQLite, fixed clock, a customer, an admin and a
catalog service.
"""
import os

# must be set before servicebook.config is imported
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DB_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"
for _key in (
    "GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REFRESH_TOKEN", "EMAIL_FROM",
    "ADMIN_EMAIL", "VAPID_PUBLIC_KEY", "VAPID_PRIVATE_KEY",
):
    os.environ.pop(_key, None)

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from servicebook.core.security import create_access_token, hash_password
from servicebook.database import Base, SessionLocal, engine
from servicebook.deps import clock
from servicebook.main import app
from servicebook.models.service import Service
from servicebook.models.user import Role, User

# Monday 2024-06-10, 08:00: before opening time on a working day
FIXED_NOW = datetime(2024, 6, 10, 8, 0)


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    app.dependency_overrides[clock] = lambda: FIXED_NOW
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def make_user(db, email, role=Role.CUSTOMER, name="Test User", password="secret123"):
    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name,
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def bearer(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}


@pytest.fixture
def customer(db):
    return make_user(db, "alice@example.com", name="Alice")


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", role=Role.ADMIN, name="Admin")


@pytest.fixture
def customer_headers(customer):
    return bearer(customer)


@pytest.fixture
def admin_headers(admin):
    return bearer(admin)


@pytest.fixture
def service(db):
    s = Service(name="Deep Cleaning", description="Whole apartment", price=80.0, icon_name="SparklesIcon")
    db.add(s)
    db.commit()
    db.refresh(s)
    return s
