"""Shared test fixtures and configuration."""

import os
from datetime import date

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-do-not-use")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ["EXTERNAL_LOOKUPS"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from expenseflow.core.jwt import create_access_token
from expenseflow.core.security import hash_password
from expenseflow.database import engine, init_db
from expenseflow.main import app
from expenseflow.models.user import Role, User


@pytest.fixture(autouse=True)
def fresh_db():
    """Recreate the in-memory schema for every test."""
    init_db()
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session():
    with Session(engine, expire_on_commit=False) as s:
        yield s


@pytest.fixture
def client():
    return TestClient(app)


def make_user(session, email, name, role, manager=None, country="India", password=None) -> User:
    user = User(
        email=email,
        name=name,
        role=role,
        department="Sales",
        country=country,
        currency="INR" if country == "India" else "USD",
        manager_id=manager.id if manager else None,
        hire_date=date(2022, 6, 20),
        hashed_password=hash_password(password) if password else None,
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture
def admin(session):
    return make_user(session, "admin@techcorp.com", "Admin User", Role.ADMIN, country="United States", password="adminpass")


@pytest.fixture
def manager(session):
    return make_user(session, "manager@techcorp.com", "Manager User", Role.MANAGER, country="United States")


@pytest.fixture
def employee(session, manager):
    return make_user(session, "employee@techcorp.com", "Employee User", Role.EMPLOYEE, manager=manager)


@pytest.fixture
def other_manager(session):
    return make_user(session, "other.manager@techcorp.com", "Other Manager", Role.MANAGER)


@pytest.fixture
def outsider(session, other_manager):
    return make_user(session, "outsider@techcorp.com", "Outside Employee", Role.EMPLOYEE, manager=other_manager)


def auth_headers(user: User) -> dict:
    token = create_access_token(user.id, {"email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers
