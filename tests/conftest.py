"""Test fixtures for the FELKA backend."""
import os
import uuid

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("EMAIL_DELIVERY_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from felka.core.security import create_access_token, hash_password
from felka.db.base import Base
from felka.db.session import get_db, make_engine
from felka.main import app
from felka.models.user import User

# A Monday far enough ahead that the cancellation window is always open
FUTURE_MONDAY = "2030-01-07"


@pytest.fixture()
def db_factory():
    """Fresh in-memory database per test."""
    engine = make_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    # plain factory: fixture sessions stay open while the app handles requests
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture()
def db(db_factory):
    session = db_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db_factory):
    def _get_db():
        session = db_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(db, role: str, email: str, password: str = "Passw0rd!") -> User:
    user = User(
        id=str(uuid.uuid4()),
        email=email,
        full_name=f"Test {role}",
        role=role,
        company_name="Transportadora Teste" if role == "client" else "",
        password_hash=hash_password(password),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def admin_user(db):
    return _make_user(db, "admin", "admin@felka.test")


@pytest.fixture()
def client_user(db):
    return _make_user(db, "client", "cliente@empresa.test")


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture()
def client_headers(client_user):
    return auth_headers(client_user)


def booking_payload(**overrides) -> dict:
    payload = {
        "companyName": "Acme Logistica",
        "contactPerson": "Maria Souza",
        "contactEmail": "maria@acme.test",
        "contactPhone": "+55 11 99999-0000",
    }
    payload.update(overrides)
    return payload
