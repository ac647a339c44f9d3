"""Shared fixtures: in-memory database, test client, signed-in users."""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from task_api import config
from task_api.database import get_session
from task_api.main import app
from task_api.models import AuthToken, Task, User  # noqa: F401


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Keep PBKDF2 cheap in tests."""
    monkeypatch.setattr(config, "PASSWORD_ITERATIONS", 1_000)


@pytest.fixture(name="session")
def session_fixture():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Create a test client with overridden database session."""
    def get_session_override():
        yield session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def register(client: TestClient, username: str) -> dict:
    """Register *username* and return bearer auth headers for them."""
    response = client.post(
        "/api/auth/register",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": "secret123",
        },
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture()
def alice(client: TestClient) -> dict:
    return register(client, "alice")


@pytest.fixture()
def bob(client: TestClient) -> dict:
    return register(client, "bob")
