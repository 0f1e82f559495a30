from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

TEST_SECRET = "test-signing-secret-with-enough-bytes-for-hs256"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}",
        jwt_secret=TEST_SECRET,
        token_ttl=timedelta(hours=24),
        admin_username="admin",
        admin_password="password",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def token(client) -> str:
    response = client.post("/login", json={"username": "admin", "password": "password"})
    assert response.status_code == 200
    return response.json()["token"]


@pytest.fixture
def auth_headers(token) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def room(client, auth_headers) -> dict:
    response = client.post(
        "/meeting_rooms",
        json={"name": "Boardroom", "capacity": 8},
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()
