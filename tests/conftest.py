"""Shared fixtures: a fresh in-memory store behind the FastAPI app for every test."""
import typing as t

import pytest
from fastapi.testclient import TestClient

from planner_client.client import PlannerClient
from planner_server.store import PlannerStore
from services.planner_service.app import app

PASSWORD = "correct horse"


@pytest.fixture
def store() -> PlannerStore:
    return PlannerStore()


@pytest.fixture
def client(store: PlannerStore) -> t.Iterator[TestClient]:
    app.state.store = store
    with TestClient(app) as test_client:
        yield test_client


def register_and_login(client: TestClient, email: str = "ada@example.com", name: str = "Ada") -> dict[str, str]:
    """Create an account and return bearer headers for it."""
    response = client.post("/api/auth/register", json={"name": name, "email": email, "password": PASSWORD})
    assert response.status_code == 201, response.text
    response = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}


@pytest.fixture
def auth(client: TestClient) -> dict[str, str]:
    return register_and_login(client)


@pytest.fixture
def planner(client: TestClient, auth: dict[str, str]) -> PlannerClient:
    """A logged-in PlannerClient talking to the app in-process."""
    token = auth["Authorization"].split(" ", 1)[1]
    return PlannerClient(base_url="http://testserver", token=token, http_client=client)
