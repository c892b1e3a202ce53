"""
Test configuration and fixtures for the LangChain Flow services.

The environment is prepared before any application module is imported, since
settings and the database engine are built at import time.
"""
import os
import tempfile
from pathlib import Path

_DB_DIR = tempfile.mkdtemp(prefix="langchain-flow-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_DB_DIR) / 'test.db'}"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-at-least-32-characters"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "warn"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from db import Base, engine  # noqa: E402
from intertools.main import app as intertools_app  # noqa: E402
from main import app  # noqa: E402
from web.main import app as web_app  # noqa: E402


@pytest.fixture(autouse=True)
def reset_database():
    """Every test starts from empty tables."""
    import models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def intertools_client():
    return TestClient(intertools_app)


@pytest.fixture
def web_client():
    return TestClient(web_app)


@pytest.fixture
def register(client):
    def _register(username="alice", email="alice@example.com", password="password123"):
        return client.post("/api/auth/register", json={"username": username, "email": email, "password": password})

    return _register


@pytest.fixture
def auth(register):
    """Register a user and return its session data."""
    resp = register()
    assert resp.status_code == 201
    return resp.json()["data"]


@pytest.fixture
def auth_headers(auth):
    return {"Authorization": f"Bearer {auth['accessToken']}"}


@pytest.fixture
def project(client, auth_headers):
    resp = client.post(
        "/api/projects",
        json={"name": "Demo", "description": "Demo project", "githubRepo": "octo/demo"},
        headers=auth_headers,
    )
    assert resp.status_code == 201
    return resp.json()["data"]


@pytest.fixture
def run(client, auth_headers, project):
    resp = client.post(
        "/api/runs",
        json={"projectId": project["id"], "name": "First run", "triggerType": "manual"},
        headers=auth_headers,
    )
    assert resp.status_code == 201
    return resp.json()["data"]


@pytest.fixture
def other_headers(register, auth):
    """Bearer headers for a second user, registered after the first."""
    resp = register(username="mallory", email="mallory@example.com")
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.json()['data']['accessToken']}"}
