"""Shared fixtures for task API tests."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from task_api.db import TaskDatabase
from task_api.server import create_app


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "tasks.db"


@pytest.fixture()
def db(db_path: Path):
    """A file-backed TaskDatabase, closed after the test."""
    database = TaskDatabase(db_path)
    yield database
    database.close()


@pytest.fixture()
def app(db_path: Path):
    return create_app(db_path)


@pytest.fixture()
def client(app):
    """TestClient with the lifespan running, so app.state.db is open."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def add_task(client: TestClient):
    """Create a task through the API and return its ID."""

    def _add(title: str = "Buy milk", status: str = "open") -> int:
        response = client.post("/tasks", json={"title": title, "status": status})
        assert response.status_code == 201
        return response.json()["taskId"]

    return _add
