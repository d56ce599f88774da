# tests/conftest.py

import os
import sys

# Keep test runs away from a developer's .env database and log directory
os.environ["DB_CLIENT"] = "embedded"
os.environ["LOG_DIR"] = ""

# Add project root to path to ensure imports work
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel

from group_archive import create_app
from group_archive.core.backends import EmbeddedBackend, NetworkedBackend
from group_archive.core.config import Settings
from group_archive.core.schema import CORE_TABLES, SchemaManager
from group_archive.services.group_store import GroupStore
from group_archive.services.history_store import HistoryStore
from group_archive.services.message_store import MessageStore
from group_archive.services.supervisor import IngestionSupervisor

TEST_POSTGRES_URL = os.getenv("TEST_POSTGRES_URL")


@pytest.fixture
def test_settings(tmp_path, monkeypatch):
    """Settings for an embedded database inside tmp_path"""
    monkeypatch.setenv("DB_CLIENT", "embedded")
    monkeypatch.setenv("DB_PATH", str(tmp_path / "archive.sqlite"))
    monkeypatch.setenv("LOG_DIR", "")
    return Settings()


@pytest.fixture
def embedded_backend(tmp_path):
    backend = EmbeddedBackend(str(tmp_path / "embedded.sqlite"))
    SchemaManager(backend).ensure_schema()
    yield backend
    backend.dispose()


@pytest.fixture
def networked_backend(tmp_path):
    """Networked engine: pooled, dispatched to worker threads.

    Runs against PostgreSQL when TEST_POSTGRES_URL is set, otherwise against
    a second SQLite file so the pool and threading paths are still covered.
    """
    url = TEST_POSTGRES_URL or f"sqlite:///{tmp_path / 'networked.sqlite'}"
    backend = NetworkedBackend(url, pool_size=4, timeout=5.0)
    if TEST_POSTGRES_URL:
        SQLModel.metadata.drop_all(backend.engine, tables=CORE_TABLES)
    SchemaManager(backend).ensure_schema()
    yield backend
    if TEST_POSTGRES_URL:
        SQLModel.metadata.drop_all(backend.engine, tables=CORE_TABLES)
    backend.dispose()


@pytest.fixture(params=["embedded", "networked"])
def backend(request):
    """Each test using this runs once per engine"""
    return request.getfixturevalue(f"{request.param}_backend")


@pytest.fixture
def supervisor(backend):
    return IngestionSupervisor(fire_and_forget=not backend.runs_inline, alert_threshold=3)


@pytest.fixture
def group_store(backend, supervisor):
    return GroupStore(backend, timeout=5.0, supervisor=supervisor)


@pytest.fixture
def message_store(backend, supervisor):
    return MessageStore(backend, timeout=5.0, supervisor=supervisor)


@pytest.fixture
def history_store(backend, supervisor):
    return HistoryStore(backend, timeout=5.0, supervisor=supervisor)


@pytest.fixture
def app(test_settings):
    """Create application for testing."""
    return create_app(test_settings)


@pytest.fixture
def client(app):
    """Create a test client for the app."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def group_sighting_payload():
    """Generate a group entry as posted by the client bridge."""

    def _create_payload(
        group_id="120363025246125486@g.us",
        name="Team",
        participants=3,
        admins=1,
        description="Weekly sync",
    ):
        return {
            "id": group_id,
            "name": name,
            "participants": [
                {"id": f"5511999990{i:03d}@c.us", "is_admin": i < admins}
                for i in range(participants)
            ],
            "description": description,
            "unread_count": 0,
        }

    return _create_payload


@pytest.fixture
def inbound_message_payload():
    """Generate a message_create event as posted by the client bridge."""

    def _create_payload(
        message_id="false_120363025246125486@g.us_3EB0C767D26A1D8D6A2F",
        group_id="120363025246125486@g.us",
        group_name="Team",
        is_group=True,
        body="hello team",
        msg_type="chat",
        author="5511999990001@c.us",
        timestamp=1714564800,
        raw=None,
        transcription=None,
    ):
        payload = {
            "id": message_id,
            "chat": {"id": group_id, "name": group_name, "is_group": is_group, "unread_count": 2},
            "author": author,
            "sender": group_id,
            "body": body,
            "type": msg_type,
            "timestamp": timestamp,
            "raw": raw if raw is not None else {"hasMedia": False, "fromMe": False, "ack": 1},
        }
        if transcription is not None:
            payload["transcription"] = transcription
        return payload

    return _create_payload
