# tests/conftest.py

import pytest

from app import database
from app.core.session import ReconciliationSession
from app.storage import LocalStore


@pytest.fixture(autouse=True)
def offline_record_store(monkeypatch):
    """Run every test without a remote store unless a test patches one in."""
    monkeypatch.setattr(database, "get_client", lambda: None)


@pytest.fixture
def local_store(tmp_path):
    return LocalStore(tmp_path / "data")


@pytest.fixture
def session():
    return ReconciliationSession()
