"""
Shared test fixtures.
"""

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.dashboard import PayoutDashboard
from tests.factories import TODAY, make_api, make_store

# ===================
# IN-MEMORY BACKEND
# ===================

@pytest.fixture
def store():
    return make_store()


@pytest.fixture
def api(store):
    return make_api(store)


# ===================
# DASHBOARD SESSION
# ===================

@pytest.fixture
def board(api):
    """Loaded session pinned to TODAY, ignoring any local .env."""
    b = PayoutDashboard(api, Settings(_env_file=None), today=lambda: TODAY)
    b.load()
    return b


# ===================
# HTTP CLIENT
# ===================

@pytest.fixture
def client():
    """TestClient over the seeded in-memory app, reset for every test."""
    from app.main import app

    with TestClient(app) as c:
        c.post("/api/v1/admin/seed")
        yield c
