"""Fixtures for the HTTP layer: a TestClient over the per-test database."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from stock_api import create_app
from stock_kernel.db.engine import get_session_factory


@pytest.fixture
def app(engine, deterministic_clock):
    return create_app(session_factory=get_session_factory(), clock=deterministic_clock)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def headers_for(role: str, user_id=None) -> dict[str, str]:
    return {"X-User-Id": str(user_id or uuid4()), "X-User-Role": role}


@pytest.fixture
def admin_headers(admin_id):
    return headers_for("admin", admin_id)


@pytest.fixture
def supervisor_headers():
    return headers_for("supervisor")


@pytest.fixture
def staff_headers():
    return headers_for("staff")
