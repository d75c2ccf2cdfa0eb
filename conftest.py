import os

# Must be set before the app modules read them at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["REALTIME_CLIENT_RELAY"] = "false"

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from core.realtime import connection_manager
from core.security import Identity, Role, create_identity_token
from db.session import engine
from main import app
from models.shift import Shift

MANAGER = Identity(id="manager-1", role=Role.MANAGER, name="Morgan")
E1 = Identity(id="employee-1", role=Role.EMPLOYEE, name="Eli")
E2 = Identity(id="employee-2", role=Role.EMPLOYEE, name="Dana")
E3 = Identity(id="employee-3", role=Role.EMPLOYEE, name="Sam")
E4 = Identity(id="employee-4", role=Role.EMPLOYEE, name="Kit")

SHIFT_START = datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc)
SHIFT_END = SHIFT_START + timedelta(hours=8)


def auth_headers(identity: Identity) -> dict:
    return {"Authorization": f"Bearer {create_identity_token(identity)}"}


def ws_path(identity: Identity) -> str:
    return f"/ws?token={create_identity_token(identity)}"


@pytest.fixture(autouse=True)
def reset_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    connection_manager.client_relay = False
    yield


@pytest.fixture
def session():
    with Session(engine) as session:
        yield session


@pytest.fixture
def client():
    # One portal for HTTP and WebSocket sessions so publishes reach open sockets
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_shift(session):
    def _make_shift(owner: Identity = E1, notes: str = "Opening shift") -> Shift:
        shift = Shift(employee_id=owner.id, start_time=SHIFT_START, end_time=SHIFT_END, notes=notes)
        session.add(shift)
        session.commit()
        session.refresh(shift)
        return shift
    return _make_shift


@pytest.fixture
def api_shift(client):
    """Create a shift through the API as the manager and return its JSON."""
    def _api_shift(owner: Identity = E1, notes: str = "Opening shift") -> dict:
        response = client.post(
            "/shifts",
            headers=auth_headers(MANAGER),
            json={
                "employee_id": owner.id,
                "start_time": SHIFT_START.isoformat(),
                "end_time": SHIFT_END.isoformat(),
                "notes": notes,
            },
        )
        assert response.status_code == 200, response.text
        return response.json()
    return _api_shift
