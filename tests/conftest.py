import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api import create_app  # noqa: E402
from models import storage  # noqa: E402
from models.event import Event  # noqa: E402
from models.participant import Participant, ParticipantStatus  # noqa: E402
from models.revocation_store import InMemoryRevocationStore  # noqa: E402
from utils.security import TokenCodec  # noqa: E402

TEST_JWT_SECRET = "testing-secret"
PASSWORD = "Secret123!"


class FakeClock:
    """Mutable clock for the token codec (aware datetimes)."""

    def __init__(self, start=None):
        self.current = start or datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


@pytest.fixture
def revocation_store():
    return InMemoryRevocationStore()


@pytest.fixture
def app(tmp_path, revocation_store):
    """Application on a file-backed SQLite database, one per test."""
    app = create_app(
        "testing",
        overrides={
            "DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}",
            "REVOCATION_STORE": revocation_store,
        },
    )
    yield app
    storage.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def codec():
    return TokenCodec(TEST_JWT_SECRET)


@pytest.fixture
def auth_service(app):
    return app.extensions["auth_service"]


@pytest.fixture
def checkin_service(app):
    return app.extensions["checkin_service"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, email, role="organizer", password=PASSWORD, name="Test User"):
    resp = client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": password, "name": name, "role": role},
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


@pytest.fixture
def organizer(client):
    """Registered organizer: dict with access_token, refresh_token, user."""
    return register(client, "organizer@example.com")


@pytest.fixture
def admin(app, client):
    app.extensions["auth_service"].create_principal("admin@example.com", PASSWORD, "Admin", "admin")
    storage.close()
    resp = client.post("/api/v1/auth/login", json={"email": "admin@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    return resp.get_json()["data"]


@pytest.fixture
def event_with_participant(app, organizer):
    """Event owned by the organizer fixture plus one confirmed participant."""
    event = Event(organizer_id=organizer["user"]["id"], name="Launch Party")
    app.extensions["event_repository"].create(event)
    participant = Participant(
        event_id=event.id,
        name="Pat Participant",
        email="pat@example.com",
        status=ParticipantStatus.CONFIRMED,
    )
    app.extensions["participant_repository"].create(participant)
    ids = {"event_id": event.id, "participant_id": participant.id, "qr_code": participant.qr_code}
    storage.close()
    return ids
