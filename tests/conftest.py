"""
Pytest configuration and fixtures for FieldCrew Backend tests.
"""

import os
import shutil
import tempfile
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing the app
_MODULE_DB_DIR = tempfile.mkdtemp(prefix="fieldcrew_test_db_")
os.environ["FIELDCREW_DATABASE_PATH"] = str(Path(_MODULE_DB_DIR) / "module.db")
os.environ["FIELDCREW_EVENT_LOG_ENABLED"] = "false"

from fieldcrew_backend.broadcaster import LiveBroadcaster
from fieldcrew_backend.configuration import load_settings
from fieldcrew_backend.main import create_app


class RecordingPublisher:
    """Event publisher stand-in that records every publish call."""

    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    def publish(self, topic, event):
        self.calls.append((topic, event))
        if self.fail:
            raise ConnectionError("event log unreachable")
        return True


class RecordingBroadcaster(LiveBroadcaster):
    """Live broadcaster that records calls and still delivers to subscribers."""

    def __init__(self):
        super().__init__()
        self.calls = []

    def broadcast(self, event_name, payload):
        self.calls.append((event_name, payload))
        super().broadcast(event_name, payload)


def wait_for(condition, timeout: float = 2.0) -> bool:
    """Poll ``condition`` until it is true or the timeout elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


@pytest.fixture(scope="session", autouse=True)
def module_db_dir():
    """Cleanup the database directory used by the module-level app."""
    yield _MODULE_DB_DIR
    shutil.rmtree(_MODULE_DB_DIR, ignore_errors=True)


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a fresh database with the event log disabled."""
    return load_settings(
        {
            "database": {"path": str(tmp_path / "fieldcrew.db")},
            "event_log": {"enabled": False},
            "fanout": {"max_workers": 2},
        }
    )


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def app(settings, publisher, broadcaster):
    """Create an app wired to recording stand-ins for the fan-out channels."""
    application = create_app(settings, publisher=publisher, broadcaster=broadcaster)
    yield application
    application.state.dispatcher.shutdown(wait=True)


@pytest.fixture
def client(app):
    """Create a test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def dispatcher(app):
    return app.state.dispatcher


@pytest.fixture
def client_payload():
    """Full attribute set for a Client."""
    return {
        "last_name": "Doe",
        "first_name": "John",
        "street_address": "123 Main St",
        "city": "Somewhere",
        "state": "CA",
        "zip": "90210",
        "tags": ["VIP"],
        "phone": "555-5555",
        "email": "john@example.com",
        "tax_exempt": True,
        "admin_notes": "Important client",
        "team_notes": "Handle with care",
        "latitude": 34.0522,
        "longitude": -118.2437,
        "plantation_id": 1,
        "weekly": True,
        "client_type": "residential",
        "payment_method": "credit card",
        "credit_card_number": "4111111111111111",
        "credit_card_expiry": "12/24",
        "credit_card_cvv": "123",
        "billing_address_same": True,
        "billing_street_address": "123 Main St",
        "billing_city": "Somewhere",
        "billing_state": "CA",
        "billing_zip": "90210",
    }
