"""Shared fixtures: in-memory SQLite, the account service and a TestClient."""

import base64
import json
import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest

_BACKEND_DIR = Path(__file__).resolve().parent.parent / "backend"
if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

# core.logger opens its file handler at import time
os.environ.setdefault("ONRAMPR_LOG_DIR", tempfile.mkdtemp(prefix="onrampr-log-"))

from fastapi.testclient import TestClient  # noqa: E402

from auth.service import AccountService, ClientInfo  # noqa: E402
from bridge.client import BridgeClient  # noqa: E402
from core.config import Settings  # noqa: E402
from core.security import PasswordHasher  # noqa: E402
from core.sessions import SessionTracker  # noqa: E402
from core.store import CredentialStore  # noqa: E402
from core.tokens import TokenService  # noqa: E402
from database import Database  # noqa: E402
from main import create_app  # noqa: E402

PASSWORD = "Str0ngPassw0rd"
MASTER_KEY = base64.b64encode(bytes(range(32))).decode("ascii")
WEBHOOK_SECRET = "whsec-test"


class Clock:
    """Settable clock handed to AccountService."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        secret_key="test-secret-key-do-not-use-anywhere-else",
        master_encryption_key=MASTER_KEY,
        password_hash_rounds=1000,
        bridge_api_key="bridge-test-key",
        bridge_api_url="https://bridge.test",
        bridge_webhook_secret=WEBHOOK_SECRET,
    )


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def store(database):
    return CredentialStore(database)


@pytest.fixture
def tokens(settings):
    return TokenService(settings.secret_key, lifetime=timedelta(days=7))


@pytest.fixture
def sessions(store):
    return SessionTracker(store, ttl=timedelta(days=7))


@pytest.fixture
def clock():
    return Clock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def accounts(store, tokens, sessions, clock):
    return AccountService(
        store=store,
        tokens=tokens,
        sessions=sessions,
        hasher=PasswordHasher(rounds=1000),
        clock=clock,
    )


@pytest.fixture
def bridge_calls():
    """Requests seen by the fake Bridge API, in order."""
    return []


@pytest.fixture
def bridge(bridge_calls):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        bridge_calls.append((request.method, request.url.path, body, request.headers))
        return httpx.Response(
            200, json={"transactionId": f"tx_{len(bridge_calls)}", "state": "awaiting_funds"}
        )

    client = BridgeClient(
        "https://bridge.test", "bridge-test-key", transport=httpx.MockTransport(handler)
    )
    yield client
    client.close()


@pytest.fixture
def app(settings, database, bridge):
    return create_app(settings=settings, database=database, bridge=bridge)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def app_accounts(app):
    """The AccountService wired into ``app``."""
    return app.state.accounts


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_user(accounts, email="alice@example.com", password=PASSWORD, **state):
    """Register a user and optionally push account-state fields straight into the store."""
    result = accounts.register("Alice", "Doe", email, password, client=ClientInfo())
    user = result.user
    if state:
        user = accounts.store.update_user_fields(user.id, **state)
    return user, result.token


def ready_state():
    """Account state that passes every ramp gate."""
    return {
        "is_verified": True,
        "kyc_status": "active",
        "tos_status": "approved",
        "bridge_customer_id": "cust_123",
    }


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
