"""Bridge client, ramp endpoints and the webhook."""

import hashlib
import hmac
import json
from decimal import Decimal

import httpx
import pytest
from conftest import PASSWORD, WEBHOOK_SECRET, bearer, make_user, ready_state
from fastapi.testclient import TestClient
from sqlalchemy import select

import bridge.router as bridge_router
from bridge.client import BridgeClient, transaction_id
from bridge.webhooks import handle_event, kyc_status, transfer_status, verify_signature
from core.errors import AuthError, BridgeError, Rejection
from main import create_app
from models.user import User

ONRAMP = {"amount": "25.50", "currency": "usd", "walletAddress": "0xabc"}
OFFRAMP = {"amount": "10", "currency": "EUR", "walletAddress": "0xabc", "bankAccount": "DE89 3704"}


def _client(handler):
    return BridgeClient("https://bridge.test", "key", transport=httpx.MockTransport(handler))


class TestBridgeClient:
    def test_onramp_payload_and_auth(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "tx_9"})

        data = _client(handler).create_onramp("cust_1", Decimal("5.25"), "USD", "0xabc")
        assert transaction_id(data) == "tx_9"
        assert seen["path"] == "/v1/onramp"
        assert seen["auth"] == "Bearer key"
        assert seen["body"] == {
            "customerId": "cust_1",
            "amount": "5.25",
            "currency": "USD",
            "walletAddress": "0xabc",
        }

    def test_http_error_becomes_bridge_error(self):
        client = _client(lambda request: httpx.Response(422, json={"error": "bad"}))
        with pytest.raises(BridgeError) as info:
            client.create_onramp("cust_1", Decimal("1"), "USD", "0xabc")
        assert info.value.status_code == 422

    def test_timeout_becomes_bridge_error(self):
        def handler(request):
            raise httpx.ConnectTimeout("slow", request=request)

        with pytest.raises(BridgeError):
            _client(handler).create_onramp("cust_1", Decimal("1"), "USD", "0xabc")

    def test_response_without_transaction_id(self):
        client = _client(lambda request: httpx.Response(200, json={"ok": True}))
        with pytest.raises(BridgeError):
            client.create_onramp("cust_1", Decimal("1"), "USD", "0xabc")

    def test_unconfigured_key(self):
        client = BridgeClient("https://bridge.test", "")
        assert client.is_configured is False
        with pytest.raises(BridgeError):
            client.create_onramp("cust_1", Decimal("1"), "USD", "0xabc")


class TestRampGates:
    @pytest.mark.parametrize(
        "missing, error",
        [
            ("is_verified", "verification_required"),
            ("kyc_status", "kyc_required"),
            ("tos_status", "tos_required"),
            ("bridge_customer_id", "provider_link_required"),
        ],
    )
    def test_each_gate_blocks(self, client, app_accounts, bridge_calls, missing, error):
        state = ready_state()
        state[missing] = {"is_verified": False, "kyc_status": "pending"}.get(missing)
        _, token = make_user(app_accounts, **state)
        resp = client.post("/bridge/onramp", json=ONRAMP, headers=bearer(token))
        assert resp.status_code == 403
        assert resp.json()["error"] == error
        assert bridge_calls == []

    def test_state_change_applies_to_the_same_token(self, client, app_accounts):
        state = dict(ready_state(), kyc_status="pending")
        user, token = make_user(app_accounts, **state)
        assert client.post("/bridge/onramp", json=ONRAMP, headers=bearer(token)).status_code == 403
        app_accounts.update_account_status(user.id, kyc_status="active")
        assert client.post("/bridge/onramp", json=ONRAMP, headers=bearer(token)).status_code == 200


class TestRamps:
    @pytest.fixture
    def auth(self, app_accounts):
        _, token = make_user(app_accounts, **ready_state())
        return bearer(token)

    def test_onramp(self, client, auth, bridge_calls):
        resp = client.post("/bridge/onramp", json=ONRAMP, headers=auth)
        assert resp.status_code == 200
        tx = resp.json()["transaction"]
        assert tx["bridgeTxId"] == "tx_1"
        assert tx["status"] == "pending"
        assert tx["currency"] == "USD"
        assert Decimal(tx["amount"]) == Decimal("25.50")

        method, path, body, headers = bridge_calls[0]
        assert (method, path) == ("POST", "/v1/onramp")
        assert body["customerId"] == "cust_123"

    def test_offramp_and_history(self, client, auth):
        client.post("/bridge/onramp", json=ONRAMP, headers=auth)
        resp = client.post("/bridge/offramp", json=OFFRAMP, headers=auth)
        assert resp.status_code == 200

        history = client.get("/bridge/transactions", headers=auth).json()["transactions"]
        assert [t["type"] for t in history] == ["offramp", "onramp"]
        assert history[0]["bankAccount"] == "DE89 3704"

    def test_unsupported_currency(self, client, auth, bridge_calls):
        resp = client.post("/bridge/onramp", json=dict(ONRAMP, currency="JPY"), headers=auth)
        assert resp.status_code == 422
        assert bridge_calls == []

    def test_non_positive_amount(self, client, auth):
        assert client.post("/bridge/onramp", json=dict(ONRAMP, amount="0"), headers=auth).status_code == 422

    def test_provider_failure_is_502_and_nothing_is_stored(self, settings, database):
        failing = _client(lambda request: httpx.Response(500, text="boom"))
        app = create_app(settings=settings, database=database, bridge=failing)
        user, token = make_user(app.state.accounts, email="ramp@example.com", **ready_state())
        resp = TestClient(app).post("/bridge/onramp", json=ONRAMP, headers=bearer(token))
        assert resp.status_code == 502
        assert resp.json()["error"] == "bridge_error"
        assert app.state.accounts.store.list_transactions(user.id) == []

    def test_history_requires_auth_only(self, client, app_accounts):
        _, token = make_user(app_accounts)
        resp = client.get("/bridge/transactions", headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json()["transactions"] == []


def test_currencies_are_public(client):
    assert client.get("/bridge/currencies").json()["currencies"] == ["USD", "EUR", "GBP", "USDC"]


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------


def _signed(payload):
    raw = json.dumps(payload).encode("utf-8")
    sig = hmac.new(WEBHOOK_SECRET.encode("utf-8"), raw, hashlib.sha256).hexdigest()
    return raw, {"X-Webhook-Signature": sig, "Content-Type": "application/json"}


class TestWebhookParsing:
    def test_signature(self):
        body = b'{"a": 1}'
        good = hmac.new(b"s", body, hashlib.sha256).hexdigest()
        assert verify_signature("s", body, good)
        assert verify_signature("s", body, good.upper())
        assert not verify_signature("s", body + b" ", good)
        assert not verify_signature("s", body, None)

    @pytest.mark.parametrize(
        "provider, local",
        [
            ("payment_processed", "completed"),
            ("funds_received", "processing"),
            ("awaiting_funds", "pending"),
            ("returned", "failed"),
            ("canceled", "cancelled"),
            ("cancelled", "cancelled"),
            ("something_new", None),
            (None, None),
        ],
    )
    def test_transfer_status(self, provider, local):
        assert transfer_status(provider) == local

    @pytest.mark.parametrize(
        "provider, local",
        [("approved", "active"), ("rejected", "rejected"), ("incomplete", "under_review"), ("x", None)],
    )
    def test_kyc_status(self, provider, local):
        assert kyc_status(provider) == local


class TestWebhookEndpoint:
    @pytest.fixture
    def ramp(self, client, app_accounts):
        user, token = make_user(app_accounts, **ready_state())
        client.post("/bridge/onramp", json=ONRAMP, headers=bearer(token))
        return user, token

    def test_bad_signature(self, client):
        raw, headers = _signed({"event_category": "transfer"})
        headers["X-Webhook-Signature"] = "0" * 64
        assert client.post("/bridge/webhook", content=raw, headers=headers).status_code == 401

    def test_missing_signature(self, client):
        resp = client.post("/bridge/webhook", json={"event_category": "transfer"})
        assert resp.status_code == 401

    def test_malformed_json(self, client):
        raw = b"{not json"
        sig = hmac.new(WEBHOOK_SECRET.encode("utf-8"), raw, hashlib.sha256).hexdigest()
        resp = client.post("/bridge/webhook", content=raw, headers={"X-Webhook-Signature": sig})
        assert resp.status_code == 400

    def test_transfer_event_updates_transaction(self, client, ramp):
        _, token = ramp
        raw, headers = _signed(
            {
                "event_id": "evt_1",
                "event_category": "transfer",
                "event_object_id": "tx_1",
                "event_object_status": "payment_processed",
            }
        )
        resp = client.post("/bridge/webhook", content=raw, headers=headers)
        assert resp.json() == {"success": True, "processed": True}
        (tx,) = client.get("/bridge/transactions", headers=bearer(token)).json()["transactions"]
        assert tx["status"] == "completed"

    def test_transfer_for_unknown_transaction(self, client):
        raw, headers = _signed(
            {"event_category": "transfer", "event_object_id": "tx_404", "event_object_status": "error"}
        )
        assert client.post("/bridge/webhook", content=raw, headers=headers).json()["processed"] is False

    def test_customer_event_updates_account_state(self, client, app_accounts):
        user, token = make_user(app_accounts, bridge_customer_id="cust_77")
        raw, headers = _signed(
            {
                "event_category": "customer",
                "event_object_id": "cust_77",
                "event_object": {"kyc_status": "approved", "tos_status": "approved"},
            }
        )
        assert client.post("/bridge/webhook", content=raw, headers=headers).json()["processed"] is True
        me = client.get("/auth/me", headers=bearer(token)).json()["user"]
        assert (me["kycStatus"], me["tosStatus"]) == ("active", "approved")

    def test_kyc_link_event_reads_customer_from_object(self, client, app_accounts):
        user, _ = make_user(app_accounts, bridge_customer_id="cust_88")
        raw, headers = _signed(
            {
                "event_category": "kyc_link",
                "event_object_id": "kyc_link_1",
                "event_object": {"customer_id": "cust_88", "kyc_status": "rejected"},
            }
        )
        assert client.post("/bridge/webhook", content=raw, headers=headers).json()["processed"] is True
        assert app_accounts.store.find_user_by_id(user.id).kyc_status == "rejected"

    def test_unknown_category_is_acknowledged(self, client):
        raw, headers = _signed({"event_category": "virtual_account.activity"})
        resp = client.post("/bridge/webhook", content=raw, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["processed"] is False

    def test_unconfigured_secret_refuses_every_event(self, settings, database, bridge):
        app = create_app(
            settings=settings.model_copy(update={"bridge_webhook_secret": ""}),
            database=database,
            bridge=bridge,
        )
        user, _ = make_user(app.state.accounts, email="open@example.com", bridge_customer_id="cust_5")
        resp = TestClient(app).post(
            "/bridge/webhook",
            json={
                "event_category": "customer",
                "event_object_id": "cust_5",
                "event_object": {"kyc_status": "approved"},
            },
        )
        assert resp.status_code == 503
        assert app.state.accounts.store.find_user_by_id(user.id).kyc_status == "pending"

    def test_event_is_applied_in_worker_thread(self, client, monkeypatch):
        offloaded = []

        async def fake_threadpool(func, *args):
            offloaded.append(func)
            return func(*args)

        monkeypatch.setattr(bridge_router, "run_in_threadpool", fake_threadpool)
        raw, headers = _signed({"event_category": "virtual_account.activity"})
        assert client.post("/bridge/webhook", content=raw, headers=headers).status_code == 200
        assert offloaded == [handle_event]


class TestProviderLink:
    def _customer_event(self, customer_id, **obj):
        return _signed(
            {"event_category": "customer", "event_object_id": customer_id, "event_object": obj}
        )

    def test_onboarding_reaches_onramp_without_direct_writes(self, client, database):
        client.post(
            "/auth/register",
            json={"firstName": "R", "lastName": "P", "email": "ramp@example.com", "password": PASSWORD},
        )
        with database.session() as db:
            code = db.execute(select(User.verification_code)).scalar_one()
        assert client.post(
            "/auth/verify-email", json={"email": "ramp@example.com", "code": code}
        ).status_code == 200

        raw, headers = self._customer_event(
            "cust_new", email="ramp@example.com", kyc_status="approved", tos_status="approved"
        )
        assert client.post("/bridge/webhook", content=raw, headers=headers).json()["processed"] is True

        token = client.post(
            "/auth/login", json={"email": "ramp@example.com", "password": PASSWORD}
        ).json()["token"]
        me = client.get("/auth/me", headers=bearer(token)).json()["user"]
        assert me["bridgeCustomerId"] == "cust_new"
        assert client.post("/bridge/onramp", json=ONRAMP, headers=bearer(token)).status_code == 200

    def test_already_linked_account_is_not_relinked(self, client, app_accounts):
        user, _ = make_user(app_accounts, bridge_customer_id="cust_old")
        raw, headers = self._customer_event("cust_other", email=user.email, kyc_status="approved")
        assert client.post("/bridge/webhook", content=raw, headers=headers).json()["processed"] is False
        stored = app_accounts.store.find_user_by_id(user.id)
        assert (stored.bridge_customer_id, stored.kyc_status) == ("cust_old", "pending")

    def test_unknown_email_is_not_linked(self, client):
        raw, headers = self._customer_event("cust_x", email="nobody@example.com", kyc_status="approved")
        assert client.post("/bridge/webhook", content=raw, headers=headers).json()["processed"] is False

    def test_customer_id_belongs_to_one_account(self, app_accounts):
        make_user(app_accounts, email="first@example.com", bridge_customer_id="cust_123")
        second, _ = make_user(app_accounts, email="second@example.com")
        with pytest.raises(AuthError) as info:
            app_accounts.update_account_status(second.id, bridge_customer_id="cust_123")
        assert info.value.reason == Rejection.PROVIDER_LINK_CONFLICT
        assert info.value.status_code == 409
        assert app_accounts.store.find_user_by_id(second.id).bridge_customer_id is None

    def test_linked_customer_wins_over_event_email(self, client, app_accounts):
        first, _ = make_user(app_accounts, email="first@example.com", bridge_customer_id="cust_123")
        second, _ = make_user(app_accounts, email="second@example.com")
        raw, headers = self._customer_event("cust_123", email=second.email, kyc_status="approved")
        resp = client.post("/bridge/webhook", content=raw, headers=headers)
        assert resp.status_code == 200
        assert app_accounts.store.find_user_by_id(first.id).kyc_status == "active"
        assert app_accounts.store.find_user_by_id(second.id).bridge_customer_id is None
