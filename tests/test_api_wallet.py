"""HTTP surface of /wallet."""

from decimal import Decimal

import pytest
from conftest import PASSWORD, bearer, make_user
from fastapi.testclient import TestClient
from sqlalchemy import select

from main import create_app
from models.wallet import Wallet
from models.wallet_backup import WalletBackup

BLOB = "U2FsdGVkX1+client-side-ciphertext=="


@pytest.fixture
def auth(app_accounts):
    _, token = make_user(app_accounts)
    return bearer(token)


class TestBackup:
    def test_save_fetch_delete(self, client, auth):
        assert client.put("/wallet/backup", json={"encryptedMnemonic": BLOB}, headers=auth).status_code == 200

        resp = client.get("/wallet/backup", headers=auth)
        assert resp.status_code == 200
        assert resp.json()["encryptedMnemonic"] == BLOB
        assert resp.json()["updatedAt"] is not None

        assert client.delete("/wallet/backup", headers=auth).status_code == 200
        assert client.get("/wallet/backup", headers=auth).status_code == 404

    def test_stored_value_is_wrapped(self, client, auth, database):
        client.put("/wallet/backup", json={"encryptedMnemonic": BLOB}, headers=auth)
        with database.session() as db:
            stored = db.execute(select(WalletBackup.ciphertext)).scalar_one()
        assert BLOB not in stored

    def test_missing_backup(self, client, auth):
        resp = client.get("/wallet/backup", headers=auth)
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    def test_requires_auth(self, client):
        assert client.get("/wallet/backup").status_code == 401


class TestSessionBinding:
    def test_device_header_without_session(self, client, auth):
        resp = client.get("/wallet/backup", headers=dict(auth, **{"X-Device-Id": "phone-1"}))
        assert resp.status_code == 401
        assert resp.json()["error"] == "session_invalid"

    def test_device_header_with_session(self, client):
        client.post(
            "/auth/register",
            json={"firstName": "A", "lastName": "B", "email": "m@example.com", "password": PASSWORD},
        )
        token = client.post(
            "/auth/mobile/login",
            json={"email": "m@example.com", "password": PASSWORD, "deviceId": "phone-1"},
        ).json()["token"]
        headers = dict(bearer(token), **{"X-Device-Id": "phone-1"})
        assert client.put("/wallet/backup", json={"encryptedMnemonic": BLOB}, headers=headers).status_code == 200
        # Another device of the same user has no session
        other = dict(bearer(token), **{"X-Device-Id": "tablet"})
        assert client.get("/wallet/backup", headers=other).status_code == 401


def test_unconfigured_master_key_is_503(settings, database, bridge):
    app = create_app(
        settings=settings.model_copy(update={"master_encryption_key": ""}),
        database=database,
        bridge=bridge,
    )
    _, token = make_user(app.state.accounts, email="nokey@example.com")
    resp = TestClient(app).get("/wallet/backup", headers=bearer(token))
    assert resp.status_code == 503


WALLET = {
    "address": "0x1111111111111111111111111111111111111111",
    "privateKeyEncrypted": "client-wrapped-private-key",
    "mnemonicEncrypted": "client-wrapped-mnemonic",
}


class TestWallets:
    def test_create_list_get(self, client, auth):
        resp = client.post("/wallet/create", json=WALLET, headers=auth)
        assert resp.status_code == 201
        created = resp.json()["wallet"]
        assert created["network"] == "polygon"
        assert "privateKeyEncrypted" not in created

        second = client.post(
            "/wallet/create",
            json=dict(WALLET, address="0x2222222222222222222222222222222222222222", network="Base"),
            headers=auth,
        ).json()["wallet"]
        assert second["network"] == "base"

        listed = client.get("/wallet/list", headers=auth).json()["wallets"]
        assert [w["id"] for w in listed] == [created["id"], second["id"]]

        fetched = client.get(f"/wallet/{created['id']}", headers=auth).json()["wallet"]
        assert fetched["address"] == WALLET["address"]

    def test_duplicate_address_is_409(self, client, auth, app_accounts):
        assert client.post("/wallet/create", json=WALLET, headers=auth).status_code == 201
        _, other = make_user(app_accounts, email="bob@example.com")
        resp = client.post("/wallet/create", json=WALLET, headers=bearer(other))
        assert resp.status_code == 409
        assert resp.json()["error"] == "duplicate_wallet"

    def test_key_material_is_wrapped(self, client, auth, database):
        client.post("/wallet/create", json=WALLET, headers=auth)
        with database.session() as db:
            row = db.execute(select(Wallet)).scalar_one()
        assert WALLET["privateKeyEncrypted"] not in row.private_key_ciphertext
        assert WALLET["mnemonicEncrypted"] not in row.mnemonic_ciphertext
        assert row.private_key_iv != row.mnemonic_iv

    def test_other_users_wallet_is_not_found(self, client, auth, app_accounts):
        wallet_id = client.post("/wallet/create", json=WALLET, headers=auth).json()["wallet"]["id"]
        _, other = make_user(app_accounts, email="bob@example.com")
        resp = client.get(f"/wallet/{wallet_id}", headers=bearer(other))
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    def test_unsupported_network(self, client, auth):
        resp = client.post("/wallet/create", json=dict(WALLET, network="dogechain"), headers=auth)
        assert resp.status_code == 422

    def test_missing_key_material(self, client, auth):
        body = {k: v for k, v in WALLET.items() if k != "mnemonicEncrypted"}
        assert client.post("/wallet/create", json=body, headers=auth).status_code == 422

    def test_creation_is_logged(self, client, auth):
        client.post("/wallet/create", json=WALLET, headers=auth)
        (latest,) = client.get("/user/activity?limit=1", headers=auth).json()["activities"]
        assert latest["action"] == "wallet_created"


class TestStats:
    def test_counts_only_completed_volume(self, client, app_accounts):
        user, token = make_user(app_accounts)
        store = app_accounts.store
        store.insert_transaction(user.id, "onramp", Decimal("10.5"), "USD", "0xabc", "tx_1")
        store.insert_transaction(user.id, "offramp", Decimal("4"), "USD", "0xabc", "tx_2")
        store.insert_transaction(user.id, "onramp", Decimal("99"), "USD", "0xabc", "tx_3")
        store.update_transaction_status("tx_1", "completed")
        store.update_transaction_status("tx_2", "completed")
        client.post("/wallet/create", json=WALLET, headers=bearer(token))

        stats = client.get("/wallet/stats", headers=bearer(token)).json()["stats"]
        assert stats["walletCount"] == 1
        assert stats["totalTransactions"] == 3
        assert stats["completedTransactions"] == 2
        assert Decimal(stats["completedVolume"]) == Decimal("14.5")

    def test_empty(self, client, auth):
        stats = client.get("/wallet/stats", headers=auth).json()["stats"]
        assert stats["totalTransactions"] == 0
        assert Decimal(stats["completedVolume"]) == 0
