"""
Integration tests for the Teller API
Tests end-to-end flows using FastAPI TestClient
"""

import jwt
import pytest
from fastapi.testclient import TestClient

from teller.api import app
from teller.api.auth import BankingSystem, get_banking_system
from teller.config import TellerConfig, get_config
from teller.storage import InMemoryStorage


def make_config(**overrides) -> TellerConfig:
    settings = dict(
        storage_backend="memory",
        password_scrypt_n=16,
        jwt_secret="test-secret",
        auth_enabled=True,
    )
    settings.update(overrides)
    return TellerConfig(**settings)


@pytest.fixture
def system():
    config = make_config()
    return BankingSystem(config=config, storage=InMemoryStorage()).open()


@pytest.fixture
def client(system):
    """Test client wired to an in-memory banking system"""
    app.dependency_overrides[get_banking_system] = lambda: system
    app.dependency_overrides[get_config] = lambda: system.config
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    r = client.post("/auth/login", json={"username": "admin", "password": "admin123"})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


class TestHealth:

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"


class TestAuthFlow:

    def test_register_and_login(self, client):
        r = client.post("/auth/register", json={"username": "bob", "password": "secret"})
        assert r.status_code == 201
        assert r.json()["persisted"] is True

        r = client.post("/auth/login", json={"username": "bob", "password": "secret"})
        assert r.status_code == 200
        data = r.json()
        assert data["token_type"] == "bearer"
        payload = jwt.decode(data["access_token"], "test-secret", algorithms=["HS256"])
        assert payload["sub"] == "bob"

    def test_wrong_password(self, client):
        r = client.post("/auth/login", json={"username": "admin", "password": "nope"})
        assert r.status_code == 401
        assert r.json()["error"] == "invalid_credentials"

    def test_duplicate_registration(self, client):
        client.post("/auth/register", json={"username": "bob", "password": "secret"})
        r = client.post("/auth/register", json={"username": "bob", "password": "again"})
        assert r.status_code == 409
        assert r.json()["error"] == "duplicate_username"

    def test_empty_registration(self, client):
        r = client.post("/auth/register", json={"username": " ", "password": "secret"})
        assert r.status_code == 400
        assert r.json()["error"] == "invalid_input"

    def test_accounts_require_token(self, client):
        assert client.get("/accounts").status_code == 401
        r = client.get("/accounts", headers={"Authorization": "Bearer not-a-token"})
        assert r.status_code == 401

    def test_auth_can_be_disabled(self, system):
        system.config = make_config(auth_enabled=False)
        app.dependency_overrides[get_banking_system] = lambda: system
        app.dependency_overrides[get_config] = lambda: system.config
        try:
            assert TestClient(app).get("/accounts").status_code == 200
        finally:
            app.dependency_overrides.clear()


class TestAccountFlow:

    def test_alice_scenario(self, client, auth_headers):
        r = client.post("/accounts", json={"account_number": "1001", "holder": "Alice"},
                        headers=auth_headers)
        assert r.status_code == 201
        assert r.json()["balance"] == "0.00"

        r = client.post("/accounts/1001/deposit", json={"amount": "500.00"}, headers=auth_headers)
        assert r.status_code == 200
        assert r.json()["balance"] == "500.00"
        assert r.json()["persisted"] is True

        r = client.post("/accounts/1001/withdraw", json={"amount": "200.00"}, headers=auth_headers)
        assert r.json()["balance"] == "300.00"

        r = client.post("/accounts/1001/withdraw", json={"amount": "1000.00"}, headers=auth_headers)
        assert r.status_code == 400
        assert r.json() == {"error": "insufficient_funds", "detail": "Insufficient balance."}

        r = client.get("/accounts/1001", headers=auth_headers)
        assert r.json()["balance"] == "300.00"
        assert r.json()["summary"] == "Account #1001: Alice\nBalance: 300.00"

        r = client.get("/accounts/1001/history", headers=auth_headers)
        assert r.status_code == 200
        assert len(r.json()["transactions"]) == 3

    def test_duplicate_account(self, client, auth_headers):
        body = {"account_number": "7", "holder": "Ann"}
        client.post("/accounts", json=body, headers=auth_headers)
        r = client.post("/accounts", json=body, headers=auth_headers)
        assert r.status_code == 409
        assert r.json()["error"] == "duplicate_account"

    def test_invalid_input(self, client, auth_headers):
        r = client.post("/accounts", json={"account_number": "12ab", "holder": "Ann"},
                        headers=auth_headers)
        assert r.status_code == 400

        client.post("/accounts", json={"account_number": "8", "holder": "Ann"}, headers=auth_headers)
        r = client.post("/accounts/8/deposit", json={"amount": "-5"}, headers=auth_headers)
        assert r.status_code == 400
        assert r.json()["error"] == "invalid_input"

    def test_unknown_account(self, client, auth_headers):
        r = client.get("/accounts/404", headers=auth_headers)
        assert r.status_code == 404
        assert r.json()["error"] == "account_not_found"

    def test_oversized_values_are_invalid_input(self, client, auth_headers):
        r = client.get("/accounts/" + "1" * 5000, headers=auth_headers)
        assert r.status_code == 400
        assert r.json()["error"] == "invalid_input"

        client.post("/accounts", json={"account_number": "9", "holder": "Ann"}, headers=auth_headers)
        r = client.post("/accounts/9/deposit", json={"amount": "1" + "0" * 27}, headers=auth_headers)
        assert r.status_code == 400
        assert r.json()["error"] == "invalid_input"

        r = client.get("/accounts/9/history", headers=auth_headers)
        assert len(r.json()["transactions"]) == 1
        assert r.json()["balance"] == "0.00"

    def test_list_and_report(self, client, auth_headers, system):
        for number in ("3", "1", "2"):
            client.post("/accounts", json={"account_number": number, "holder": f"H{number}"},
                        headers=auth_headers)

        r = client.get("/accounts", headers=auth_headers)
        assert [a["account_number"] for a in r.json()["accounts"]] == [3, 1, 2]

        r = client.post("/accounts/1/report", headers=auth_headers)
        assert r.status_code == 200
        assert r.json()["message"].endswith("account_1.txt")
        assert system.storage.read_report("account_1").startswith("Transaction History for Account #1")
