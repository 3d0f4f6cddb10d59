"""Tests for the FastAPI API endpoints."""

import httpx
import pytest
from fastapi.testclient import TestClient

from energy_rent.accounts.registry import AccountRegistry
from energy_rent.api.app import create_app
from energy_rent.core.settings import PlatformSettings, Settings
from energy_rent.dispatch.router import build_router
from energy_rent.remote.client import PlatformClient

VALID_ADDRESS = "TJRabPrwbZy45sbavfcjinPJC18kjpRTv8"


@pytest.fixture
def client():
    """Create a test client with a fresh in-memory core."""
    settings = Settings()
    router = build_router(settings, registry=AccountRegistry())
    return TestClient(create_app(router=router, settings=settings))


def _send(client, payload, kind="command", identity="42"):
    return client.post("/events", json={
        "identity": identity,
        "kind": kind,
        "payload": payload,
        "display_name": "alice",
    })


class TestEventEndpoint:
    def test_start(self, client):
        response = _send(client, "/start")
        assert response.status_code == 200
        data = response.json()
        assert data["result"]["ok"] is True
        assert data["result"]["operation"] == "initialize"
        assert "Welcome to Energy Rent Bot" in data["reply"]

    def test_not_initialized(self, client):
        data = _send(client, "/credit").json()
        assert data["result"]["error"]["code"] == "account_not_initialized"
        assert data["reply"] == "Please use /start first to initialize your account."

    def test_topup_reply(self, client):
        _send(client, "/start")
        data = _send(client, "/topup 50").json()
        assert data["result"]["data"]["balance"] == "50"
        assert "New Balance: $50.00" in data["reply"]

    def test_rental_flow(self, client):
        _send(client, "/start")
        _send(client, "/topup 20")
        _send(client, "rent", kind="button")
        _send(client, VALID_ADDRESS, kind="text")
        data = _send(client, "10", kind="text").json()

        assert data["result"]["ok"] is True
        assert data["result"]["data"]["cost"] == "5.000"
        assert "Cost: $5.00" in data["reply"]
        assert "Remaining Credit: $15.00" in data["reply"]

    def test_invalid_kind(self, client):
        response = _send(client, "/start", kind="voice")
        assert response.status_code == 422


class TestAccountEndpoints:
    def test_get_account(self, client):
        _send(client, "/start")
        _send(client, "/topup 7.5")
        response = client.get("/accounts/42")
        assert response.status_code == 200
        data = response.json()
        assert data["balance"] == "7.5"
        assert data["transactions"] == 1
        assert data["consistent"] is True

    def test_unknown_account(self, client):
        assert client.get("/accounts/999").status_code == 404
        assert client.get("/accounts/999/transactions").status_code == 404
        assert client.get("/accounts/999/session").status_code == 404

    def test_transactions_and_rentals(self, client):
        _send(client, "/start")
        _send(client, "/topup 10")
        _send(client, "/rent")
        _send(client, VALID_ADDRESS, kind="text")
        _send(client, "2", kind="text")

        transactions = client.get("/accounts/42/transactions").json()
        assert [t["kind"] for t in transactions] == ["topup", "rental"]

        rentals = client.get("/accounts/42/rentals").json()
        assert len(rentals) == 1
        assert rentals[0]["status"] == "active"
        assert rentals[0]["rental_id"] == transactions[1]["rental_id"]

    def test_session(self, client):
        _send(client, "/start")
        _send(client, "/rent")
        session = client.get("/accounts/42/session").json()
        assert session["state"] == "awaiting_wallet_address"


class TestMiscEndpoints:
    def test_pricing(self, client):
        data = client.get("/pricing").json()
        assert data["unit_price"] == "0.50"
        assert [p["cost"] for p in data["plans"]] == ["5.000", "12.500", "25.000"]

    def test_health(self, client):
        data = client.get("/health").json()
        assert data["status"] == "ok"
        assert data["remote"] is False

    def test_shutdown_closes_platform_client(self):
        settings = PlatformSettings(base_url="https://platform.test/api")
        platform = PlatformClient(settings, transport=httpx.MockTransport(lambda r: httpx.Response(503)))
        router = build_router(Settings(), registry=AccountRegistry(), platform=platform)

        with TestClient(create_app(router=router)) as client:
            assert client.get("/health").json()["remote"] is True
            assert not platform._http.is_closed
        assert platform._http.is_closed
