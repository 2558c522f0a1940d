"""Test the FastAPI bid endpoint."""

import pytest
from fastapi.testclient import TestClient

from bidwar.accounts import AccountResolver
from bidwar.service import BidService, set_bid_service
from bidwar.submitter import BidSubmitter

from conftest import ACCOUNT_KEYS, ADDRESS_2, CONTRACT, FakeNetwork


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture
def client(network: FakeNetwork):
    """Test client over a service wired to the fake network."""
    from bidwar.api import app

    submitter = BidSubmitter(
        network=network,
        contract_address=CONTRACT,
        gas_limit=1_000_000,
        confirmation_timeout=0.2,
    )
    set_bid_service(BidService(AccountResolver.from_keys(ACCOUNT_KEYS), submitter))
    with TestClient(app) as client:
        yield client
    set_bid_service(None)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["accounts"] == 3
    assert data["contract"].lower() == CONTRACT


def test_successful_bid(client, network):
    """userNumber/amount body as sent by existing clients."""
    response = client.post("/bid", json={"userNumber": "1", "amount": "500000000000000000"})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "confirmed"
    assert data["confirmed"] is True
    assert data["tx_hash"] == network.sent[0]["hash"]
    assert data["message"] == f"bidding successful. tx hash: {data['tx_hash']}"


def test_identifier_alias_and_numeric_amount(client, network):
    response = client.post("/bid", json={"identifier": "2", "amount": 1000})

    assert response.status_code == 200
    assert network.sent[0]["sender"] == ADDRESS_2
    assert network.sent[0]["value"] == 1000


def test_unknown_user(client, network):
    response = client.post("/bid", json={"userNumber": "9", "amount": "1"})

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "unknown_identifier"
    assert response.json()["detail"]["message"] == "unknown user"
    assert network.calls == []


def test_negative_amount(client, network):
    response = client.post("/bid", json={"userNumber": "2", "amount": -1})

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_amount"
    assert network.calls == []


def test_numeric_user_number_is_unknown(client, network):
    """Identifiers are strings; a JSON number never matches an account."""
    response = client.post("/bid", json={"userNumber": 1, "amount": "1"})

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "unknown_identifier"
    assert network.calls == []


@pytest.mark.parametrize("amount", [1.5, 1.0, 5e17, "9" * 5000, True, None])
def test_malformed_amount(client, network, amount):
    response = client.post("/bid", json={"userNumber": "1", "amount": amount})

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_amount"
    assert network.calls == []


def test_missing_fields(client):
    response = client.post("/bid", json={"amount": "1"})
    assert response.status_code == 422


def test_rejected(client, network):
    network.reject_with = "insufficient funds for gas * price + value"

    response = client.post("/bid", json={"userNumber": "1", "amount": "1"})

    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["error"] == "submission_rejected"
    assert detail["message"] == "insufficient funds for gas * price + value"
    assert detail["transient"] is False


def test_timed_out(client, network):
    network.withhold_receipts = True

    response = client.post("/bid", json={"userNumber": "1", "amount": "1"})

    assert response.status_code == 504
    detail = response.json()["detail"]
    assert detail["error"] == "confirmation_timeout"
    assert detail["tx_hash"] == network.sent[0]["hash"]
