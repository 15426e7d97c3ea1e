"""
Tests for the swap HTTP API.
"""

import pytest
from fastapi.testclient import TestClient

from swapflow.core.swap import InMemorySwapStore, SwapCoordinator, SwapStatus
from swapflow.core.swap.quotes import QuoteResolver
from swapflow.main import create_app
from tests.helpers import make_quote


@pytest.fixture
def store() -> InMemorySwapStore:
    return InMemorySwapStore()


@pytest.fixture
def client(store, wallet, lifi):
    coordinator = SwapCoordinator(
        wallet=wallet,
        store=store,
        provider=lifi.provider(),
        poll_interval_seconds=0.01,
    )
    with TestClient(create_app(coordinator)) as test_client:
        yield test_client


def quote_body(**overrides):
    body = {"from": "ETH", "to": "PUSDC", "amount": "1", "network": "mainnet"}
    body.update(overrides)
    return body


def swap_body(**overrides):
    body = {
        "quote": make_quote().to_dict(),
        "walletId": "wallet-1",
        "fromAccountId": "acct-eth",
        "toAccountId": "acct-pusdc",
    }
    body.update(overrides)
    return body


class TestHealth:
    def test_healthz(self, client):
        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["swaps"]["store"] == "InMemorySwapStore"

    def test_request_id_header(self, client):
        response = client.get("/healthz", headers={"x-request-id": "req-42"})

        assert response.headers["x-request-id"] == "req-42"


class TestQuote:
    def test_quote(self, client, lifi):
        response = client.post("/swaps/quote", json=quote_body())

        assert response.status_code == 200
        quote = response.json()["quote"]
        assert quote["fromAmount"] == "1000000000000000000"
        assert quote["toAmount"] == str(3_000_000_000 * 10 ** 18)
        assert len(lifi.calls("/quote")) == 1

    def test_unsupported_asset_is_400(self, client, lifi):
        response = client.post("/swaps/quote", json=quote_body(to="DOGE"))

        assert response.status_code == 400
        assert lifi.calls("/quote") == []

    def test_unknown_network_is_400(self, client):
        response = client.post("/swaps/quote", json=quote_body(network="devnet"))

        assert response.status_code == 400

    def test_quote_unavailable_is_502(self, client, lifi):
        lifi.fail_paths["/quote"] = 503

        response = client.post("/swaps/quote", json=quote_body())

        assert response.status_code == 502


class TestSwaps:
    def test_create_with_approval_then_get(self, client, store):
        response = client.post("/swaps", json=swap_body(approveTxHash="0xapprove"))

        assert response.status_code == 200
        swap = response.json()["swap"]
        assert swap["status"] == SwapStatus.AWAITING_APPROVAL_CONFIRMATION.value
        assert response.json()["display"]["label"] == "Swapping ETH"

        fetched = client.get(f"/swaps/{swap['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["swap"]["id"] == swap["id"]
        assert fetched.json()["display"]["step"] == 1

    def test_create_submits_without_approval(self, client, wallet):
        response = client.post("/swaps", json=swap_body())

        assert response.status_code == 200
        swap = response.json()["swap"]
        assert swap["status"] == SwapStatus.AWAITING_SETTLEMENT_CONFIRMATION.value
        assert swap["swapTxHash"] == "0xswap1"
        assert len(wallet.client.sent) == 1

    def test_no_route_is_404(self, client, lifi):
        lifi.routes = []

        response = client.post("/swaps", json=swap_body())

        assert response.status_code == 404

    def test_submission_failure_is_502(self, client, lifi):
        lifi.fail_paths["/advanced/stepTransaction"] = 500

        response = client.post("/swaps", json=swap_body())

        assert response.status_code == 502

    def test_malformed_quote_is_400(self, client):
        response = client.post("/swaps", json=swap_body(quote={"from": "ETH"}))

        assert response.status_code == 400

    def test_unknown_swap_is_404(self, client):
        response = client.get("/swaps/does-not-exist")

        assert response.status_code == 404


class TestWithoutCoordinator:
    def test_quotes_served_and_swaps_unavailable(self, lifi):
        app = create_app()
        app.state.resolver = QuoteResolver(provider=lifi.provider())

        with TestClient(app) as client:
            assert client.post("/swaps/quote", json=quote_body()).status_code == 200
            assert client.post("/swaps", json=swap_body()).status_code == 503
            assert client.get("/healthz").json()["status"] == "degraded"
