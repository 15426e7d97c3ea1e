"""Fakes shared by the swap lifecycle tests."""

import json
from typing import Any, Dict, List, Optional

import httpx

from swapflow.core.swap import (
    ChainClient,
    Notifier,
    Quote,
    SwapNotification,
    SwapRecord,
    SwapStatus,
    WalletProvider,
)
from swapflow.providers.lifi import LifiProvider, RouteResult

LIFI_BASE_URL = "https://li.test/v1"
SENDER = "0x52908400098527886e0f7030069857d2e4169ee7"


class FakeChainClient(ChainClient):
    """Chain client answering from a scripted list of lookups.

    Each entry is either a transaction dict or an exception to raise; the
    last entry repeats once the script runs out.
    """

    def __init__(self, lookups: Optional[List[Any]] = None):
        self.lookups = list(lookups or [])
        self.lookup_calls: List[str] = []
        self.sent: List[Dict[str, Any]] = []

    async def get_transaction_by_hash(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        self.lookup_calls.append(tx_hash)
        entry = self.lookups.pop(0) if len(self.lookups) > 1 else self.lookups[0]
        if isinstance(entry, BaseException):
            raise entry
        return entry

    async def send_transaction(self, tx_request: Dict[str, Any]) -> str:
        self.sent.append(tx_request)
        return f"0xswap{len(self.sent)}"


class FakeWallet(WalletProvider):
    def __init__(self, client: Optional[FakeChainClient] = None, address: str = SENDER):
        self.client = client or FakeChainClient([{"confirmations": 0}])
        self.address = address
        self.balance_updates: List[Dict[str, Any]] = []

    async def get_swap_address(self, network, wallet_id, asset, account_id) -> str:
        return self.address

    def get_client(self, network, wallet_id, asset, account_id) -> ChainClient:
        return self.client

    async def update_balances(self, network, wallet_id, account_ids) -> None:
        self.balance_updates.append(
            {"network": network, "wallet_id": wallet_id, "account_ids": list(account_ids)}
        )


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.notifications: List[SwapNotification] = []
        self.statuses: List[SwapStatus] = []

    async def notify(self, record: SwapRecord, notification: SwapNotification) -> None:
        self.notifications.append(notification)
        self.statuses.append(record.status)


class FakeLifiService:
    """In-process stand-in for the LI.FI REST API, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.quote_to_amount = "3000000000"
        self.routes: List[Dict[str, Any]] = [route_payload()]
        self.statuses: List[str] = ["DONE"]
        self.requests: List[httpx.Request] = []
        self.fail_paths: Dict[str, int] = {}

    def calls(self, path: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.path.endswith(path)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path[len("/v1"):]

        if path in self.fail_paths:
            return httpx.Response(self.fail_paths[path], json={"message": "upstream error"})

        if path == "/quote":
            return httpx.Response(
                200,
                json={
                    "id": "quote-1",
                    "type": "lifi",
                    "tool": "stargate",
                    "estimate": {
                        "toAmount": self.quote_to_amount,
                        "toAmountMin": self.quote_to_amount,
                        "fromAmount": request.url.params.get("fromAmount"),
                        "feeCosts": [{"name": "LIFI fee", "amount": "100"}],
                        "gasCosts": [],
                    },
                },
            )
        if path == "/advanced/routes":
            return httpx.Response(200, json={"routes": self.routes})
        if path == "/advanced/stepTransaction":
            step = json.loads(request.content)
            step["transactionRequest"] = {"to": "0xrouter", "data": "0xdeadbeef", "value": "0x0"}
            return httpx.Response(200, json=step)
        if path == "/status":
            status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            return httpx.Response(200, json={"status": status, "tool": request.url.params.get("bridge")})
        return httpx.Response(404, json={"message": f"unknown path {path}"})

    def provider(self) -> LifiProvider:
        return LifiProvider(
            base_url=LIFI_BASE_URL,
            api_key="",
            integrator="swapflow-tests",
            step_poll_interval_s=0.01,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(self.handler)),
        )


def route_payload(
    route_id: str = "route-1",
    from_chain: int = 1,
    to_chain: int = 137,
    tool: str = "stargate",
) -> Dict[str, Any]:
    return {
        "id": route_id,
        "fromChainId": from_chain,
        "toChainId": to_chain,
        "fromAmount": "1000000000000000000",
        "toAmount": "3000000000",
        "fromAddress": SENDER,
        "steps": [
            {
                "id": f"{route_id}-step-1",
                "type": "lifi",
                "tool": tool,
                "action": {"fromChainId": from_chain, "toChainId": to_chain},
                "estimate": {"toAmount": "3000000000"},
            }
        ],
    }


def swap_then_bridge_payload(route_id: str = "route-2") -> Dict[str, Any]:
    """Two-step route: a same-chain swap on chain 1, then a bridge to chain 137."""
    payload = route_payload(route_id=route_id)
    payload["steps"] = [
        {
            "id": f"{route_id}-step-1",
            "type": "swap",
            "tool": "uniswap",
            "action": {"fromChainId": 1, "toChainId": 1},
            "estimate": {"toAmount": "3000000000"},
        },
        {
            "id": f"{route_id}-step-2",
            "type": "cross",
            "tool": "stargate",
            "action": {"fromChainId": 1, "toChainId": 137},
            "estimate": {"toAmount": "3000000000"},
        },
    ]
    return payload


def executed_route(tx_hash: str = "0xswap1", **kwargs: Any) -> RouteResult:
    payload = route_payload(**kwargs)
    payload["steps"][0]["execution"] = {
        "status": "PENDING",
        "process": [{"type": "CROSS_CHAIN", "status": "PENDING", "txHash": tx_hash}],
    }
    return RouteResult.model_validate(payload)


def make_quote(from_asset: str = "ETH", to_asset: str = "PUSDC", network: str = "mainnet") -> Quote:
    return Quote(
        from_asset=from_asset,
        to_asset=to_asset,
        network=network,
        from_chain_id=1,
        to_chain_id=137,
        from_amount=10 ** 18,
        to_amount=3000 * 10 ** 6,
    )


def make_record(status: SwapStatus, **overrides: Any) -> SwapRecord:
    fields: Dict[str, Any] = dict(
        from_asset="ETH",
        to_asset="PUSDC",
        network="mainnet",
        wallet_id="wallet-1",
        from_amount=10 ** 18,
        to_amount=3000 * 10 ** 6,
        status=status,
        from_account_id="acct-eth",
        to_account_id="acct-pusdc",
        from_chain_id=1,
        to_chain_id=137,
    )
    fields.update(overrides)
    return SwapRecord(**fields)

