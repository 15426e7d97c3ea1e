"""
Tests for the LI.FI routing client.
"""

import json

import httpx
import pytest

from swapflow.providers.lifi import (
    LifiProvider,
    LifiResponseError,
    LifiRouteExecutionError,
    LifiStepFailedError,
    RouteResult,
    SettlementStatus,
    StatusPayload,
)
from tests.helpers import FakeChainClient, route_payload, swap_then_bridge_payload


@pytest.mark.asyncio
async def test_get_routes_sends_integrator_option(lifi):
    provider = lifi.provider()

    response = await provider.get_routes({"fromChainId": 1, "toChainId": 137, "fromAmount": "1"})

    (request,) = lifi.calls("/advanced/routes")
    body = json.loads(request.content)
    assert body["options"] == {"integrator": "swapflow-tests"}
    assert [route.id for route in response.routes] == ["route-1"]
    assert response.routes[0].bridge == "stargate"


@pytest.mark.asyncio
async def test_get_status_passes_bridge_and_chains(lifi):
    lifi.statuses = ["PENDING"]
    provider = lifi.provider()

    status = await provider.get_status(bridge="stargate", from_chain=1, to_chain=137, tx_hash="0xabc")

    (request,) = lifi.calls("/status")
    assert dict(request.url.params) == {
        "bridge": "stargate",
        "fromChain": "1",
        "toChain": "137",
        "txHash": "0xabc",
    }
    assert status.status == SettlementStatus.PENDING


def test_unknown_settlement_status_is_pending():
    assert StatusPayload.model_validate({"status": "PARTIAL_REFUND"}).status == SettlementStatus.PENDING


@pytest.mark.asyncio
async def test_execute_route_submits_each_step(lifi):
    provider = lifi.provider()
    client = FakeChainClient()
    route = RouteResult.model_validate(route_payload())

    executed = await provider.execute_route(client, route)

    assert client.sent == [{"to": "0xrouter", "data": "0xdeadbeef", "value": "0x0"}]
    assert executed.source_tx_hash == "0xswap1"
    assert executed.is_executed
    assert route.source_tx_hash is None


@pytest.mark.asyncio
async def test_execute_route_skips_already_executed_steps(lifi):
    provider = lifi.provider()
    client = FakeChainClient()
    payload = route_payload()
    payload["steps"][0]["execution"] = {"process": [{"type": "SWAP", "txHash": "0xold"}]}

    executed = await provider.execute_route(client, RouteResult.model_validate(payload))

    assert client.sent == []
    assert executed.source_tx_hash == "0xold"
    assert lifi.calls("/advanced/stepTransaction") == []


@pytest.mark.asyncio
async def test_multi_step_route_waits_for_previous_step(lifi):
    lifi.statuses = ["PENDING", "DONE"]
    provider = lifi.provider()
    client = FakeChainClient()
    payload = route_payload()
    payload["steps"].append(
        {"id": "route-1-step-2", "tool": "uniswap", "action": {"fromChainId": 137, "toChainId": 137}}
    )

    executed = await provider.execute_route(client, RouteResult.model_validate(payload))

    assert len(client.sent) == 2
    assert len(lifi.calls("/status")) == 2
    assert [step.tx_hash for step in executed.steps] == ["0xswap1", "0xswap2"]


@pytest.mark.asyncio
async def test_multi_step_route_stops_when_previous_step_fails(lifi):
    lifi.statuses = ["FAILED"]
    provider = lifi.provider()
    client = FakeChainClient()
    payload = route_payload()
    payload["steps"].append({"id": "route-1-step-2", "tool": "uniswap"})

    with pytest.raises(LifiRouteExecutionError) as exc_info:
        await provider.execute_route(client, RouteResult.model_validate(payload))

    assert len(client.sent) == 1
    partial = exc_info.value.route
    assert partial.steps[0].tx_hash == "0xswap1"
    assert partial.steps[1].tx_hash is None
    assert isinstance(exc_info.value.__cause__, LifiStepFailedError)


@pytest.mark.asyncio
async def test_first_step_failure_is_not_wrapped(lifi):
    lifi.fail_paths["/advanced/stepTransaction"] = 500
    provider = lifi.provider()

    with pytest.raises(httpx.HTTPStatusError):
        await provider.execute_route(FakeChainClient(), RouteResult.model_validate(route_payload()))


def test_settlement_step_is_the_bridge_hop():
    route = RouteResult.model_validate(swap_then_bridge_payload())

    assert route.settlement_step.id == "route-2-step-2"
    assert route.bridge == "stargate"
    assert route.settlement_tx_hash is None


def test_settlement_step_falls_back_to_last_step():
    payload = route_payload(to_chain=1, tool="uniswap")

    route = RouteResult.model_validate(payload)

    assert route.settlement_step.id == "route-1-step-1"
    assert route.bridge == "uniswap"


@pytest.mark.asyncio
async def test_malformed_routes_response():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"routes": [{"id": "no-chains"}]})

    provider = LifiProvider(
        base_url="https://li.test/v1",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(LifiResponseError):
        await provider.get_routes({})


@pytest.mark.asyncio
async def test_close_leaves_injected_client_open(lifi):
    provider = lifi.provider()
    client = provider._client

    await provider.close()

    assert not client.is_closed
    await client.aclose()
