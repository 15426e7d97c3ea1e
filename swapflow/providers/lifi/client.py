"""Async client for the LI.FI routing API."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

import httpx
from pydantic import ValidationError

from ...config import settings
from .models import (
    ExecutionProcess,
    ProcessType,
    QuotePayload,
    RouteResult,
    RoutesResponse,
    RouteStep,
    SettlementStatus,
    StatusPayload,
    StepExecution,
)

if TYPE_CHECKING:  # pragma: no cover
    from ...core.swap.interfaces import ChainClient


class LifiError(Exception):
    """Base exception for LI.FI client errors."""


class LifiResponseError(LifiError):
    """LI.FI answered, but not with a payload we can use."""


class LifiStepFailedError(LifiError):
    """An intermediate step of a multi-step route failed to settle."""


class LifiRouteExecutionError(LifiError):
    """Route execution stopped part-way through; ``route`` carries the sent steps."""

    def __init__(self, message: str, route: RouteResult):
        super().__init__(message)
        self.route = route


class LifiProvider:
    """Thin wrapper around https://li.quest/v1 endpoints.

    Besides the REST calls, ``execute_route`` mirrors what the LI.FI SDK does
    when executing a route: fetch each step's transaction request, hand it to
    the sender's chain client, and wait for intermediate steps to settle
    before submitting the next one.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        integrator: Optional[str] = None,
        timeout_s: Optional[float] = None,
        step_poll_interval_s: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.base_url = (base_url or settings.lifi_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.lifi_api_key
        self.integrator = integrator or settings.lifi_integrator
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self.step_poll_interval_s = step_poll_interval_s
        self._client = http_client
        self._owns_client = http_client is None
        self._logger = logger or logging.getLogger(__name__)

    def _headers(self) -> Dict[str, str]:
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": "SwapflowLifiClient/2025-10",
            "x-lifi-integrator": self.integrator,
        }
        if self.api_key:
            headers["x-lifi-api-key"] = self.api_key
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout_s)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        client = await self._get_client()
        response = await client.request(
            method,
            f"{self.base_url}{path}",
            params=params,
            json=json,
            headers=self._headers(),
        )
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as exc:
            raise LifiResponseError(f"LI.FI {path} returned a non-JSON body") from exc

    async def get_quote(
        self,
        *,
        from_chain: Union[int, str],
        to_chain: Union[int, str],
        from_token: str,
        to_token: str,
        from_amount: Union[int, str],
        from_address: str = "",
    ) -> QuotePayload:
        """Request a single-step quote (``GET /quote``)."""

        data = await self._request(
            "GET",
            "/quote",
            params={
                "fromChain": from_chain,
                "toChain": to_chain,
                "fromToken": from_token,
                "toToken": to_token,
                "fromAmount": str(from_amount),
                "fromAddress": from_address,
                "integrator": self.integrator,
            },
        )
        return _parse(QuotePayload, data, "/quote")

    async def get_status(
        self,
        *,
        bridge: Optional[str],
        from_chain: Union[int, str],
        to_chain: Union[int, str],
        tx_hash: str,
    ) -> StatusPayload:
        """Settlement status of a cross-chain transfer (``GET /status``)."""

        params: Dict[str, Any] = {
            "fromChain": from_chain,
            "toChain": to_chain,
            "txHash": tx_hash,
        }
        if bridge:
            params["bridge"] = bridge
        data = await self._request("GET", "/status", params=params)
        return _parse(StatusPayload, data, "/status")

    async def get_routes(self, request: Dict[str, Any]) -> RoutesResponse:
        """Candidate routes, best first (``POST /advanced/routes``).

        ``request`` follows the routes request schema: fromChainId, fromAmount,
        fromTokenAddress, fromAddress, toChainId, toTokenAddress.
        """

        body = dict(request)
        body.setdefault("options", {"integrator": self.integrator})
        data = await self._request("POST", "/advanced/routes", json=body)
        return _parse(RoutesResponse, data, "/advanced/routes")

    async def get_step_transaction(self, step: RouteStep) -> RouteStep:
        """Populate a step's ``transactionRequest`` (``POST /advanced/stepTransaction``)."""

        data = await self._request(
            "POST",
            "/advanced/stepTransaction",
            json=step.model_dump(by_alias=True, exclude_none=True),
        )
        return _parse(RouteStep, data, "/advanced/stepTransaction")

    async def execute_route(self, client: "ChainClient", route: RouteResult) -> RouteResult:
        """Submit every step of ``route`` through ``client`` and return the executed route.

        Steps already carrying a transaction hash are skipped, so a partially
        executed route can be handed back in.

        Raises:
            LifiRouteExecutionError: A later step failed after earlier steps
                were sent; ``route`` on the error holds the steps sent so far
        """

        executed_steps: List[RouteStep] = []
        try:
            for index, step in enumerate(route.steps):
                if step.tx_hash:
                    executed_steps.append(step)
                    continue
                if index > 0:
                    await self._wait_for_step(route, executed_steps[-1])
                executed_steps.append(await self._submit_step(client, step))
        except Exception as exc:
            if not any(step.tx_hash for step in executed_steps):
                raise
            partial = route.model_copy(
                update={"steps": executed_steps + route.steps[len(executed_steps):]}
            )
            raise LifiRouteExecutionError(
                f"Route {route.id} stopped after {len(executed_steps)} of {len(route.steps)} steps: {exc}",
                partial,
            ) from exc

        return route.model_copy(update={"steps": executed_steps})

    async def _submit_step(self, client: "ChainClient", step: RouteStep) -> RouteStep:
        populated = await self.get_step_transaction(step)
        if not populated.transaction_request:
            raise LifiResponseError(f"Step {step.id} has no transaction request")

        tx_hash = await client.send_transaction(populated.transaction_request)
        self._logger.info("Submitted LI.FI step %s (%s): %s", step.id, step.tool, tx_hash)

        process_type = ProcessType.CROSS_CHAIN if populated.is_cross_chain else ProcessType.SWAP
        return populated.model_copy(
            update={
                "execution": StepExecution(
                    status="PENDING",
                    process=[
                        ExecutionProcess(
                            type=process_type.value,
                            status="PENDING",
                            tx_hash=tx_hash,
                        )
                    ],
                )
            }
        )

    async def _wait_for_step(self, route: RouteResult, step: RouteStep) -> None:
        while True:
            try:
                status = await self.get_status(
                    bridge=step.tool,
                    from_chain=step.action.get("fromChainId", route.from_chain_id),
                    to_chain=step.action.get("toChainId", route.to_chain_id),
                    tx_hash=step.tx_hash or "",
                )
            except (httpx.HTTPError, LifiResponseError) as exc:
                self._logger.warning("LI.FI status check for step %s failed: %s", step.id, exc)
            else:
                if status.status == SettlementStatus.DONE:
                    return
                if status.status == SettlementStatus.FAILED:
                    raise LifiStepFailedError(f"Step {step.id} failed: {status.substatus_message or status.substatus}")
            await asyncio.sleep(self.step_poll_interval_s)


def _parse(model: Any, data: Any, path: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise LifiResponseError(f"Malformed LI.FI {path} response: {exc.error_count()} error(s)") from exc
