"""
Route Executor

Fetches candidate routes for an accepted quote and submits the chosen one
to the source chain through the sender's chain client. A record that
already carries a partially executed route resumes that route instead of
fetching a new one.
"""

import logging
from typing import Any, Dict, Optional, Union

import httpx

from ...providers.lifi import LifiError, LifiProvider, LifiRouteExecutionError, RouteResult
from .assets import format_address, get_asset, resolve_chain_id, token_address
from .errors import ErrorContext, NoRouteError, SubmissionError
from .interfaces import WalletProvider
from .models import Quote, SubmissionResult, SwapRecord


class RouteExecutor:
    """Submits swaps; the routing service's own ranking picks the route."""

    def __init__(
        self,
        wallet: WalletProvider,
        *,
        provider: Optional[LifiProvider] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.wallet = wallet
        self.provider = provider or LifiProvider()
        self.logger = logger or logging.getLogger(__name__)

    async def build_routes_request(
        self,
        swap: Union[Quote, SwapRecord],
        network: str,
        wallet_id: str,
    ) -> Dict[str, Any]:
        """Routes request body for ``swap``, sender address resolved and formatted."""
        raw_address = await self.wallet.get_swap_address(
            network, wallet_id, swap.from_asset, swap.from_account_id
        )
        # Formatted with the destination chain's address rules
        from_address = format_address(get_asset(swap.to_asset).chain, raw_address)

        return {
            "fromChainId": resolve_chain_id(swap.from_asset, network),
            "fromAmount": str(swap.from_amount),
            "fromTokenAddress": token_address(swap.from_asset, network),
            "fromAddress": from_address,
            "toChainId": resolve_chain_id(swap.to_asset, network),
            "toTokenAddress": token_address(swap.to_asset, network),
        }

    async def select_route(
        self,
        swap: Union[Quote, SwapRecord],
        network: str,
        wallet_id: str,
    ) -> RouteResult:
        """First route returned for ``swap``."""
        swap_id = getattr(swap, "id", None)
        request = await self.build_routes_request(swap, network, wallet_id)

        try:
            response = await self.provider.get_routes(request)
        except (httpx.HTTPError, LifiError) as exc:
            raise SubmissionError(
                f"Could not fetch routes: {exc}",
                ErrorContext(
                    category=SubmissionError.category,
                    recoverable=True,
                    swap_id=swap_id,
                    asset=swap.from_asset,
                    network=network,
                ),
            ) from exc

        if not response.routes:
            raise NoRouteError(
                f"No route from {swap.from_asset} to {swap.to_asset} on {network}",
                ErrorContext(
                    category=NoRouteError.category,
                    swap_id=swap_id,
                    asset=swap.from_asset,
                    network=network,
                    details={"request": request},
                ),
            )

        self.logger.info(
            "Selected route %s for %s→%s (%d candidates, %d steps)",
            response.routes[0].id,
            swap.from_asset,
            swap.to_asset,
            len(response.routes),
            len(response.routes[0].steps),
        )
        return response.routes[0]

    async def submit(
        self,
        swap: Union[Quote, SwapRecord],
        network: str,
        wallet_id: str,
    ) -> SubmissionResult:
        """
        Execute the route for ``swap``.

        Args:
            swap: Accepted quote, or a record that has not finished submission
            network: mainnet or testnet
            wallet_id: Wallet owning the source account

        Returns:
            SubmissionResult with the executed route and source tx hash

        Raises:
            NoRouteError: The routing service returned no route
            SubmissionError: Fetching or executing the route failed; carries
                the partially executed route when some steps were already sent
        """
        swap_id = getattr(swap, "id", None)
        stored_route = swap.route if isinstance(swap, SwapRecord) else None
        if stored_route is not None:
            self.logger.info("Resuming route %s for swap %s", stored_route.id, swap_id)
            route = stored_route
        else:
            route = await self.select_route(swap, network, wallet_id)

        client = self.wallet.get_client(network, wallet_id, swap.from_asset, swap.from_account_id)
        try:
            executed = await self.provider.execute_route(client, route)
        except Exception as exc:
            self.logger.error("Route %s submission failed: %s", route.id, exc)
            raise SubmissionError(
                f"Route submission failed: {exc}",
                ErrorContext(
                    category=SubmissionError.category,
                    recoverable=True,
                    swap_id=swap_id,
                    asset=swap.from_asset,
                    network=network,
                    details={"route_id": route.id},
                ),
                route=exc.route if isinstance(exc, LifiRouteExecutionError) else None,
            ) from exc

        return SubmissionResult(route=executed, source_tx_hash=executed.source_tx_hash)
