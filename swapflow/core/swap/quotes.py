"""QuoteResolver turns a (from, to, amount, network) request into a base-unit quote."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

from ...providers.lifi import LifiError, LifiProvider
from .assets import currency_to_unit, get_asset, resolve_chain_id, token_address
from .errors import QuoteUnavailableError
from .models import Quote


class QuoteResolver:
    """Queries the routing service for conversion quotes."""

    def __init__(
        self,
        *,
        provider: Optional[LifiProvider] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._provider = provider or LifiProvider()
        self._logger = logger or logging.getLogger(__name__)

    async def get_quote(
        self,
        from_asset: str,
        to_asset: str,
        amount: Union[Decimal, int, str],
        network: str,
        *,
        from_address: str = "",
    ) -> Quote:
        """Quote ``amount`` (display units of ``from_asset``) into ``to_asset``.

        Registry lookups happen before any network call, so unsupported
        assets fail fast with ``UnsupportedAssetError``.
        """

        from_chain_id = resolve_chain_id(from_asset, network)
        to_chain_id = resolve_chain_id(to_asset, network)
        from_info = get_asset(from_asset, network)
        value = _positive_amount(amount)

        from_amount = currency_to_unit(from_info, value)
        if from_amount <= 0:
            raise ValueError(f"Amount {amount} is below one base unit of {from_asset}")

        try:
            payload = await self._provider.get_quote(
                from_chain=from_chain_id,
                to_chain=to_chain_id,
                from_token=token_address(from_asset, network),
                to_token=token_address(to_asset, network),
                from_amount=from_amount,
                from_address=from_address,
            )
        except httpx.HTTPStatusError as exc:
            self._logger.warning(
                "LI.FI quote error (%s) %s→%s on %s: %s",
                exc.response.status_code,
                from_asset,
                to_asset,
                network,
                (exc.response.text or "")[:200],
            )
            raise QuoteUnavailableError(
                f"Quote request failed with status {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, LifiError) as exc:
            self._logger.warning("LI.FI quote unavailable %s→%s on %s: %s", from_asset, to_asset, network, exc)
            raise QuoteUnavailableError(f"Quote unavailable: {exc}") from exc

        # Scaled with the source asset's decimals, not the destination's
        try:
            to_amount = currency_to_unit(from_info, payload.estimate.to_amount)
        except ValueError as exc:
            raise QuoteUnavailableError(f"Quote returned an unusable toAmount: {exc}") from exc

        estimate = payload.estimate.model_dump(by_alias=True, exclude_none=True)
        return Quote(
            from_asset=from_asset,
            to_asset=to_asset,
            network=network,
            from_chain_id=from_chain_id,
            to_chain_id=to_chain_id,
            from_amount=from_amount,
            to_amount=to_amount,
            estimate=estimate,
            fee=_fee_from_estimate(payload.estimate.fee_costs, payload.estimate.gas_costs),
        )

    async def get_min(self, from_asset: str, to_asset: str, network: str) -> int:
        """Minimum source amount in base units; the routing service enforces none."""
        for asset in (from_asset, to_asset):
            resolve_chain_id(asset, network)
        return 0

    async def get_supported_pairs(self) -> List[Tuple[str, str]]:
        """Pairs are decided per request by the aggregator, so none are listed up front."""
        return []

    async def close(self) -> None:
        await self._provider.close()


def _positive_amount(amount: Union[Decimal, int, str]) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid amount {amount!r}") from exc
    if not value.is_finite() or value <= 0:
        raise ValueError(f"Amount must be positive, got {amount!r}")
    return value


def _fee_from_estimate(
    fee_costs: List[Dict[str, Any]],
    gas_costs: List[Dict[str, Any]],
) -> Optional[Dict[str, Any]]:
    if not fee_costs and not gas_costs:
        return None
    return {"feeCosts": fee_costs, "gasCosts": gas_costs}
