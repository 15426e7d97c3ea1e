from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from ..config import settings
from ..core.swap import (
    NoRouteError,
    Quote,
    QuoteResolver,
    QuoteUnavailableError,
    SubmissionError,
    SwapCoordinator,
    SwapNotFoundError,
    UnsupportedAssetError,
)
from ..core.swap.assets import NETWORKS

router = APIRouter(prefix="/swaps")


class SwapQuoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_asset: str = Field(..., alias="from", description="Source asset symbol, e.g. ETH")
    to_asset: str = Field(..., alias="to", description="Destination asset symbol, e.g. USDC")
    amount: str = Field(..., description="Amount in display units of the source asset")
    network: Optional[str] = Field(default=None, description="mainnet or testnet")
    fromAddress: str = Field(default="", description="Optional sender address for a more accurate quote")


class NewSwapRequest(BaseModel):
    quote: Dict[str, Any] = Field(..., description="Quote as returned by POST /swaps/quote")
    walletId: str = Field(..., description="Wallet owning the source account")
    network: Optional[str] = Field(default=None, description="Defaults to the quote's network")
    fromAccountId: Optional[str] = None
    toAccountId: Optional[str] = None
    approveTxHash: Optional[str] = Field(
        default=None,
        description="Token approval tx; when set the swap waits for it to confirm before submitting",
    )


def _coordinator(request: Request) -> SwapCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Swap coordinator is not configured")
    return coordinator


def _resolver(request: Request) -> QuoteResolver:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is not None:
        return coordinator.resolver
    return request.app.state.resolver


def _network(network: Optional[str], fallback: Optional[str] = None) -> str:
    value = (network or fallback or settings.default_network).lower()
    if value not in NETWORKS:
        raise HTTPException(status_code=400, detail=f"Unknown network {value!r}; expected one of {list(NETWORKS)}")
    return value


@router.post("/quote")
async def swap_quote(payload: SwapQuoteRequest, request: Request) -> Dict[str, Any]:
    resolver = _resolver(request)
    network = _network(payload.network)
    try:
        quote = await resolver.get_quote(
            payload.from_asset.upper(),
            payload.to_asset.upper(),
            payload.amount,
            network,
            from_address=payload.fromAddress,
        )
    except UnsupportedAssetError as exc:
        raise HTTPException(status_code=400, detail=exc.message)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except QuoteUnavailableError as exc:
        raise HTTPException(status_code=502, detail=exc.message)
    return {"success": True, "quote": quote.to_dict()}


@router.post("")
async def create_swap(payload: NewSwapRequest, request: Request) -> Dict[str, Any]:
    coordinator = _coordinator(request)
    try:
        quote = Quote.from_dict(payload.quote)
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Malformed quote: {exc}")
    network = _network(payload.network, quote.network)

    try:
        record = await coordinator.new_swap(
            quote,
            network,
            payload.walletId,
            from_account_id=payload.fromAccountId,
            to_account_id=payload.toAccountId,
            approve_tx_hash=payload.approveTxHash,
        )
    except UnsupportedAssetError as exc:
        raise HTTPException(status_code=400, detail=exc.message)
    except NoRouteError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    except SubmissionError as exc:
        raise HTTPException(status_code=502, detail=exc.message)

    return {
        "success": True,
        "swap": record.to_dict(),
        "display": coordinator.status_display(record),
    }


@router.get("/{swap_id}")
async def get_swap(swap_id: str, request: Request) -> Dict[str, Any]:
    structlog.contextvars.bind_contextvars(swap_id=swap_id)
    coordinator = _coordinator(request)
    try:
        record = await coordinator.get_swap(swap_id)
    except SwapNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)

    drive = coordinator.drive_state(swap_id)
    return {
        "success": True,
        "swap": record.to_dict(),
        "display": coordinator.status_display(record),
        "drive": drive.to_dict() if drive else None,
    }
