"""
Swap Lifecycle Models

Defines the swap statuses, the persisted swap record, and the quote a
record is created from.
"""

from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional
from uuid import uuid4

from ...providers.lifi.models import RouteResult


class SwapStatus(str, Enum):
    """Statuses a swap record moves through, in order."""

    AWAITING_APPROVAL_CONFIRMATION = "AWAITING_APPROVAL_CONFIRMATION"      # Approval tx submitted
    APPROVAL_CONFIRMED = "APPROVAL_CONFIRMED"                              # Approval mined, swap not sent
    AWAITING_SETTLEMENT_CONFIRMATION = "AWAITING_SETTLEMENT_CONFIRMATION"  # Swap sent, bridge in flight
    SUCCESS = "SUCCESS"                                                    # Settled on destination chain
    FAILED = "FAILED"                                                      # Routing service reported failure

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: FrozenSet[SwapStatus] = frozenset({SwapStatus.SUCCESS, SwapStatus.FAILED})

# Fields fixed at creation; updates touching them are rejected
IMMUTABLE_FIELDS: FrozenSet[str] = frozenset({
    "id",
    "from_asset",
    "to_asset",
    "from_amount",
    "to_amount",
    "fee",
    "network",
    "wallet_id",
    "start_time",
})


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Quote:
    """A conversion quote, amounts already in base units."""

    from_asset: str
    to_asset: str
    network: str
    from_chain_id: int
    to_chain_id: int
    from_amount: int
    to_amount: int
    estimate: Dict[str, Any] = field(default_factory=dict)
    fee: Optional[Dict[str, Any]] = None
    from_account_id: Optional[str] = None
    to_account_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_asset,
            "to": self.to_asset,
            "network": self.network,
            "fromChainId": self.from_chain_id,
            "toChainId": self.to_chain_id,
            "fromAmount": str(self.from_amount),
            "toAmount": str(self.to_amount),
            "estimate": self.estimate,
            "fee": self.fee,
            "fromAccountId": self.from_account_id,
            "toAccountId": self.to_account_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Quote":
        return cls(
            from_asset=data["from"],
            to_asset=data["to"],
            network=data["network"],
            from_chain_id=int(data["fromChainId"]),
            to_chain_id=int(data["toChainId"]),
            from_amount=int(data["fromAmount"]),
            to_amount=int(data["toAmount"]),
            estimate=data.get("estimate") or {},
            fee=data.get("fee"),
            from_account_id=data.get("fromAccountId"),
            to_account_id=data.get("toAccountId"),
        )


@dataclass
class SwapRecord:
    """Persistent state of one swap."""

    from_asset: str
    to_asset: str
    network: str
    wallet_id: str
    from_amount: int
    to_amount: int
    status: SwapStatus
    from_account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    from_chain_id: Optional[int] = None
    to_chain_id: Optional[int] = None
    fee: Optional[Dict[str, Any]] = None
    provider: str = "lifi"
    id: str = field(default_factory=lambda: str(uuid4()))
    start_time: int = field(default_factory=now_ms)
    end_time: Optional[int] = None

    # Execution artifacts
    approve_tx_hash: Optional[str] = None
    swap_tx_hash: Optional[str] = None
    route: Optional[RouteResult] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @classmethod
    def from_quote(
        cls,
        quote: Quote,
        *,
        wallet_id: str,
        network: Optional[str] = None,
        status: SwapStatus,
        from_account_id: Optional[str] = None,
        to_account_id: Optional[str] = None,
        approve_tx_hash: Optional[str] = None,
    ) -> "SwapRecord":
        return cls(
            from_asset=quote.from_asset,
            to_asset=quote.to_asset,
            network=network or quote.network,
            wallet_id=wallet_id,
            from_amount=quote.from_amount,
            to_amount=quote.to_amount,
            status=status,
            from_account_id=from_account_id or quote.from_account_id,
            to_account_id=to_account_id or quote.to_account_id,
            from_chain_id=quote.from_chain_id,
            to_chain_id=quote.to_chain_id,
            fee=quote.fee,
            approve_tx_hash=approve_tx_hash,
        )

    def with_updates(self, status: Optional[SwapStatus] = None, **fields: Any) -> "SwapRecord":
        """Copy of the record with ``status`` and ``fields`` applied."""
        frozen = IMMUTABLE_FIELDS.intersection(fields)
        if frozen:
            raise ValueError(f"Swap fields {sorted(frozen)} cannot change after creation")
        if status is not None:
            fields["status"] = status
        return dataclasses.replace(self, **fields)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "provider": self.provider,
            "network": self.network,
            "walletId": self.wallet_id,
            "from": self.from_asset,
            "to": self.to_asset,
            "fromAccountId": self.from_account_id,
            "toAccountId": self.to_account_id,
            "fromChainId": self.from_chain_id,
            "toChainId": self.to_chain_id,
            "fromAmount": str(self.from_amount),
            "toAmount": str(self.to_amount),
            "fee": self.fee,
            "status": self.status.value,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "approveTxHash": self.approve_tx_hash,
            "swapTxHash": self.swap_tx_hash,
            "route": self.route.model_dump(by_alias=True, exclude_none=True) if self.route else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SwapRecord":
        route = data.get("route")
        return cls(
            id=data["id"],
            provider=data.get("provider", "lifi"),
            network=data["network"],
            wallet_id=data["walletId"],
            from_asset=data["from"],
            to_asset=data["to"],
            from_account_id=data.get("fromAccountId"),
            to_account_id=data.get("toAccountId"),
            from_chain_id=data.get("fromChainId"),
            to_chain_id=data.get("toChainId"),
            from_amount=int(data["fromAmount"]),
            to_amount=int(data["toAmount"]),
            fee=data.get("fee"),
            status=SwapStatus(data["status"]),
            start_time=int(data["startTime"]),
            end_time=data.get("endTime"),
            approve_tx_hash=data.get("approveTxHash"),
            swap_tx_hash=data.get("swapTxHash"),
            route=RouteResult.model_validate(route) if route else None,
        )


@dataclass
class SubmissionResult:
    """What the route executor hands back after a successful submission."""

    route: RouteResult
    source_tx_hash: Optional[str]
    status: SwapStatus = SwapStatus.AWAITING_SETTLEMENT_CONFIRMATION


@dataclass(frozen=True)
class SwapNotification:
    """User-facing notification emitted for a status."""

    step: int
    label: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"step": self.step, "label": self.label, "message": self.message}
