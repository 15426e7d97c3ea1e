"""User-facing display metadata for each swap status."""

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, localcontext
from typing import Any, Callable, Dict, Optional, Tuple

from .assets import get_asset, unit_to_currency
from .models import SwapNotification, SwapRecord, SwapStatus

TIMELINE_STEPS: Tuple[str, ...] = ("APPROVE", "SWAP")
TOTAL_STEPS = 3

TX_TYPES: Dict[str, str] = {"SWAP": "SWAP"}
FROM_TX_TYPE: Optional[str] = TX_TYPES["SWAP"]
TO_TX_TYPE: Optional[str] = None

PRETTY_DECIMALS = 6


def pretty_balance(amount: int, asset: str) -> str:
    """Base units of ``asset`` as a short display string (at most 6 decimals)."""
    value = unit_to_currency(get_asset(asset), amount)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + PRETTY_DECIMALS + 2)
        value = value.quantize(Decimal(1).scaleb(-PRETTY_DECIMALS), rounding=ROUND_DOWN)
    return decimal_to_str(value)


def decimal_to_str(value: Decimal) -> str:
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


@dataclass(frozen=True)
class StatusDisplay:
    step: int
    label: str
    filter_status: str  # PENDING | COMPLETED | REFUNDED
    message: Callable[[SwapRecord], str]

    def render(self, record: SwapRecord) -> Dict[str, Any]:
        return {
            "step": self.step,
            "totalSteps": TOTAL_STEPS,
            "label": self.label.format(**{"from": record.from_asset, "to": record.to_asset}),
            "filterStatus": self.filter_status,
            "message": self.message(record),
        }

    def notification(self, record: SwapRecord) -> SwapNotification:
        rendered = self.render(record)
        return SwapNotification(step=self.step, label=rendered["label"], message=rendered["message"])


def _completed_message(record: SwapRecord) -> str:
    return f"Swap completed, {pretty_balance(record.to_amount, record.to_asset)} {record.to_asset} ready to use"


STATUS_DISPLAY: Dict[SwapStatus, StatusDisplay] = {
    SwapStatus.AWAITING_APPROVAL_CONFIRMATION: StatusDisplay(
        step=1,
        label="Swapping {from}",
        filter_status="PENDING",
        message=lambda record: "Engaging LiFi",
    ),
    SwapStatus.APPROVAL_CONFIRMED: StatusDisplay(
        step=2,
        label="Swapping {to}",
        filter_status="PENDING",
        message=lambda record: "Engaging LiFi",
    ),
    SwapStatus.AWAITING_SETTLEMENT_CONFIRMATION: StatusDisplay(
        step=2,
        label="Swapping {to}",
        filter_status="PENDING",
        message=lambda record: "Waiting for LiFi to settle the swap",
    ),
    SwapStatus.SUCCESS: StatusDisplay(
        step=3,
        label="Completed",
        filter_status="COMPLETED",
        message=_completed_message,
    ),
    SwapStatus.FAILED: StatusDisplay(
        step=3,
        label="Swap Failed",
        filter_status="REFUNDED",
        message=lambda record: "Swap failed",
    ),
}

_missing = set(SwapStatus) - set(STATUS_DISPLAY)
if _missing:
    raise RuntimeError(f"No display entry for swap statuses: {sorted(s.value for s in _missing)}")


def display_for(record: SwapRecord) -> Dict[str, Any]:
    return STATUS_DISPLAY[record.status].render(record)


def notification_for(record: SwapRecord) -> SwapNotification:
    return STATUS_DISPLAY[record.status].notification(record)
