"""
Swap Error Taxonomy

Every failure the swap lifecycle can surface is one of these types.
Errors are classified as recoverable (a later attempt may succeed) or
unrecoverable (the caller has to change something first).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import httpx


class ErrorCategory(str, Enum):
    """Categories of swap errors."""

    REGISTRY = "registry"          # Asset/network not registered
    QUOTE = "quote"                # Routing service could not quote
    ROUTE = "route"                # No executable route
    SUBMISSION = "submission"      # On-chain submission failed
    PROBE = "probe"                # Confirmation probe failed
    STATE = "state"                # Illegal lifecycle transition
    STORAGE = "storage"            # Record store problem


@dataclass
class ErrorContext:
    """Additional context about a swap error."""

    category: ErrorCategory
    recoverable: bool = False
    swap_id: Optional[str] = None
    asset: Optional[str] = None
    network: Optional[str] = None
    tx_hash: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class SwapError(Exception):
    """Base class for all swap lifecycle errors."""

    category: ErrorCategory = ErrorCategory.STATE
    recoverable: bool = False

    def __init__(self, message: str, context: Optional[ErrorContext] = None):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext(
            category=self.category,
            recoverable=self.recoverable,
        )


class UnsupportedAssetError(SwapError):
    """Asset or asset/network combination is not in the static registry."""

    category = ErrorCategory.REGISTRY

    def __init__(self, asset: str, network: Optional[str] = None):
        where = f" on {network}" if network else ""
        super().__init__(
            f"Asset {asset!r} is not supported{where}",
            ErrorContext(category=self.category, asset=asset, network=network),
        )
        self.asset = asset
        self.network = network


class QuoteUnavailableError(SwapError):
    """Routing service unreachable or returned a malformed quote."""

    category = ErrorCategory.QUOTE
    recoverable = True


class NoRouteError(SwapError):
    """Routing service returned no route for the requested conversion."""

    category = ErrorCategory.ROUTE


class SubmissionError(SwapError):
    """Submitting the route's transactions to the source chain failed.

    The record keeps its pre-submission status, so the submission can be
    attempted again from the same state.
    """

    category = ErrorCategory.SUBMISSION
    recoverable = True

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        route: Any = None,
    ):
        super().__init__(message, context)
        # Partially executed route (RouteResult) when some steps were already sent
        self.route = route


class TxNotFoundError(Exception):
    """Raised by chain clients when a transaction hash is unknown to the node."""

    def __init__(self, tx_hash: str):
        super().__init__(f"Transaction {tx_hash} not found")
        self.tx_hash = tx_hash


class TransientProbeError(SwapError):
    """Expected polling noise: tx not yet propagated, status not final, network blip."""

    category = ErrorCategory.PROBE
    recoverable = True


class FatalProbeError(SwapError):
    """Unexpected probe failure; polling for the record stops."""

    category = ErrorCategory.PROBE


class PollTimeoutError(SwapError):
    """A polling round ran past its configured timeout without a terminal outcome."""

    category = ErrorCategory.PROBE
    recoverable = True


class InvalidTransitionError(SwapError):
    """Requested status change is not an edge of the lifecycle graph."""

    category = ErrorCategory.STATE

    def __init__(self, from_status: Any, to_status: Any, swap_id: Optional[str] = None):
        super().__init__(
            f"Invalid swap transition {getattr(from_status, 'value', from_status)} -> "
            f"{getattr(to_status, 'value', to_status)}",
            ErrorContext(category=self.category, swap_id=swap_id),
        )
        self.from_status = from_status
        self.to_status = to_status


class StaleRecordError(SwapError):
    """A conditional write found the record in a different status than expected."""

    category = ErrorCategory.STATE

    def __init__(self, swap_id: str, expected_status: Any, actual_status: Any = None):
        super().__init__(
            f"Swap {swap_id} is {getattr(actual_status, 'value', actual_status)}, "
            f"expected {getattr(expected_status, 'value', expected_status)}",
            ErrorContext(category=self.category, swap_id=swap_id),
        )
        self.swap_id = swap_id
        self.expected_status = expected_status
        self.actual_status = actual_status


class SwapNotFoundError(SwapError):
    """No record with the given id exists in the store."""

    category = ErrorCategory.STORAGE

    def __init__(self, swap_id: str):
        super().__init__(
            f"Swap {swap_id} not found",
            ErrorContext(category=self.category, swap_id=swap_id),
        )
        self.swap_id = swap_id


def is_transient_network_error(error: BaseException) -> bool:
    """True for routing/chain API failures worth retrying on the next poll."""

    if isinstance(error, TransientProbeError):
        return True
    if isinstance(error, (httpx.TransportError, httpx.TimeoutException)):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or status >= 500 or status == 404
    return False
