"""
LI.FI Provider

Client and payload models for the LI.FI cross-chain routing API.
"""

from .client import (
    LifiError,
    LifiProvider,
    LifiResponseError,
    LifiRouteExecutionError,
    LifiStepFailedError,
)
from .models import (
    ExecutionProcess,
    ProcessType,
    QuoteEstimate,
    QuotePayload,
    RouteResult,
    RoutesResponse,
    RouteStep,
    SettlementStatus,
    StatusPayload,
    StepExecution,
)

__all__ = [
    # Models
    "ExecutionProcess",
    "ProcessType",
    "QuoteEstimate",
    "QuotePayload",
    "RouteResult",
    "RoutesResponse",
    "RouteStep",
    "SettlementStatus",
    "StatusPayload",
    "StepExecution",
    # Client
    "LifiProvider",
    "LifiError",
    "LifiResponseError",
    "LifiRouteExecutionError",
    "LifiStepFailedError",
]
