"""
Swap Lifecycle Module

Quotes, submits and tracks cross-chain swaps through the LI.FI routing
service, persisting each record so in-flight swaps survive restarts.
"""

from .coordinator import DriveState, SwapCoordinator
from .errors import (
    ErrorCategory,
    ErrorContext,
    FatalProbeError,
    InvalidTransitionError,
    NoRouteError,
    PollTimeoutError,
    QuoteUnavailableError,
    StaleRecordError,
    SubmissionError,
    SwapError,
    SwapNotFoundError,
    TransientProbeError,
    TxNotFoundError,
    UnsupportedAssetError,
)
from .executor import RouteExecutor
from .gate import ExclusiveAccessGate, GateKey
from .interfaces import ChainClient, LoggingNotifier, Notifier, WalletProvider
from .models import Quote, SubmissionResult, SwapNotification, SwapRecord, SwapStatus
from .persistence import (
    ConvexSwapStore,
    InMemorySwapStore,
    JsonFileSwapStore,
    SwapStore,
    SwapStoreError,
    create_swap_store,
)
from .poller import ConfirmationPoller, OutcomeKind, PollHandle, ProbeOutcome
from .quotes import QuoteResolver
from .state_machine import SwapStateMachine

__all__ = [
    # Coordinator
    "SwapCoordinator",
    "DriveState",
    # Components
    "QuoteResolver",
    "RouteExecutor",
    "ConfirmationPoller",
    "PollHandle",
    "ProbeOutcome",
    "OutcomeKind",
    "SwapStateMachine",
    "ExclusiveAccessGate",
    "GateKey",
    # Models
    "Quote",
    "SwapRecord",
    "SwapStatus",
    "SubmissionResult",
    "SwapNotification",
    # Collaborators
    "ChainClient",
    "WalletProvider",
    "Notifier",
    "LoggingNotifier",
    # Persistence
    "SwapStore",
    "InMemorySwapStore",
    "JsonFileSwapStore",
    "ConvexSwapStore",
    "SwapStoreError",
    "create_swap_store",
    # Errors
    "SwapError",
    "ErrorCategory",
    "ErrorContext",
    "UnsupportedAssetError",
    "QuoteUnavailableError",
    "NoRouteError",
    "SubmissionError",
    "TxNotFoundError",
    "TransientProbeError",
    "FatalProbeError",
    "PollTimeoutError",
    "InvalidTransitionError",
    "StaleRecordError",
    "SwapNotFoundError",
]
