"""
Swap State Machine

Advances a swap record one lifecycle step at a time. Each status has one
handler; each transition is validated against the transition map,
persisted with a compare-and-set on the stored status, and then announced
through the notifier.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional, Tuple

from ...providers.lifi import LifiProvider, SettlementStatus
from .errors import (
    FatalProbeError,
    InvalidTransitionError,
    StaleRecordError,
    SubmissionError,
    SwapNotFoundError,
    TransientProbeError,
    TxNotFoundError,
    is_transient_network_error,
)
from .executor import RouteExecutor
from .gate import ExclusiveAccessGate, GateKey
from .interfaces import LoggingNotifier, Notifier, WalletProvider
from .models import SwapRecord, SwapStatus, now_ms
from .persistence import SwapStore
from .poller import ConfirmationPoller, OutcomeKind, ProbeOutcome
from .statuses import notification_for

StatusHandler = Callable[[SwapRecord, asyncio.Event], Awaitable[SwapRecord]]

# Handler method per status; checked for completeness below
HANDLERS: Dict[SwapStatus, str] = {
    SwapStatus.AWAITING_APPROVAL_CONFIRMATION: "_await_approval",
    SwapStatus.APPROVAL_CONFIRMED: "_submit_swap",
    SwapStatus.AWAITING_SETTLEMENT_CONFIRMATION: "_await_settlement",
    SwapStatus.SUCCESS: "_finished",
    SwapStatus.FAILED: "_finished",
}

_unhandled = set(SwapStatus) - set(HANDLERS)
if _unhandled:
    raise RuntimeError(f"No handler for swap statuses: {sorted(s.value for s in _unhandled)}")


class SwapStateMachine:
    """
    Drives swap records through their lifecycle.

    Features:
    - Validates transitions against the allowed transition map
    - Persists every transition before the next action is dispatched
    - Serializes submissions per (wallet, network, asset) through the gate
    - Polls approval and settlement confirmations on a fixed interval
    """

    TRANSITIONS: Dict[SwapStatus, FrozenSet[SwapStatus]] = {
        SwapStatus.AWAITING_APPROVAL_CONFIRMATION: frozenset({SwapStatus.APPROVAL_CONFIRMED}),
        SwapStatus.APPROVAL_CONFIRMED: frozenset({SwapStatus.AWAITING_SETTLEMENT_CONFIRMATION}),
        SwapStatus.AWAITING_SETTLEMENT_CONFIRMATION: frozenset({SwapStatus.SUCCESS, SwapStatus.FAILED}),
        SwapStatus.SUCCESS: frozenset(),
        SwapStatus.FAILED: frozenset(),
    }

    def __init__(
        self,
        *,
        store: SwapStore,
        wallet: WalletProvider,
        executor: RouteExecutor,
        provider: LifiProvider,
        gate: Optional[ExclusiveAccessGate] = None,
        notifier: Optional[Notifier] = None,
        poll_interval_seconds: float = 15.0,
        poll_timeout_seconds: Optional[float] = None,
        stop_event: Optional[asyncio.Event] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.wallet = wallet
        self.executor = executor
        self.provider = provider
        self.gate = gate or ExclusiveAccessGate()
        self.logger = logger or logging.getLogger(__name__)
        self.notifier = notifier or LoggingNotifier()
        self.poll_interval_seconds = poll_interval_seconds
        self.poll_timeout_seconds = poll_timeout_seconds
        self.stop_event = stop_event or asyncio.Event()

        self._handlers: Dict[SwapStatus, StatusHandler] = {
            status: getattr(self, name) for status, name in HANDLERS.items()
        }

    def can_transition(self, from_status: SwapStatus, to_status: SwapStatus) -> bool:
        return to_status in self.TRANSITIONS.get(from_status, frozenset())

    async def advance(self, record: SwapRecord, stop_event: Optional[asyncio.Event] = None) -> SwapRecord:
        """
        Run the action for the record's current status.

        ``stop_event`` interrupts confirmation polling for this call only;
        it defaults to the machine-wide stop event.

        Returns the record as stored afterwards; unchanged when the status
        is terminal or the poll was stopped, and as another worker left it
        when that worker moved the record on first.

        Raises:
            FatalProbeError: A confirmation probe failed unexpectedly
            PollTimeoutError: No terminal probe outcome within the poll timeout
            NoRouteError / SubmissionError: Submitting the swap failed
        """
        handler = self._handlers[record.status]
        return await handler(record, stop_event or self.stop_event)

    async def transition(
        self,
        record: SwapRecord,
        to_status: SwapStatus,
        **fields: Any,
    ) -> SwapRecord:
        """
        Validate, persist, then notify. Returns the stored record.

        The write only lands if the store still holds ``record.status``.

        Raises:
            InvalidTransitionError: ``to_status`` does not follow ``record.status``
            StaleRecordError: The stored record already left ``record.status``
        """
        if not self.can_transition(record.status, to_status):
            raise InvalidTransitionError(record.status, to_status, swap_id=record.id)

        updated = await self.store.update(record.id, to_status, fields, expected_status=record.status)
        self.logger.info(
            "Swap %s: %s -> %s",
            record.id,
            record.status.value,
            to_status.value,
        )

        try:
            await self.notifier.notify(updated, notification_for(updated))
        except Exception as exc:
            self.logger.warning("Notification for swap %s failed: %s", record.id, exc, exc_info=True)
        return updated

    async def _transition_or_current(
        self,
        record: SwapRecord,
        to_status: SwapStatus,
        **fields: Any,
    ) -> Tuple[SwapRecord, bool]:
        """``transition``, or the stored record if another worker got there first."""
        try:
            return await self.transition(record, to_status, **fields), True
        except StaleRecordError as exc:
            self.logger.info(
                "Swap %s already moved to %s; dropping %s -> %s",
                record.id,
                getattr(exc.actual_status, "value", exc.actual_status),
                record.status.value,
                to_status.value,
            )
        current = await self.store.get(record.id)
        if current is None:
            raise SwapNotFoundError(record.id)
        return current, False

    def _poller(self, stop_event: asyncio.Event) -> ConfirmationPoller:
        return ConfirmationPoller(
            self.poll_interval_seconds,
            timeout_seconds=self.poll_timeout_seconds,
            stop_event=stop_event,
            logger=self.logger,
        )

    # =========================================================================
    # Status handlers
    # =========================================================================

    async def _await_approval(self, record: SwapRecord, stop_event: asyncio.Event) -> SwapRecord:
        if not record.approve_tx_hash:
            raise FatalProbeError(f"Swap {record.id} is awaiting approval without an approval tx hash")

        client = self.wallet.get_client(record.network, record.wallet_id, record.from_asset, record.from_account_id)
        tx_hash = record.approve_tx_hash

        async def probe() -> ProbeOutcome:
            try:
                tx = await client.get_transaction_by_hash(tx_hash)
            except TxNotFoundError:
                self.logger.warning("Approval tx %s for swap %s not found yet", tx_hash, record.id)
                return ProbeOutcome.pending()
            except Exception as exc:
                if is_transient_network_error(exc):
                    raise TransientProbeError(f"Chain client unavailable: {exc}") from exc
                raise FatalProbeError(f"Approval check for {tx_hash} failed: {exc}") from exc

            confirmations = int((tx or {}).get("confirmations") or 0)
            if confirmations >= 1:
                return ProbeOutcome.success(tx)
            return ProbeOutcome.pending()

        outcome = await self._poller(stop_event).wait_for_terminal(probe)
        if outcome is None:
            return record
        updated, _ = await self._transition_or_current(record, SwapStatus.APPROVAL_CONFIRMED, end_time=now_ms())
        return updated

    async def _submit_swap(self, record: SwapRecord, stop_event: asyncio.Event) -> SwapRecord:
        key = GateKey(record.wallet_id, record.network, record.from_asset)
        async with self.gate.exclusive(key):
            # Another worker may have submitted while this one waited for the gate
            current = await self.store.get(record.id)
            if current is None:
                raise SwapNotFoundError(record.id)
            if current.status != SwapStatus.APPROVAL_CONFIRMED:
                self.logger.info(
                    "Swap %s already moved to %s; skipping submission",
                    record.id,
                    current.status.value,
                )
                return current

            try:
                result = await self.executor.submit(current, current.network, current.wallet_id)
            except SubmissionError as exc:
                if exc.route is not None:
                    # Keep the steps already sent so the retry resumes instead of re-sending them
                    await self.store.update(
                        current.id,
                        fields={"route": exc.route},
                        expected_status=SwapStatus.APPROVAL_CONFIRMED,
                    )
                    self.logger.warning("Swap %s partially submitted; saved route %s", current.id, exc.route.id)
                raise

            updated, _ = await self._transition_or_current(
                current,
                result.status,
                route=result.route,
                swap_tx_hash=result.source_tx_hash,
            )
            return updated

    def _settlement_query(self, record: SwapRecord) -> Dict[str, Any]:
        """``GET /status`` parameters for the step whose transfer settles the swap."""
        step = record.route.settlement_step if record.route else None
        if step is None:
            return {
                "bridge": None,
                "from_chain": record.from_chain_id,
                "to_chain": record.to_chain_id,
                "tx_hash": record.swap_tx_hash,
            }
        return {
            "bridge": step.tool,
            "from_chain": step.action.get("fromChainId", record.route.from_chain_id),
            "to_chain": step.action.get("toChainId", record.route.to_chain_id),
            "tx_hash": step.tx_hash or record.swap_tx_hash,
        }

    async def _await_settlement(self, record: SwapRecord, stop_event: asyncio.Event) -> SwapRecord:
        if not record.swap_tx_hash:
            raise FatalProbeError(f"Swap {record.id} is awaiting settlement without a swap tx hash")

        query = self._settlement_query(record)

        async def probe() -> ProbeOutcome:
            status = await self.provider.get_status(**query)
            if status.status == SettlementStatus.DONE:
                return ProbeOutcome.success(status)
            if status.status == SettlementStatus.FAILED:
                return ProbeOutcome.failure(status)
            return ProbeOutcome.pending()

        outcome = await self._poller(stop_event).wait_for_terminal(probe)
        if outcome is None:
            return record

        to_status = SwapStatus.SUCCESS if outcome.kind == OutcomeKind.SUCCESS else SwapStatus.FAILED
        updated, applied = await self._transition_or_current(record, to_status, end_time=now_ms())
        if not applied:
            return updated

        try:
            await self.wallet.update_balances(record.network, record.wallet_id, [record.to_account_id])
        except Exception as exc:
            self.logger.warning("Balance refresh after swap %s failed: %s", record.id, exc, exc_info=True)
        return updated

    async def _finished(self, record: SwapRecord, stop_event: asyncio.Event) -> SwapRecord:
        return record
