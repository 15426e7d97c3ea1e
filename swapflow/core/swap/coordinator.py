"""
Swap Coordinator

Entry point for the swap lifecycle: quotes, swap creation, and background
driving of records until they reach a terminal status. Each record is
driven by at most one task at a time; records left in flight by a previous
process are picked up again by ``resume_pending``.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from ...config import settings
from ...providers.lifi import LifiProvider
from .errors import PollTimeoutError, SwapNotFoundError
from .executor import RouteExecutor
from .gate import ExclusiveAccessGate
from .interfaces import LoggingNotifier, Notifier, WalletProvider
from .models import Quote, SwapRecord, SwapStatus
from .persistence import SwapStore
from .quotes import QuoteResolver
from .state_machine import SwapStateMachine
from .statuses import display_for, notification_for


@dataclass
class DriveState:
    """In-memory bookkeeping for one record's drive task."""

    record_id: str
    status: str = "idle"  # idle | running
    last_status: Optional[SwapStatus] = None
    last_error: Optional[str] = None
    run_count: int = 0
    last_started: Optional[datetime] = None
    last_completed: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recordId": self.record_id,
            "status": self.status,
            "lastStatus": self.last_status.value if self.last_status else None,
            "lastError": self.last_error,
            "runCount": self.run_count,
            "lastStarted": self.last_started.isoformat() if self.last_started else None,
            "lastCompleted": self.last_completed.isoformat() if self.last_completed else None,
        }


class SwapCoordinator:
    """Owns the swap collaborators and drives records in the background."""

    def __init__(
        self,
        *,
        wallet: WalletProvider,
        store: SwapStore,
        provider: Optional[LifiProvider] = None,
        gate: Optional[ExclusiveAccessGate] = None,
        notifier: Optional[Notifier] = None,
        poll_interval_seconds: Optional[float] = None,
        poll_timeout_seconds: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.wallet = wallet
        self.store = store
        self.provider = provider or LifiProvider()
        self.gate = gate or ExclusiveAccessGate()
        self.notifier = notifier or LoggingNotifier()
        self.stop_event = asyncio.Event()

        self.resolver = QuoteResolver(provider=self.provider)
        self.executor = RouteExecutor(wallet, provider=self.provider)
        self.machine = SwapStateMachine(
            store=store,
            wallet=wallet,
            executor=self.executor,
            provider=self.provider,
            gate=self.gate,
            notifier=self.notifier,
            poll_interval_seconds=poll_interval_seconds or settings.poll_interval_seconds,
            poll_timeout_seconds=(
                poll_timeout_seconds if poll_timeout_seconds is not None else settings.poll_timeout_seconds
            ),
            stop_event=self.stop_event,
        )

        self._tasks: Dict[str, asyncio.Task] = {}
        self._state: Dict[str, DriveState] = {}
        self._stops: Dict[str, asyncio.Event] = {}

    # ---------------------------
    # Quotes and swap creation
    # ---------------------------
    async def get_quote(
        self,
        from_asset: str,
        to_asset: str,
        amount: Union[Decimal, int, str],
        network: Optional[str] = None,
        *,
        from_address: str = "",
    ) -> Quote:
        return await self.resolver.get_quote(
            from_asset,
            to_asset,
            amount,
            network or settings.default_network,
            from_address=from_address,
        )

    async def new_swap(
        self,
        quote: Quote,
        network: str,
        wallet_id: str,
        from_account_id: Optional[str] = None,
        to_account_id: Optional[str] = None,
        approve_tx_hash: Optional[str] = None,
        *,
        schedule: bool = True,
    ) -> SwapRecord:
        """
        Create and persist a swap record for an accepted quote.

        With ``approve_tx_hash`` the record waits for the approval to
        confirm. Without it the record is stored as ``APPROVAL_CONFIRMED``
        and submitted right away through the state machine, so the record
        exists before any transaction is sent.

        Raises:
            SwapStoreError: The record could not be stored (nothing is sent)
            NoRouteError: No route exists for the quote (record stays APPROVAL_CONFIRMED)
            SubmissionError: The immediate submission failed (record stays APPROVAL_CONFIRMED)
        """
        status = SwapStatus.AWAITING_APPROVAL_CONFIRMATION if approve_tx_hash else SwapStatus.APPROVAL_CONFIRMED
        record = SwapRecord.from_quote(
            quote,
            wallet_id=wallet_id,
            network=network,
            status=status,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            approve_tx_hash=approve_tx_hash,
        )

        record = await self.store.create(record)
        self.logger.info(
            "Created swap %s %s→%s on %s (%s)",
            record.id,
            record.from_asset,
            record.to_asset,
            record.network,
            record.status.value,
        )
        await self._notify(record)

        if record.status == SwapStatus.APPROVAL_CONFIRMED:
            record = await self.machine.advance(record)

        if schedule:
            self.schedule(record.id)
        return record

    async def get_swap(self, record_id: str) -> SwapRecord:
        record = await self.store.get(record_id)
        if record is None:
            raise SwapNotFoundError(record_id)
        return record

    def status_display(self, record: SwapRecord) -> Dict[str, Any]:
        return display_for(record)

    # ---------------------------
    # Driving
    # ---------------------------
    async def drive(self, record_id: str, stop_event: Optional[asyncio.Event] = None) -> SwapRecord:
        """Advance the record until it is terminal, its drive is cancelled, or the coordinator stops."""
        stop = stop_event or self.stop_event
        record = await self.get_swap(record_id)
        while not record.is_terminal and not stop.is_set() and not self.stop_event.is_set():
            record = await self.machine.advance(record, stop)
        return record

    def schedule(self, record_id: str) -> bool:
        """Start driving ``record_id`` in the background; False if it is already in flight."""
        existing = self._tasks.get(record_id)
        if existing is not None and not existing.done():
            self.logger.debug("Swap %s already in flight", record_id)
            return False
        if self.stop_event.is_set():
            self.logger.warning("Coordinator stopped; not scheduling swap %s", record_id)
            return False

        stop = asyncio.Event()
        task = asyncio.create_task(self._run_drive(record_id, stop), name=f"swap-drive-{record_id}")
        self._tasks[record_id] = task
        self._stops[record_id] = stop
        task.add_done_callback(lambda t, record_id=record_id: self._forget(record_id, t))
        return True

    async def cancel(self, record_id: str) -> bool:
        """Stop driving one record and wait for its task; False if it is not in flight.

        Other records keep being driven. The record stays in its current
        status and can be scheduled again.
        """
        task = self._tasks.get(record_id)
        if task is None or task.done():
            return False
        stop = self._stops.get(record_id)
        if stop is not None:
            stop.set()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        self.logger.info("Stopped driving swap %s", record_id)
        return True

    async def resume_pending(self) -> int:
        """Schedule every non-terminal record in the store."""
        records = await self.store.list_active()
        scheduled = sum(1 for record in records if self.schedule(record.id))
        self.logger.info("Resuming %d pending swaps", scheduled)
        return scheduled

    async def shutdown(self) -> None:
        """Stop polling, cancel drive tasks and wait for them."""
        self.stop_event.set()
        for stop in self._stops.values():
            stop.set()
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._stops.clear()
        await self.provider.close()
        await self.store.close()

    @property
    def in_flight(self) -> List[str]:
        return [record_id for record_id, task in self._tasks.items() if not task.done()]

    def drive_state(self, record_id: str) -> Optional[DriveState]:
        return self._state.get(record_id)

    async def _run_drive(self, record_id: str, stop_event: asyncio.Event) -> None:
        state = self._state.setdefault(record_id, DriveState(record_id=record_id))
        state.status = "running"
        state.last_started = datetime.now(timezone.utc)
        try:
            record = await self.drive(record_id, stop_event)
            state.last_status = record.status
            state.last_error = None
        except PollTimeoutError as exc:
            state.last_error = str(exc)
            self.logger.info("Swap %s: polling timed out; will retry on next schedule", record_id)
        except Exception as exc:  # noqa: BLE001
            state.last_error = str(exc)
            self.logger.error("Swap %s drive failed: %s", record_id, exc, exc_info=True)
        finally:
            state.run_count += 1
            state.last_completed = datetime.now(timezone.utc)
            state.status = "idle"

    def _forget(self, record_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(record_id) is task:
            del self._tasks[record_id]
            self._stops.pop(record_id, None)

    async def _notify(self, record: SwapRecord) -> None:
        try:
            await self.notifier.notify(record, notification_for(record))
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Notification for swap %s failed: %s", record.id, exc, exc_info=True)
