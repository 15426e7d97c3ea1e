"""
Confirmation Poller

Repeatedly invokes a probe on a fixed interval until it reports a terminal
outcome. The first probe runs immediately; later probes wait on a stop
event so cancellation and shutdown interrupt the interval promptly.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from .errors import FatalProbeError, PollTimeoutError, is_transient_network_error


class OutcomeKind(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    TRANSIENT_ERROR = "TRANSIENT_ERROR"


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of one probe invocation."""

    kind: OutcomeKind
    payload: Any = None
    error: Optional[BaseException] = None

    @property
    def is_terminal(self) -> bool:
        return self.kind in (OutcomeKind.SUCCESS, OutcomeKind.FAILURE)

    @classmethod
    def pending(cls) -> "ProbeOutcome":
        return cls(OutcomeKind.PENDING)

    @classmethod
    def success(cls, payload: Any = None) -> "ProbeOutcome":
        return cls(OutcomeKind.SUCCESS, payload)

    @classmethod
    def failure(cls, payload: Any = None) -> "ProbeOutcome":
        return cls(OutcomeKind.FAILURE, payload)

    @classmethod
    def transient(cls, error: BaseException) -> "ProbeOutcome":
        return cls(OutcomeKind.TRANSIENT_ERROR, error=error)


Probe = Callable[[], Awaitable[ProbeOutcome]]


class ConfirmationPoller:
    """
    Drives a probe until it reports SUCCESS or FAILURE.

    ``TransientProbeError`` and retryable network errors are logged and
    reported as TRANSIENT_ERROR outcomes; polling continues with the next
    interval. Any other probe exception stops the poll as ``FatalProbeError``.
    """

    def __init__(
        self,
        interval_seconds: float,
        *,
        timeout_seconds: Optional[float] = None,
        stop_event: Optional[asyncio.Event] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds
        self.stop_event = stop_event or asyncio.Event()
        self.logger = logger or logging.getLogger(__name__)

    def stop(self) -> None:
        self.stop_event.set()

    async def poll(self, probe: Probe) -> AsyncIterator[ProbeOutcome]:
        """Yield each probe outcome; ends after the first terminal one or on stop."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout_seconds if self.timeout_seconds else None

        while not self.stop_event.is_set():
            outcome = await self._invoke(probe)
            yield outcome
            if outcome.is_terminal:
                return

            wait = self.interval_seconds
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise PollTimeoutError(f"No terminal outcome within {self.timeout_seconds}s")
                wait = min(wait, remaining)

            try:
                await asyncio.wait_for(self.stop_event.wait(), timeout=wait)
            except asyncio.TimeoutError:
                pass

    async def wait_for_terminal(self, probe: Probe) -> Optional[ProbeOutcome]:
        """Drain ``poll`` and return the terminal outcome, or None if stopped first."""
        async for outcome in self.poll(probe):
            if outcome.is_terminal:
                return outcome
        return None

    def start(
        self,
        probe: Probe,
        on_outcome: Optional[Callable[[ProbeOutcome], Awaitable[None]]] = None,
    ) -> "PollHandle":
        """Run ``wait_for_terminal`` in a background task."""

        async def _run() -> Optional[ProbeOutcome]:
            outcome = await self.wait_for_terminal(probe)
            if outcome is not None and on_outcome is not None:
                await on_outcome(outcome)
            return outcome

        return PollHandle(asyncio.create_task(_run(), name="swap-confirmation-poll"), self)

    async def _invoke(self, probe: Probe) -> ProbeOutcome:
        try:
            return await probe()
        except FatalProbeError:
            raise
        except Exception as exc:
            if not is_transient_network_error(exc):
                raise FatalProbeError(f"Confirmation probe failed: {exc!r}") from exc
            self.logger.warning("Confirmation probe failed, retrying next interval: %s", exc)
            return ProbeOutcome.transient(exc)


class PollHandle:
    """Cancellation handle for a poll running in the background."""

    def __init__(self, task: "asyncio.Task[Optional[ProbeOutcome]]", poller: ConfirmationPoller):
        self.task = task
        self.poller = poller

    @property
    def done(self) -> bool:
        return self.task.done()

    def cancel(self) -> None:
        """Stop this poll; a pending outcome's side effect never runs.

        Other polls sharing the poller's stop event keep running.
        """
        self.task.cancel()

    async def wait(self) -> Optional[ProbeOutcome]:
        return await self.task
