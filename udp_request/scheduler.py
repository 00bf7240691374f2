from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional, Tuple
import logging
import threading

from .errors import RequestTimeout

if TYPE_CHECKING:
    from .message import Peer
    from .table import PendingRequest, TransactionTable

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_TICKS = 5
DEFAULT_BACKOFF: Tuple[int, ...] = (4, 8, 12)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    initial_ticks: int = DEFAULT_INITIAL_TICKS
    backoff: Tuple[int, ...] = DEFAULT_BACKOFF

    @property
    def max_retries(self) -> int:
        return len(self.backoff)

    def disabled(self) -> "RetryPolicy":
        """Same initial wait, no retransmissions."""
        return RetryPolicy(self.initial_ticks, ())

    def ticks_until_expiry(self) -> int:
        # every countdown value plus the tick that acts on reaching zero
        return sum(self.backoff) + self.initial_ticks + self.max_retries + 1


class Step(Enum):
    WAIT   = "wait"
    RETRY  = "retry"
    EXPIRE = "expire"


def advance(entry: "PendingRequest") -> Step:
    """One tick of the per-entry state machine. Mutates countdown and retry bookkeeping."""
    if entry.ticks_remaining > 0:
        entry.ticks_remaining -= 1
        return Step.WAIT
    if entry.retries_used < entry.max_retries:
        entry.ticks_remaining = entry.schedule[entry.retries_used]
        entry.retries_used += 1
        return Step.RETRY
    return Step.EXPIRE


class Scheduler:
    """
    Periodic sweep over a transaction table: retransmits due entries and fails
    expired ones with RequestTimeout. The timer thread belongs to one endpoint;
    interval <= 0 means no thread and tick() is driven by the owner.
    """

    def __init__(self, table: "TransactionTable", send: Callable[[bytes, "Peer"], None],
                 interval: float):
        self.table = table
        self.interval = interval
        self._send = send
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._guard = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._guard:
            if self.interval <= 0 or self._stopped.is_set() or self._thread is not None:
                return
            self._thread = threading.Thread(target=self._loop, name="udp-request-scheduler", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        with self._guard:
            self._stopped.set()
            thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=max(1.0, self.interval * 2))

    def tick(self) -> None:
        retransmit, expired = self.table.sweep(advance)
        for entry in retransmit:
            logger.debug("retransmitting tid %d to %s:%d (retry %d/%d)",
                         entry.tid, entry.peer.host, entry.peer.port,
                         entry.retries_used, entry.max_retries)
            self._send(entry.buffer, entry.peer)
        for entry in expired:
            logger.debug("tid %d timed out after %d retries", entry.tid, entry.retries_used)
            entry.complete(RequestTimeout(tid=entry.tid))

    def _loop(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.tick()
            except Exception:
                logger.exception("scheduler tick failed")
