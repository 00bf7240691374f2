from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import logging
import random
import threading

from .errors import RequestCancelled, TableFull
from .message import Peer, Reply
from .scheduler import RetryPolicy, Step
from .wire import MAX_TID

logger = logging.getLogger(__name__)

Completion = Callable[[Optional[BaseException], Optional[Reply]], None]
Reason = Union[str, BaseException, None]

def _noop(err: Optional[BaseException], reply: Optional[Reply]) -> None:
    pass

def cancellation(reason: Reason, tid: int) -> BaseException:
    """Turn a cancel/destroy reason into the error handed to a completion."""
    if isinstance(reason, BaseException):
        return reason
    if reason:
        return RequestCancelled(str(reason), tid=tid)
    return RequestCancelled(tid=tid)


@dataclass(slots=True)
class PendingRequest:
    tid: int
    request: Any                 # original request value
    peer: Peer                   # destination
    buffer: bytes                # exact bytes sent, reused on retransmit
    ticks_remaining: int
    schedule: Tuple[int, ...]    # backoff, one entry per allowed retry
    callback: Completion = _noop
    retries_used: int = 0
    done: bool = field(default=False, repr=False)

    @property
    def max_retries(self) -> int:
        return len(self.schedule)

    def complete(self, error: Optional[BaseException], reply: Optional[Reply] = None) -> bool:
        """Invoke the continuation once. Later calls are ignored."""
        if self.done:
            return False
        self.done = True
        try:
            self.callback(error, reply)
        except Exception:
            logger.exception("completion for tid %d raised", self.tid)
        return True


class TransactionTable:
    """
    Pending-request registry.

    Slots live in an arena (list) indexed by position; `_index` maps
    tid -> position and `_free` holds released positions, which are reused
    before the arena grows. All mutation happens under one lock; completions
    are always invoked after the lock is released.
    """

    def __init__(self, seed: Optional[int] = None):
        self._slots: List[Optional[PendingRequest]] = []
        self._index: Dict[int, int] = {}
        self._free: List[int] = []
        self._lock = threading.Lock()
        # random start lowers the odds of reusing tids a previous table had in flight
        self._tick = random.randint(0, MAX_TID) if seed is None else seed & MAX_TID

    @property
    def inflight(self) -> int:
        return len(self._index)

    @property
    def capacity(self) -> int:
        """Arena size; the historical peak of concurrent requests."""
        return len(self._slots)

    def __len__(self) -> int:
        return self.inflight

    def __contains__(self, tid: int) -> bool:
        return tid in self._index

    def _next_tid(self) -> int:
        if len(self._index) > MAX_TID:
            raise TableFull(f"all {MAX_TID + 1} transaction ids are pending")
        # a tid that wrapped around onto a still-pending request is skipped
        while True:
            tid = self._tick
            self._tick = 0 if tid == MAX_TID else tid + 1
            if tid not in self._index:
                return tid

    def allocate(self, peer: Peer, request: Any, encode: Callable[[int], bytes],
                 policy: RetryPolicy, callback: Optional[Completion] = None) -> PendingRequest:
        """
        Register a new pending request. `encode(tid)` builds the wire bytes
        for the assigned tid; if it raises nothing is registered.
        """
        with self._lock:
            tid = self._next_tid()
            entry = PendingRequest(
                tid=tid,
                request=request,
                peer=peer,
                buffer=encode(tid),
                ticks_remaining=policy.initial_ticks,
                schedule=tuple(policy.backoff),
                callback=callback or _noop,
            )
            if self._free:
                i = self._free.pop()
                self._slots[i] = entry
            else:
                i = len(self._slots)
                self._slots.append(entry)
            self._index[tid] = i
            return entry

    def _remove(self, tid: int) -> Optional[PendingRequest]:
        i = self._index.pop(tid, None)
        if i is None:
            return None
        entry = self._slots[i]
        self._slots[i] = None
        self._free.append(i)
        return entry

    def match(self, tid: int) -> Optional[PendingRequest]:
        with self._lock:
            return self._remove(tid)

    def cancel(self, tid: int, reason: Reason = None) -> bool:
        with self._lock:
            entry = self._remove(tid)
        if entry is None:
            return False
        entry.complete(cancellation(reason, tid))
        return True

    def drain(self, reason: Reason = None) -> int:
        with self._lock:
            entries = [self._remove(tid) for tid in list(self._index)]
        for entry in entries:
            entry.complete(cancellation(reason, entry.tid))
        return len(entries)

    def sweep(self, step: Callable[[PendingRequest], Step]) -> Tuple[List[PendingRequest], List[PendingRequest]]:
        """
        Apply `step` to every pending entry once. Returns (retransmit, expired);
        expired entries are already out of the table.
        """
        retransmit: List[PendingRequest] = []
        expired: List[PendingRequest] = []
        with self._lock:
            for entry in self._slots:
                if entry is None:
                    continue
                action = step(entry)
                if action is Step.RETRY:
                    retransmit.append(entry)
                elif action is Step.EXPIRE:
                    expired.append(entry)
            for entry in expired:
                self._remove(entry.tid)
        return retransmit, expired
