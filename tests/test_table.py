from __future__ import annotations

import pytest

from udp_request.errors import RequestCancelled, TableFull
from udp_request.message import Peer
from udp_request.scheduler import RetryPolicy
from udp_request.table import TransactionTable
from udp_request.wire import MAX_TID, encode_request

PEER = Peer("127.0.0.1", 9999)
POLICY = RetryPolicy()


def alloc(table, cb=None, value=b"v"):
    return table.allocate(PEER, value, lambda tid: encode_request(tid, value), POLICY, cb)


def test_sequential_tids_from_seed():
    table = TransactionTable(seed=10)
    assert [alloc(table).tid for _ in range(3)] == [10, 11, 12]
    assert table.inflight == 3


def test_tid_wraps_to_zero():
    table = TransactionTable(seed=MAX_TID)
    assert alloc(table).tid == MAX_TID
    assert alloc(table).tid == 0


def test_wrapped_counter_skips_pending_tid():
    table = TransactionTable(seed=5)
    first = alloc(table)
    table._tick = first.tid  # counter came all the way around
    assert alloc(table).tid == first.tid + 1
    assert table.inflight == 2


def test_buffer_is_built_for_assigned_tid():
    table = TransactionTable(seed=300)
    entry = alloc(table, value=b"abc")
    assert entry.buffer == encode_request(300, b"abc")
    assert entry.ticks_remaining == POLICY.initial_ticks
    assert entry.retries_used == 0


def test_match_is_idempotent():
    table = TransactionTable()
    entry = alloc(table)
    assert table.match(entry.tid) is entry
    assert table.inflight == 0
    assert table.match(entry.tid) is None
    assert entry.tid not in table


def test_freed_slot_is_reused():
    table = TransactionTable()
    a, b, c = alloc(table), alloc(table), alloc(table)
    table.match(b.tid)
    alloc(table)
    assert table.capacity == 3
    assert table.inflight == 3


def test_no_duplicate_tids_among_pending():
    table = TransactionTable(seed=MAX_TID - 50)
    tids = [alloc(table).tid for _ in range(200)]
    for tid in tids[::3]:
        table.match(tid)
    tids += [alloc(table).tid for _ in range(100)]
    pending = [e.tid for e in table._slots if e is not None]
    assert len(pending) == len(set(pending)) == table.inflight


def test_cancel_completes_with_cancelled(outcomes):
    table = TransactionTable()
    entry = alloc(table, outcomes)
    assert table.cancel(entry.tid) is True
    [err] = outcomes.errors
    assert isinstance(err, RequestCancelled)
    assert err.tid == entry.tid
    assert table.inflight == 0
    assert table.cancel(entry.tid) is False
    assert len(outcomes.calls) == 1


def test_cancel_unknown_tid_is_noop(outcomes):
    table = TransactionTable(seed=0)
    alloc(table, outcomes)
    assert table.cancel(12345) is False
    assert table.inflight == 1
    assert outcomes.calls == []


def test_cancel_reasons(outcomes):
    table = TransactionTable()
    table.cancel(alloc(table, outcomes).tid, "shutting down")
    boom = RuntimeError("boom")
    table.cancel(alloc(table, outcomes).tid, boom)
    first, second = outcomes.errors
    assert isinstance(first, RequestCancelled) and str(first) == "shutting down"
    assert second is boom


def test_drain_completes_each_entry_once(outcomes):
    table = TransactionTable()
    for _ in range(5):
        alloc(table, outcomes)
    assert table.drain() == 5
    assert len(outcomes.errors) == 5
    assert all(isinstance(e, RequestCancelled) for e in outcomes.errors)
    assert table.inflight == 0
    assert table.drain() == 0
    assert len(outcomes.calls) == 5


def test_raising_callback_does_not_stop_drain(outcomes):
    table = TransactionTable()

    def bad(err, reply):
        raise ValueError("user bug")

    alloc(table, bad)
    alloc(table, outcomes)
    assert table.drain() == 2
    assert len(outcomes.calls) == 1


def test_complete_guard():
    table = TransactionTable()
    seen = []
    entry = alloc(table, lambda err, reply: seen.append(err))
    assert entry.complete(None) is True
    assert entry.complete(RequestCancelled()) is False
    assert seen == [None]


def test_failed_encode_registers_nothing():
    table = TransactionTable()

    def encode(tid):
        raise TypeError("cannot encode")

    with pytest.raises(TypeError):
        table.allocate(PEER, object(), encode, POLICY)
    assert table.inflight == 0
    assert table.capacity == 0


def test_table_full():
    table = TransactionTable(seed=0)
    for _ in range(MAX_TID + 1):
        alloc(table)
    with pytest.raises(TableFull):
        alloc(table)
