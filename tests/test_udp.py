from __future__ import annotations

import errno
import socket
import threading

import pytest

from udp_request import (
    FatalErrorEvent,
    InboundRequest,
    RequestTimeout,
    udp_request,
)
from tests.conftest import LOCALHOST


@pytest.fixture
def endpoints():
    created = []

    def factory(**options):
        options.setdefault("timeout", 0.2)
        ep = udp_request(**options)
        created.append(ep)
        return ep

    yield factory
    for ep in created:
        ep.destroy()


def listening(ep):
    ep.listen(0, host=LOCALHOST)
    return (LOCALHOST, ep.port)


def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        s.bind((LOCALHOST, 0))
        return s.getsockname()[1]


def test_echo(endpoints):
    ep = endpoints()
    ep.on(InboundRequest, lambda ev: ep.response(ev.value, ev.peer))
    addr = listening(ep)
    reply = ep.call("hello", addr)
    assert reply.value == b"hello"
    assert ep.inflight == 0


def test_two_endpoints_several_requests(endpoints):
    server, client = endpoints(codec="json"), endpoints(codec="json")
    server.on(InboundRequest, lambda ev: server.response({"n": ev.value["n"] * 2}, ev.peer))
    addr = listening(server)
    listening(client)

    done = threading.Event()
    results = []

    def collect(err, reply):
        results.append((err, reply))
        if len(results) == 3:
            done.set()

    for n in range(3):
        client.request({"n": n}, addr, collect, retry=True)
    assert done.wait(5)
    assert sorted(r.value["n"] for e, r in results if e is None) == [0, 2, 4]


def test_timeout_when_nobody_listens(endpoints):
    ep = endpoints(timeout=0.1)
    listening(ep)
    outcome = []
    done = threading.Event()

    def record(err, reply):
        outcome.append(err)
        done.set()

    ep.request(b"hello", (LOCALHOST, free_port()), record)
    assert done.wait(5)
    [err] = outcome
    assert isinstance(err, RequestTimeout)
    assert ep.inflight == 0


def test_relay(endpoints):
    a, relay, b = endpoints(), endpoints(), endpoints()
    listening(a)
    b_addr = listening(b)
    relay_addr = listening(relay)
    a_addr = (LOCALHOST, a.port)

    relay.on(InboundRequest, lambda ev: relay.forward_request(ev.value, ev.peer, b_addr))
    b.on(InboundRequest, lambda ev: b.forward_response(ev.value, ev.peer, a_addr))

    reply = a.call("echo me", relay_addr)
    assert reply.value == b"echo me"
    assert reply.peer.port == b.port


def test_borrowed_socket_stays_open(endpoints):
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind((LOCALHOST, 0))
    try:
        assert sock.gettimeout() is None
        ep = endpoints(transport=sock)
        ep.on(InboundRequest, lambda ev: ep.response(ev.value, ev.peer))
        assert ep.call(b"ping", sock.getsockname()).value == b"ping"
        ep.destroy()
        assert sock.fileno() != -1
        assert sock.gettimeout() is None
    finally:
        sock.close()


def test_port_in_use_is_fatal(endpoints):
    first = endpoints()
    listening(first)
    second = endpoints()
    fatals = []
    second.on(FatalErrorEvent, fatals.append)
    second.listen(first.port, host=LOCALHOST)
    [f] = fatals
    assert f.error.errno == errno.EADDRINUSE
