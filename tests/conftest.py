from __future__ import annotations

import pytest

from udp_request import MemoryNetwork, udp_request

LOCALHOST = "127.0.0.1"


@pytest.fixture
def network():
    return MemoryNetwork(host=LOCALHOST)


@pytest.fixture
def make_endpoint(network):
    """In-memory endpoints with a hand-driven scheduler, destroyed at teardown."""
    created = []

    def factory(listen: bool = True, **options):
        options.setdefault("tick_interval", 0)
        ep = udp_request(transport="memory", network=network, **options)
        if listen:
            ep.listen()
        created.append(ep)
        return ep

    yield factory
    for ep in created:
        ep.destroy()


class Outcomes:
    """Collects (error, reply) pairs handed to request completions."""

    def __init__(self):
        self.calls = []

    def __call__(self, err, reply):
        self.calls.append((err, reply))

    @property
    def errors(self):
        return [e for e, _ in self.calls if e is not None]

    @property
    def replies(self):
        return [r for e, r in self.calls if e is None]


@pytest.fixture
def outcomes():
    return Outcomes()
