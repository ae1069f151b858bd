"""Shared fixtures: an in-memory transport and a controllable clock."""

from collections import defaultdict
from typing import Any, NamedTuple, Optional

import pytest

from watchparty import WatchParty
from watchparty.errors import SyncTimeout
from watchparty.playback import RateLimiter
from watchparty.transport import Transport


class Delivery(NamedTuple):
    event: str
    data: Any


class Broadcast(NamedTuple):
    room_id: str
    event: str
    data: Any
    skip: Optional[str]


class RecordingTransport(Transport):
    """Records every emit and delivers it to per-connection inboxes.

    ``replies`` maps a connection id to what it answers a request with: a
    value, an exception instance to raise, or a callable taking the request
    payload. Connections without an entry never answer.
    """

    def __init__(self):
        self.groups = defaultdict(set)
        self.inboxes = defaultdict(list)
        self.broadcasts = []
        self.requests = []
        self.replies = {}

    def send(self, connection_id, event, data=None):
        self.inboxes[connection_id].append(Delivery(event, data))

    def broadcast(self, room_id, event, data=None, skip=None):
        self.broadcasts.append(Broadcast(room_id, event, data, skip))
        for connection_id in sorted(self.groups[room_id]):
            if connection_id != skip:
                self.inboxes[connection_id].append(Delivery(event, data))

    def request(self, connection_id, event, data, timeout):
        self.requests.append((connection_id, event, data, timeout))
        reply = self.replies.get(connection_id)
        if reply is None:
            raise SyncTimeout()
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(data)
        return reply

    def enter_room(self, connection_id, room_id):
        self.groups[room_id].add(connection_id)

    def leave_room(self, connection_id, room_id):
        self.groups[room_id].discard(connection_id)

    def received(self, connection_id, event=None):
        return [d for d in self.inboxes[connection_id] if event is None or d.event == event]

    def clear(self):
        self.inboxes.clear()
        self.broadcasts.clear()


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def party(transport, clock):
    return WatchParty(transport, limiter=RateLimiter(clock=clock))


@pytest.fixture()
def connect(party):
    """Connect a client the way the socket layer does and return its id."""
    def _connect(connection_id, session_id=None):
        party.lifecycle.connect(connection_id, session_id or f"session-{connection_id}")
        return connection_id
    return _connect


def assert_room_invariants(rooms):
    for room in rooms.rooms():
        assert room.member_count == len(room.members)
        assert room.member_count > 0
        assert room.leader_id in room.members
