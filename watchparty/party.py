from watchparty.leadership import LeadershipManager
from watchparty.lifecycle import RoomLifecycle
from watchparty.messaging import MessagingRelay
from watchparty.playback import LEADER_SYNC_TIMEOUT, PlaybackEngine
from watchparty.rooms import RoomStore, generate_room_id
from watchparty.sessions import SessionRegistry, UserRegistry


class WatchParty:
    """All room state for one server process, wired to a transport."""

    def __init__(self, transport, limiter=None, room_id_factory=generate_room_id, sync_timeout=LEADER_SYNC_TIMEOUT):
        self.transport = transport
        self.sessions = SessionRegistry()
        self.users = UserRegistry()
        self.rooms = RoomStore(self.sessions, id_factory=room_id_factory)
        self.leadership = LeadershipManager(self.rooms)
        self.playback = PlaybackEngine(self.rooms, self.leadership, transport, limiter=limiter, sync_timeout=sync_timeout)
        self.lifecycle = RoomLifecycle(self.sessions, self.users, self.rooms, self.leadership, self.playback, transport)
        self.messaging = MessagingRelay(self.rooms, transport)
