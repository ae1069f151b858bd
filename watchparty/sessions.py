import logging
import threading

from watchparty.errors import InvalidRequest

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Maps a tab's durable session id to its current live connection id."""

    def __init__(self):
        self._connections = {}
        self._sessions = {}
        self._lock = threading.RLock()

    def bind(self, session_id: str, connection_id: str):
        if not session_id:
            raise InvalidRequest("Session id must not be empty.")
        with self._lock:
            previous = self._connections.get(session_id)
            if previous and previous != connection_id:
                logger.info("Session %s moved from connection %s to %s", session_id, previous, connection_id)
            self._connections[session_id] = connection_id
            self._sessions[connection_id] = session_id

    def resolve(self, session_id: str):
        return self._connections.get(session_id)

    def session_of(self, connection_id: str):
        return self._sessions.get(connection_id)

    def unbind(self, session_id: str, connection_id: str = None):
        """Drop the session mapping.

        When ``connection_id`` is given the mapping is only dropped while that
        connection is still the live one, so a stale socket closing after a
        reconnect leaves the new mapping alone.
        """
        with self._lock:
            current = self._connections.get(session_id)
            if current is None:
                return False
            if connection_id is not None and current != connection_id:
                self._sessions.pop(connection_id, None)
                return False
            del self._connections[session_id]
            self._sessions.pop(current, None)
            return True

    def unbind_connection(self, connection_id: str):
        session_id = self._sessions.get(connection_id)
        if session_id is None:
            return False
        return self.unbind(session_id, connection_id)

    def room_of(self, session_id: str, rooms):
        connection_id = self.resolve(session_id)
        if connection_id is None:
            return None
        return rooms.find_room_containing(connection_id)

    def __len__(self):
        return len(self._connections)


class UserRegistry:
    """Global connection id -> display name table, independent of rooms."""

    def __init__(self):
        self._names = {}

    def register(self, connection_id: str, name: str):
        self._names[connection_id] = name

    def name_of(self, connection_id: str):
        return self._names.get(connection_id)

    def remove(self, connection_id: str):
        return self._names.pop(connection_id, None)

    def snapshot(self):
        return dict(self._names)

    def __len__(self):
        return len(self._names)
