import logging
import secrets
import string
import threading
from dataclasses import dataclass, field, fields, replace
from typing import Dict, NamedTuple, Optional

from watchparty.errors import AlreadyInRoom, InvalidRequest, NotInRoom, RoomFull, RoomNotFound

logger = logging.getLogger(__name__)

MAX_ROOM_MEMBERS = 20
ROOM_ID_LENGTH = 14
ROOM_ID_ALPHABET = string.ascii_letters + string.digits


def generate_room_id(length: int = ROOM_ID_LENGTH) -> str:
    return "".join(secrets.choice(ROOM_ID_ALPHABET) for _ in range(length))


def _clean_name(name, action):
    if not isinstance(name, str) or not name.strip():
        raise InvalidRequest(f"A display name is required to {action} a room.")
    return name.strip()


class Member(NamedTuple):
    connection_id: str
    name: str


class Removal(NamedTuple):
    member: Member
    new_leader: Optional[Member]
    deleted: bool


@dataclass(frozen=True)
class PlaybackState:
    video_link: str = ""
    current_time: int = 0
    paused: bool = True
    playback_rate: float = 1.0


@dataclass
class Room:
    room_id: str
    members: Dict[str, str] = field(default_factory=dict)
    leader_id: Optional[str] = None
    playback: PlaybackState = field(default_factory=PlaybackState)

    @property
    def member_count(self) -> int:
        return len(self.members)

    @property
    def leader(self) -> Optional[Member]:
        if self.leader_id is None:
            return None
        return Member(self.leader_id, self.members[self.leader_id])

    def is_member(self, connection_id) -> bool:
        return connection_id in self.members

    def is_leader(self, connection_id) -> bool:
        return connection_id is not None and connection_id == self.leader_id

    def snapshot(self):
        """Wire form of the room, as sent in created-room / joined-room."""
        leader = self.leader
        return {
            "roomID": self.room_id,
            "members": dict(self.members),
            "memberCount": self.member_count,
            "leader": {"id": leader.connection_id, "name": leader.name} if leader else None,
            "currentVideoLink": self.playback.video_link,
            "currentTime": self.playback.current_time,
            "videoPaused": self.playback.paused,
            "currentPlaybackRate": self.playback.playback_rate,
        }


class RoomStore:
    """In-memory room table. Every change to a Room goes through here.

    Callers get Room objects back for reading; they must not assign to
    their fields.
    """

    def __init__(self, sessions, max_members=MAX_ROOM_MEMBERS, id_factory=generate_room_id):
        self.sessions = sessions
        self.max_members = max_members
        self._id_factory = id_factory
        self._rooms = {}
        self._lock = threading.RLock()

    def get(self, room_id) -> Optional[Room]:
        return self._rooms.get(room_id)

    def require(self, room_id) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound()
        return room

    def find_room_containing(self, connection_id):
        with self._lock:
            for room_id, room in self._rooms.items():
                if connection_id in room.members:
                    return room_id
            return None

    def room_of_session(self, session_id):
        """Room held by any connection of ``session_id``, old sockets included."""
        with self._lock:
            for room_id, room in self._rooms.items():
                for member_id in room.members:
                    if self.sessions.session_of(member_id) == session_id:
                        return room_id
            return None

    def room_of_connection(self, connection_id):
        room_id = self.find_room_containing(connection_id)
        if room_id is not None:
            return room_id
        session_id = self.sessions.session_of(connection_id)
        if session_id is None:
            return None
        return self.room_of_session(session_id)

    def create(self, owner_id, owner_name) -> Room:
        owner_name = _clean_name(owner_name, "create")
        with self._lock:
            existing = self.room_of_connection(owner_id)
            if existing is not None:
                raise AlreadyInRoom(f"You are already in room {existing}.")
            room_id = self._id_factory()
            while room_id in self._rooms:
                logger.debug("Room id collision on %s, regenerating", room_id)
                room_id = self._id_factory()
            room = Room(room_id=room_id, members={owner_id: owner_name})
            self._assign_leader(room, owner_id)
            self._rooms[room_id] = room
        logger.info("Room %s created by %s (%s); %d room(s) open", room_id, owner_name, owner_id, len(self._rooms))
        return room

    def join(self, room_id, connection_id, name) -> Room:
        name = _clean_name(name, "join")
        with self._lock:
            room = self.require(room_id)
            if room.member_count >= self.max_members:
                raise RoomFull(f"Room {room_id} already has {self.max_members} members.")
            existing = self.room_of_connection(connection_id)
            if existing is not None:
                raise AlreadyInRoom(f"You are already in room {existing}.")
            room.members[connection_id] = name
        logger.info("%s (%s) joined room %s; %d member(s)", name, connection_id, room_id, room.member_count)
        return room

    def remove(self, room_id, connection_id) -> Removal:
        """Take a member out, promoting the earliest joiner if they led."""
        with self._lock:
            room = self.require(room_id)
            if connection_id not in room.members:
                raise NotInRoom()
            member = Member(connection_id, room.members.pop(connection_id))
            if not room.members:
                del self._rooms[room_id]
                logger.info("Room %s is now empty and was deleted", room_id)
                return Removal(member, None, True)
            new_leader = None
            if room.leader_id == connection_id:
                self._assign_leader(room, next(iter(room.members)))
                new_leader = room.leader
                logger.info("Leader %s left room %s; promoted %s", member.name, room_id, new_leader.name)
        return Removal(member, new_leader, False)

    def remove_connection(self, connection_id):
        """Find and remove ``connection_id`` in one step.

        Returns ``(room_id, Removal)``, or None when it was in no room.
        """
        with self._lock:
            room_id = self.find_room_containing(connection_id)
            if room_id is None:
                return None
            return room_id, self.remove(room_id, connection_id)

    def assign_leader(self, room_id, connection_id) -> Member:
        with self._lock:
            room = self.require(room_id)
            self._assign_leader(room, connection_id)
            return room.leader

    def _assign_leader(self, room, connection_id):
        if connection_id not in room.members:
            raise NotInRoom(f"{connection_id} is not a member of room {room.room_id}.")
        room.leader_id = connection_id

    def update_playback(self, room_id, **changes) -> PlaybackState:
        unknown = set(changes) - {f.name for f in fields(PlaybackState)}
        if unknown:
            raise TypeError(f"Unknown playback fields: {', '.join(sorted(unknown))}")
        with self._lock:
            room = self.require(room_id)
            room.playback = replace(room.playback, **changes)
            return room.playback

    def rooms(self):
        with self._lock:
            return list(self._rooms.values())

    def __len__(self):
        return len(self._rooms)

    def __contains__(self, room_id):
        return room_id in self._rooms
