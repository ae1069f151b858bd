import logging

from watchparty.errors import InvalidRequest, NotInRoom, RoomNotFound

logger = logging.getLogger(__name__)


class RoomLifecycle:
    """Connect, create, join, leave and disconnect orchestration.

    Mutations are delegated to the room store; this class decides what the
    room hears about them and in which order.
    """

    def __init__(self, sessions, users, rooms, leadership, playback, transport):
        self.sessions = sessions
        self.users = users
        self.rooms = rooms
        self.leadership = leadership
        self.playback = playback
        self.transport = transport

    def connect(self, connection_id, session_id=None):
        if not session_id:
            logger.info("Connection %s sent no session id; using the connection id", connection_id)
            session_id = connection_id
        self.sessions.bind(session_id, connection_id)
        self.transport.send(connection_id, "on-connection", connection_id)
        logger.info("New connection with ID of %s (session %s)", connection_id, session_id)
        return session_id

    def register_user(self, connection_id, name):
        if not isinstance(name, str) or not name.strip():
            raise InvalidRequest("Display name must not be empty.")
        name = name.strip()
        self.users.register(connection_id, name)
        logger.info(
            "User %s connected with ID %s; %d global user(s), %d room(s)",
            name, connection_id, len(self.users), len(self.rooms),
        )
        return name

    def create_room(self, connection_id, name):
        room = self.rooms.create(connection_id, name)
        self.transport.enter_room(connection_id, room.room_id)
        self.transport.send(connection_id, "created-room", {"roomID": room.room_id, "room": room.snapshot()})
        self._broadcast_members(room)
        return room

    def join_room(self, connection_id, room_id, name):
        room = self.rooms.join(room_id, connection_id, name)
        self.transport.enter_room(connection_id, room_id)
        self.transport.send(connection_id, "joined-room", {"roomID": room_id, "room": room.snapshot()})
        self.transport.broadcast(room_id, "message", f"{room.members[connection_id]} has joined!")
        self._broadcast_members(room)
        return room

    def leave_room(self, connection_id, room_id):
        room = self.rooms.get(room_id)
        if room is None:
            raise RoomNotFound()
        if not room.is_member(connection_id):
            raise NotInRoom()
        removal = self.rooms.remove(room_id, connection_id)
        self.transport.leave_room(connection_id, room_id)
        self.playback.cancel_sync(connection_id)
        self._announce_removal(room_id, removal)
        return removal

    def disconnect(self, connection_id):
        self.playback.forget(connection_id)
        try:
            removed = self.rooms.remove_connection(connection_id)
            if removed is not None:
                room_id, removal = removed
                logger.info("User %s disconnected from room %s", removal.member.name, room_id)
                self._announce_removal(room_id, removal)
        finally:
            self.users.remove(connection_id)
            self.sessions.unbind_connection(connection_id)
        logger.info(
            "Connection %s has fully disconnected; %d global user(s), %d room(s)",
            connection_id, len(self.users), len(self.rooms),
        )

    def transfer_leadership(self, room_id, requester_id, target_id):
        new_leader = self.leadership.transfer(room_id, requester_id, target_id)
        self._announce_leader(room_id, new_leader)
        return new_leader

    def _announce_removal(self, room_id, removal):
        if removal.deleted:
            return
        room = self.rooms.get(room_id)
        if room is None:
            logger.warning("Room %s vanished before members could be told about %s", room_id, removal.member.name)
            return
        self._broadcast_members(room)
        self.transport.broadcast(
            room_id,
            "user-left",
            {"connectionID": removal.member.connection_id, "name": removal.member.name, "roomID": room_id},
        )
        if removal.new_leader is not None:
            self._announce_leader(room_id, removal.new_leader)

    def _announce_leader(self, room_id, leader):
        self.transport.broadcast(
            room_id,
            "new-leader-assigned",
            {"newLeaderID": leader.connection_id, "newLeaderName": leader.name, "roomID": room_id},
        )

    def _broadcast_members(self, room):
        self.transport.broadcast(room.room_id, "update-users-list", {"users": dict(room.members), "leaderID": room.leader_id})
