import logging

from watchparty.errors import NotLeader, TargetNotInRoom

logger = logging.getLogger(__name__)


class LeadershipManager:
    def __init__(self, rooms):
        self.rooms = rooms

    def require_leader(self, room_id, connection_id):
        """Return the room if ``connection_id`` currently leads it."""
        room = self.rooms.require(room_id)
        if not room.is_leader(connection_id):
            raise NotLeader()
        return room

    def transfer(self, room_id, requester_id, target_id):
        room = self.require_leader(room_id, requester_id)
        if not room.is_member(target_id):
            raise TargetNotInRoom()
        new_leader = self.rooms.assign_leader(room_id, target_id)
        logger.info("Room %s leadership handed from %s to %s (%s)", room_id, requester_id, new_leader.name, target_id)
        return new_leader
