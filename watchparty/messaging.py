import logging

from watchparty.errors import InvalidMessage

logger = logging.getLogger(__name__)


class MessagingRelay:
    def __init__(self, rooms, transport):
        self.rooms = rooms
        self.transport = transport

    def send_message(self, room_id, connection_id, name, text):
        room = self.rooms.get(room_id)
        if not isinstance(text, str) or not text.strip() or room is None or not room.is_member(connection_id):
            logger.info("Rejected message from %s (%s) for room %s", name, connection_id, room_id)
            raise InvalidMessage()
        if not isinstance(name, str) or not name.strip():
            name = room.members[connection_id]
        line = f"{name}: {text}"
        logger.info("From room %s - %s", room_id, line)
        self.transport.broadcast(room_id, "message", line)
        return line
