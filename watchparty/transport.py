import logging

from socketio.exceptions import TimeoutError as SocketIOTimeoutError

from watchparty.errors import SyncTimeout

logger = logging.getLogger(__name__)


class Transport:
    """Messaging primitives the room logic needs from the socket layer."""

    def send(self, connection_id, event, data=None):
        raise NotImplementedError

    def broadcast(self, room_id, event, data=None, skip=None):
        """Emit to every connection in ``room_id`` except ``skip``."""
        raise NotImplementedError

    def request(self, connection_id, event, data, timeout):
        """Emit with an acknowledgement and return the reply.

        Raises SyncTimeout when no reply arrives within ``timeout`` seconds.
        """
        raise NotImplementedError

    def enter_room(self, connection_id, room_id):
        raise NotImplementedError

    def leave_room(self, connection_id, room_id):
        raise NotImplementedError


class SocketIOTransport(Transport):
    def __init__(self, socketio, namespace="/"):
        self.socketio = socketio
        self.namespace = namespace

    def send(self, connection_id, event, data=None):
        args = () if data is None else (data,)
        self.socketio.emit(event, *args, to=connection_id, namespace=self.namespace)

    def broadcast(self, room_id, event, data=None, skip=None):
        args = () if data is None else (data,)
        self.socketio.emit(event, *args, to=room_id, skip_sid=skip, namespace=self.namespace)

    def request(self, connection_id, event, data, timeout):
        try:
            return self.socketio.call(event, data, to=connection_id, namespace=self.namespace, timeout=timeout)
        except SocketIOTimeoutError:
            logger.info("No reply to %s from %s within %ss", event, connection_id, timeout)
            raise SyncTimeout()

    def enter_room(self, connection_id, room_id):
        self.socketio.server.enter_room(connection_id, room_id, namespace=self.namespace)

    def leave_room(self, connection_id, room_id):
        self.socketio.server.leave_room(connection_id, room_id, namespace=self.namespace)
